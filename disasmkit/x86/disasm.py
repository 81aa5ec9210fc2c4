"""Disassembler for the x86 architecture."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from disasmkit.disasm import Arch, BinaryFile, Disasm, format_address
from disasmkit.queue import AddressQueue
from disasmkit.x86.arg import Arg, ArgRef, Imm, Mem, MemRef, RegRef, Rel
from disasmkit.x86.context import Context, parse_contexts
from disasmkit.x86.register import Register

log = logging.getLogger(__name__)

_LOOP_OPS = frozenset({"LOOP", "LOOPE", "LOOPNE"})
_JCC_OPS = frozenset({
    "JA", "JAE", "JB", "JBE", "JCXZ", "JE", "JECXZ", "JG", "JGE", "JL", "JLE",
    "JNE", "JNO", "JNP", "JNS", "JO", "JP", "JRCXZ", "JS",
})
_TERM_OPS = _LOOP_OPS | _JCC_OPS | {"JMP", "RET"}

_JCC_BY_CODE = [
    "JO", "JNO", "JB", "JAE", "JE", "JNE", "JBE", "JA",
    "JS", "JNS", "JP", "JNP", "JL", "JGE", "JLE", "JG",
]
_REGS32 = [Register.EAX, Register.ECX, Register.EDX, Register.EBX,
           Register.ESP, Register.EBP, Register.ESI, Register.EDI]
_REGS64 = [Register.RAX, Register.RCX, Register.RDX, Register.RBX,
           Register.RSP, Register.RBP, Register.RSI, Register.RDI]
_ALU_OPS = {
    0x01: ("ADD", False), 0x03: ("ADD", True),
    0x29: ("SUB", False), 0x2B: ("SUB", True),
    0x31: ("XOR", False), 0x33: ("XOR", True),
    0x39: ("CMP", False), 0x3B: ("CMP", True),
    0x85: ("TEST", False),
    0x89: ("MOV", False), 0x8B: ("MOV", True),
}
_ADDR_MASK = (1 << 64) - 1


@dataclass
class Inst:
    """A single instruction; an instruction without ``op`` is a dummy terminator."""

    addr: int
    op: str | None = None
    args: tuple[Arg, ...] = ()
    length: int = 0

    def is_term(self) -> bool:
        """Report whether the instruction terminates a basic block."""
        return self.op in _TERM_OPS

    def is_dummy_term(self) -> bool:
        """Report whether this is a fallthrough placeholder terminator."""
        return self.op is None

    def arg(self, i: int) -> ArgRef:
        return ArgRef(self.args[i], self, i)

    def reg(self, i: int) -> RegRef:
        return RegRef.from_arg(self.args[i], self, i)

    def mem(self, i: int) -> MemRef:
        return MemRef.from_arg(self.args[i], self, i)

    def __str__(self) -> str:
        if self.is_dummy_term():
            return f"; fallthrough {format_address(self.addr)}"
        if not self.args:
            return str(self.op)
        return f"{self.op} {', '.join(str(a) for a in self.args)}"


@dataclass
class BasicBlock:
    """A sequence of non-branching instructions ended by a terminator."""

    addr: int
    insts: list[Inst] = field(default_factory=list)
    term: Inst | None = None


@dataclass
class Function:
    """A function and its basic blocks keyed by address."""

    addr: int
    blocks: dict[int, BasicBlock] = field(default_factory=dict)


def _need(code: bytes, n: int) -> None:
    if len(code) < n:
        raise ValueError("truncated instruction")


def _sint(code: bytes, start: int, size: int) -> int:
    _need(code, start + size)
    return int.from_bytes(code[start:start + size], "little", signed=True)


def _modrm(code: bytes, pos: int, mode: int) -> tuple[int, Arg, int]:
    """Decode a ModRM operand at ``pos``; return (reg field, r/m operand, new pos)."""
    _need(code, pos + 1)
    modrm = code[pos]
    pos += 1
    mod, reg, rm = modrm >> 6, (modrm >> 3) & 7, modrm & 7
    if mod == 3:
        return reg, _REGS32[rm], pos
    addr_regs = _REGS64 if mode == 64 else _REGS32
    base: Register | None
    index: Register | None = None
    scale = 0
    if rm == 4:
        _need(code, pos + 1)
        sib = code[pos]
        pos += 1
        ss, idx, b = sib >> 6, (sib >> 3) & 7, sib & 7
        if idx != 4:
            index = addr_regs[idx]
            scale = 1 << ss
        if b == 5 and mod == 0:
            base = None
            disp = _sint(code, pos, 4)
            return reg, Mem(base=base, scale=scale, index=index, disp=disp), pos + 4
        base = addr_regs[b]
    elif rm == 5 and mod == 0:
        disp = _sint(code, pos, 4)
        base = Register.RIP if mode == 64 else None
        return reg, Mem(base=base, disp=disp), pos + 4
    else:
        base = addr_regs[rm]
    disp = 0
    if mod == 1:
        disp = _sint(code, pos, 1)
        pos += 1
    elif mod == 2:
        disp = _sint(code, pos, 4)
        pos += 4
    return reg, Mem(base=base, scale=scale, index=index, disp=disp), pos


def _decode(code: bytes, mode: int) -> tuple[str, tuple[Arg, ...], int]:
    """Decode one instruction; return (mnemonic, arguments, length)."""
    _need(code, 1)
    b = code[0]
    stack_regs = _REGS64 if mode == 64 else _REGS32
    if b == 0x90:
        return "NOP", (), 1
    if b == 0xC3:
        return "RET", (), 1
    if b == 0xC2:
        _need(code, 3)
        return "RET", (Imm(int.from_bytes(code[1:3], "little")),), 3
    if b == 0xCC:
        return "INT", (Imm(3),), 1
    if 0x50 <= b <= 0x57:
        return "PUSH", (stack_regs[b - 0x50],), 1
    if 0x58 <= b <= 0x5F:
        return "POP", (stack_regs[b - 0x58],), 1
    if 0xB8 <= b <= 0xBF:
        _need(code, 5)
        return "MOV", (_REGS32[b - 0xB8], Imm(int.from_bytes(code[1:5], "little"))), 5
    if b == 0xE8:
        return "CALL", (Rel(_sint(code, 1, 4)),), 5
    if b == 0xE9:
        return "JMP", (Rel(_sint(code, 1, 4)),), 5
    if b == 0xEB:
        return "JMP", (Rel(_sint(code, 1, 1)),), 2
    if 0x70 <= b <= 0x7F:
        return _JCC_BY_CODE[b - 0x70], (Rel(_sint(code, 1, 1)),), 2
    if b in (0xE0, 0xE1, 0xE2):
        return ("LOOPNE", "LOOPE", "LOOP")[b - 0xE0], (Rel(_sint(code, 1, 1)),), 2
    if b == 0xE3:
        return ("JRCXZ" if mode == 64 else "JECXZ"), (Rel(_sint(code, 1, 1)),), 2
    if b == 0x0F:
        _need(code, 2)
        if 0x80 <= code[1] <= 0x8F:
            return _JCC_BY_CODE[code[1] - 0x80], (Rel(_sint(code, 2, 4)),), 6
        raise ValueError(f"unsupported opcode 0x0F 0x{code[1]:02X}")
    if b == 0xFF:
        reg, rm, end = _modrm(code, 1, mode)
        if isinstance(rm, Register) and mode == 64:
            rm = _REGS64[_REGS32.index(rm)]
        if reg == 4:
            return "JMP", (rm,), end
        if reg == 2:
            return "CALL", (rm,), end
        raise ValueError(f"unsupported opcode 0xFF /{reg}")
    if b in _ALU_OPS:
        name, reg_first = _ALU_OPS[b]
        reg, rm, end = _modrm(code, 1, mode)
        args = (_REGS32[reg], rm) if reg_first else (rm, _REGS32[reg])
        return name, args, end
    raise ValueError(f"unsupported opcode 0x{b:02X}")


class X86Disasm(Disasm):
    """Disassembler for x86 executables; also reads ``contexts.json``."""

    def __init__(self, file: BinaryFile, directory: str | os.PathLike[str] = ".") -> None:
        super().__init__(file, directory)
        if file.arch is Arch.X86_32:
            self.mode = 32
        elif file.arch is Arch.X86_64:
            self.mode = 64
        else:
            raise ValueError(f"support for machine architecture {file.arch} not yet implemented")
        self.contexts: dict[int, Context] = parse_contexts(self._load("contexts.json"))

    def decode_func(self, entry: int) -> Function:
        """Decode the function at ``entry``, following branch targets."""
        log.debug("decoding function at %s", format_address(entry))
        func = Function(entry)
        queue = AddressQueue()
        queue.push(entry)
        while queue:
            block_addr = queue.pop()
            if block_addr in func.blocks:
                continue
            block = self.decode_block(block_addr)
            func.blocks[block_addr] = block
            for target in self.targets(block.term, entry):
                queue.push(target)
        return func

    def decode_block(self, entry: int) -> BasicBlock:
        """Decode the basic block at ``entry``."""
        end = entry + self.max_block_len(entry)
        addr = entry
        block = BasicBlock(entry)
        while addr < end:
            inst = self.decode_inst(addr)
            addr += inst.length
            if inst.is_term():
                block.term = inst
                break
            block.insts.append(inst)
        if addr != end:
            log.warning(
                "unexpected end address of basic block at %s; expected %s, got %s",
                format_address(entry), format_address(end), format_address(addr),
            )
        if block.term is None:
            block.term = Inst(end)
        return block

    def decode_inst(self, addr: int) -> Inst:
        """Decode the instruction at ``addr``."""
        op, args, length = _decode(self.file.code(addr), self.mode)
        return Inst(addr, op, args, length)

    def targets(self, term: Inst, func_entry: int) -> list[int]:
        """Return the branch targets of the terminator ``term``."""
        if term.is_dummy_term():
            return [term.addr]
        next_addr = term.addr + term.length
        if term.op in _LOOP_OPS or term.op in _JCC_OPS:
            return [*self.addrs(term.args[0], term.addr, next_addr), next_addr]
        if term.op == "JMP":
            result = []
            for target in self.addrs(term.args[0], term.addr, next_addr):
                if self.is_tail_call(func_entry, target):
                    log.debug("tail call at %s", format_address(term.addr))
                else:
                    result.append(target)
            return result
        if term.op == "RET":
            return []
        raise ValueError(f"support for terminator instruction {term.op} not yet implemented")

    def addrs(self, arg: Arg, addr: int, next_addr: int) -> list[int]:
        """Return the addresses an argument of the terminator at ``addr`` refers to."""
        if isinstance(arg, Rel):
            return [next_addr + arg.offset]
        if isinstance(arg, Mem):
            disp = arg.disp & _ADDR_MASK
            if arg.segment is None and arg.base is None and arg.index is None:
                return [disp]
            if arg.index is not None:
                context = self.contexts.get(addr)
                if context is not None:
                    index_min = context.regs.get(arg.index, {}).get("min")
                    if index_min is not None:
                        disp += arg.scale * index_min.addr()
            targets = self.tables.get(disp)
            if (targets is not None and arg.segment is None and arg.base is None
                    and arg.scale == 4 and arg.index is not None):
                return list(targets)
            if arg.base is not None and disp < self.code_start():
                log.warning(
                    "ignoring indirect targets from %s of memory reference %s",
                    format_address(addr), arg,
                )
                return []
            raise ValueError(f"unable to resolve targets of memory reference {arg}")
        raise TypeError(f"support for argument type {type(arg).__name__} not yet implemented")

    def is_tail_call(self, func_entry: int, target: int) -> bool:
        """Report whether a jump from the function at ``func_entry`` to ``target`` is a tail call."""
        if func_entry <= target < self.func_end(func_entry):
            return False
        if func_entry in self.chunks.get(target, set()):
            return False
        if not self.is_func(target):
            raise ValueError(
                f"tail call to non-function address {format_address(target)} from function "
                f"at {format_address(func_entry)}; it may be a function chunk of the parent"
            )
        return True


__all__ = ["BasicBlock", "Function", "Inst", "X86Disasm"]