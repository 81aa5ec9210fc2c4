"""Disassembler for the MIPS architecture."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from disasmkit.disasm import Arch, BinaryFile, Disasm, format_address
from disasmkit.queue import AddressQueue

log = logging.getLogger(__name__)

INST_LEN = 4
REG_RA = 31

_MASK32 = 0xFFFFFFFF

_BRANCH_OPS = frozenset({"BEQ", "BGEZ", "BGTZ", "BLEZ", "BLTZ", "BNE"})
_JUMP_OPS = frozenset({"J", "JAL"})
_INDIRECT_OPS = frozenset({"JALR", "JR"})
_TERM_OPS = _BRANCH_OPS | _JUMP_OPS | _INDIRECT_OPS

_REG_NAMES = (
    "zero", "at", "v0", "v1", "a0", "a1", "a2", "a3",
    "t0", "t1", "t2", "t3", "t4", "t5", "t6", "t7",
    "s0", "s1", "s2", "s3", "s4", "s5", "s6", "s7",
    "t8", "t9", "k0", "k1", "gp", "sp", "fp", "ra",
)

# funct -> (name, operand fields) for SPECIAL (opcode 0) instructions.
_SPECIAL = {
    0x00: ("SLL", "rd rt sa"),
    0x02: ("SRL", "rd rt sa"),
    0x03: ("SRA", "rd rt sa"),
    0x04: ("SLLV", "rd rt rs"),
    0x06: ("SRLV", "rd rt rs"),
    0x07: ("SRAV", "rd rt rs"),
    0x08: ("JR", "rs"),
    0x09: ("JALR", "rd rs"),
    0x0C: ("SYSCALL", ""),
    0x0D: ("BREAK", ""),
    0x10: ("MFHI", "rd"),
    0x11: ("MTHI", "rs"),
    0x12: ("MFLO", "rd"),
    0x13: ("MTLO", "rs"),
    0x18: ("MULT", "rs rt"),
    0x19: ("MULTU", "rs rt"),
    0x1A: ("DIV", "rs rt"),
    0x1B: ("DIVU", "rs rt"),
    0x20: ("ADD", "rd rs rt"),
    0x21: ("ADDU", "rd rs rt"),
    0x22: ("SUB", "rd rs rt"),
    0x23: ("SUBU", "rd rs rt"),
    0x24: ("AND", "rd rs rt"),
    0x25: ("OR", "rd rs rt"),
    0x26: ("XOR", "rd rs rt"),
    0x27: ("NOR", "rd rs rt"),
    0x2A: ("SLT", "rd rs rt"),
    0x2B: ("SLTU", "rd rs rt"),
}

_IMM_SIGNED = {0x08: "ADDI", 0x09: "ADDIU", 0x0A: "SLTI", 0x0B: "SLTIU"}
_IMM_UNSIGNED = {0x0C: "ANDI", 0x0D: "ORI", 0x0E: "XORI"}
_MEMORY = {
    0x20: "LB", 0x21: "LH", 0x23: "LW", 0x24: "LBU", 0x25: "LHU",
    0x28: "SB", 0x29: "SH", 0x2B: "SW",
}
_BRANCH_TWO = {0x04: "BEQ", 0x05: "BNE"}
_BRANCH_ONE = {0x06: "BLEZ", 0x07: "BGTZ"}
_REGIMM = {0x00: "BLTZ", 0x01: "BGEZ"}


def _reg_name(reg: int) -> str:
    return f"${_REG_NAMES[reg]}"


@dataclass(frozen=True)
class CodePointer:
    """The code location a branch or jump refers to."""

    constant: int = 0
    absolute: bool = False
    is_symbol: bool = False
    symbol: str = ""

    def __str__(self) -> str:
        if self.is_symbol:
            return self.symbol
        if self.absolute:
            return format_address(self.constant)
        offset = self.constant - (1 << 32) if self.constant & 0x80000000 else self.constant
        return f"{offset:+d}"


@dataclass(frozen=True)
class Instruction:
    """A decoded MIPS instruction.

    ``layout`` selects how the operands are rendered: ``"regs"`` lists the
    registers followed by the immediate, ``"mem"`` renders ``rt, imm(base)``,
    ``"branch"`` lists the registers followed by the code pointer and
    ``"jump"`` renders the code pointer alone.
    """

    name: str
    registers: tuple[int, ...] = ()
    immediate: int | None = None
    code_pointer: CodePointer | None = None
    layout: str = "regs"

    def render(self) -> str:
        """Return the assembly text of the instruction."""
        if self.layout == "mem":
            rt, base = self.registers
            return f"{self.name} {_reg_name(rt)}, {self.immediate}({_reg_name(base)})"
        operands = [_reg_name(r) for r in self.registers]
        if self.layout in ("branch", "jump"):
            if self.code_pointer is not None:
                operands.append(str(self.code_pointer))
        elif self.immediate is not None:
            operands.append(str(self.immediate))
        if not operands:
            return self.name
        return f"{self.name} {', '.join(operands)}"

    def __str__(self) -> str:
        return self.render()


def _sign16(value: int) -> int:
    return value - 0x10000 if value & 0x8000 else value


def decode_word(word: int) -> Instruction:
    """Decode a 32-bit MIPS instruction word."""
    if word == 0:
        return Instruction("NOP")
    opcode = word >> 26
    rs = (word >> 21) & 31
    rt = (word >> 16) & 31
    rd = (word >> 11) & 31
    sa = (word >> 6) & 31
    funct = word & 63
    imm = word & 0xFFFF
    simm = _sign16(imm)
    branch_cp = CodePointer(constant=(simm << 2) & _MASK32)

    if opcode == 0:
        if funct not in _SPECIAL:
            raise ValueError(f"unsupported SPECIAL function 0x{funct:02X}")
        name, fields = _SPECIAL[funct]
        values = {"rs": rs, "rt": rt, "rd": rd}
        regs = tuple(values[f] for f in fields.split() if f != "sa")
        immediate = sa if "sa" in fields.split() else None
        return Instruction(name, regs, immediate)
    if opcode == 1:
        if rt not in _REGIMM:
            raise ValueError(f"unsupported REGIMM function 0x{rt:02X}")
        return Instruction(_REGIMM[rt], (rs,), code_pointer=branch_cp, layout="branch")
    if opcode in (2, 3):
        cp = CodePointer(constant=(word & 0x3FFFFFF) << 2, absolute=True)
        return Instruction("J" if opcode == 2 else "JAL", code_pointer=cp, layout="jump")
    if opcode in _BRANCH_TWO:
        return Instruction(_BRANCH_TWO[opcode], (rs, rt), code_pointer=branch_cp, layout="branch")
    if opcode in _BRANCH_ONE:
        return Instruction(_BRANCH_ONE[opcode], (rs,), code_pointer=branch_cp, layout="branch")
    if opcode in _IMM_SIGNED:
        return Instruction(_IMM_SIGNED[opcode], (rt, rs), simm)
    if opcode in _IMM_UNSIGNED:
        return Instruction(_IMM_UNSIGNED[opcode], (rt, rs), imm)
    if opcode == 0x0F:
        return Instruction("LUI", (rt,), imm)
    if opcode in _MEMORY:
        return Instruction(_MEMORY[opcode], (rt, rs), simm, layout="mem")
    raise ValueError(f"unsupported opcode 0x{opcode:02X}")


@dataclass
class Inst:
    """An instruction at an address; without ``instruction`` it is a dummy terminator."""

    addr: int
    instruction: Instruction | None = None

    @property
    def name(self) -> str | None:
        return None if self.instruction is None else self.instruction.name

    def is_term(self) -> bool:
        """Report whether the instruction terminates a basic block."""
        return self.name in _TERM_OPS

    def is_dummy_term(self) -> bool:
        """Report whether this is a fallthrough placeholder terminator."""
        return self.instruction is None

    def __str__(self) -> str:
        if self.instruction is None:
            return f"; fallthrough {format_address(self.addr)}"
        return self.instruction.render()


@dataclass
class BasicBlock:
    """Non-branching instructions (including any delay slot) and a terminator."""

    addr: int
    insts: list[Inst] = field(default_factory=list)
    term: Inst | None = None


@dataclass
class Function:
    """A function and its basic blocks keyed by address."""

    addr: int
    blocks: dict[int, BasicBlock] = field(default_factory=dict)


class MipsDisasm(Disasm):
    """Disassembler for MIPS executables."""

    def __init__(self, file: BinaryFile, directory: str | os.PathLike[str] = ".") -> None:
        super().__init__(file, directory)
        if file.arch is Arch.MIPS_32:
            self.mode = 32
        else:
            raise ValueError(f"support for machine architecture {file.arch} not yet implemented")

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
                log.debug("adding basic block address %s to queue", format_address(target))
                queue.push(target)
        return func

    def decode_block(self, entry: int) -> BasicBlock:
        """Decode the basic block at ``entry``; the delay slot joins the block."""
        log.debug("decoding basic block at %s", format_address(entry))
        end = entry + self.max_block_len(entry)
        addr = entry
        block = BasicBlock(entry)
        while addr < end:
            inst = self.decode_inst(addr)
            addr += INST_LEN
            if inst.is_term():
                block.term = inst
                block.insts.append(self.decode_inst(addr))
                addr += INST_LEN
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
        code = self.file.code(addr)
        if len(code) < INST_LEN:
            raise ValueError(f"truncated instruction at {format_address(addr)}")
        word = int.from_bytes(code[:INST_LEN], "little")
        return Inst(addr, decode_word(word))

    def targets(self, term: Inst, func_entry: int) -> list[int]:
        """Return the branch targets of the terminator ``term``."""
        if term.instruction is None:
            return [term.addr]
        ins = term.instruction
        next_addr = term.addr + INST_LEN
        if ins.name in _BRANCH_OPS:
            cp = self._code_pointer(term)
            if cp.absolute:
                target = (term.addr & 0xF0000000) | cp.constant
            elif self.mode == 32:
                target = ((term.addr & _MASK32) + cp.constant + INST_LEN) & _MASK32
            elif self.mode == 64:
                target = term.addr + cp.constant + INST_LEN
            else:
                raise ValueError(f"support for CPU mode {self.mode} not yet implemented")
            return [target, next_addr]
        if ins.name in _JUMP_OPS:
            cp = self._code_pointer(term)
            if cp.absolute:
                return [(term.addr & 0xF0000000) | cp.constant]
            return [term.addr + cp.constant + INST_LEN]
        if ins.name in _INDIRECT_OPS:
            reg = ins.registers[-1]
            log.debug("indirect jump %s through register %s", term, _reg_name(reg))
            # Returns through $ra have no targets; other registers would need
            # context information, which is not tracked.
            return []
        raise ValueError(f"support for terminator instruction {ins.name} not yet implemented")

    @staticmethod
    def _code_pointer(term: Inst) -> CodePointer:
        cp = term.instruction.code_pointer if term.instruction else None
        if cp is None:
            raise ValueError(f"terminator {term} has no code pointer")
        if cp.is_symbol:
            raise ValueError(
                f"support for terminators with symbol code pointers not yet implemented; {term}"
            )
        return cp

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


__all__ = [
    "BasicBlock",
    "CodePointer",
    "Function",
    "Inst",
    "Instruction",
    "MipsDisasm",
    "decode_word",
]