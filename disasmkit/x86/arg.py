"""Arguments of x86 instructions: registers, memory references and offsets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from disasmkit.x86.register import Register

if TYPE_CHECKING:
    from disasmkit.x86.disasm import Inst


@dataclass(frozen=True)
class Mem:
    """A memory reference of the form ``segment:[base+scale*index+disp]``."""

    segment: Register | None = None
    base: Register | None = None
    scale: int = 0
    index: Register | None = None
    disp: int = 0

    def __str__(self) -> str:
        parts: list[str] = []
        if self.base is not None:
            parts.append(str(self.base))
        if self.index is not None:
            parts.append(f"{self.index}*{self.scale}" if self.scale != 1 else str(self.index))
        text = "+".join(parts)
        if self.disp or not parts:
            if parts and self.disp < 0:
                text += f"-0x{-self.disp:x}"
            elif parts:
                text += f"+0x{self.disp:x}"
            else:
                text = f"0x{self.disp & 0xFFFFFFFFFFFFFFFF:x}"
        prefix = f"{self.segment}:" if self.segment is not None else ""
        return f"{prefix}[{text}]"


@dataclass(frozen=True)
class Rel:
    """An offset relative to the address of the next instruction."""

    offset: int

    def __str__(self) -> str:
        return f".{self.offset:+d}"


@dataclass(frozen=True)
class Imm:
    """An immediate operand."""

    value: int

    def __str__(self) -> str:
        return f"0x{self.value:x}"


Arg = Union[Register, Mem, Rel, Imm]


@dataclass(frozen=True)
class ArgRef:
    """An instruction argument together with its parent instruction."""

    arg: Arg
    parent: "Inst | None" = None
    op_index: int = 0


@dataclass(frozen=True)
class RegRef:
    """A register argument together with its parent instruction."""

    reg: Register
    parent: "Inst | None" = None
    op_index: int = 0

    @classmethod
    def from_arg(cls, arg: object, parent: "Inst | None" = None, op_index: int = 0) -> RegRef:
        """Wrap ``arg``, which must be a register."""
        if not isinstance(arg, Register):
            raise TypeError(
                f"invalid register argument type; expected Register, got {type(arg).__name__}"
            )
        return cls(arg, parent, op_index)


@dataclass(frozen=True)
class MemRef:
    """A memory reference argument together with its parent instruction."""

    mem: Mem
    parent: "Inst | None" = None
    op_index: int = 0

    @classmethod
    def from_arg(cls, arg: object, parent: "Inst | None" = None, op_index: int = 0) -> MemRef:
        """Wrap ``arg``, which must be a memory reference."""
        if not isinstance(arg, Mem):
            raise TypeError(
                f"invalid memory reference argument type; expected Mem, got {type(arg).__name__}"
            )
        return cls(arg, parent, op_index)

    def segment(self) -> RegRef:
        """Return the segment register of the memory reference."""
        return RegRef.from_arg(self.mem.segment, self.parent)

    def base(self) -> RegRef:
        """Return the base register of the memory reference."""
        return RegRef.from_arg(self.mem.base, self.parent)

    def index(self) -> RegRef:
        """Return the index register of the memory reference."""
        return RegRef.from_arg(self.mem.index, self.parent)


__all__ = ["Arg", "ArgRef", "Imm", "Mem", "MemRef", "RegRef", "Rel"]