"""x86 registers, including the pseudo-registers used for wide operands."""

from __future__ import annotations

from enum import IntEnum, auto


class Register(IntEnum):
    """A single x86 register.

    Members are numbered from 1 in the conventional decoder order. The three
    pseudo-registers ``DX_AX``, ``EDX_EAX`` and ``RDX_RAX`` follow ``TR7``.
    They stand for the register pairs that ``div`` and ``idiv`` use.
    """

    # 8-bit
    AL = auto()
    CL = auto()
    DL = auto()
    BL = auto()
    AH = auto()
    CH = auto()
    DH = auto()
    BH = auto()
    SPB = auto()
    BPB = auto()
    SIB = auto()
    DIB = auto()
    R8B = auto()
    R9B = auto()
    R10B = auto()
    R11B = auto()
    R12B = auto()
    R13B = auto()
    R14B = auto()
    R15B = auto()
    # 16-bit
    AX = auto()
    CX = auto()
    DX = auto()
    BX = auto()
    SP = auto()
    BP = auto()
    SI = auto()
    DI = auto()
    R8W = auto()
    R9W = auto()
    R10W = auto()
    R11W = auto()
    R12W = auto()
    R13W = auto()
    R14W = auto()
    R15W = auto()
    # 32-bit
    EAX = auto()
    ECX = auto()
    EDX = auto()
    EBX = auto()
    ESP = auto()
    EBP = auto()
    ESI = auto()
    EDI = auto()
    R8L = auto()
    R9L = auto()
    R10L = auto()
    R11L = auto()
    R12L = auto()
    R13L = auto()
    R14L = auto()
    R15L = auto()
    # 64-bit
    RAX = auto()
    RCX = auto()
    RDX = auto()
    RBX = auto()
    RSP = auto()
    RBP = auto()
    RSI = auto()
    RDI = auto()
    R8 = auto()
    R9 = auto()
    R10 = auto()
    R11 = auto()
    R12 = auto()
    R13 = auto()
    R14 = auto()
    R15 = auto()
    # Instruction pointers.
    IP = auto()
    EIP = auto()
    RIP = auto()
    # 387 floating point registers.
    F0 = auto()
    F1 = auto()
    F2 = auto()
    F3 = auto()
    F4 = auto()
    F5 = auto()
    F6 = auto()
    F7 = auto()
    # MMX registers.
    M0 = auto()
    M1 = auto()
    M2 = auto()
    M3 = auto()
    M4 = auto()
    M5 = auto()
    M6 = auto()
    M7 = auto()
    # XMM registers.
    X0 = auto()
    X1 = auto()
    X2 = auto()
    X3 = auto()
    X4 = auto()
    X5 = auto()
    X6 = auto()
    X7 = auto()
    X8 = auto()
    X9 = auto()
    X10 = auto()
    X11 = auto()
    X12 = auto()
    X13 = auto()
    X14 = auto()
    X15 = auto()
    # Segment registers.
    ES = auto()
    CS = auto()
    SS = auto()
    DS = auto()
    FS = auto()
    GS = auto()
    # System registers.
    GDTR = auto()
    IDTR = auto()
    LDTR = auto()
    MSW = auto()
    TASK = auto()
    # Control registers.
    CR0 = auto()
    CR1 = auto()
    CR2 = auto()
    CR3 = auto()
    CR4 = auto()
    CR5 = auto()
    CR6 = auto()
    CR7 = auto()
    CR8 = auto()
    CR9 = auto()
    CR10 = auto()
    CR11 = auto()
    CR12 = auto()
    CR13 = auto()
    CR14 = auto()
    CR15 = auto()
    # Debug registers.
    DR0 = auto()
    DR1 = auto()
    DR2 = auto()
    DR3 = auto()
    DR4 = auto()
    DR5 = auto()
    DR6 = auto()
    DR7 = auto()
    DR8 = auto()
    DR9 = auto()
    DR10 = auto()
    DR11 = auto()
    DR12 = auto()
    DR13 = auto()
    DR14 = auto()
    DR15 = auto()
    # Task registers.
    TR0 = auto()
    TR1 = auto()
    TR2 = auto()
    TR3 = auto()
    TR4 = auto()
    TR5 = auto()
    TR6 = auto()
    TR7 = auto()
    # Pseudo-registers.
    DX_AX = auto()
    EDX_EAX = auto()
    RDX_RAX = auto()

    def __str__(self) -> str:
        return _PSEUDO_NAMES.get(self, self.name)

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


_PSEUDO_NAMES: dict[Register, str] = {
    Register.DX_AX: "DX:AX",
    Register.EDX_EAX: "EDX:EAX",
    Register.RDX_RAX: "RDX:RAX",
}

_BY_TEXT: dict[str, Register] = {str(reg): reg for reg in Register}

FIRST_REG = Register.AL
LAST_REG = Register.RDX_RAX


def parse_register(s: str) -> Register:
    """Return the register whose textual form is ``s`` (e.g. "EAX", "EDX:EAX")."""
    try:
        return _BY_TEXT[s]
    except KeyError:
        raise ValueError(f"support for register {s!r} not yet implemented") from None


__all__ = ["FIRST_REG", "LAST_REG", "Register", "parse_register"]