import pytest

from disasmkit.x86.arg import ArgRef, Imm, Mem, MemRef, RegRef, Rel
from disasmkit.x86.register import Register


def test_regref_from_register():
    ref = RegRef.from_arg(Register.EAX, None, 2)
    assert ref.reg is Register.EAX
    assert ref.op_index == 2


def test_regref_rejects_non_register():
    with pytest.raises(TypeError):
        RegRef.from_arg(Imm(1))


def test_memref_rejects_non_mem():
    with pytest.raises(TypeError):
        MemRef.from_arg(Register.EAX)


def test_memref_parts():
    mem = Mem(segment=Register.FS, base=Register.EBP, scale=4, index=Register.ESI, disp=8)
    ref = MemRef.from_arg(mem, None, 1)
    assert ref.segment().reg is Register.FS
    assert ref.base().reg is Register.EBP
    assert ref.index().reg is Register.ESI
    assert ref.op_index == 1


def test_memref_missing_base_raises():
    ref = MemRef.from_arg(Mem(disp=16))
    with pytest.raises(TypeError):
        ref.base()


def test_argref_holds_arg():
    ref = ArgRef(Rel(5), None, 0)
    assert ref.arg == Rel(5)
    assert ref.arg.offset == 5