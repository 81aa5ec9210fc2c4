import json

import pytest

from disasmkit.disasm import Arch, BinaryFile, Perm, Section
from disasmkit.x86.arg import Mem, Rel
from disasmkit.x86.disasm import Inst, X86Disasm
from disasmkit.x86.register import Register

BASE = 0x1000


def make(tmp_path, code, arch=Arch.X86_32, **files):
    for name, data in files.items():
        (tmp_path / f"{name}.json").write_text(json.dumps(data))
    f = BinaryFile(arch=arch, entry=BASE, sections=[Section(BASE, bytes(code), Perm.R | Perm.X)])
    return X86Disasm(f, tmp_path)


def test_decode_func_blocks(tmp_path):
    # push ebp; je +2; nop; nop; ret
    dis = make(tmp_path, [0x55, 0x74, 0x02, 0x90, 0x90, 0xC3])
    func = dis.decode_func(BASE)
    assert sorted(func.blocks) == [BASE, BASE + 3, BASE + 5]
    first = func.blocks[BASE]
    assert [i.op for i in first.insts] == ["PUSH"]
    assert first.term.op == "JE"
    assert func.blocks[BASE + 5].term.op == "RET"


def test_targets_conditional(tmp_path):
    dis = make(tmp_path, [0x74, 0x02, 0x90, 0x90, 0xC3])
    term = dis.decode_inst(BASE)
    assert dis.targets(term, BASE) == [BASE + 4, BASE + 2]


def test_dummy_term(tmp_path):
    dis = make(tmp_path, [0x90, 0x90], data=["0x1001"])
    block = dis.decode_block(BASE)
    assert block.term.is_dummy_term()
    assert block.term.addr == BASE + 1
    assert dis.targets(block.term, BASE) == [BASE + 1]
    assert str(block.term) == "; fallthrough 0x00001001"


def test_tail_call_dropped(tmp_path):
    # jmp +1 to a function at 0x1003
    dis = make(tmp_path, [0xEB, 0x01, 0x90, 0xC3], funcs=["0x1003"])
    term = dis.decode_inst(BASE)
    assert dis.targets(term, BASE) == []


def test_jump_to_non_function_raises(tmp_path):
    dis = make(tmp_path, [0xEB, 0x01, 0x90, 0xC3], funcs=["0x1002"])
    term = dis.decode_inst(BASE)
    with pytest.raises(ValueError):
        dis.targets(term, BASE)


def test_chunk_jump_kept(tmp_path):
    dis = make(tmp_path, [0xEB, 0x01, 0x90, 0xC3], funcs=["0x1002"], chunks={"0x1003": {"0x1000": True}})
    term = dis.decode_inst(BASE)
    assert dis.targets(term, BASE) == [BASE + 3]


def test_jump_table(tmp_path):
    dis = make(tmp_path, [0xC3], tables={"0x2000": ["0x1010", "0x1020"]})
    mem = Mem(scale=4, index=Register.EAX, disp=0x2000)
    assert dis.addrs(mem, BASE, BASE + 7) == [0x1010, 0x1020]


def test_context_min_adjusts(tmp_path):
    dis = make(
        tmp_path, [0xC3],
        tables={"0x2008": ["0x1010"]},
        contexts={"0x1000": {"regs": {"EAX": {"min": "2"}}}},
    )
    mem = Mem(scale=4, index=Register.EAX, disp=0x2000)
    assert dis.addrs(mem, BASE, BASE + 7) == [0x1010]


def test_addrs_static_and_rel(tmp_path):
    dis = make(tmp_path, [0xC3])
    assert dis.addrs(Mem(disp=0x3000), BASE, BASE + 6) == [0x3000]
    assert dis.addrs(Rel(-2), BASE, BASE + 2) == [BASE]


def test_function_pointer_ignored(tmp_path):
    dis = make(tmp_path, [0xC3])
    assert dis.addrs(Mem(base=Register.EAX, disp=4), BASE, BASE + 3) == []


def test_decode_indirect_jmp(tmp_path):
    dis = make(tmp_path, [0xFF, 0x24, 0x85, 0x00, 0x20, 0x00, 0x00])
    inst = dis.decode_inst(BASE)
    assert inst.op == "JMP"
    assert inst.length == 7
    mem = inst.mem(0).mem
    assert mem.index is Register.EAX and mem.scale == 4 and mem.disp == 0x2000
    assert mem.base is None


def test_unknown_opcode(tmp_path):
    dis = make(tmp_path, [0x0F, 0x0B])
    with pytest.raises(ValueError):
        dis.decode_inst(BASE)


def test_unsupported_arch(tmp_path):
    f = BinaryFile(arch=Arch.MIPS_32, entry=BASE, sections=[Section(BASE, b"\0" * 4, Perm.X)])
    with pytest.raises(ValueError):
        X86Disasm(f, tmp_path)


def test_inst_accessors():
    inst = Inst(BASE, "MOV", (Register.EAX, Register.ECX), 2)
    assert inst.reg(1).reg is Register.ECX
    assert inst.arg(0).parent is inst
    assert not inst.is_term()
    assert str(inst) == "MOV EAX, ECX"
    with pytest.raises(TypeError):
        inst.mem(0)