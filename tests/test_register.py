import pytest

from disasmkit.x86.register import FIRST_REG, LAST_REG, Register, parse_register


@pytest.mark.parametrize("reg", list(Register))
def test_text_round_trip(reg):
    assert parse_register(str(reg)) is reg


@pytest.mark.parametrize(
    "text, reg",
    [
        ("DX:AX", Register.DX_AX),
        ("EDX:EAX", Register.EDX_EAX),
        ("RDX:RAX", Register.RDX_RAX),
    ],
)
def test_pseudo_register_text(text, reg):
    assert str(reg) == text
    assert parse_register(text) is reg


def test_plain_register_text_is_name():
    assert str(parse_register("EAX")) == "EAX"
    assert str(parse_register("R15L")) == "R15L"
    assert f"{parse_register('ESP')}" == "ESP"


def test_parse_common_registers():
    assert parse_register("EAX") is Register.EAX
    assert parse_register("RIP") is Register.RIP
    assert parse_register("X15") is Register.X15


@pytest.mark.parametrize("text", ["", "eax", "EDX_EAX", "XMM0", "R16"])
def test_unknown_register_raises(text):
    with pytest.raises(ValueError):
        parse_register(text)


def test_pseudo_registers_follow_tr7():
    tr7 = parse_register("TR7")
    dx_ax = parse_register("DX:AX")
    edx_eax = parse_register("EDX:EAX")
    rdx_rax = parse_register("RDX:RAX")
    assert dx_ax == tr7 + 1
    assert edx_eax == dx_ax + 1
    assert rdx_rax == edx_eax + 1


def test_first_and_last():
    members = list(Register)
    assert members[0] is FIRST_REG is parse_register("AL")
    assert members[-1] is LAST_REG is parse_register("RDX:RAX")


def test_values_are_contiguous_and_nonzero():
    values = [int(parse_register(str(r))) for r in Register]
    assert values[0] >= 1
    assert values == list(range(values[0], values[0] + len(values)))


def test_textual_forms_are_unique():
    texts = [str(r) for r in Register]
    assert len(set(texts)) == len(texts)
    assert {parse_register(t) for t in texts} == set(Register)