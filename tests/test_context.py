import pytest

from disasmkit.x86.context import Context, Value, contexts_to_json, parse_contexts
from disasmkit.x86.register import Register


def test_value_str_is_text():
    assert str(Value("EAX")) == "EAX"


def test_value_addr_hex_and_decimal():
    assert Value("0x401000").addr() == 0x401000
    assert Value("4096").addr() == 4096


def test_value_addr_invalid():
    with pytest.raises(ValueError):
        Value("nowhere").addr()


def test_value_as_int():
    assert Value("-42").as_int() == -42
    assert Value("7").as_int() == 7


@pytest.mark.parametrize("text", ["", "0x10", "1.5", " 3", "9223372036854775808"])
def test_value_as_int_invalid(text):
    with pytest.raises(ValueError):
        Value(text).as_int()


def test_value_as_uint_strips_prefix_and_reads_decimal():
    assert Value("123").as_uint() == 123
    assert Value("0x123").as_uint() == Value("123").as_uint()


@pytest.mark.parametrize("text", ["-1", "0xFF", "abc", "18446744073709551616"])
def test_value_as_uint_invalid(text):
    with pytest.raises(ValueError):
        Value(text).as_uint()


@pytest.mark.parametrize("text", ["1", "t", "T", "TRUE", "true", "True"])
def test_value_as_bool_true(text):
    assert Value(text).as_bool() is True


@pytest.mark.parametrize("text", ["0", "f", "F", "FALSE", "false", "False"])
def test_value_as_bool_false(text):
    assert Value(text).as_bool() is False


@pytest.mark.parametrize("text", ["yes", "tRuE", ""])
def test_value_as_bool_invalid(text):
    with pytest.raises(ValueError):
        Value(text).as_bool()


SAMPLE = {
    "0x00401000": {
        "regs": {"EAX": {"min": "0", "max": "5"}, "EDX:EAX": {"type": "i64"}},
        "args": {"1": {"Mem.offset": "8", "extractvalue": "true"}},
    },
    "0x00402000": {"regs": {"ECX": {"symbol": "counter"}}},
}


def test_parse_contexts():
    contexts = parse_contexts(SAMPLE)
    assert set(contexts) == {0x00401000, 0x00402000}
    ctx = contexts[0x00401000]
    assert ctx.regs[Register.EAX]["min"].as_int() == 0
    assert ctx.regs[Register.EAX]["max"].as_int() == 5
    assert str(ctx.regs[Register.EDX_EAX]["type"]) == "i64"
    assert ctx.args[1]["Mem.offset"].as_int() == 8
    assert ctx.args[1]["extractvalue"].as_bool() is True
    assert contexts[0x00402000].args == {}


def test_parse_contexts_none_is_empty():
    assert parse_contexts(None) == {}


def test_context_round_trip():
    contexts = parse_contexts(SAMPLE)
    assert parse_contexts(contexts_to_json(contexts)) == contexts


def test_context_from_json_empty():
    ctx = Context.from_json({})
    assert ctx.regs == {} and ctx.args == {}


def test_unknown_register_in_context():
    with pytest.raises(ValueError):
        Context.from_json({"regs": {"XYZ": {"min": "0"}}})


def test_non_string_value_rejected():
    with pytest.raises(TypeError):
        Context.from_json({"regs": {"EAX": {"min": 0}}})


def test_invalid_arg_index_rejected():
    with pytest.raises(ValueError):
        Context.from_json({"args": {"first": {"param": "0"}}})


def test_invalid_context_address_rejected():
    with pytest.raises(ValueError):
        parse_contexts({"here": {}})