"""CPU contexts: constraints on registers and arguments at given addresses."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

from disasmkit.disasm import format_address, parse_address
from disasmkit.x86.register import Register, parse_register

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1
_UINT64_MAX = (1 << 64) - 1

_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


@dataclass(frozen=True)
class Value:
    """A value at a specific address, kept in its textual form.

    Known keys of a value context: ``addr``, ``extractvalue``, ``min``,
    ``max``, ``Mem.offset``, ``param``, ``symbol`` and ``type``.
    """

    text: str

    def __str__(self) -> str:
        return self.text

    def addr(self) -> int:
        """Return the virtual address represented by the value."""
        try:
            return parse_address(self.text)
        except ValueError as exc:
            raise ValueError(
                f"unable to parse value {self.text!r} as virtual address; {exc}"
            ) from None

    def as_int(self) -> int:
        """Return the signed 64-bit decimal integer represented by the value."""
        if not _INT_RE.fullmatch(self.text):
            raise ValueError(f"unable to parse value {self.text!r} as int64")
        x = int(self.text, 10)
        if not _INT64_MIN <= x <= _INT64_MAX:
            raise ValueError(f"unable to parse value {self.text!r} as int64; out of range")
        return x

    def as_uint(self) -> int:
        """Return the unsigned 64-bit integer represented by the value.

        A leading "0x" is stripped and the remaining digits are read as decimal.
        """
        s = self.text.removeprefix("0x")
        if not _UINT_RE.fullmatch(s):
            raise ValueError(f"unable to parse value {self.text!r} as uint64")
        x = int(s, 10)
        if x > _UINT64_MAX:
            raise ValueError(f"unable to parse value {self.text!r} as uint64; out of range")
        return x

    def as_bool(self) -> bool:
        """Return the boolean represented by the value."""
        if self.text in _TRUE:
            return True
        if self.text in _FALSE:
            return False
        raise ValueError(f"unable to parse value {self.text!r} as bool")


def _value_context(data: Mapping[str, Any]) -> dict[str, Value]:
    result: dict[str, Value] = {}
    for key, raw in data.items():
        if not isinstance(raw, str):
            raise TypeError(
                f"invalid value for key {key!r}; expected string, got {type(raw).__name__}"
            )
        result[key] = Value(raw)
    return result


def _arg_index(key: Any) -> int:
    if isinstance(key, int) and not isinstance(key, bool):
        return key
    if isinstance(key, str) and _INT_RE.fullmatch(key):
        return int(key, 10)
    raise ValueError(f"invalid argument index {key!r}")


@dataclass
class Context:
    """Register and instruction-argument constraints at one address."""

    regs: dict[Register, dict[str, Value]] = field(default_factory=dict)
    args: dict[int, dict[str, Value]] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> Context:
        """Build a context from its decoded JSON object."""
        regs = {
            parse_register(name): _value_context(vc)
            for name, vc in (data.get("regs") or {}).items()
        }
        args = {
            _arg_index(index): _value_context(vc)
            for index, vc in (data.get("args") or {}).items()
        }
        return cls(regs=regs, args=args)

    def to_json(self) -> dict[str, Any]:
        """Return the JSON object form of the context."""
        return {
            "regs": {
                str(reg): {k: str(v) for k, v in vc.items()} for reg, vc in self.regs.items()
            },
            "args": {
                str(i): {k: str(v) for k, v in vc.items()} for i, vc in self.args.items()
            },
        }


def parse_contexts(data: Mapping[str, Any] | None) -> dict[int, Context]:
    """Parse a decoded ``contexts.json`` object keyed by address."""
    if data is None:
        return {}
    return {parse_address(addr): Context.from_json(ctx) for addr, ctx in data.items()}


def contexts_to_json(contexts: Mapping[int, Context]) -> dict[str, Any]:
    """Return the JSON object form of a mapping from address to context."""
    return {format_address(addr): ctx.to_json() for addr, ctx in contexts.items()}


__all__ = ["Context", "Value", "contexts_to_json", "parse_contexts"]