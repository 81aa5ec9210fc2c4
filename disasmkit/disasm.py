"""Generic disassembler primitives shared by the architecture back ends."""

from __future__ import annotations

import json
import logging
import os
from bisect import bisect_left, bisect_right, insort
from dataclasses import dataclass, field
from enum import Enum, IntFlag
from pathlib import Path
from typing import Any, Iterable

log = logging.getLogger(__name__)


def parse_address(s: str | int) -> int:
    """Parse a virtual address given as a hex ("0x...") or decimal string."""
    if isinstance(s, bool):
        raise ValueError(f"invalid address {s!r}")
    if isinstance(s, int):
        if s < 0:
            raise ValueError(f"invalid negative address {s}")
        return s
    text = s.strip()
    try:
        if text[:2].lower() == "0x":
            value = int(text[2:], 16)
        else:
            value = int(text, 10)
    except ValueError:
        raise ValueError(f"unable to parse address {s!r}") from None
    if value < 0:
        raise ValueError(f"invalid negative address {s!r}")
    return value


def format_address(addr: int) -> str:
    """Return the canonical textual form of a virtual address."""
    return f"0x{addr:08X}"


def insert_addr(addrs: Iterable[int], addr: int) -> list[int]:
    """Return a sorted copy of ``addrs`` that contains ``addr`` exactly once."""
    result = sorted(addrs)
    index = bisect_left(result, addr)
    if index < len(result) and result[index] == addr:
        return result
    result.insert(index, addr)
    return result


def load_json(path: str | os.PathLike[str]) -> Any:
    """Parse the JSON file at ``path``; return None if the file does not exist."""
    p = Path(path)
    if not p.exists():
        log.warning("unable to locate JSON file %r", str(p))
        return None
    log.debug("parsing: %r", str(p))
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


class Perm(IntFlag):
    """Access permissions of a section."""

    R = 4
    W = 2
    X = 1


class Arch(Enum):
    """Machine architectures."""

    X86_32 = "x86_32"
    X86_64 = "x86_64"
    MIPS_32 = "mips_32"


@dataclass
class Section:
    """A contiguous region of the executable mapped at a virtual address."""

    addr: int
    data: bytes
    perm: Perm = Perm(0)
    name: str = ""

    @property
    def end(self) -> int:
        return self.addr + len(self.data)


@dataclass
class BinaryFile:
    """A binary executable: its sections, entry point, imports and exports."""

    arch: Arch
    entry: int
    sections: list[Section] = field(default_factory=list)
    imports: dict[int, str] = field(default_factory=dict)
    exports: dict[int, str] = field(default_factory=dict)

    def code(self, addr: int) -> bytes:
        """Return the bytes from ``addr`` to the end of its enclosing section."""
        for sect in self.sections:
            if sect.addr <= addr < sect.end:
                return bytes(sect.data[addr - sect.addr:])
        raise ValueError(f"unable to locate section containing address {format_address(addr)}")


class FragmentKind(Enum):
    """Type of a byte sequence."""

    CODE = 1
    DATA = 2


@dataclass(frozen=True)
class Fragment:
    """A sequence of bytes, either code or data, starting at ``addr``."""

    addr: int
    kind: FragmentKind


def _addr_list(data: Any) -> list[int]:
    if data is None:
        return []
    return [parse_address(x) for x in data]


def _tables(data: Any) -> dict[int, list[int]]:
    if data is None:
        return {}
    return {parse_address(k): _addr_list(v) for k, v in data.items()}


def _chunks(data: Any) -> dict[int, set[int]]:
    if data is None:
        return {}
    return {
        parse_address(k): {parse_address(parent) for parent, flag in v.items() if flag}
        for k, v in data.items()
    }


class Disasm:
    """Information required to disassemble a binary executable.

    The associated files ``funcs.json``, ``blocks.json``, ``tables.json``,
    ``chunks.json`` and ``data.json`` are read from ``directory``; missing
    files are skipped with a warning.
    """

    def __init__(self, file: BinaryFile, directory: str | os.PathLike[str] = ".") -> None:
        self.file = file
        self.directory = Path(directory)

        self.func_addrs: list[int] = sorted(_addr_list(self._load("funcs.json")))
        self.block_addrs: list[int] = sorted(_addr_list(self._load("blocks.json")))

        for addr in [file.entry, *file.exports]:
            self.func_addrs = insert_addr(self.func_addrs, addr)
            self.block_addrs = insert_addr(self.block_addrs, addr)

        self.tables: dict[int, list[int]] = _tables(self._load("tables.json"))
        self.chunks: dict[int, set[int]] = _chunks(self._load("chunks.json"))

        data_addrs = _addr_list(self._load("data.json"))
        frags = [Fragment(a, FragmentKind.CODE) for a in self.block_addrs]
        frags.extend(Fragment(a, FragmentKind.DATA) for a in data_addrs)
        self.frags: list[Fragment] = sorted(frags, key=lambda f: f.addr)

    def _load(self, name: str) -> Any:
        return load_json(self.directory / name)

    def is_func(self, addr: int) -> bool:
        """Report whether ``addr`` is the entry address of a function."""
        index = bisect_left(self.func_addrs, addr)
        if index < len(self.func_addrs):
            return self.func_addrs[index] == addr
        return addr in self.file.imports

    def code_start(self) -> int:
        """Return the start address of the first executable section."""
        starts = [s.addr for s in self.file.sections if s.perm & Perm.X and s.addr != 0]
        if not starts:
            raise ValueError("unable to locate start address of first code section")
        return min(starts)

    def code_end(self) -> int:
        """Return the end address of the last executable section."""
        ends = [s.end for s in self.file.sections if s.perm & Perm.X]
        end = max(ends, default=0)
        if end == 0:
            raise ValueError("unable to locate end address of last code section")
        return end

    def max_block_len(self, block_addr: int) -> int:
        """Return the maximum length of the basic block at ``block_addr``."""
        index = bisect_right([f.addr for f in self.frags], block_addr)
        if index < len(self.frags):
            return self.frags[index].addr - block_addr
        return self.code_end() - block_addr

    def func_end(self, func_entry: int) -> int:
        """Return the end address of a function, assuming it is continuous."""
        index = bisect_right(self.func_addrs, func_entry)
        if index < len(self.func_addrs):
            return self.func_addrs[index]
        return self.code_end()


__all__ = [
    "Arch",
    "BinaryFile",
    "Disasm",
    "Fragment",
    "FragmentKind",
    "Perm",
    "Section",
    "format_address",
    "insert_addr",
    "insort",
    "load_json",
    "parse_address",
]