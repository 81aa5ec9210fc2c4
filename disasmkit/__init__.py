"""Recursive-descent disassembler primitives for x86 and MIPS binaries."""

__version__ = "0.1.0"