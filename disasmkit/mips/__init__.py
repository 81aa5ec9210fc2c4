"""MIPS instruction decoding and function disassembly."""