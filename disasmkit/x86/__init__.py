"""x86 registers, CPU contexts, instruction arguments and function disassembly."""