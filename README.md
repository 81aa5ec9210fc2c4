# disasmkit

Building blocks for recursive-descent disassembly of x86 and MIPS
executables. disasmkit starts at a function's entry address and follows
branch targets until it has decoded every basic block in the function.
It uses address hints stored in JSON files to tell code from data,
resolve jump tables and recognise tail calls.

The package has no third-party dependencies.

## Installation

```
pip install disasmkit
```

## Describing an executable

`disasmkit.disasm.BinaryFile` describes an executable that has already
been loaded. You build it yourself. It holds:

- `arch`: an `Arch` (`X86_32`, `X86_64` or `MIPS_32`)
- `entry`: the entry address
- `sections`: a list of `Section(addr, data, perm, name)`, where `perm`
  is a combination of the `Perm` flags `R`, `W` and `X`
- `imports` and `exports`: dicts that map an address to a name

`BinaryFile.code(addr)` returns the bytes from `addr` to the end of the
section that contains it. It raises `ValueError` if no section contains
the address.

```python
from disasmkit.disasm import Arch, BinaryFile, Perm, Section
from disasmkit.x86.disasm import X86Disasm

code = bytes([0x55, 0x74, 0x01, 0x90, 0xC3])  # push ebp; je +1; nop; ret
file = BinaryFile(
    arch=Arch.X86_32,
    entry=0x401000,
    sections=[Section(0x401000, code, Perm.R | Perm.X, ".text")],
)
dis = X86Disasm(file, directory="hints")
func = dis.decode_func(0x401000)
for addr, block in sorted(func.blocks.items()):
    print(hex(addr), [str(i) for i in block.insts], str(block.term))
```

## Hint files

`disasmkit.disasm.Disasm(file, directory=".")` reads these files from
`directory`. A missing file is logged as a warning and treated as empty.

- `funcs.json`: a list of function entry addresses
- `blocks.json`: a list of basic block addresses
- `tables.json`: an object that maps a jump table address to a list of
  target addresses
- `chunks.json`: an object that maps the address of a function chunk to
  an object of `{parent function address: true}`
- `data.json`: a list of addresses where data fragments start

The entry point and every export are always added to both the function
and the block addresses. Addresses may be given as `"0x..."` hex strings,
as decimal strings or as JSON integers.

`Disasm` keeps `func_addrs`, `block_addrs`, `tables`, `chunks` and
`frags`. `frags` is a list of `Fragment(addr, kind)` sorted by address,
where `kind` is a `FragmentKind` (`CODE` or `DATA`). `Disasm` also offers:

- `is_func(addr)`: whether `addr` is a known function entry or an import
- `code_start()` and `code_end()`: the bounds of the executable sections
- `max_block_len(block_addr)`: the distance to the next fragment, or to
  the end of the code
- `func_end(func_entry)`: the next function entry, or the end of the code

The helpers `parse_address`, `format_address` (`0x%08X`), `insert_addr`
and `load_json` are also in `disasmkit.disasm`.

## Decoding

`disasmkit.x86.disasm.X86Disasm` and `disasmkit.mips.disasm.MipsDisasm`
build on `Disasm`. Each provides these methods:

- `decode_func(entry)` returns a `Function`. Its `blocks` map each block
  address to a `BasicBlock`. Blocks are decoded in increasing address
  order, using `disasmkit.queue.AddressQueue`.
- `decode_block(entry)` decodes instructions until it reaches a
  terminator or the next fragment. A block that falls through into the
  next one gets a dummy terminator. Such a terminator's
  `is_dummy_term()` is true, and it prints as `; fallthrough 0x...`. On
  MIPS, the delay-slot instruction that follows a terminator is added to
  the block's `insts`.
- `decode_inst(addr)` decodes one instruction.
- `targets(term, func_entry)` lists the successor addresses of a
  terminator. Conditional branches and loops give the branch target
  followed by the fall-through address. Returns give none.
- `is_tail_call(func_entry, target)` reports whether a jump leaves the
  function for another function. It raises `ValueError` if the target is
  neither inside the function, nor one of its chunks, nor a known
  function.

### x86

`X86Disasm` accepts `Arch.X86_32` and `Arch.X86_64` and raises
`ValueError` for any other architecture. It also reads `contexts.json`
from the hint directory. That file maps an address to
`{"regs": {register: {key: value}}, "args": {index: {key: value}}}`. It
is parsed by `disasmkit.x86.context.parse_contexts` into `Context`
objects whose values are `Value` strings. A `Value` offers `addr()`,
`as_int()`, `as_uint()` and `as_bool()`, and
`contexts_to_json` writes contexts back out.

For a `JMP` through memory, `addrs(arg, addr, next_addr)` works as
follows:

- If the memory reference has an index register and the context gives
  that register a `"min"` value, the displacement is adjusted by it.
- The targets come from `tables.json` for `[index*4+disp]` references.
- Base-relative references below the code start are ignored with a
  warning.
- Any other memory reference raises `ValueError`.

Registers are members of the `disasmkit.x86.register.Register` enum.
This includes the pseudo-registers `DX:AX`, `EDX:EAX` and `RDX:RAX`.
`parse_register` turns a name into a register. Instruction operands are
`Register`, `Mem`, `Rel` or `Imm` values from `disasmkit.x86.arg`.
`Inst.arg(i)`, `Inst.reg(i)` and `Inst.mem(i)` wrap an operand with its
instruction as `ArgRef`, `RegRef` or `MemRef`.

### MIPS

`MipsDisasm` accepts `Arch.MIPS_32`. Instruction words are read
little-endian. `disasmkit.mips.disasm.decode_word` decodes one 32-bit
word into an `Instruction`. The result has a `name`, its `registers`, an
`immediate` and a `CodePointer`, and `render()` returns its assembly
text. Indirect jumps (`JR` and `JALR`) give no targets.

## Limitations

- disasmkit does not load executable files. You build `BinaryFile` and
  its sections yourself.
- There is no command-line tool.
- The instruction decoders cover only a common subset of each
  instruction set. Any other encoding raises `ValueError`.
  - x86: no prefixes (including REX). Supported are `NOP`, `RET`, `INT3`,
    `PUSH`/`POP`, `MOV reg, imm32`, relative `CALL`/`JMP`/`Jcc`,
    `LOOP*`, `JECXZ`/`JRCXZ`, indirect `JMP`/`CALL` through `FF /4` and
    `FF /2`, and ModRM forms of `ADD`, `SUB`, `XOR`, `CMP`, `TEST` and
    `MOV`.
  - MIPS: the usual integer ALU, shift, multiply/divide, load/store,
    branch and jump instructions.
- Targets of indirect jumps through registers are not resolved.

Diagnostics go through the standard `logging` module, under logger names
that start with `disasmkit`.