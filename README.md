# toyasm

`toyasm` simulates a small CPU with segmented memory and runs programs
written in a toy assembly language. It is a library; it has no
command-line tool.

## Modules

- `toyasm.hashmap`: `HashMap`, a fixed-size (128 slots by default)
  open-addressing table with linear probing and tombstones, and
  `simple_hash`, the additive string hash it uses.
- `toyasm.memory`: `MemoryHandler`, which carves named `Segment`s out of a
  flat list of cells, keeps a free list sorted by address and merges
  neighbouring free blocks when a segment is removed. `FitStrategy`
  (`FIRST`, `BEST`, `WORST`) selects how `find_free_address` picks a block.
- `toyasm.parser`: `parse(path)` and `parse_lines(lines)` read `.DATA` /
  `.CODE` sources into a `ParserResult` holding `Instruction`s, the
  addresses of variables (`memory_locations`) and the indices of labels
  (`labels`).
- `toyasm.cpu`: `CPU`, with the registers `AX`, `BX`, `CX`, `DX`, `IP`,
  `ZF`, `SF`, `SP`, `BP` and `ES` (each a `Cell`), a 128-cell stack
  segment `SS` at the top of memory, and the addressing modes immediate
  (`42`), register (`AX`), memory direct (`[5]`), register indirect
  (`[AX]`) and segment override (`[ES:BX]`).
- `toyasm.code_segment`: `resolve_constants`, `allocate_code_segment`,
  `run_program` and the single-step helpers `fetch_next_instruction`,
  `execute_instruction` and `handle_instruction`. The interpreter knows
  `MOV`, `ADD`, `CMP`, `JMP`, `JZ`, `JNZ`, `HALT`, `PUSH`, `POP`, `ALLOC`
  and `FREE`; other mnemonics do nothing.

## The source language

```
.DATA
x DW 42
arr DB 20,21,22,23
y DB 10

.CODE
start: MOV AX,x
loop: ADD AX,y
JMP loop
```

Section markers are matched without regard to case. Each data line is
`name type value`; a comma-separated value declares an array, and every
element takes one memory cell, so above `x` is at 0, `arr` at 1 and `y`
at 5. Each code line is an optional `label:` followed by a mnemonic and
up to two operands separated by a comma; a label maps to the index of its
instruction.

## Running code

```python
from toyasm.parser import parse_lines
from toyasm.cpu import CPU
from toyasm.code_segment import resolve_constants, allocate_code_segment, run_program

source = """
.CODE
MOV AX,3
MOV BX,0
loop: ADD BX,1
CMP BX,AX
JNZ loop
HALT
"""

result = parse_lines(source.splitlines())
resolve_constants(result)      # labels and variable names become numbers

cpu = CPU(1024)
allocate_code_segment(cpu, result.code_instructions)
steps = run_program(cpu)       # prints a trace, returns the number of steps

print(cpu.register("BX").value)   # 3
```

`run_program` writes `Starting program execution...`, one
`Executing: ...` line per instruction and `Program finished.`; pass a
file-like object as `out` to send the trace somewhere other than standard
output. `HALT` sets `IP` to the memory size, which ends the run.

`resolve_constants` replaces, in every operand, the first occurrence of
each variable name and label by its number, as plain text substitution.

## Data segment

`CPU.allocate_variables(result.data_instructions)` creates the `DS`
segment at address 0, one cell longer than the declared values, and fills
it. `format_data_segment()` returns a listing of its cells and
`print_data_segment()` writes that listing to standard output; both raise
`SegmentError` when there is no `DS`.

## Working with memory directly

```python
from toyasm.memory import MemoryHandler, FitStrategy

memory = MemoryHandler(1024)
memory.create_segment("data", 100, 100)
memory.store("data", 0, "value")
memory.load("data", 0)                         # "value"
memory.find_free_address(50, FitStrategy.BEST) # 0
memory.remove_segment("data")
```

`find_free_address` returns `None` when no block is large enough.

## Errors

Creating a segment that already exists or that no free block can hold,
removing an unknown segment, or touching a position outside a segment
raises `SegmentError`. `CPU.push_value` on a full stack and
`CPU.pop_value` on an empty one raise `StackError`. Addressing modes that
do not match, or that point outside their segment, give `None`.

## Limitations

- There is no command-line program and no file loader that runs a source
  file end to end; the steps above are put together by the caller.
- `allocate_code_segment` places `CS` at address 0, as `allocate_variables`
  does with `DS`, so one `CPU` cannot hold both: the second allocation
  raises `SegmentError`. Programs that run therefore work on registers,
  the stack, constants and an `ES` segment.