"""Loading code into the ``CS`` segment and running it."""

from __future__ import annotations

import re
import sys
from collections.abc import Sequence
from typing import TextIO

from toyasm.cpu import CPU, Cell
from toyasm.hashmap import HashMap
from toyasm.parser import Instruction, ParserResult

_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")
_TRIM_CHARS = " \t\n\r"


def _to_int(text: str) -> int:
    """Leading integer of ``text``, or 0 when it does not start with one."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def search_and_replace(text: str | None, values: HashMap) -> tuple[str | None, bool]:
    """Replace the first occurrence of each key of ``values`` in ``text`` by its number.

    Keys are tried in table order. Returns the new text and whether anything
    was replaced; replaced text is stripped of surrounding whitespace.
    """
    if text is None:
        return None, False

    replaced = False
    for key, value in values.items():
        if key in text:
            text = text.replace(key, str(int(value)), 1)
            replaced = True

    if replaced:
        text = text.strip(_TRIM_CHARS)
    return text, replaced


def resolve_constants(result: ParserResult) -> bool:
    """Replace variable names and labels in code operands by their addresses."""
    replaced = False
    for instr in result.code_instructions:
        for attr in ("operand1", "operand2"):
            for table in (result.memory_locations, result.labels):
                text, changed = search_and_replace(getattr(instr, attr), table)
                setattr(instr, attr, text)
                replaced |= changed
    return replaced


def allocate_code_segment(cpu: CPU, code_instructions: Sequence[Instruction]) -> None:
    """Create ``CS`` at address 0, store the instructions and reset IP."""
    instructions = list(code_instructions)
    cpu.memory_handler.create_segment("CS", 0, len(instructions))
    for pos, instr in enumerate(instructions):
        cpu.memory_handler.store("CS", pos, instr)
    cpu.register("IP").value = 0


def handle_instruction(
    cpu: CPU, instr: Instruction, src: Cell | None, dest: Cell | None
) -> bool:
    """Carry out one instruction on pre-resolved operands.

    Returns True when the instruction set IP itself (a jump or HALT).
    """
    zf = cpu.register("ZF")
    sf = cpu.register("SF")
    ip = cpu.register("IP")
    mnemonic = instr.mnemonic

    if mnemonic == "MOV":
        if src is not None and dest is not None:
            dest.value = src.value
    elif mnemonic == "ADD":
        if src is not None and dest is not None:
            dest.value += src.value
    elif mnemonic == "CMP":
        if src is not None and dest is not None:
            difference = dest.value - src.value
            zf.value = int(difference == 0)
            sf.value = int(difference < 0)
    elif mnemonic == "JMP":
        if instr.operand1:
            ip.value = _to_int(instr.operand1)
        return True
    elif mnemonic == "JZ":
        if zf.value == 1 and instr.operand1:
            ip.value = _to_int(instr.operand1)
            return True
    elif mnemonic == "JNZ":
        if zf.value == 0 and instr.operand1:
            ip.value = _to_int(instr.operand1)
            return True
    elif mnemonic == "HALT":
        ip.value = cpu.memory_handler.total_size
        return True
    elif mnemonic == "PUSH":
        cell = cpu.resolve_addressing(instr.operand1 or "AX")
        if cell is not None:
            cpu.push_value(cell.value)
    elif mnemonic == "POP":
        value = cpu.pop_value()
        target = cpu.resolve_addressing(instr.operand1 or "AX")
        if target is not None:
            target.value = value
    elif mnemonic == "ALLOC":
        cpu.alloc_es_segment()
    elif mnemonic == "FREE":
        cpu.free_es_segment()

    return False


def execute_instruction(cpu: CPU, instr: Instruction) -> bool:
    """Resolve the operands of ``instr`` and carry it out."""
    src = cpu.resolve_addressing(instr.operand2)
    dest = cpu.resolve_addressing(instr.operand1)
    return handle_instruction(cpu, instr, src, dest)


def fetch_next_instruction(cpu: CPU) -> Instruction | None:
    """The instruction at IP, advancing IP; None past the end of ``CS``."""
    ip = cpu.register("IP")
    segment = cpu.memory_handler.segment("CS")
    if segment is None or ip.value >= segment.size or ip.value < 0:
        return None
    instr = cpu.memory_handler.load("CS", ip.value)
    ip.value += 1
    return instr


def run_program(cpu: CPU, out: TextIO | None = None) -> int:
    """Run the loaded code until it ends or halts; return the number of steps."""
    stream = sys.stdout if out is None else out
    print("Starting program execution...", file=stream)

    steps = 0
    while True:
        instr = fetch_next_instruction(cpu)
        if instr is None:
            break
        print(
            f"Executing: {instr.mnemonic or ''} {instr.operand1 or ''} {instr.operand2 or ''}",
            file=stream,
        )
        jumped = execute_instruction(cpu, instr)
        steps += 1
        if not jumped and cpu.register("IP").value >= cpu.memory_handler.total_size:
            break

    print("Program finished.", file=stream)
    return steps