"""Parsing of assembly source into data and code instructions."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto
from os import PathLike

from toyasm.hashmap import HashMap


@dataclass
class Instruction:
    """A mnemonic with up to two operands.

    For data declarations the mnemonic is the variable name, ``operand1``
    its type and ``operand2`` its initial value(s).
    """

    mnemonic: str | None = None
    operand1: str | None = None
    operand2: str | None = None

    def element_count(self) -> int:
        """Number of comma-separated values in ``operand2``."""
        return 1 + (self.operand2 or "").count(",")


@dataclass
class ParserResult:
    """Everything read from a source file."""

    data_instructions: list[Instruction] = field(default_factory=list)
    code_instructions: list[Instruction] = field(default_factory=list)
    labels: HashMap = field(default_factory=HashMap)
    memory_locations: HashMap = field(default_factory=HashMap)


class _Section(Enum):
    NONE = auto()
    DATA = auto()
    CODE = auto()


def parse_data_instruction(line: str, memory_locations: HashMap, address: int = 0) -> Instruction:
    """Parse ``NAME TYPE VALUE[,VALUE...]`` and record NAME at ``address``."""
    parts = line.split(maxsplit=2)
    if len(parts) < 2:
        raise ValueError(f"malformed data declaration: {line!r}")
    name, kind = parts[0], parts[1]
    value = parts[2] if len(parts) > 2 else ""
    memory_locations.insert(name, address)
    return Instruction(name, kind, value)


def parse_code_instruction(line: str, labels: HashMap, code_count: int) -> Instruction:
    """Parse ``[label:] MNEMONIC [op1[, op2]]``; a label maps to ``code_count``."""
    text = line.lstrip()
    colon = text.find(":")
    bracket = text.find("[")
    # A colon inside a bracketed operand is a segment override, not a label.
    if colon != -1 and (bracket == -1 or colon < bracket):
        labels.insert(text[:colon].strip(), code_count)
        text = text[colon + 1:]

    parts = text.split(maxsplit=1)
    instr = Instruction()
    if not parts:
        return instr
    instr.mnemonic = parts[0]
    operands = parts[1].strip() if len(parts) > 1 else ""

    if "," in operands:
        first, _, second = operands.partition(",")
        instr.operand1 = first.strip() or None
        instr.operand2 = second.strip() or None
    elif operands:
        instr.operand1 = operands
    return instr


def parse_lines(lines: Iterable[str]) -> ParserResult:
    """Parse source lines split into ``.DATA`` and ``.CODE`` sections."""
    result = ParserResult()
    section = _Section.NONE
    address = 0

    for raw in lines:
        line = re.split(r"[\r\n]", raw, maxsplit=1)[0]
        trimmed = line.lstrip()
        if not trimmed:
            continue
        marker = trimmed.upper()
        if marker == ".DATA":
            section = _Section.DATA
            continue
        if marker == ".CODE":
            section = _Section.CODE
            continue

        if section is _Section.DATA:
            instr = parse_data_instruction(trimmed, result.memory_locations, address)
            address += instr.element_count()
            result.data_instructions.append(instr)
        elif section is _Section.CODE:
            instr = parse_code_instruction(
                trimmed, result.labels, len(result.code_instructions)
            )
            result.code_instructions.append(instr)

    return result


def parse(path: str | PathLike[str]) -> ParserResult:
    """Parse the source file at ``path``."""
    with open(path, encoding="utf-8") as handle:
        return parse_lines(handle)