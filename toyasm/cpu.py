"""A small register machine on top of segmented memory."""

from __future__ import annotations

import re
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from toyasm.hashmap import HashMap
from toyasm.memory import FitStrategy, MemoryHandler, SegmentError
from toyasm.parser import Instruction

STACK_SIZE = 128
REGISTERS = ("AX", "BX", "CX", "DX", "IP", "ZF", "SF", "SP", "BP", "ES")
GENERAL_REGISTERS = ("AX", "BX", "CX", "DX")

_IMMEDIATE = re.compile(r"[0-9]+")
_REGISTER = re.compile(r"AX|BX|CX|DX")
_MEMORY_DIRECT = re.compile(r"\[([0-9]+)\]")
_REGISTER_INDIRECT = re.compile(r"\[(AX|BX|CX|DX)\]")
_SEGMENT_OVERRIDE = re.compile(r"\[([A-Z]{2}):([A-Z]{2})\]")
_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


class StackError(RuntimeError):
    """Raised on stack overflow or underflow."""


@dataclass
class Cell:
    """A mutable integer: a register, a memory word or a pooled constant."""

    value: int = 0


def _to_int(text: str) -> int:
    """Leading integer of ``text``, or 0 when it does not start with one."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def matches(pattern: str, text: str) -> bool:
    """Whether the regular expression ``pattern`` matches somewhere in ``text``."""
    try:
        return re.search(pattern, text) is not None
    except re.error:
        return False


def handle_mov(src: Cell | None, dest: Cell | None) -> None:
    """Copy the value of ``src`` into ``dest`` when both are present."""
    if src is None or dest is None:
        return
    dest.value = src.value


class CPU:
    """Registers, a constant pool and memory with a stack segment at the top."""

    def __init__(self, memory_size: int) -> None:
        self.memory_handler = MemoryHandler(memory_size)
        self.context = HashMap()
        self.constant_pool = HashMap()

        for name in REGISTERS:
            self.context.insert(name, Cell(-1 if name == "ES" else 0))

        self.memory_handler.create_segment("SS", memory_size - STACK_SIZE, STACK_SIZE)
        self.register("SP").value = STACK_SIZE - 1
        self.register("BP").value = STACK_SIZE - 1

    def register(self, name: str) -> Cell:
        """The cell holding register ``name``."""
        cell = self.context.get(name)
        if cell is None:
            raise KeyError(f"unknown register {name!r}")
        return cell

    def allocate_variables(self, data_instructions: Iterable[Instruction]) -> None:
        """Create the ``DS`` segment and fill it with the declared values."""
        instructions = list(data_instructions)
        total_size = 1 + sum(instr.element_count() for instr in instructions)
        self.memory_handler.create_segment("DS", 0, total_size)

        offset = 0
        for instr in instructions:
            text = instr.operand2 or ""
            tokens = [tok for tok in text.split(",") if tok] if "," in text else [text]
            for token in tokens:
                self.memory_handler.store("DS", offset, Cell(_to_int(token)))
                offset += 1

    def _data_segment_lines(self) -> Iterator[str]:
        """Lines of the ``DS`` listing, header first."""
        segment = self.memory_handler.segment("DS")
        if segment is None:
            raise SegmentError("segment 'DS' not found")
        yield "Content of DS segment:"
        for pos in range(segment.size):
            address = segment.start + pos
            cell = self.memory_handler.memory[address]
            shown = "NULL" if cell is None else str(cell.value)
            yield f"Address {address} (pos {pos}): {shown}"

    def format_data_segment(self) -> str:
        """Text listing of every cell of the ``DS`` segment."""
        return "\n".join(self._data_segment_lines())

    def print_data_segment(self) -> None:
        """Write the ``DS`` segment listing to standard output, line by line."""
        out = sys.stdout
        for line in self._data_segment_lines():
            out.write(line)
            out.write("\n")
        out.flush()

    def _load(self, segment_name: str, pos: int) -> Cell | None:
        try:
            return self.memory_handler.load(segment_name, pos)
        except SegmentError:
            return None

    def immediate_addressing(self, operand: str) -> Cell | None:
        """A pooled constant cell for a decimal literal."""
        if not _IMMEDIATE.fullmatch(operand):
            return None
        existing = self.constant_pool.get(operand)
        if existing is not None:
            return existing
        cell = Cell(int(operand))
        self.constant_pool.insert(operand, cell)
        return cell

    def register_addressing(self, operand: str) -> Cell | None:
        """The cell of a general-purpose register named by ``operand``."""
        if not _REGISTER.fullmatch(operand):
            return None
        return self.context.get(operand)

    def memory_direct_addressing(self, operand: str) -> Cell | None:
        """The ``DS`` cell at the literal address in ``[n]``."""
        match = _MEMORY_DIRECT.fullmatch(operand)
        if not match:
            return None
        index = int(match.group(1))
        if not 0 <= index < self.memory_handler.total_size:
            return None
        return self._load("DS", index)

    def register_indirect_addressing(self, operand: str) -> Cell | None:
        """The ``DS`` cell at the address held in the register of ``[REG]``."""
        match = _REGISTER_INDIRECT.fullmatch(operand)
        if not match:
            return None
        reg = self.context.get(match.group(1))
        if reg is None:
            return None
        address = reg.value
        if not 0 <= address < self.memory_handler.total_size:
            return None
        return self._load("DS", address)

    def segment_override_addressing(self, operand: str) -> Cell | None:
        """The cell of segment SEG at the offset held in REG, for ``[SEG:REG]``."""
        match = _SEGMENT_OVERRIDE.fullmatch(operand)
        if not match:
            return None
        seg_name, reg_name = match.groups()
        reg = self.context.get(reg_name)
        if reg is None:
            return None
        segment = self.memory_handler.segment(seg_name)
        if segment is None:
            return None
        address = reg.value
        if not 0 <= address < segment.size:
            return None
        return self._load(seg_name, address)

    def resolve_addressing(self, operand: str | None) -> Cell | None:
        """Try each addressing mode in turn; the first cell found wins."""
        if operand is None:
            return None
        for mode in (
            self.segment_override_addressing,
            self.immediate_addressing,
            self.register_addressing,
            self.memory_direct_addressing,
            self.register_indirect_addressing,
        ):
            cell = mode(operand)
            if cell is not None:
                return cell
        return None

    def push_value(self, value: int) -> None:
        """Push ``value``; the stack grows towards lower offsets."""
        sp = self.register("SP")
        if self.memory_handler.segment("SS") is None or sp.value < 0:
            raise StackError("stack overflow")
        self.memory_handler.store("SS", sp.value, Cell(value))
        sp.value -= 1

    def pop_value(self) -> int:
        """Pop and return the top of the stack."""
        sp = self.register("SP")
        stack = self.memory_handler.segment("SS")
        if stack is None or sp.value >= stack.size - 1:
            raise StackError("stack underflow")
        sp.value += 1
        cell = self.memory_handler.load("SS", sp.value)
        return 0 if cell is None else cell.value

    def alloc_es_segment(self) -> int | None:
        """Allocate ``ES`` of AX cells using strategy BX; ZF reports failure."""
        size = self.register("AX").value
        zf = self.register("ZF")
        try:
            address = self.memory_handler.find_free_address(size, FitStrategy(self.register("BX").value))
        except ValueError:
            address = None
        if address is None:
            zf.value = 1
            return None

        self.memory_handler.create_segment("ES", address, size)
        for pos in range(size):
            self.memory_handler.store("ES", pos, Cell(0))
        self.register("ES").value = address
        zf.value = 0
        return address

    def free_es_segment(self) -> bool:
        """Release ``ES``; return whether there was one to release."""
        es = self.register("ES")
        if es.value < 0:
            return False
        segment = self.memory_handler.segment("ES")
        if segment is None:
            return False
        for pos in range(segment.size):
            self.memory_handler.store("ES", pos, None)
        self.memory_handler.remove_segment("ES")
        es.value = -1
        return True


def setup_test_environment() -> CPU:
    """A CPU with preset registers and a ``DS`` holding 5, 15, ..., 95."""
    cpu = CPU(1024)
    for name, value in zip(GENERAL_REGISTERS, (3, 6, 100, 0)):
        cpu.register(name).value = value

    if cpu.memory_handler.segment("DS") is None:
        cpu.memory_handler.create_segment("DS", 0, 20)
        for pos in range(10):
            cpu.memory_handler.store("DS", pos, Cell(pos * 10 + 5))

    print("Test environment initialized.", file=sys.stderr)
    return cpu