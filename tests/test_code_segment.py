import io

import pytest

from toyasm.code_segment import (
    allocate_code_segment,
    execute_instruction,
    fetch_next_instruction,
    handle_instruction,
    resolve_constants,
    run_program,
    search_and_replace,
)
from toyasm.cpu import CPU, Cell, StackError
from toyasm.hashmap import HashMap
from toyasm.memory import SegmentError
from toyasm.parser import Instruction, parse_lines


def _load(lines):
    result = parse_lines([".CODE", *lines])
    resolve_constants(result)
    cpu = CPU(1024)
    allocate_code_segment(cpu, result.code_instructions)
    return cpu, result


def test_search_and_replace_replaces_key():
    values = HashMap()
    values.insert("x", 0)
    assert search_and_replace("x", values) == ("0", True)
    assert search_and_replace("[x]", values) == ("[0]", True)


def test_search_and_replace_without_match_keeps_text():
    values = HashMap()
    values.insert("loop", 1)
    assert search_and_replace("AX", values) == ("AX", False)
    assert search_and_replace(None, values) == (None, False)


def test_resolve_constants_uses_addresses_and_labels():
    result = parse_lines(
        [
            ".DATA",
            "x DW 42",
            "arr DB 20,21,22,23",
            "y DB 10",
            ".CODE",
            "start: MOV AX, x",
            "loop: ADD AX, y",
            "JMP loop",
        ]
    )
    assert resolve_constants(result) is True
    code = result.code_instructions
    assert code[0].operand2 == "0"
    assert code[1].operand2 == "5"
    assert code[2].operand1 == "1"
    assert code[0].operand1 == "AX"
    assert resolve_constants(result) is False


def test_allocate_code_segment_stores_instructions():
    cpu, result = _load(["MOV AX, 5", "HALT"])
    segment = cpu.memory_handler.segment("CS")
    assert segment.start == 0
    assert segment.size == len(result.code_instructions)
    assert cpu.memory_handler.load("CS", 1) is result.code_instructions[1]
    assert cpu.register("IP").value == 0


def test_allocate_code_segment_twice_fails():
    cpu, result = _load(["HALT"])
    with pytest.raises(SegmentError):
        allocate_code_segment(cpu, result.code_instructions)


def test_fetch_next_instruction_advances_ip():
    cpu, result = _load(["MOV AX, 5", "HALT"])
    assert fetch_next_instruction(cpu) is result.code_instructions[0]
    assert cpu.register("IP").value == 1
    assert fetch_next_instruction(cpu) is result.code_instructions[1]
    assert fetch_next_instruction(cpu) is None


def test_fetch_without_code_segment_returns_none():
    assert fetch_next_instruction(CPU(1024)) is None


def test_handle_mov_add_cmp():
    cpu = CPU(1024)
    src, dest = Cell(4), Cell(0)
    assert handle_instruction(cpu, Instruction("MOV", "AX", "4"), src, dest) is False
    assert dest.value == src.value
    handle_instruction(cpu, Instruction("ADD", "AX", "4"), src, dest)
    assert dest.value == 2 * src.value
    handle_instruction(cpu, Instruction("CMP", "AX", "4"), src, Cell(src.value))
    assert cpu.register("ZF").value == 1
    assert cpu.register("SF").value == 0
    handle_instruction(cpu, Instruction("CMP", "AX", "4"), src, Cell(src.value - 1))
    assert cpu.register("ZF").value == 0
    assert cpu.register("SF").value == 1


def test_handle_jumps_and_halt():
    cpu = CPU(1024)
    assert handle_instruction(cpu, Instruction("JMP", "3"), None, None) is True
    assert cpu.register("IP").value == 3
    cpu.register("ZF").value = 0
    assert handle_instruction(cpu, Instruction("JZ", "7"), None, None) is False
    assert cpu.register("IP").value == 3
    assert handle_instruction(cpu, Instruction("JNZ", "7"), None, None) is True
    assert cpu.register("IP").value == 7
    assert handle_instruction(cpu, Instruction("HALT"), None, None) is True
    assert cpu.register("IP").value == cpu.memory_handler.total_size


def test_execute_instruction_resolves_operands():
    cpu = CPU(1024)
    assert execute_instruction(cpu, Instruction("MOV", "BX", "42")) is False
    assert cpu.register("BX").value == 42
    execute_instruction(cpu, Instruction("MOV", "CX", "BX"))
    assert cpu.register("CX").value == 42


def test_run_program_output_and_result():
    cpu, _ = _load(["MOV AX, 5", "ADD AX, AX"])
    out = io.StringIO()
    steps = run_program(cpu, out)
    assert steps == 2
    assert cpu.register("AX").value == 2 * 5
    lines = out.getvalue().splitlines()
    assert lines[0] == "Starting program execution..."
    assert lines[1] == "Executing: MOV AX 5"
    assert lines[-1] == "Program finished."


def test_run_program_stops_at_halt():
    cpu, _ = _load(["HALT", "MOV AX, 5"])
    assert run_program(cpu, io.StringIO()) == 1
    assert cpu.register("AX").value == 0


def test_run_program_conditional_jump():
    cpu, _ = _load(["MOV AX, 1", "CMP AX, 1", "JZ end", "MOV BX, 7", "end: HALT"])
    run_program(cpu, io.StringIO())
    assert cpu.register("BX").value == 0
    assert cpu.register("ZF").value == 1


def test_run_program_push_pop():
    cpu, _ = _load(["MOV AX, 9", "PUSH AX", "PUSH", "MOV AX, 0", "POP BX", "POP CX"])
    run_program(cpu, io.StringIO())
    assert cpu.register("BX").value == 9
    assert cpu.register("CX").value == 9
    assert cpu.register("SP").value == cpu.register("BP").value


def test_pop_on_empty_stack_raises():
    cpu, _ = _load(["POP BX"])
    with pytest.raises(StackError):
        run_program(cpu, io.StringIO())


def test_run_program_alloc_and_free_extra_segment():
    lines = ["MOV AX, 10", "MOV BX, 0", "ALLOC", "MOV CX, 2", "MOV [ES:CX], AX"]
    cpu, result = _load(lines)
    run_program(cpu, io.StringIO())
    code_size = len(result.code_instructions)
    assert cpu.register("ES").value == code_size
    assert cpu.register("ZF").value == 0
    assert cpu.memory_handler.segment("ES").size == 10
    assert cpu.memory_handler.load("ES", 2).value == 10

    assert execute_instruction(cpu, Instruction("FREE")) is False
    assert cpu.register("ES").value == -1
    assert cpu.memory_handler.segment("ES") is None