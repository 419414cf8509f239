"""Instruction parsing and the decode step that resolves operands."""

from __future__ import annotations

from enum import Enum
from typing import Callable

from .registers import Registers, parse_register

Translate = Callable[[int, int], int]


class Opcode(Enum):
    """The instructions the CPU understands."""

    SET = "SET"
    SUM = "SUM"
    SUB = "SUB"
    JNZ = "JNZ"
    MOV_IN = "MOV_IN"
    MOV_OUT = "MOV_OUT"
    RESIZE = "RESIZE"
    COPY_STRING = "COPY_STRING"
    WAIT = "WAIT"
    SIGNAL = "SIGNAL"
    IO_GEN_SLEEP = "IO_GEN_SLEEP"
    IO_STDIN_READ = "IO_STDIN_READ"
    IO_STDOUT_WRITE = "IO_STDOUT_WRITE"
    IO_FS_CREATE = "IO_FS_CREATE"
    IO_FS_DELETE = "IO_FS_DELETE"
    IO_FS_TRUNCATE = "IO_FS_TRUNCATE"
    IO_FS_WRITE = "IO_FS_WRITE"
    IO_FS_READ = "IO_FS_READ"
    EXIT = "EXIT"


def parse_opcode(name: str) -> Opcode:
    """Return the opcode called ``name``; raise ValueError if there is none."""
    try:
        return Opcode(name)
    except ValueError:
        raise ValueError(f"unknown instruction: {name!r}") from None


def split_instruction(text: str) -> list[str]:
    """Split an instruction on spaces, dropping empty tokens."""
    return [token for token in text.split(" ") if token]


def decode(
    instruction: str, registers: Registers, pid: int, translate: Translate
) -> str:
    """Resolve register operands and translate logical addresses.

    ``translate(logical_address, pid)`` returns a physical address.
    Instructions that need no translation are returned unchanged.
    """
    tokens = split_instruction(instruction)
    if not tokens:
        raise ValueError("empty instruction")
    try:
        opcode = parse_opcode(tokens[0])
    except ValueError:
        return instruction

    def value(name: str) -> int:
        return registers.get(parse_register(name))

    op = tokens[0]
    if opcode is Opcode.IO_FS_TRUNCATE:
        size = value(tokens[3])
        return f"{op} {tokens[1]} {tokens[2]} {size}"
    if opcode is Opcode.MOV_IN:
        physical = translate(value(tokens[2]), pid)
        return f"{op} {tokens[1]} {physical}"
    if opcode is Opcode.MOV_OUT:
        data = value(tokens[2])
        physical = translate(value(tokens[1]), pid)
        return f"{op} {data} {physical}"
    if opcode is Opcode.COPY_STRING:
        source = translate(value("SI"), pid)
        target = translate(value("DI"), pid)
        return f"{op} {tokens[1]} {source} {target}"
    if opcode in (Opcode.IO_STDIN_READ, Opcode.IO_STDOUT_WRITE):
        logical = value(tokens[2])
        size = value(tokens[3])
        physical = translate(logical, pid)
        return f"{op} {tokens[1]} {physical} {size}"
    if opcode in (Opcode.IO_FS_WRITE, Opcode.IO_FS_READ):
        logical = value(tokens[3])
        size = value(tokens[4])
        file_pointer = value(tokens[5])
        physical = translate(logical, pid)
        return f"{op} {tokens[1]} {tokens[2]} {physical} {size} {file_pointer}"
    return instruction