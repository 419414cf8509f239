"""CPU registers, register arithmetic and the process context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Union


class Register(IntEnum):
    """The CPU registers; the first four are 8 bits wide, the rest 32."""

    AX = 0
    BX = 1
    CX = 2
    DX = 3
    EAX = 4
    EBX = 5
    ECX = 6
    EDX = 7
    SI = 8
    DI = 9
    PC = 10

    def width(self) -> int:
        """Size of the register in bytes."""
        return 1 if self <= Register.DX else 4


class Operation(Enum):
    """How a value is combined with a register's contents."""

    SUM = "SUM"
    SUB = "SUB"
    ASSIGN = "ASSIGN"


class ProcessState(IntEnum):
    """Scheduling state of a process."""

    NEW = 0
    READY = 1
    EXEC = 2
    BLOCKED = 3
    EXIT = 4


def parse_register(name: Union[str, Register]) -> Register:
    """Return the register called ``name``; raise ValueError if there is none."""
    if isinstance(name, Register):
        return name
    try:
        return Register[name]
    except KeyError:
        raise ValueError(f"invalid register: {name!r}") from None


@dataclass
class Registers:
    """The register file of one process."""

    ax: int = 0
    bx: int = 0
    cx: int = 0
    dx: int = 0
    eax: int = 0
    ebx: int = 0
    ecx: int = 0
    edx: int = 0
    si: int = 0
    di: int = 0
    pc: int = 0

    def get(self, register: Union[str, Register]) -> int:
        """Current value of a register."""
        reg = parse_register(register)
        return getattr(self, reg.name.lower())

    def update(
        self,
        register: Union[str, Register],
        value: int,
        operation: Operation = Operation.ASSIGN,
    ) -> None:
        """Apply ``operation`` with ``value``, wrapping to the register's width."""
        reg = parse_register(register)
        mask = (1 << (8 * reg.width())) - 1
        current = self.get(reg)
        value &= mask
        if operation is Operation.SUM:
            result = current + value
        elif operation is Operation.SUB:
            result = current - value
        else:
            result = value
        setattr(self, reg.name.lower(), result & mask)


@dataclass
class Process:
    """A process context as handed to the CPU."""

    pid: int
    registers: Registers = field(default_factory=Registers)
    state: ProcessState = ProcessState.READY