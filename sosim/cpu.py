"""The CPU instruction cycle: fetch, decode, execute and interrupt handling."""

from __future__ import annotations

import logging
from enum import Enum, IntEnum
from typing import Optional, Protocol, Union

from .instructions import Opcode, decode as decode_instruction
from .instructions import parse_opcode, split_instruction
from .mmu import Mmu
from .registers import Operation, Process, ProcessState, Register, parse_register

_IO_OPCODES = frozenset(
    {
        Opcode.IO_GEN_SLEEP,
        Opcode.IO_STDIN_READ,
        Opcode.IO_STDOUT_WRITE,
        Opcode.IO_FS_CREATE,
        Opcode.IO_FS_DELETE,
        Opcode.IO_FS_TRUNCATE,
        Opcode.IO_FS_WRITE,
        Opcode.IO_FS_READ,
    }
)

_WORD = 4


class ContextReason(Enum):
    """Why a process context is handed back to the kernel."""

    IO = "IO"
    WAIT = "WAIT"
    SIGNAL = "SIGNAL"
    FINISHED = "FINALIZADO"
    OUT_OF_MEMORY = "OUT_OF_MEMORY"
    INTERRUPTED_BY_USER = "INTERRUPTED_BY_USER"
    QUANTUM = "DESALOJO_QUANTUM"


class Interrupt(IntEnum):
    """Interrupts the kernel can raise on the CPU."""

    NONE = 0
    INTERRUPTED_BY_USER = 1
    QUANTUM = 2


class MemoryPort(Protocol):
    """The memory module as seen by the CPU. Failures raise OSError."""

    def fetch(self, pid: int, pc: int) -> Optional[str]:
        """Instruction ``pc`` of process ``pid``, or None when there is none."""

    def read(self, pid: int, address: int, size: int) -> bytes:
        """Read ``size`` bytes of user space at a physical address."""

    def write(self, pid: int, address: int, data: bytes) -> None:
        """Write ``data`` to user space at a physical address."""

    def resize(self, pid: int, size: int) -> bool:
        """Resize the process; False when memory is exhausted."""


class DispatchPort(Protocol):
    """The kernel's dispatch channel."""

    def send_context(
        self, process: Process, instruction: str, reason: ContextReason
    ) -> None:
        """Return a process context to the kernel."""


class Cpu:
    """Runs processes instruction by instruction against a memory module."""

    def __init__(
        self,
        memory: MemoryPort,
        dispatch: DispatchPort,
        mmu: Mmu,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.memory = memory
        self.dispatch = dispatch
        self.mmu = mmu
        self.logger = logger or logging.getLogger(__name__)
        self.pending = Interrupt.NONE
        self.resource_pid: Optional[int] = None
        self._write_size = _WORD

    def fetch(self, process: Process) -> Optional[str]:
        """Fetch the instruction at the program counter and advance it."""
        pc = process.registers.pc
        instruction = self.memory.fetch(process.pid, pc)
        self.logger.info("PID: %d - FETCH - Program Counter: %d", process.pid, pc)
        process.registers.update(Register.PC, 1, Operation.SUM)
        return instruction

    def decode(self, instruction: str, process: Process) -> str:
        """Resolve register operands and translate addresses."""
        tokens = split_instruction(instruction)
        if len(tokens) > 2 and tokens[0] == Opcode.MOV_OUT.value:
            self._write_size = parse_register(tokens[2]).width()
        return decode_instruction(
            instruction, process.registers, process.pid, self.mmu.translate
        )

    def execute(self, instruction: str, process: Process) -> None:
        """Carry out a decoded instruction on ``process``."""
        self.logger.info(
            "PID: %d - FETCH - Ejecutando: %s", process.pid, instruction
        )
        tokens = split_instruction(instruction)
        try:
            opcode = parse_opcode(tokens[0]) if tokens else None
        except ValueError:
            opcode = None
        if opcode is None:
            self.logger.error("Instrucción no reconocida: %s", instruction)
            return
        try:
            self._execute(opcode, tokens, instruction, process)
        except (ValueError, IndexError) as exc:
            self.logger.error("Instrucción inválida %r: %s", instruction, exc)

    def _execute(
        self, opcode: Opcode, tokens: list[str], instruction: str, process: Process
    ) -> None:
        regs = process.registers
        pid = process.pid
        if opcode is Opcode.SET:
            regs.update(tokens[1], int(tokens[2]), Operation.ASSIGN)
        elif opcode is Opcode.SUM:
            regs.update(tokens[1], regs.get(tokens[2]), Operation.SUM)
        elif opcode is Opcode.SUB:
            regs.update(tokens[1], regs.get(tokens[2]), Operation.SUB)
        elif opcode is Opcode.JNZ:
            if regs.get(tokens[1]) != 0:
                regs.update(Register.PC, int(tokens[2]), Operation.ASSIGN)
        elif opcode is Opcode.MOV_IN:
            address = int(tokens[2])
            try:
                data = self.memory.read(pid, address, _WORD)
            except OSError as exc:
                self.logger.error(
                    "Error al leer memoria en la dirección física: %d (%s)",
                    address,
                    exc,
                )
                return
            value = int.from_bytes(data[:_WORD], "little")
            self.logger.info(
                "PID: %d - Acción: LEER - Dirección Física: %d - Valor: %d",
                pid,
                address,
                value,
            )
            regs.update(tokens[1], value, Operation.ASSIGN)
        elif opcode is Opcode.MOV_OUT:
            value = int(tokens[1])
            address = int(tokens[2])
            self.logger.info(
                "PID: %d - Acción: ESCRIBIR - Dirección Física: %d - Valor: %d",
                pid,
                address,
                value,
            )
            size = self._write_size
            data = (value & ((1 << (8 * size)) - 1)).to_bytes(size, "little")
            try:
                self.memory.write(pid, address, data)
            except OSError as exc:
                self.logger.error(
                    "Error al escribir en memoria en la dirección física: %d (%s)",
                    address,
                    exc,
                )
        elif opcode is Opcode.RESIZE:
            self.resize(process, int(tokens[1]))
        elif opcode is Opcode.COPY_STRING:
            self._copy_string(pid, int(tokens[1]), int(tokens[2]), int(tokens[3]))
        elif opcode is Opcode.WAIT:
            self.resource_pid = pid
            self.dispatch.send_context(process, instruction, ContextReason.WAIT)
        elif opcode is Opcode.SIGNAL:
            self.resource_pid = pid
            self.dispatch.send_context(process, instruction, ContextReason.SIGNAL)
        elif opcode in _IO_OPCODES:
            process.state = ProcessState.BLOCKED
            self.dispatch.send_context(process, instruction, ContextReason.IO)
        elif opcode is Opcode.EXIT:
            process.state = ProcessState.EXIT
            self.dispatch.send_context(process, instruction, ContextReason.FINISHED)

    def _copy_string(self, pid: int, size: int, source: int, target: int) -> None:
        try:
            data = self.memory.read(pid, source, size)
        except OSError as exc:
            self.logger.error(
                "Error al leer memoria en la dirección física: %d (%s)", source, exc
            )
            return
        text = data.decode("utf-8", errors="replace")
        self.logger.info(
            "PID: %d - Acción: LEER - Dirección Física: %d - Valor: %s",
            pid,
            source,
            text,
        )
        try:
            self.memory.write(pid, target, data)
        except OSError as exc:
            self.logger.error(
                "Error al escribir en memoria en la dirección física: %d (%s)",
                target,
                exc,
            )
            return
        self.logger.info(
            "PID: %d - Acción: ESCRIBIR - Dirección Física: %d - Valor: %s",
            pid,
            target,
            text,
        )

    def resize(self, process: Process, size: int) -> None:
        """Ask memory to resize the process; finish it when memory runs out."""
        if not self.memory.resize(process.pid, size):
            process.state = ProcessState.EXIT
            self.dispatch.send_context(
                process, "OUT_OF_MEMORY", ContextReason.OUT_OF_MEMORY
            )

    def interrupt(self, code: Union[int, Interrupt]) -> None:
        """Record an interrupt from the kernel."""
        self.pending = Interrupt(code)

    def _respond(self, process: Process, reason: ContextReason) -> None:
        self.dispatch.send_context(process, " ", reason)

    def _answer_interrupt(self, process: Process) -> bool:
        if self.pending is Interrupt.INTERRUPTED_BY_USER:
            process.state = ProcessState.EXIT
            self._respond(process, ContextReason.INTERRUPTED_BY_USER)
            self.logger.debug("INTERRUPCIÓN RECIBIDA: FINALIZADO")
            return True
        if self.pending is Interrupt.QUANTUM:
            self._respond(process, ContextReason.QUANTUM)
            self.logger.debug("INTERRUPCIÓN RECIBIDA: DESALOJO_QUANTUM")
            return True
        return False

    def run_cycle(self, process: Process) -> None:
        """Run ``process`` until it blocks, exits, requests a resource or is interrupted."""
        self.pending = Interrupt.NONE
        while True:
            instruction = self.fetch(process)
            if instruction is None:
                break
            self.execute(self.decode(instruction, process), process)
            if process.state in (ProcessState.EXIT, ProcessState.BLOCKED):
                break
            if self.resource_pid is not None:
                break
            if self._answer_interrupt(process):
                break

    def handle_dispatch(self, process: Process) -> None:
        """Take a process from the kernel and run it, honouring pending interrupts."""
        if process.pid == self.resource_pid and self._answer_interrupt(process):
            self.resource_pid = None
            return
        self.resource_pid = None
        self.run_cycle(process)