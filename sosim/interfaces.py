"""Generic, keyboard and screen I/O interfaces serving kernel requests."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .dialfs import UserMemory
from .instructions import Opcode

Sleep = Callable[[float], None]
Prompt = Callable[[str], str]
Output = Callable[[str], None]

PROMPT_TEXT = ">> Ingresar texto para guardar en memoria: "

_log = logging.getLogger(__name__)


class InterfaceError(Exception):
    """Raised when an I/O request cannot be served."""


@dataclass(frozen=True)
class IoRequest:
    """A request from the kernel to an I/O interface."""

    operation: Opcode
    pid: int
    address: int = 0
    size: int = 0
    units: int = 0


def io_gen_sleep(units: int, sleep: Sleep = time.sleep) -> None:
    """Sleep for ``units`` milliseconds; non-positive units are an error."""
    if units <= 0:
        raise InterfaceError("Unidades de trabajo invalidas!")
    _log.info("Operacion: IO_GEN_SLEEP %dms", units)
    sleep(units / 1000)


def read_text(length: int, prompt: Prompt = input) -> str:
    """Ask for text until exactly ``length`` characters are entered."""
    while True:
        try:
            text = prompt(PROMPT_TEXT)
        except EOFError:
            raise InterfaceError("entrada finalizada sin texto valido") from None
        if len(text) == length:
            return text
        _log.error("El texto ingresado es invalido, volver a ingresar...")


def _expect(request: IoRequest, operation: Opcode) -> None:
    if request.operation is not operation:
        raise InterfaceError(
            f"Instrucción recibida del kernel invalida: {request.operation.value}"
        )


class GenericInterface:
    """An interface that only waits a number of work units."""

    def __init__(
        self,
        name: str,
        sleep: Sleep = time.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self.sleep = sleep
        self.logger = logger or _log

    def handle(self, request: IoRequest) -> None:
        """Serve an IO_GEN_SLEEP request."""
        _expect(request, Opcode.IO_GEN_SLEEP)
        self.logger.info("PID: %d - Operacion: IO_GEN_SLEEP", request.pid)
        io_gen_sleep(request.units, self.sleep)


class StdinInterface:
    """An interface that reads text from the user into process memory."""

    def __init__(
        self,
        name: str,
        memory: UserMemory,
        prompt: Prompt = input,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self.memory = memory
        self.prompt = prompt
        self.logger = logger or _log

    def handle(self, request: IoRequest) -> bytes:
        """Serve an IO_STDIN_READ request; returns the bytes stored."""
        _expect(request, Opcode.IO_STDIN_READ)
        data = read_text(request.size, self.prompt).encode("utf-8")
        try:
            self.memory.write(request.pid, request.address, data)
        except OSError as exc:
            raise InterfaceError("Error al escribir en la memoria") from exc
        self.logger.info("PID: %d - Operacion: IO_STDIN_READ", request.pid)
        return data


class StdoutInterface:
    """An interface that shows text taken from process memory."""

    def __init__(
        self,
        name: str,
        memory: UserMemory,
        output: Optional[Output] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.name = name
        self.memory = memory
        self.output = output or print
        self.logger = logger or _log

    def handle(self, request: IoRequest) -> str:
        """Serve an IO_STDOUT_WRITE request; returns the text shown."""
        _expect(request, Opcode.IO_STDOUT_WRITE)
        self.logger.info("PID: %d - Operacion: IO_STDOUT_WRITE", request.pid)
        try:
            data = self.memory.read(request.pid, request.address, request.size)
        except OSError as exc:
            raise InterfaceError("Error al recibir respuesta de la memoria") from exc
        text = data[: request.size].split(b"\0", 1)[0].decode("utf-8", errors="replace")
        self.logger.info("STDOUT: %s", text)
        self.output(text)
        return text