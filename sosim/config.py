"""Reading of KEY=VALUE configuration files for the CPU and I/O modules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

PathLike = Union[str, Path]

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class ConfigError(Exception):
    """Raised when a configuration file is missing, malformed or incomplete."""


@dataclass(frozen=True)
class CpuConfig:
    """Settings the CPU module reads at start-up."""

    memory_ip: str
    memory_port: str
    dispatch_port: str
    interrupt_port: str
    tlb_entries: int
    tlb_algorithm: str


@dataclass(frozen=True)
class IoConfig:
    """Settings an I/O interface reads at start-up."""

    interface_type: Optional[str] = None
    work_unit_time: int = 0
    kernel_ip: Optional[str] = None
    kernel_port: Optional[str] = None
    memory_ip: Optional[str] = None
    memory_port: Optional[str] = None
    dialfs_path: Optional[str] = None
    block_size: int = 0
    block_count: int = 0
    compaction_delay: int = 0


def _atoi(text: Optional[str]) -> int:
    """Leading integer of ``text``, or 0 when there is none."""
    if text is None:
        return 0
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_config(text: str) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; blank lines and ``#`` comments are skipped."""
    values: dict[str, str] = {}
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            raise ConfigError(f"line {number}: expected KEY=VALUE, got {raw!r}")
        values[key.strip()] = value.strip()
    return values


def read_config(path: PathLike) -> dict[str, str]:
    """Read and parse a configuration file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"invalid config: {path}") from exc
    return parse_config(text)


def _required(values: Mapping[str, str], key: str) -> str:
    try:
        return values[key]
    except KeyError:
        raise ConfigError(f"missing key {key}") from None


def load_cpu_config(path: PathLike) -> CpuConfig:
    """Load the CPU configuration; every key is required."""
    values = read_config(path)
    return CpuConfig(
        memory_ip=_required(values, "IP_MEMORIA"),
        memory_port=_required(values, "PUERTO_MEMORIA"),
        dispatch_port=_required(values, "PUERTO_ESCUCHA_DISPATCH"),
        interrupt_port=_required(values, "PUERTO_ESCUCHA_INTERRUPT"),
        tlb_entries=_atoi(_required(values, "CANTIDAD_ENTRADAS_TLB")),
        tlb_algorithm=_required(values, "ALGORITMO_TLB"),
    )


def load_io_config(path: PathLike) -> IoConfig:
    """Load an I/O interface configuration; absent numbers default to 0."""
    values = read_config(path)
    return IoConfig(
        interface_type=values.get("TIPO_INTERFAZ"),
        work_unit_time=_atoi(values.get("TIEMPO_UNIDAD_TRABAJO")),
        kernel_ip=values.get("IP_KERNEL"),
        kernel_port=values.get("PUERTO_KERNEL"),
        memory_ip=values.get("IP_MEMORIA"),
        memory_port=values.get("PUERTO_MEMORIA"),
        dialfs_path=values.get("PATH_BASE_DIALFS"),
        block_size=_atoi(values.get("BLOCK_SIZE")),
        block_count=_atoi(values.get("BLOCK_COUNT")),
        compaction_delay=_atoi(values.get("RETRASO_COMPACTACION")),
    )