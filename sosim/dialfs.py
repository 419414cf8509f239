"""A contiguous-allocation file system stored in a block file and a bitmap."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

from .blockstore import Bitmap, BlockStore
from .config import ConfigError, read_config

PathLike = Union[str, Path]

BLOCKS_FILE = "bloques.dat"
BITMAP_FILE = "bitmap.dat"
_RESERVED = frozenset({BLOCKS_FILE, BITMAP_FILE})

_FIRST_BLOCK_KEY = "BLOQUE_INICIAL"
_SIZE_KEY = "TAMANIO_ARCHIVO"

_log = logging.getLogger(__name__)


class FileSystemError(Exception):
    """Raised when a file-system operation cannot be carried out."""


@dataclass(frozen=True)
class FileMetadata:
    """Where a file starts and how many bytes it holds."""

    first_block: int
    size: int


class UserMemory(Protocol):
    """User-space memory of processes. Failures raise OSError."""

    def read(self, pid: int, address: int, size: int) -> bytes:
        """Read ``size`` bytes at a physical address."""

    def write(self, pid: int, address: int, data: bytes) -> None:
        """Write ``data`` at a physical address."""


def ensure_directory(path: PathLike) -> Path:
    """Make sure ``path`` is a directory, creating it if it does not exist."""
    directory = Path(path)
    if directory.exists():
        if directory.is_dir():
            _log.info("El directorio %s ya existe.", directory)
            return directory
        raise FileSystemError(f"{directory} es un archivo, no un directorio.")
    try:
        directory.mkdir()
    except OSError as exc:
        raise FileSystemError(f"Error al crear el directorio {directory}") from exc
    _log.info("Directorio %s creado exitosamente.", directory)
    return directory


class DialFS:
    """Files stored contiguously in fixed-size blocks, with metadata files."""

    def __init__(
        self,
        base_path: PathLike,
        block_size: int,
        block_count: int,
        compaction_delay: int,
        memory: UserMemory,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if block_size <= 0 or block_count <= 0:
            raise FileSystemError("block size and block count must be positive")
        self.base_path = ensure_directory(base_path)
        self.block_size = block_size
        self.block_count = block_count
        self.compaction_delay = compaction_delay
        self.memory = memory
        self.logger = logger or _log
        self.logger.info(
            "cantidad de bloques: %d, tamanio de bloques: %d", block_count, block_size
        )
        self.blocks = BlockStore(self.base_path / BLOCKS_FILE, block_size, block_count)
        self.bitmap = Bitmap(self.base_path / BITMAP_FILE, block_count)

    # -- helpers -----------------------------------------------------------

    def _path(self, name: str) -> Path:
        if not name or name in _RESERVED or "/" in name or name in (".", ".."):
            raise FileSystemError(f"nombre de archivo invalido: {name!r}")
        return self.base_path / name

    def _blocks_for(self, size: int) -> int:
        return math.ceil(size / self.block_size)

    def _occupy(self, first_block: int, blocks: int) -> None:
        for index in range(first_block, first_block + max(blocks, 1)):
            self.bitmap.set(index)

    def _first_free(self) -> Optional[int]:
        index = self.bitmap.first_free()
        if index is None or index >= self.block_count:
            return None
        return index

    def _has_free(self, blocks: int) -> bool:
        free = sum(1 for i in range(self.block_count) if not self.bitmap.test(i))
        return free >= blocks

    def _find_contiguous(self, blocks: int) -> Optional[int]:
        start = self.bitmap.find_contiguous(blocks)
        if start is None or start + blocks > self.block_count:
            return None
        return start

    def _files(self) -> list[str]:
        return [
            entry.name
            for entry in self.base_path.iterdir()
            if entry.is_file() and entry.name not in _RESERVED
        ]

    # -- metadata ----------------------------------------------------------

    def metadata(self, name: str) -> FileMetadata:
        """Read the metadata of file ``name``."""
        path = self._path(name)
        if not path.is_file():
            raise FileSystemError(f"No existe el archivo {name}")
        try:
            values = read_config(path)
            return FileMetadata(
                first_block=int(values[_FIRST_BLOCK_KEY]),
                size=int(values[_SIZE_KEY]),
            )
        except (ConfigError, KeyError, ValueError) as exc:
            raise FileSystemError(
                f"No se pudo abrir la metadata del archivo: {name}"
            ) from exc

    def save_metadata(self, name: str, first_block: int, size: int) -> None:
        """Store the first block and size of an existing file."""
        path = self._path(name)
        if not path.is_file():
            raise FileSystemError(f"No existe el archivo {name}")
        try:
            values = read_config(path)
        except ConfigError as exc:
            raise FileSystemError(
                f"No se pudo abrir la metadata del archivo: {name}"
            ) from exc
        values[_FIRST_BLOCK_KEY] = str(first_block)
        values[_SIZE_KEY] = str(size)
        path.write_text(
            "".join(f"{key}={value}\n" for key, value in values.items()),
            encoding="utf-8",
        )

    # -- operations --------------------------------------------------------

    def create(self, pid: int, name: str) -> FileMetadata:
        """Create an empty file in the first free block."""
        path = self._path(name)
        if path.exists():
            raise FileSystemError(f"El archivo {name} ya existe")
        first_block = self._first_free()
        if first_block is None:
            raise FileSystemError(
                "No se pudo crear el archivo, no hay bloques vacios"
            )
        self.bitmap.set(first_block)
        path.touch()
        self.save_metadata(name, first_block, 0)
        self.bitmap.flush()
        self.logger.info("PID: %d, Crear Archivo: %s", pid, name)
        return FileMetadata(first_block, 0)

    def delete(self, pid: int, name: str) -> None:
        """Remove a file, freeing and zeroing its blocks."""
        meta = self.metadata(name)
        self.bitmap.release(meta.first_block, self._blocks_for(meta.size))
        self.blocks.clear(meta.first_block, meta.size)
        try:
            self._path(name).unlink()
        except OSError as exc:
            raise FileSystemError(f"No se puedo eliminar el archivo {name}") from exc
        self.bitmap.flush()
        self.logger.info("PID: %d, Eliminar Archivo: %s", pid, name)

    def truncate(self, pid: int, name: str, size: int) -> FileMetadata:
        """Change a file's size, moving it or compacting the disk if needed."""
        if size < 0:
            raise FileSystemError(f"tamaño invalido: {size}")
        meta = self.metadata(name)
        first = meta.first_block
        required = self._blocks_for(size)
        current = self._blocks_for(meta.size)
        self.bitmap.release(first, current)

        if meta.size == size:
            self._occupy(first, current)
            return self._truncated(pid, name, FileMetadata(first, size))

        if meta.size <= self.block_size and size <= self.block_size:
            self._occupy(first, required)
            self.save_metadata(name, first, size)
            return self._truncated(pid, name, FileMetadata(first, size))

        if current >= required:
            self._occupy(first, required)
            removed = current - required
            if removed:
                self.blocks.clear(first + required, removed * self.block_size)
            self.save_metadata(name, first, size)
            return self._truncated(pid, name, FileMetadata(first, size))

        if not self._has_free(required):
            self._occupy(first, current)
            self.bitmap.flush()
            raise FileSystemError(
                f"No hay espacio suficiente para truncar el archivo: {name}"
            )

        start = self._find_contiguous(required)
        if start is None:
            self.logger.info(
                "No se pudo truncar el archivo debido a la falta de espacio libre contiguo"
            )
            try:
                start = self.compact(pid, name, size)
            except FileSystemError:
                self._occupy(first, current)
                self.bitmap.flush()
                raise
            return self._truncated(pid, name, FileMetadata(start, size))

        if start != first:
            content = self.blocks.read(first, meta.size)
            self.blocks.clear(first, meta.size)
            self.blocks.write_text(start, size, 0, content)
        self._occupy(start, required)
        self.save_metadata(name, start, size)
        return self._truncated(pid, name, FileMetadata(start, size))

    def _truncated(self, pid: int, name: str, meta: FileMetadata) -> FileMetadata:
        self.bitmap.flush()
        self.logger.info(
            "PID: %d, Truncar Archivo: %s Tamaño: %d", pid, name, meta.size
        )
        return meta

    def write(
        self, pid: int, name: str, address: int, size: int, file_pointer: int
    ) -> None:
        """Copy ``size`` bytes of process memory into the file at ``file_pointer``."""
        meta = self.metadata(name)
        if meta.size == 0:
            raise FileSystemError(
                "El archivo tiene tamanio 0, no se puede escribir en el"
            )
        try:
            data = self.memory.read(pid, address, size)
        except OSError as exc:
            raise FileSystemError("No se puedo leer de memoria el texto") from exc
        try:
            self.blocks.write_text(meta.first_block, meta.size, file_pointer, data)
        except (ValueError, IndexError) as exc:
            raise FileSystemError(str(exc)) from exc
        self.logger.info(
            "PID: %d, Escribir Archivo: %s, Tamaño a Escribir: %d, Puntero Archivo: %d",
            pid,
            name,
            size,
            file_pointer,
        )

    def read(
        self, pid: int, name: str, address: int, size: int, file_pointer: int
    ) -> bytes:
        """Copy text from the file at ``file_pointer`` into process memory."""
        meta = self.metadata(name)
        if file_pointer >= meta.size:
            raise FileSystemError(
                f"El puntero está fuera del tamaño del archivo: {name}"
            )
        try:
            raw = self.blocks.read(meta.first_block, size, file_pointer)
        except (ValueError, IndexError) as exc:
            raise FileSystemError(str(exc)) from exc
        text = raw.split(b"\0", 1)[0]
        try:
            self.memory.write(pid, address, text)
        except OSError as exc:
            raise FileSystemError("No se pudo escribir en memoria el texto") from exc
        self.logger.info(
            "PID: %d, Leer Archivo: %s Tamaño a Leer: %d Puntero Archivo: %d",
            pid,
            name,
            size,
            file_pointer,
        )
        return text

    def compact(self, pid: int, name: str, size: int) -> int:
        """Pack every file to the start of the disk, placing ``name`` last.

        ``name`` is given ``size`` bytes; returns its new first block.
        """
        self.logger.info("PID: %i, Inicio Compactacion.", pid)
        target = self.metadata(name)
        target_content = self.blocks.read(target.first_block, target.size)

        others = sorted(
            (entry for entry in self._files() if entry != name),
            key=lambda entry: self.metadata(entry).first_block,
        )
        self.bitmap.clear_all()
        packed = bytearray(self.blocks.size)

        def place(first_block: int, content: bytes) -> None:
            text = content.split(b"\0", 1)[0]
            start = first_block * self.block_size
            packed[start : start + len(text)] = text

        for entry in others:
            new_block = self._first_free()
            if new_block is None:
                raise FileSystemError("No hay bloques libres durante la compactacion")
            meta = self.metadata(entry)
            place(new_block, self.blocks.read(meta.first_block, meta.size))
            self._occupy(new_block, self._blocks_for(meta.size))
            self.save_metadata(entry, new_block, meta.size)

        required = self._blocks_for(size)
        new_block = self._first_free()
        if new_block is None or new_block + max(required, 1) > self.block_count:
            raise FileSystemError(
                "No hay espacio suficiente luego de la compactacion"
            )
        place(new_block, target_content)
        self._occupy(new_block, required)
        self.save_metadata(name, new_block, size)

        self.blocks.replace(bytes(packed))
        self.bitmap.flush()
        time.sleep(self.compaction_delay / 1000)
        self.logger.info("PID: %i, Fin Compactacion.", pid)
        return new_block

    def contents(self, name: str) -> bytes:
        """The bytes currently stored for file ``name``."""
        meta = self.metadata(name)
        return self.blocks.read(meta.first_block, meta.size)

    def close(self) -> None:
        """Flush and release the block file and the bitmap."""
        self.bitmap.close()
        self.blocks.close()

    def __enter__(self) -> "DialFS":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()