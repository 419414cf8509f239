"""Memory-mapped block storage and free-block bitmap backing the file system."""

from __future__ import annotations

import logging
import math
import mmap
import os
from pathlib import Path
from typing import Optional, Union

PathLike = Union[str, Path]

_log = logging.getLogger(__name__)


def _map_file(path: PathLike, size: int, *, resize: bool) -> mmap.mmap:
    """Open ``path`` (creating it) and map ``size`` bytes of it read-write."""
    fd = os.open(os.fspath(path), os.O_RDWR | os.O_CREAT, 0o644)
    try:
        current = os.fstat(fd).st_size
        if resize or current < size:
            os.ftruncate(fd, size)
        return mmap.mmap(fd, size)
    finally:
        os.close(fd)


class Bitmap:
    """A persistent bit per block, least significant bit first in each byte."""

    def __init__(self, path: PathLike, block_count: int) -> None:
        if block_count <= 0:
            raise ValueError("block count must be positive")
        self.path = Path(path)
        self.block_count = block_count
        self._size = math.ceil(block_count / 8)
        self._map = _map_file(self.path, self._size, resize=True)
        self._map.flush()
        self._last_position = 0
        _log.info("Se monto en memoria el archivo %s", self.path.name)

    def __len__(self) -> int:
        return self._size * 8

    def _locate(self, index: int) -> tuple[int, int]:
        if not 0 <= index < len(self):
            raise IndexError(f"bit {index} out of range")
        return index // 8, 1 << (index % 8)

    def test(self, index: int) -> bool:
        """Whether block ``index`` is in use."""
        byte, mask = self._locate(index)
        return bool(self._map[byte] & mask)

    def set(self, index: int) -> None:
        """Mark block ``index`` as in use."""
        byte, mask = self._locate(index)
        self._map[byte] = self._map[byte] | mask

    def clear(self, index: int) -> None:
        """Mark block ``index`` as free."""
        byte, mask = self._locate(index)
        self._map[byte] = self._map[byte] & ~mask & 0xFF

    def clear_all(self) -> None:
        """Mark every block as free."""
        self._map[:] = bytes(self._size)

    def release(self, first_block: int, count: int) -> None:
        """Free ``count`` blocks from ``first_block``; a count of 0 frees the first."""
        if count == 0:
            self.clear(first_block)
        for index in range(first_block, first_block + count):
            self.clear(index)

    def first_free(self) -> Optional[int]:
        """Lowest free block, or None when every block is in use."""
        return next((i for i in range(len(self)) if not self.test(i)), None)

    def next_free(self) -> Optional[int]:
        """Next free block after the one last handed out, wrapping around once."""
        size = len(self)
        for _ in range(2):
            for index in range(self._last_position, size):
                if not self.test(index):
                    self._last_position = index + 1
                    return index
            if self._last_position >= size - 1:
                self._last_position = 0
        return None

    def has_free(self, blocks: int) -> bool:
        """Whether at least ``blocks`` blocks are free, contiguous or not."""
        if blocks <= 0:
            return True
        free = 0
        for index in range(len(self)):
            if not self.test(index):
                free += 1
                if free == blocks:
                    return True
        return False

    def find_contiguous(self, blocks: int) -> Optional[int]:
        """First block of a free run of ``blocks`` blocks, found by next-fit."""
        size = len(self)
        for _ in range(2):
            start = self.next_free()
            if start is None:
                return None
            free = sum(
                1
                for index in range(start, min(start + blocks, size))
                if not self.test(index)
            )
            if free == blocks:
                return start
        return None

    def flush(self) -> None:
        """Write pending changes to the backing file."""
        self._map.flush()

    def close(self) -> None:
        """Flush and unmap the bitmap."""
        if not self._map.closed:
            self._map.flush()
            self._map.close()

    def __enter__(self) -> "Bitmap":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class BlockStore:
    """A file of fixed-size blocks mapped into memory."""

    def __init__(self, path: PathLike, block_size: int, block_count: int) -> None:
        if block_size <= 0 or block_count <= 0:
            raise ValueError("block size and block count must be positive")
        self.path = Path(path)
        self.block_size = block_size
        self.block_count = block_count
        self.size = block_size * block_count
        self._map = _map_file(self.path, self.size, resize=False)
        _log.info("Se monto en memoria el archivo %s", self.path.name)

    def block_offset(self, block: int) -> int:
        """Byte offset at which ``block`` starts."""
        if not 0 <= block < self.block_count:
            raise IndexError(f"block {block} out of range")
        return block * self.block_size

    def _blocks_for(self, size: int) -> int:
        return math.ceil(size / self.block_size)

    def write_text(
        self,
        first_block: int,
        file_size: int,
        offset: int,
        data: Union[bytes, str],
    ) -> int:
        """Write ``data`` up to its first NUL at ``offset`` within a file.

        Returns the number of bytes written.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        data = data.split(b"\0", 1)[0]
        if self._blocks_for(len(data)) > self._blocks_for(file_size):
            _log.warning("No hay espacio para escribir")
        start = self.block_offset(first_block) + offset
        end = start + len(data)
        if start < 0 or end > self.size:
            raise ValueError("write falls outside the block store")
        self._map[start:end] = data
        self._map.flush()
        return len(data)

    def read(self, first_block: int, size: int, offset: int = 0) -> bytes:
        """Read ``size`` bytes at ``offset`` within a file starting at ``first_block``."""
        start = self.block_offset(first_block) + offset
        end = start + size
        if start < 0 or size < 0 or end > self.size:
            raise ValueError("read falls outside the block store")
        return bytes(self._map[start:end])

    def clear(self, first_block: int, size: int) -> None:
        """Zero ``size`` bytes from the start of ``first_block``."""
        start = self.block_offset(first_block)
        end = min(start + max(size, 0), self.size)
        self._map[start:end] = bytes(end - start)

    def replace(self, data: bytes) -> None:
        """Overwrite the whole store with ``data`` of exactly its size."""
        if len(data) != self.size:
            raise ValueError(f"expected {self.size} bytes, got {len(data)}")
        self._map[:] = data
        self._map.flush()

    def snapshot(self) -> bytes:
        """A copy of the whole store."""
        return bytes(self._map[:])

    def flush(self) -> None:
        """Write pending changes to the backing file."""
        self._map.flush()

    def close(self) -> None:
        """Flush and unmap the store."""
        if not self._map.closed:
            self._map.flush()
            self._map.close()

    def __enter__(self) -> "BlockStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()