"""Translation lookaside buffer with FIFO and LRU replacement."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Optional


class TlbStatus(IntEnum):
    """Outcome of a TLB lookup."""

    DISABLED = 0
    HIT = 1
    MISS = 2


@dataclass
class TlbEntry:
    """One cached page-to-frame mapping."""

    pid: int
    page: int
    frame: int
    last_access: float


def _seconds() -> int:
    return int(time.time())


class Tlb:
    """A bounded cache of page translations keyed by (pid, page)."""

    def __init__(
        self,
        capacity: int,
        algorithm: str = "FIFO",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.capacity = capacity
        self.algorithm = algorithm
        self._clock = clock or _seconds
        self._entries: list[TlbEntry] = []

    def _find(self, pid: int, page: int) -> Optional[TlbEntry]:
        return next(
            (e for e in self._entries if e.pid == pid and e.page == page), None
        )

    def lookup(self, pid: int, page: int) -> TlbStatus:
        """Report whether the page is cached; DISABLED when the TLB has no room."""
        if self.capacity <= 0:
            return TlbStatus.DISABLED
        return TlbStatus.HIT if self._find(pid, page) else TlbStatus.MISS

    def frame(self, pid: int, page: int) -> int:
        """Return the cached frame and mark the entry as accessed."""
        entry = self._find(pid, page)
        if entry is None:
            raise KeyError((pid, page))
        entry.last_access = self._clock()
        return entry.frame

    def _victim(self) -> TlbEntry:
        oldest = self._entries[0]
        for entry in self._entries[1:]:
            if not oldest.last_access < entry.last_access:
                oldest = entry
        return oldest

    def add(self, pid: int, page: int, frame: int) -> None:
        """Insert a mapping, evicting one entry first when the TLB is full."""
        if self._entries and len(self._entries) >= self.capacity:
            if self.algorithm == "FIFO":
                del self._entries[0]
            elif self.algorithm == "LRU":
                victim = self._victim()
                self._entries = [e for e in self._entries if e is not victim]
        self._entries.append(TlbEntry(pid, page, frame, self._clock()))

    def entries(self) -> tuple[TlbEntry, ...]:
        """The cached entries, oldest insertion first."""
        return tuple(self._entries)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def dump(self) -> str:
        """A printable listing of the TLB contents."""
        lines = ["Contenido de la TLB:"]
        lines.extend(
            f"PID: {e.pid}, Pagina: {e.page}, Marco: {e.frame}, "
            f"Last Access: {int(e.last_access)}"
            for e in self._entries
        )
        return "\n".join(lines) + "\n"

    def __len__(self) -> int:
        return len(self._entries)