"""Logical-to-physical address translation through a TLB and page tables."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .tlb import Tlb, TlbStatus


class FrameSource(Protocol):
    """Anything that can resolve a process page to a memory frame."""

    def frame_for(self, pid: int, page: int) -> int:
        """Return the frame holding ``page`` of process ``pid``."""


def split_address(logical_address: int, page_size: int) -> tuple[int, int]:
    """Split a logical address into (page number, offset)."""
    if page_size <= 0:
        raise ValueError("page size must be positive")
    return divmod(logical_address, page_size)


class Mmu:
    """Translates logical addresses, consulting the TLB before the page table."""

    def __init__(
        self,
        page_size: int,
        frames: FrameSource,
        tlb: Optional[Tlb] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if page_size <= 0:
            raise ValueError("page size must be positive")
        self.page_size = page_size
        self.frames = frames
        self.tlb = tlb
        self.logger = logger or logging.getLogger(__name__)

    def _request_frame(self, pid: int, page: int) -> int:
        frame = self.frames.frame_for(pid, page)
        self.logger.info(
            "PID: %d - OBTENER MARCO - Página: %d - Marco: %d", pid, page, frame
        )
        return frame

    def translate(self, logical_address: int, pid: int) -> int:
        """Return the physical address for ``logical_address`` of process ``pid``."""
        page, offset = split_address(logical_address, self.page_size)
        status = (
            self.tlb.lookup(pid, page)
            if self.tlb is not None and self.tlb.capacity > 0
            else TlbStatus.DISABLED
        )
        if status is TlbStatus.HIT:
            self.logger.info("PID: %d - TLB HIT - Pagina: %d", pid, page)
            frame = self.tlb.frame(pid, page)
        elif status is TlbStatus.MISS:
            self.logger.info("PID: %d - TLB MISS - Pagina: %d", pid, page)
            frame = self._request_frame(pid, page)
            self.tlb.add(pid, page, frame)
        else:
            frame = self._request_frame(pid, page)
        return frame * self.page_size + offset