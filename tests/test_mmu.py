import logging

import pytest

from sosim.mmu import Mmu, split_address
from sosim.tlb import Tlb, TlbStatus


class CountingFrames:
    def __init__(self, table):
        self.table = table
        self.calls = []

    def frame_for(self, pid, page):
        self.calls.append((pid, page))
        return self.table[(pid, page)]


class IdentityFrames:
    def __init__(self):
        self.calls = 0

    def frame_for(self, pid, page):
        self.calls += 1
        return page


def test_split_address_worked_example():
    assert split_address(37, 16) == (2, 5)


def test_split_address_rejects_zero_page_size():
    with pytest.raises(ValueError):
        split_address(10, 0)


@pytest.mark.parametrize("address", [0, 1, 15, 16, 17, 255, 1000])
def test_split_address_recombines(address):
    page, offset = split_address(address, 16)
    assert page * 16 + offset == address
    assert 0 <= offset < 16


@pytest.mark.parametrize("address", [0, 7, 32, 99, 4095])
def test_identity_mapping_preserves_address(address):
    mmu = Mmu(32, IdentityFrames())
    assert mmu.translate(address, 1) == address


def test_translation_keeps_offset_and_uses_frame():
    frames = CountingFrames({(4, 2): 9})
    mmu = Mmu(16, frames)
    physical = mmu.translate(2 * 16 + 3, 4)
    assert physical // 16 == 9
    assert physical % 16 == 3
    assert frames.calls == [(4, 2)]


def test_tlb_miss_fills_tlb_and_hit_avoids_memory():
    frames = CountingFrames({(1, 0): 6})
    tlb = Tlb(4, "FIFO", lambda: 0)
    mmu = Mmu(8, frames, tlb)
    first = mmu.translate(3, 1)
    assert tlb.lookup(1, 0) is TlbStatus.HIT
    second = mmu.translate(5, 1)
    assert frames.calls == [(1, 0)]
    assert first // 8 == second // 8 == 6


def test_disabled_tlb_always_asks_memory():
    frames = IdentityFrames()
    tlb = Tlb(0, "FIFO")
    mmu = Mmu(8, frames, tlb)
    mmu.translate(1, 1)
    mmu.translate(2, 1)
    assert frames.calls == 2
    assert len(tlb) == 0


def test_logs_hit_and_miss(caplog):
    frames = CountingFrames({(2, 1): 3})
    mmu = Mmu(4, frames, Tlb(2, "LRU", lambda: 0), logging.getLogger("test.mmu"))
    with caplog.at_level(logging.INFO, logger="test.mmu"):
        mmu.translate(5, 2)
        mmu.translate(6, 2)
    messages = [r.getMessage() for r in caplog.records]
    assert "PID: 2 - TLB MISS - Pagina: 1" in messages
    assert "PID: 2 - TLB HIT - Pagina: 1" in messages


def test_mmu_rejects_bad_page_size():
    with pytest.raises(ValueError):
        Mmu(0, IdentityFrames())