import itertools

import pytest

from sosim.tlb import Tlb, TlbStatus


def ticking_clock():
    counter = itertools.count(1)
    return lambda: next(counter)


def test_lookup_miss_then_hit():
    tlb = Tlb(4, "FIFO", ticking_clock())
    assert tlb.lookup(1, 3) is TlbStatus.MISS
    tlb.add(1, 3, 9)
    assert tlb.lookup(1, 3) is TlbStatus.HIT
    assert tlb.frame(1, 3) == 9


def test_lookup_distinguishes_pid():
    tlb = Tlb(4, "FIFO", ticking_clock())
    tlb.add(1, 3, 9)
    assert tlb.lookup(2, 3) is TlbStatus.MISS


def test_zero_capacity_is_disabled():
    tlb = Tlb(0, "FIFO")
    assert tlb.lookup(1, 0) is TlbStatus.DISABLED


def test_frame_of_missing_entry_raises():
    tlb = Tlb(2, "FIFO")
    with pytest.raises(KeyError):
        tlb.frame(1, 1)


def test_fifo_evicts_oldest_insertion():
    tlb = Tlb(2, "FIFO", ticking_clock())
    tlb.add(1, 0, 10)
    tlb.add(1, 1, 11)
    tlb.frame(1, 0)
    tlb.add(1, 2, 12)
    assert len(tlb) == 2
    assert tlb.lookup(1, 0) is TlbStatus.MISS
    assert [e.page for e in tlb.entries()] == [1, 2]


def test_lru_evicts_least_recently_used():
    tlb = Tlb(2, "LRU", ticking_clock())
    tlb.add(1, 0, 10)
    tlb.add(1, 1, 11)
    tlb.frame(1, 0)
    tlb.add(1, 2, 12)
    assert tlb.lookup(1, 1) is TlbStatus.MISS
    assert tlb.lookup(1, 0) is TlbStatus.HIT
    assert tlb.lookup(1, 2) is TlbStatus.HIT


def test_lru_tie_evicts_later_entry():
    tlb = Tlb(2, "LRU", lambda: 5)
    tlb.add(1, 0, 10)
    tlb.add(1, 1, 11)
    tlb.add(1, 2, 12)
    assert [e.page for e in tlb.entries()] == [0, 2]


def test_unknown_algorithm_does_not_evict():
    tlb = Tlb(1, "RANDOM", ticking_clock())
    tlb.add(1, 0, 10)
    tlb.add(1, 1, 11)
    assert len(tlb) == 2


def test_frame_updates_last_access():
    tlb = Tlb(2, "LRU", ticking_clock())
    tlb.add(1, 0, 10)
    before = tlb.entries()[0].last_access
    tlb.frame(1, 0)
    assert tlb.entries()[0].last_access > before


def test_clear_and_dump():
    tlb = Tlb(2, "FIFO", lambda: 7)
    tlb.add(3, 4, 5)
    assert "PID: 3, Pagina: 4, Marco: 5, Last Access: 7" in tlb.dump()
    tlb.clear()
    assert len(tlb) == 0
    assert tlb.dump() == "Contenido de la TLB:\n"