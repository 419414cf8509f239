"""Simulated CPU, TLB, MMU, block file system and I/O devices for a teaching operating system."""

__version__ = "0.1.0"

__all__ = [
    "blockstore",
    "config",
    "cpu",
    "dialfs",
    "instructions",
    "interfaces",
    "mmu",
    "registers",
    "tlb",
]