# sosim

`sosim` models the parts of a small teaching operating system that sit
between a kernel and its memory. It provides a CPU that runs a
pseudo-assembly instruction set, a translation lookaside buffer, a paging
MMU, and I/O devices. One of the devices is a file system that stores files
contiguously in a fixed array of blocks.

Each component reaches the outside world only through a small object that
you supply:

- a `MemoryPort` for the CPU;
- a `DispatchPort` that receives process contexts;
- a `FrameSource` that resolves pages to frames for the MMU;
- a `UserMemory` for the file system and the I/O devices.

These are plain protocols, so the simulation can be driven from tests, from a
script, or over a transport of your own.

## Components

| Module | What it provides |
| --- | --- |
| `sosim.config` | `parse_config`, `read_config`, `load_cpu_config` and `load_io_config` read `KEY=VALUE` files, skipping blank lines and `#` comments. They return `CpuConfig` and `IoConfig`. `ConfigError` is raised for a missing file, a malformed line or a missing required CPU key. |
| `sosim.tlb` | `Tlb(capacity, algorithm, clock)` is a bounded cache of `TlbEntry` records with `FIFO` or `LRU` replacement. `lookup` returns a `TlbStatus`: `HIT`, `MISS`, or `DISABLED` when the capacity is 0. The other methods are `frame`, `add`, `entries`, `clear` and `dump`. |
| `sosim.mmu` | `split_address` returns `(page, offset)`. `Mmu.translate(logical_address, pid)` consults the TLB first and asks the `FrameSource` on a miss, or when there is no TLB. |
| `sosim.registers` | `Register`, `Registers`, `Operation`, `ProcessState` and `Process` model the register file and process state. `AX`–`DX` are 8 bits wide and the other registers 32 bits. Results wrap to the register's width. |
| `sosim.instructions` | `Opcode`, `parse_opcode` and `split_instruction` parse instructions. `decode` replaces register operands with values and logical addresses with physical ones for the memory and I/O instructions. |
| `sosim.cpu` | `Cpu` runs the fetch, decode and execute cycle (`run_cycle`, `handle_dispatch`) and records interrupts through `interrupt`. It hands contexts to the `DispatchPort` with a `ContextReason` on `WAIT`, `SIGNAL`, an I/O instruction, `EXIT`, a failed `RESIZE`, or an interrupt. |
| `sosim.blockstore` | `Bitmap` is a persistent free-block bitmap, least significant bit first. `BlockStore` is a memory-mapped file of fixed-size blocks. |
| `sosim.dialfs` | `DialFS` offers `create`, `delete`, `truncate`, `write`, `read`, `compact`, `contents`, `metadata` and `save_metadata`. When a file cannot grow in place, it is moved or the disk is compacted. Failures raise `FileSystemError`. `ensure_directory` creates the base directory. |
| `sosim.interfaces` | `GenericInterface`, `StdinInterface` and `StdoutInterface` are the sleep, keyboard and screen devices. Each serves an `IoRequest` through `handle`. The helpers are `io_gen_sleep` and `read_text`, and failures raise `InterfaceError`. |

## Instruction set

The CPU understands these instructions:

- `SET`, `SUM`, `SUB` and `JNZ`
- `MOV_IN` and `MOV_OUT`
- `RESIZE` and `COPY_STRING`
- `WAIT` and `SIGNAL`
- `IO_GEN_SLEEP`, `IO_STDIN_READ` and `IO_STDOUT_WRITE`
- `IO_FS_CREATE`, `IO_FS_DELETE`, `IO_FS_TRUNCATE`, `IO_FS_WRITE` and `IO_FS_READ`
- `EXIT`

Register operands are `AX`, `BX`, `CX`, `DX`, `EAX`, `EBX`, `ECX`, `EDX`,
`SI`, `DI` and `PC`.

## A short tour

### Running a program on the CPU

```python
from sosim.cpu import Cpu
from sosim.mmu import Mmu
from sosim.registers import Process

PROGRAM = ["SET AX 3", "SET BX 1", "SUB AX BX", "JNZ AX 2", "EXIT"]


class Memory:
    def fetch(self, pid, pc):
        return PROGRAM[pc] if pc < len(PROGRAM) else None

    def read(self, pid, address, size):
        return bytes(size)

    def write(self, pid, address, data):
        pass

    def resize(self, pid, size):
        return True


class Kernel:
    def __init__(self):
        self.contexts = []

    def send_context(self, process, instruction, reason):
        self.contexts.append((instruction, reason))


class PageTable:
    def frame_for(self, pid, page):
        return page


kernel = Kernel()
cpu = Cpu(Memory(), kernel, Mmu(16, PageTable(), None, None), None)
process = Process(pid=1)
cpu.run_cycle(process)
# process.registers.ax == 0, process.state is ProcessState.EXIT,
# kernel.contexts == [("EXIT", ContextReason.FINISHED)]
```

### Translating addresses

The example below puts a two-entry LRU TLB in front of a page table:

```python
import time

from sosim.mmu import Mmu
from sosim.tlb import Tlb


class PageTable:
    def frame_for(self, pid, page):
        return {0: 5, 1: 2}[page]


tlb = Tlb(capacity=2, algorithm="LRU", clock=time.time)
mmu = Mmu(page_size=16, frames=PageTable(), tlb=tlb, logger=None)

physical = mmu.translate(20, pid=1)   # page 1, offset 4 -> frame 2 -> 36
```

### Keeping files in the block file system

```python
from sosim.dialfs import DialFS


class Memory:
    def __init__(self):
        self.cells = bytearray(1024)

    def read(self, pid, address, size):
        return bytes(self.cells[address:address + size])

    def write(self, pid, address, data):
        self.cells[address:address + len(data)] = data


with DialFS(
    base_path="fs",
    block_size=16,
    block_count=32,
    compaction_delay=0,
    memory=Memory(),
    logger=None,
) as fs:
    fs.create(1, "notes.txt")
    fs.truncate(1, "notes.txt", 40)
    print(fs.metadata("notes.txt"))   # FileMetadata(first_block=0, size=40)
```

`DialFS` keeps two files in its base directory: the block data in
`bloques.dat` and the bitmap in `bitmap.dat`. Next to them, each file has a
small `KEY=VALUE` metadata file holding `BLOQUE_INICIAL` and
`TAMANIO_ARCHIVO`. The state of the file system therefore survives between
runs.

## What this package does not do

- It has no command-line program.
- It opens no network connections. There is no kernel, no memory module and
  no socket protocol. The CPU, the file system and the I/O devices work only
  against the port objects you pass in.
- `load_cpu_config` and `load_io_config` only read settings. Nothing in the
  package starts a CPU or an interface from a configuration file.

## Tests

```
pip install -e ".[test]"
pytest
```