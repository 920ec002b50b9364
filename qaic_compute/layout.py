"""Binary layouts shared between the host tools and the device runtime."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar

KB = 1 << 10
MB = 1 << 20
GB = 1 << 30

MAX_NUM_CORES = 16
MAX_NUM_THREADS = 6
UDMA_MAX_SIZE = (1 << 24) - 1
DB_SIZE = 4
CACHE_LINE_SIZE = 128
NUM_UDMA_CACHELINES_PER_THREAD = 2
UTIMER_FREQ_MS = 19200

DMA_STATE_MASK = 0x3
DMA_STATE_IDLE = 0
DMA_STATE_RUN = 1
DMA_STATE_ERROR = 2

SERIALIZED_PROGRAMDESC_VERSION = 1


def is_user_dma_error(dm0: int) -> bool:
    """Return True if the DMA status word reports an error state."""
    return (dm0 & DMA_STATE_MASK) == DMA_STATE_ERROR


class UsageType(enum.IntEnum):
    """How a buffer is used by a program."""

    INPUT = 0
    OUTPUT = 1
    INTERNAL = 2
    INVALID = 0xFFFFFFFF


class MemLoc(enum.IntEnum):
    """Memory a buffer lives in."""

    L2TCM = 0
    VTCM = 1
    DDR = 2
    INVALID = 0xFFFFFFFF


def _pack(fmt: struct.Struct, values: tuple[int, ...], what: str) -> bytes:
    try:
        return fmt.pack(*values)
    except struct.error as exc:
        raise ValueError(f"{what} field out of range: {exc}") from exc


def _unpack(fmt: struct.Struct, data: bytes, what: str) -> tuple[int, ...]:
    if len(data) < fmt.size:
        raise ValueError(
            f"{what} needs {fmt.size} bytes, got {len(data)}"
        )
    return fmt.unpack_from(data)


_BUFFER_FMT = struct.Struct("<IIIHHIIHHHHII")


@dataclass
class BufferDesc:
    """Description of one program buffer, 40 bytes when packed."""

    SIZE: ClassVar[int] = _BUFFER_FMT.size

    location: MemLoc = MemLoc.L2TCM
    offset: int = 0
    size: int = 0
    wait_db_num: int = 0
    io_db_num: int = 0
    wait_db_val: int = 0
    io_db_val: int = 0
    io_mcid: int = 0
    io_db_mcid: int = 0
    buff_mcid: int = 0
    nsp_mask: int = 0
    usage: UsageType = UsageType.INPUT
    allow_partial: bool = False

    def pack(self) -> bytes:
        """Return the little-endian wire form."""
        return _pack(
            _BUFFER_FMT,
            (
                int(self.location),
                self.offset,
                self.size,
                self.wait_db_num,
                self.io_db_num,
                self.wait_db_val,
                self.io_db_val,
                self.io_mcid,
                self.io_db_mcid,
                self.buff_mcid,
                self.nsp_mask,
                int(self.usage),
                int(bool(self.allow_partial)),
            ),
            "BufferDesc",
        )

    @classmethod
    def unpack(cls, data: bytes) -> BufferDesc:
        """Read a descriptor from the start of ``data``."""
        (location, offset, size, wait_db_num, io_db_num, wait_db_val,
         io_db_val, io_mcid, io_db_mcid, buff_mcid, nsp_mask, usage,
         allow_partial) = _unpack(_BUFFER_FMT, data, "BufferDesc")
        return cls(
            location=MemLoc(location),
            offset=offset,
            size=size,
            wait_db_num=wait_db_num,
            io_db_num=io_db_num,
            wait_db_val=wait_db_val,
            io_db_val=io_db_val,
            io_mcid=io_mcid,
            io_db_mcid=io_db_mcid,
            buff_mcid=buff_mcid,
            nsp_mask=nsp_mask,
            usage=UsageType(usage),
            allow_partial=allow_partial != 0,
        )


_HEADER_FMT = struct.Struct("<HHIIHHHHHHHHIII")


@dataclass
class ProgramDescHeader:
    """Header of a serialized program description."""

    SIZE: ClassVar[int] = _HEADER_FMT.size

    serial_version: int = SERIALIZED_PROGRAMDESC_VERSION
    exit_db: int = 0
    size: int = 0
    num_threads: int = 0
    num_buffs: int = 0
    num_input_buffs: int = 0
    num_output_buffs: int = 0
    num_internal_buffs: int = 0
    input_sem: int = 0
    output_sem: int = 0
    has_inputs_mask: int = 0
    has_outputs_mask: int = 0
    buffers_offset: int = 0
    udma_desc_buff_num: int = 0
    udma_dummy_start_desc_offset: int = 0

    def pack(self) -> bytes:
        """Return the little-endian wire form."""
        return _pack(
            _HEADER_FMT,
            (
                self.serial_version,
                self.exit_db,
                self.size,
                self.num_threads,
                self.num_buffs,
                self.num_input_buffs,
                self.num_output_buffs,
                self.num_internal_buffs,
                self.input_sem,
                self.output_sem,
                self.has_inputs_mask,
                self.has_outputs_mask,
                self.buffers_offset,
                self.udma_desc_buff_num,
                self.udma_dummy_start_desc_offset,
            ),
            "ProgramDescHeader",
        )

    @classmethod
    def unpack(cls, data: bytes) -> ProgramDescHeader:
        """Read a header from the start of ``data``."""
        return cls(*_unpack(_HEADER_FMT, data, "ProgramDescHeader"))


_DMA_FMT = struct.Struct("<IIII")
_LENGTH_MASK = 0xFFFFFF


@dataclass
class DMADescriptor:
    """A linear user DMA descriptor, 16 bytes when packed."""

    SIZE: ClassVar[int] = _DMA_FMT.size

    next: int = 0
    length: int = 0
    reserved: int = 0
    dest_bypass: bool = False
    src_bypass: bool = False
    order: bool = False
    done: bool = False
    src: int = 0
    dst: int = 0

    @property
    def word1(self) -> int:
        """The packed length and flag word."""
        if not 0 <= self.length <= _LENGTH_MASK:
            raise ValueError(f"DMA length {self.length} does not fit 24 bits")
        if not 0 <= self.reserved <= 0xF:
            raise ValueError(f"reserved bits {self.reserved} do not fit 4 bits")
        return (
            self.length
            | self.reserved << 24
            | int(bool(self.dest_bypass)) << 28
            | int(bool(self.src_bypass)) << 29
            | int(bool(self.order)) << 30
            | int(bool(self.done)) << 31
        )

    def pack(self) -> bytes:
        """Return the little-endian wire form."""
        return _pack(
            _DMA_FMT, (self.next, self.word1, self.src, self.dst), "DMADescriptor"
        )

    @classmethod
    def unpack(cls, data: bytes) -> DMADescriptor:
        """Read a descriptor from the start of ``data``."""
        next_addr, word1, src, dst = _unpack(_DMA_FMT, data, "DMADescriptor")
        return cls(
            next=next_addr,
            length=word1 & _LENGTH_MASK,
            reserved=(word1 >> 24) & 0xF,
            dest_bypass=bool(word1 >> 28 & 1),
            src_bypass=bool(word1 >> 29 & 1),
            order=bool(word1 >> 30 & 1),
            done=bool(word1 >> 31 & 1),
            src=src,
            dst=dst,
        )