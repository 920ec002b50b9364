"""Program description serialized into the constants segment."""

from __future__ import annotations

import math

from .config import ConfigError, DataType, Destination, IODescription
from .layout import (
    SERIALIZED_PROGRAMDESC_VERSION,
    BufferDesc,
    MemLoc,
    ProgramDescHeader,
    UsageType,
)

_TYPE_SIZES = {
    DataType.FloatTy: 4,
    DataType.Float16Ty: 2,
    DataType.Int8QTy: 1,
    DataType.UInt8QTy: 1,
    DataType.Int16QTy: 2,
    DataType.Int32QTy: 4,
    DataType.Int32ITy: 4,
    DataType.Int64ITy: 8,
    DataType.Int8Ty: 1,
}

_DEST_TO_MEMLOC = {
    Destination.L2TCM: MemLoc.L2TCM,
    Destination.VTCM: MemLoc.VTCM,
    Destination.DDR: MemLoc.DDR,
}

_UINT32_MAX = 0xFFFFFFFF


def _data_type(data_type: DataType | str | int) -> DataType:
    try:
        if isinstance(data_type, str):
            return DataType[data_type]
        return DataType(data_type)
    except (KeyError, ValueError):
        raise ConfigError(
            f"Config Error: Unknown data type in IODescription: {data_type}"
        ) from None


def type_size(data_type: DataType | str | int) -> int:
    """Return the size in bytes of one element of ``data_type``."""
    resolved = _data_type(data_type)
    try:
        return _TYPE_SIZES[resolved]
    except KeyError:
        raise ConfigError(
            f"Config Error: Unknown data type in IODescription: {resolved.name}"
        ) from None


def io_size(io: IODescription) -> int:
    """Return the size in bytes of the buffer ``io`` describes."""
    if not io.dims:
        raise ConfigError("Config Error: Buffers must have non-zero dims")
    elements = math.prod(io.dims)
    size = type_size(io.type)
    if elements == 0:
        raise ConfigError("Config Error: Buffers must have non-zero dims")
    total = elements * size
    if total > _UINT32_MAX:
        raise ConfigError(f"Config Error: Buffer size {total} exceeds 32 bits")
    return total


class ProgramDesc:
    """Collects buffer descriptions and serializes them for the device."""

    def __init__(
        self, exit_db: int, input_sem: int, output_sem: int, num_threads: int
    ) -> None:
        self.exit_db = exit_db
        self.input_sem = input_sem
        self.output_sem = output_sem
        self.num_threads = num_threads
        self.num_input_buffs = 0
        self.num_output_buffs = 0
        self.num_internal_buffs = 0
        self.has_inputs_mask = 0
        self.has_outputs_mask = 0
        self.udma_desc_buff_num = 0
        self.udma_dummy_start_desc_offset = 0
        self._buffers: list[BufferDesc] = []

    @property
    def buffers(self) -> tuple[BufferDesc, ...]:
        return tuple(self._buffers)

    def add_buffer(
        self,
        desc: IODescription,
        wait_db_num: int,
        io_db_num: int,
        wait_db_val: int,
        io_db_val: int,
        io_mcid: int,
        io_db_mcid: int,
        buff_mcid: int,
        nsp_mask: int,
        usage: UsageType,
        allow_partial: bool,
    ) -> BufferDesc:
        """Append a buffer and update the per-usage counts and masks."""
        try:
            location = _DEST_TO_MEMLOC[Destination(desc.dest)]
        except (KeyError, ValueError):
            raise ConfigError(f"Invalid location {desc.dest}") from None
        usage = UsageType(usage)
        buffer = BufferDesc(
            location=location,
            offset=desc.dev_offset + desc.base_addr_offset,
            size=io_size(desc),
            wait_db_num=wait_db_num,
            io_db_num=io_db_num,
            wait_db_val=wait_db_val,
            io_db_val=io_db_val,
            io_mcid=io_mcid,
            io_db_mcid=io_db_mcid,
            buff_mcid=buff_mcid,
            nsp_mask=nsp_mask,
            usage=usage,
            allow_partial=bool(allow_partial),
        )
        self._buffers.append(buffer)
        if usage is UsageType.INPUT:
            self.num_input_buffs += 1
            self.has_inputs_mask |= nsp_mask
        elif usage is UsageType.OUTPUT:
            self.num_output_buffs += 1
            self.has_outputs_mask |= nsp_mask
        elif usage is UsageType.INTERNAL:
            self.num_internal_buffs += 1
        return buffer

    def add_udma_desc_buffer(
        self,
        udma_buff: IODescription,
        udma_dummy_start_desc_offset: int,
        nsp_mask: int,
    ) -> BufferDesc:
        """Append the internal buffer that holds the user DMA descriptors."""
        self.udma_dummy_start_desc_offset = udma_dummy_start_desc_offset
        self.udma_desc_buff_num = len(self._buffers)
        return self.add_buffer(
            udma_buff, 0, 0, 0, 0, 0, 0, 0, nsp_mask, UsageType.INTERNAL, False
        )

    def serialize(self) -> bytes:
        """Return the header followed by every buffer descriptor."""
        buffers_offset = ProgramDescHeader.SIZE
        size = buffers_offset + len(self._buffers) * BufferDesc.SIZE
        header = ProgramDescHeader(
            serial_version=SERIALIZED_PROGRAMDESC_VERSION,
            exit_db=self.exit_db,
            size=size,
            num_threads=self.num_threads,
            num_buffs=len(self._buffers),
            num_input_buffs=self.num_input_buffs,
            num_output_buffs=self.num_output_buffs,
            num_internal_buffs=self.num_internal_buffs,
            input_sem=self.input_sem,
            output_sem=self.output_sem,
            has_inputs_mask=self.has_inputs_mask,
            has_outputs_mask=self.has_outputs_mask,
            buffers_offset=buffers_offset,
            udma_desc_buff_num=self.udma_desc_buff_num,
            udma_dummy_start_desc_offset=self.udma_dummy_start_desc_offset,
        )
        return header.pack() + b"".join(b.pack() for b in self._buffers)