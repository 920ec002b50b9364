import pytest

from qaic_compute.config import ConfigError, DataType, Destination, IODescription
from qaic_compute.layout import (
    SERIALIZED_PROGRAMDESC_VERSION,
    BufferDesc,
    MemLoc,
    ProgramDescHeader,
    UsageType,
)
from qaic_compute.progdesc import ProgramDesc, io_size, type_size


def test_type_size_pinned():
    assert type_size(DataType.Float16Ty) == 2
    assert type_size(DataType.FloatTy) == 4


def test_type_size_groups_agree():
    assert type_size(DataType.Int8Ty) == type_size(DataType.Int8QTy)
    assert type_size(DataType.Int8QTy) == type_size(DataType.UInt8QTy)
    assert type_size(DataType.Int32QTy) == type_size(DataType.Int32ITy)
    assert type_size(DataType.Int32ITy) == type_size(DataType.FloatTy)
    assert type_size(DataType.Int16QTy) == type_size(DataType.Float16Ty)
    assert type_size(DataType.Int64ITy) == 2 * type_size(DataType.FloatTy)


def test_type_size_by_name():
    assert type_size("Int64ITy") == type_size(DataType.Int64ITy)


def test_type_size_unknown():
    with pytest.raises(ConfigError, match="Unknown data type"):
        type_size("Bfloat")


def test_io_size_int8_equals_element_count():
    assert io_size(IODescription(type=DataType.Int8Ty, dims=[7])) == 7


def test_io_size_depends_only_on_product():
    a = IODescription(type=DataType.Int32QTy, dims=[2, 3])
    b = IODescription(type=DataType.Int32QTy, dims=[6])
    assert io_size(a) == io_size(b)


def test_io_size_errors():
    with pytest.raises(ConfigError):
        io_size(IODescription(type=DataType.Int8Ty, dims=[]))
    with pytest.raises(ConfigError):
        io_size(IODescription(type=DataType.Int8Ty, dims=[4, 0]))


def _io(dest, dims, dev=0, base=0):
    return IODescription(
        type=DataType.Int8Ty, dims=dims, dest=dest, dev_offset=dev,
        base_addr_offset=base,
    )


def test_empty_serialize_is_header_only():
    data = ProgramDesc(280, 0, 1, 4).serialize()
    assert len(data) == ProgramDescHeader.SIZE
    header = ProgramDescHeader.unpack(data)
    assert header.size == len(data)
    assert header.num_buffs == 0


def test_one_buffer_wire_size():
    desc = ProgramDesc(280, 0, 1, 4)
    desc.add_buffer(_io(Destination.DDR, [8]), 0, 0, 1, 1, 0, 0, 0, 1,
                    UsageType.INPUT, False)
    assert len(desc.serialize()) == 80


def test_serialize_round_trip():
    desc = ProgramDesc(280, 0, 1, 5)
    in_io = _io(Destination.L2TCM, [64], dev=4096, base=8192)
    desc.add_buffer(in_io, 0, 0, 1, 1, 0, 0, 1, 0b01, UsageType.INPUT, True)
    desc.add_buffer(_io(Destination.L2TCM, [32]), 1, 0, 1, 1, 0, 0, 2, 0b10,
                    UsageType.INPUT, False)
    desc.add_buffer(_io(Destination.DDR, [16]), 2, 0, 1, 1, 0, 0, 0, 0b11,
                    UsageType.OUTPUT, False)
    desc.add_buffer(_io(Destination.VTCM, [8]), 3, 0, 1, 1, 0, 0, 3, 0b11,
                    UsageType.INTERNAL, False)
    desc.add_udma_desc_buffer(_io(Destination.L2TCM, [256]), 1152, 0b11)

    data = desc.serialize()
    header = ProgramDescHeader.unpack(data)
    assert header.serial_version == SERIALIZED_PROGRAMDESC_VERSION
    assert header.exit_db == 280
    assert header.size == len(data)
    assert header.num_threads == 5
    assert header.num_buffs == len(desc.buffers)
    assert header.num_input_buffs == 2
    assert header.num_output_buffs == 1
    assert header.num_internal_buffs == 2
    assert header.has_inputs_mask == 0b01 | 0b10
    assert header.has_outputs_mask == 0b11
    assert header.buffers_offset == ProgramDescHeader.SIZE
    assert header.udma_desc_buff_num == 4
    assert header.udma_dummy_start_desc_offset == 1152

    buffers = [
        BufferDesc.unpack(data[header.buffers_offset + i * BufferDesc.SIZE:])
        for i in range(header.num_buffs)
    ]
    assert buffers == list(desc.buffers)
    first = buffers[0]
    assert first.location is MemLoc.L2TCM
    assert first.offset == 4096 + 8192
    assert first.size == io_size(in_io)
    assert first.allow_partial is True
    assert buffers[2].location is MemLoc.DDR
    assert buffers[3].location is MemLoc.VTCM
    assert buffers[4].usage is UsageType.INTERNAL


def test_invalid_usage():
    desc = ProgramDesc(280, 0, 1, 4)
    with pytest.raises(ValueError):
        desc.add_buffer(_io(Destination.DDR, [4]), 0, 0, 0, 0, 0, 0, 0, 1, 99,
                        False)


def test_out_of_range_field_fails_on_serialize():
    desc = ProgramDesc(280, 0, 1, 4)
    desc.add_buffer(_io(Destination.DDR, [4]), 1 << 16, 0, 0, 0, 0, 0, 0, 1,
                    UsageType.INPUT, False)
    with pytest.raises(ValueError):
        desc.serialize()