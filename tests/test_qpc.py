import pytest

from qaic_compute.qpc import QPCBuilder, Segment


def test_add_bytes_segment():
    builder = QPCBuilder()
    builder.add_segment("network.elf", b"\x7fELF", 16)
    assert builder.has_segment("network.elf")
    assert builder.segment_data("network.elf") == b"\x7fELF"
    assert builder.segment_offset("network.elf") == 16
    assert len(builder) == 1


def test_text_segment_is_nul_terminated():
    builder = QPCBuilder()
    builder.add_segment("note", "abc")
    assert builder.segment_data("note") == b"abc\0"


def test_missing_segment_defaults():
    builder = QPCBuilder()
    assert builder.has_segment("nothing") is False
    assert builder.segment_offset("nothing") == 0
    assert builder.segment_data("nothing") == b""


def test_existing_segment_is_kept():
    builder = QPCBuilder()
    builder.add_segment("a", b"first", 1)
    builder.add_segment("a", b"second", 2)
    assert builder.segment_data("a") == b"first"
    assert builder.segment_offset("a") == 1
    assert len(builder) == 1


def test_int_data_rejected():
    with pytest.raises(TypeError):
        QPCBuilder().add_segment("a", 5)


def test_constants_file_offset_is_file_size(tmp_path):
    payload = bytes(range(37))
    path = tmp_path / "constants.bin"
    path.write_bytes(payload)
    builder = QPCBuilder()
    builder.add_segment_from_file("constants.bin", path)
    assert builder.segment_data("constants.bin") == payload
    assert builder.segment_offset("constants.bin") == len(payload)


def test_other_file_offset_is_zero(tmp_path):
    path = tmp_path / "networkdesc.bin"
    path.write_bytes(b"desc")
    builder = QPCBuilder()
    builder.add_segment_from_file("networkdesc.bin", str(path))
    assert builder.segment_offset("networkdesc.bin") == 0
    assert builder.segment_data("networkdesc.bin") == b"desc"


def test_missing_file_raises(tmp_path):
    builder = QPCBuilder()
    with pytest.raises(FileNotFoundError):
        builder.add_segment_from_file("x", tmp_path / "absent.bin")
    assert builder.has_segment("x") is False


def test_remove_and_reset():
    builder = QPCBuilder()
    builder.add_segment("a", b"1")
    builder.add_segment("b", b"2")
    builder.remove_segment("a")
    assert builder.has_segment("a") is False
    assert len(builder) == 1
    builder.remove_segment("absent")
    assert len(builder) == 1
    builder.reset()
    assert len(builder) == 0
    assert builder.segments() == []


def test_segments_sorted_by_name():
    builder = QPCBuilder()
    builder.add_segment("zeta", b"z", 3)
    builder.add_segment("alpha", b"a")
    assert builder.segments() == [
        Segment("alpha", 0, b"a"),
        Segment("zeta", 3, b"z"),
    ]