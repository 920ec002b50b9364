import json

import pytest

from qaic_compute.config import (
    ConfigError,
    DataType,
    Destination,
    IODescription,
    ProgramConfig,
)

UDMA_JSON = (
    '{"type":"Int8Ty","dims":[96],"hostOffset":0,"devOffset":1280,'
    '"baseAddrOffset":0,"dest":"L2TCM","inSyncFence":0,"outSyncFence":0}'
)


def test_io_description_from_source_string():
    io = IODescription.from_dict(json.loads(UDMA_JSON))
    assert io.type is DataType.Int8Ty
    assert io.dims == [96]
    assert io.dev_offset == 1280
    assert io.dest is Destination.L2TCM
    assert io.allow_partial is False


def test_io_description_defaults():
    io = IODescription.from_dict({})
    assert io == IODescription()
    assert io.nsps == []


def test_program_config_full():
    text = json.dumps(
        {
            "name": "net",
            "hwVersionMajor": 2,
            "hwVersionMinor": 0,
            "numNSPs": 4,
            "numThreads": 5,
            "numHmxThreads": 1,
            "inputs": [{"type": "FloatTy", "dims": [16], "nsps": [0, 1]}],
            "outputs": [{"type": "Int32ITy", "dims": [4, 4], "dest": "VTCM"}],
            "internalBuffers": [{"dims": [8], "noDoorbell": True}],
            "heapSize": 65536,
            "singleVTCMPage": True,
        }
    )
    config = ProgramConfig.from_json(text)
    assert config.name == "net"
    assert config.num_nsps == 4
    assert config.num_hmx_threads == 1
    assert config.inputs[0].nsps == [0, 1]
    assert config.outputs[0].dest is Destination.VTCM
    assert config.internal_buffers[0].no_doorbell is True
    assert config.heap_size == 65536
    assert config.single_vtcm_page is True


def test_num_nsps_alias():
    a = ProgramConfig.from_dict({"numNSPs": 3})
    b = ProgramConfig.from_dict({"numNsps": 3})
    assert a == b
    assert a.num_nsps == 3


def test_enum_by_number():
    io = IODescription.from_dict({"dest": int(Destination.VTCM)})
    assert io.dest is Destination.VTCM


def test_integer_as_string_and_null():
    io = IODescription.from_dict({"devOffset": "4096", "dims": None})
    assert io.dev_offset == 4096
    assert io.dims == []


@pytest.mark.parametrize(
    "data",
    [
        {"bogus": 1},
        {"dest": "NOWHERE"},
        {"type": "NotAType"},
        {"devOffset": -1},
        {"devOffset": True},
        {"dims": 5},
        {"dims": ["x"]},
        {"allowPartial": 1},
        {"inSyncFence": 1 << 32},
    ],
)
def test_io_description_errors(data):
    with pytest.raises(ConfigError):
        IODescription.from_dict(data)


def test_invalid_json():
    with pytest.raises(ConfigError, match="Json Parsing Failed"):
        ProgramConfig.from_json("{not json")


def test_top_level_must_be_object():
    with pytest.raises(ConfigError):
        ProgramConfig.from_json("[1, 2]")


def test_nested_unknown_field_rejected():
    with pytest.raises(ConfigError):
        ProgramConfig.from_dict({"inputs": [{"dimz": [1]}]})


def test_from_file_round_trip(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"name": "prog", "outputs": [{"dims": [2]}]}))
    config = ProgramConfig.from_file(path)
    assert config.name == "prog"
    assert config.outputs[0].dims == [2]
    assert config == ProgramConfig.from_file(str(path))


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigError, match="Unable to open"):
        ProgramConfig.from_file(tmp_path / "missing.json")