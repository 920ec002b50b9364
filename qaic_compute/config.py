"""Program configuration: the JSON description of a program's I/O and resources."""

from __future__ import annotations

import enum
import json
import os
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any


class ConfigError(ValueError):
    """A program configuration is malformed or holds invalid values."""


class DataType(enum.IntEnum):
    """Element type of a buffer."""

    FloatTy = 0
    Float16Ty = 1
    Int8QTy = 2
    UInt8QTy = 3
    Int16QTy = 4
    Int32QTy = 5
    Int32ITy = 6
    Int64ITy = 7
    Int8Ty = 8


class Destination(enum.IntEnum):
    """Memory a buffer is placed in on the device."""

    DDR = 0
    L2TCM = 1
    VTCM = 2


def _parse_enum(enum_cls: type[enum.IntEnum], value: Any, key: str) -> Any:
    if isinstance(value, str):
        try:
            return enum_cls[value]
        except KeyError:
            raise ConfigError(
                f"Json Parsing Failed: invalid value {value!r} for {key}"
            ) from None
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return enum_cls(value)
        except ValueError:
            raise ConfigError(
                f"Json Parsing Failed: invalid value {value!r} for {key}"
            ) from None
    raise ConfigError(f"Json Parsing Failed: invalid value {value!r} for {key}")


def _parse_uint(value: Any, key: str, bits: int) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Json Parsing Failed: invalid value {value!r} for {key}")
    if isinstance(value, str):
        text = value.strip()
        if not text.isdigit():
            raise ConfigError(
                f"Json Parsing Failed: invalid value {value!r} for {key}"
            )
        number = int(text)
    elif isinstance(value, int):
        number = value
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    else:
        raise ConfigError(f"Json Parsing Failed: invalid value {value!r} for {key}")
    if not 0 <= number < (1 << bits):
        raise ConfigError(
            f"Json Parsing Failed: value {number} out of range for {key}"
        )
    return number


def _parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if value in ("true", "false"):
        return value == "true"
    raise ConfigError(f"Json Parsing Failed: invalid value {value!r} for {key}")


def _parse_str(value: Any, key: str) -> str:
    if isinstance(value, str):
        return value
    raise ConfigError(f"Json Parsing Failed: invalid value {value!r} for {key}")


def _parse_list(
    value: Any, key: str, item: Callable[[Any, str], Any]
) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigError(f"Json Parsing Failed: {key} must be a list")
    return [item(element, key) for element in value]


def _uint32(value: Any, key: str) -> int:
    return _parse_uint(value, key, 32)


def _uint64(value: Any, key: str) -> int:
    return _parse_uint(value, key, 64)


_Spec = dict[str, tuple[str, Callable[[Any, str], Any]]]


def _collect(data: Any, specs: _Spec, what: str) -> dict[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError(f"Json Parsing Failed: {what} must be an object")
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        spec = specs.get(key)
        if spec is None:
            raise ConfigError(
                f"Json Parsing Failed: {what} has no field named {key!r}"
            )
        attr, parser = spec
        if value is None:
            continue
        kwargs[attr] = parser(value, key)
    return kwargs


@dataclass
class IODescription:
    """One buffer of a program: its shape, type and placement."""

    type: DataType = DataType.FloatTy
    dims: list[int] = field(default_factory=list)
    host_offset: int = 0
    dev_offset: int = 0
    base_addr_offset: int = 0
    dest: Destination = Destination.DDR
    in_sync_fence: int = 0
    out_sync_fence: int = 0
    nsps: list[int] = field(default_factory=list)
    allow_partial: bool = False
    no_doorbell: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IODescription:
        """Build a description from its JSON object form."""
        return cls(**_collect(data, _IO_FIELDS, "IODescription"))


_IO_FIELDS: _Spec = {
    "type": ("type", lambda v, k: _parse_enum(DataType, v, k)),
    "dims": ("dims", lambda v, k: _parse_list(v, k, _uint32)),
    "hostOffset": ("host_offset", _uint64),
    "devOffset": ("dev_offset", _uint64),
    "baseAddrOffset": ("base_addr_offset", _uint64),
    "dest": ("dest", lambda v, k: _parse_enum(Destination, v, k)),
    "inSyncFence": ("in_sync_fence", _uint32),
    "outSyncFence": ("out_sync_fence", _uint32),
    "nsps": ("nsps", lambda v, k: _parse_list(v, k, _uint32)),
    "allowPartial": ("allow_partial", _parse_bool),
    "noDoorbell": ("no_doorbell", _parse_bool),
}


def _io_list(value: Any, key: str) -> list[IODescription]:
    if not isinstance(value, list):
        raise ConfigError(f"Json Parsing Failed: {key} must be a list")
    return [IODescription.from_dict(item) for item in value]


@dataclass
class ProgramConfig:
    """Program configuration describing I/O and resources."""

    name: str = ""
    hw_version_major: int = 0
    hw_version_minor: int = 0
    num_nsps: int = 0
    num_threads: int = 0
    num_hmx_threads: int = 0
    inputs: list[IODescription] = field(default_factory=list)
    outputs: list[IODescription] = field(default_factory=list)
    internal_buffers: list[IODescription] = field(default_factory=list)
    heap_size: int = 0
    single_vtcm_page: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProgramConfig:
        """Build a configuration from its JSON object form."""
        return cls(**_collect(data, _PROGRAM_FIELDS, "ProgramConfig"))

    @classmethod
    def from_json(cls, text: str) -> ProgramConfig:
        """Parse a configuration from JSON text."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Json Parsing Failed: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> ProgramConfig:
        """Load a configuration from a file, or from stdin when ``path`` is ``-``."""
        try:
            if os.fspath(path) == "-":
                text = sys.stdin.read()
            else:
                with open(path, encoding="utf-8") as handle:
                    text = handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigError(
                f"Unable to open expert config file for reading: {path}"
            ) from exc
        return cls.from_json(text)


_PROGRAM_FIELDS: _Spec = {
    "name": ("name", _parse_str),
    "hwVersionMajor": ("hw_version_major", _uint32),
    "hwVersionMinor": ("hw_version_minor", _uint32),
    "numNSPs": ("num_nsps", _uint32),
    "numNsps": ("num_nsps", _uint32),
    "numThreads": ("num_threads", _uint32),
    "numHmxThreads": ("num_hmx_threads", _uint32),
    "inputs": ("inputs", _io_list),
    "outputs": ("outputs", _io_list),
    "internalBuffers": ("internal_buffers", _io_list),
    "heapSize": ("heap_size", _uint64),
    "singleVTCMPage": ("single_vtcm_page", _parse_bool),
}