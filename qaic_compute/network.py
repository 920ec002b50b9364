"""Network descriptor of a compute program and container section checks."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from .config import ConfigError, DataType, IODescription, ProgramConfig
from .program import thread_counts
from .progdesc import io_size, type_size

_log = logging.getLogger("qaic_compute.program")

THREAD_GROUP_NAMES = ("HVX", "HMX")
NETWORK_ELF_SECTION = "network.elf"
NETWORK_DESC_SECTION = "networkdesc.bin"
CONSTANTS_SECTION = "constants.bin"
CONSTANTS_DESC_SECTION = "constantsdesc.bin"


class Direction(enum.Enum):
    """Direction of a host transfer."""

    IN = "In"
    OUT = "Out"


class Layout(enum.Enum):
    """Memory layout of a tensor."""

    FLAT_NXYD = "FlatNXYD"


class TransformKind(enum.Enum):
    """Kind of a buffer transform step."""

    COPY_DMA_BUFFER = "CopyDMABufferTransform"


@dataclass
class TensorInfo:
    """Element type, shape and layout of a tensor."""

    type: DataType
    dims: list[int] = field(default_factory=list)
    layout: Layout = Layout.FLAT_NXYD


@dataclass
class CopyDMABuffer:
    """Copy between a user buffer and a DMA buffer."""

    dir: Direction
    offset: int = 0
    buffer_num: int = 0


@dataclass
class Transform:
    """One step of the transform sequence applied to an I/O buffer."""

    kind: TransformKind
    type: DataType
    scale: float = 1
    offset: int = 0
    dims: list[int] = field(default_factory=list)
    layout: Layout = Layout.FLAT_NXYD
    copy_dma_buffer: CopyDMABuffer | None = None


@dataclass
class IOInfo:
    """An input or output of the network."""

    name: str
    io_initial: TensorInfo
    io_transformed: TensorInfo
    transform_seq: list[Transform] = field(default_factory=list)
    is_partial_allowed: bool = False
    align: int = 0


@dataclass
class DMABuffer:
    """A buffer transferred between host and device."""

    size: int
    dir: Direction


@dataclass
class NetworkDescriptor:
    """Description of a network as seen by the host runtime."""

    network_name: str = ""
    num_cores: int = 0
    num_threads: int = 0
    num_hvx_threads: int = 0
    thread_groups: list[int] = field(default_factory=list)
    thread_group_issue_count: int = 0
    thread_group_names: list[str] = field(default_factory=list)
    batch_size: int = 1
    cluster_offsets: list[int] = field(default_factory=list)
    inputs: list[IOInfo] = field(default_factory=list)
    outputs: list[IOInfo] = field(default_factory=list)
    dma_buffers: list[DMABuffer] = field(default_factory=list)


def _io_info(
    buff: IODescription, name: str, direction: Direction, buffer_num: int
) -> IOInfo:
    dims = list(buff.dims)
    return IOInfo(
        name=name,
        io_initial=TensorInfo(buff.type, list(dims)),
        io_transformed=TensorInfo(buff.type, list(dims)),
        transform_seq=[
            Transform(
                kind=TransformKind.COPY_DMA_BUFFER,
                type=buff.type,
                scale=1,
                offset=0,
                dims=list(dims),
                copy_dma_buffer=CopyDMABuffer(direction, 0, buffer_num),
            )
        ],
    )


def generate_network_descriptor(config: ProgramConfig) -> NetworkDescriptor:
    """Build the network descriptor of the program ``config`` describes."""
    num_threads, _num_hmx, num_hvx = thread_counts(config)
    desc = NetworkDescriptor(
        network_name=config.name,
        num_cores=config.num_nsps,
        num_threads=num_threads,
        num_hvx_threads=num_hvx,
        thread_groups=[0 if i < num_hvx else 1 for i in range(num_threads)],
        thread_group_issue_count=len(THREAD_GROUP_NAMES),
        thread_group_names=list(THREAD_GROUP_NAMES),
        batch_size=1,
        cluster_offsets=[0],
    )

    buffer_num = 0
    for index, buff in enumerate(config.inputs):
        if buff.allow_partial and len(buff.dims) != 1:
            raise ConfigError("Partial buffers must have only 1 dim")
        info = _io_info(buff, f"inputBuff_{index}", Direction.IN, buffer_num)
        info.is_partial_allowed = buff.allow_partial
        info.align = type_size(buff.type)
        desc.inputs.append(info)
        desc.dma_buffers.append(DMABuffer(io_size(buff), Direction.IN))
        buffer_num += 1

    for index, buff in enumerate(config.outputs):
        info = _io_info(buff, f"outputBuff_{index}", Direction.OUT, buffer_num)
        desc.outputs.append(info)
        desc.dma_buffers.append(DMABuffer(io_size(buff), Direction.OUT))
        buffer_num += 1

    return desc


def validate_qpc_sections(section_names: Iterable[str]) -> bool:
    """Return True if a container with these sections has all required ones.

    The network ELF and descriptor are always required; if either constants
    section is present, both are.
    """
    names = list(section_names)
    if len(names) < 2:
        return False

    required = {NETWORK_ELF_SECTION, NETWORK_DESC_SECTION}
    if CONSTANTS_SECTION in names or CONSTANTS_DESC_SECTION in names:
        required |= {CONSTANTS_SECTION, CONSTANTS_DESC_SECTION}

    missing = required.difference(names)
    for name in sorted(missing):
        _log.debug("QPC missing required section: %s", name)
    return not missing