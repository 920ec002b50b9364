"""Resource layout of a compute program derived from its configuration."""

from __future__ import annotations

import enum
import os
import struct
from dataclasses import dataclass, field
from pathlib import Path

from .config import ConfigError, DataType, Destination, IODescription, ProgramConfig
from .layout import (
    CACHE_LINE_SIZE,
    DB_SIZE,
    MAX_NUM_CORES,
    MAX_NUM_THREADS,
    NUM_UDMA_CACHELINES_PER_THREAD,
    DMADescriptor,
    UsageType,
)
from .progdesc import ProgramDesc, io_size

VTCM_MAX_SIZE = 8 * 1024 * 1024
L2TCM_MAX_SIZE = 1 * 1024 * 1024
COMPUTE_MAX_SEMAPHORES = 2
INPUT_PORT_ID = 100
OUTPUT_PORT_ID = 101
INPUT_SEMAPHORE = 0
OUTPUT_SEMAPHORE = 1
MIN_DOORBELLS = 281
CONSTANTS_FILE = "constants.bin"
CONSTANTS_DESC_FILE = "constantsdesc.bin"

_DOORBELL_VALUE = 1
_BASE_ADDR_ALIGN = 1 << 12
_CONST_DESC_FMT = struct.Struct("<QQ??6x")
_WORD = struct.Struct("<I")


class MulticastAddrSpace(enum.Enum):
    """Memory a device multicast entry targets."""

    L2TCM = enum.auto()
    VTCM = enum.auto()


class DMAAddrSpace(enum.Enum):
    """Address space of the device side of a host DMA."""

    DDR = enum.auto()
    MC = enum.auto()


class DMADirection(enum.Enum):
    IN = enum.auto()
    OUT = enum.auto()


class SemaphoreCmd(enum.Enum):
    WAITEQ = enum.auto()
    INIT = enum.auto()


class SemaphoreSync(enum.Enum):
    PRE = enum.auto()
    POST = enum.auto()


class PortType(enum.Enum):
    USER_IO = enum.auto()


@dataclass(frozen=True)
class HostMulticastEntry:
    nsp_mask: int
    size: int


@dataclass(frozen=True)
class NSPMulticastEntry:
    core: int
    dynamic: int
    nsp_mask: int
    size: int
    space: MulticastAddrSpace
    base_addr_offset: int


@dataclass(frozen=True)
class SemaphoreOp:
    cmd: SemaphoreCmd
    sem_num: int
    value: int
    sync: SemaphoreSync
    in_sync_fence: int
    out_sync_fence: int


@dataclass(frozen=True)
class DoorbellOp:
    size_bits: int
    mcid: int
    offset: int
    data: int


@dataclass(frozen=True)
class DMARequest:
    file_num: int
    host_offset: int
    space: DMAAddrSpace
    dev_offset: int
    size: int
    direction: DMADirection
    port_id: int
    mcid: int
    semaphore_ops: tuple[SemaphoreOp, ...]
    doorbell_ops: tuple[DoorbellOp, ...]


@dataclass(frozen=True)
class ThreadDescriptor:
    entry_point: int
    has_hmx: bool
    has_hvx: bool


@dataclass(frozen=True)
class ConstantMapping:
    nsp_mask: int
    offset: int
    size: int


@dataclass
class ProgramLayout:
    """Everything the device needs to know to load and run a program."""

    network_name: str = ""
    hw_version_major: int = 2
    hw_version_minor: int = 0
    num_nsps: int = 0
    num_semaphores: int = COMPUTE_MAX_SEMAPHORES
    num_doorbells: int = 0
    exit_doorbell_offset: int = 0
    udma_dummy_start_desc_offset: int = 0
    udma_buffer_start_offset: int = 0
    udma_buffer_size: int = 0
    l2tcm_init_size: int = 0
    host_multicast_entries: list[HostMulticastEntry] = field(default_factory=list)
    nsp_multicast_entries: list[NSPMulticastEntry] = field(default_factory=list)
    l2tcm_words: list[tuple[int, int]] = field(default_factory=list)
    ports: dict[int, PortType] = field(default_factory=dict)
    semaphore_inits: dict[int, int] = field(default_factory=dict)
    dma_requests: list[DMARequest] = field(default_factory=list)
    vtcm_size: int = 0
    l2tcm_size: int = 0
    static_shared_ddr_size: int = 0
    static_shared_ddr_ecc: bool = False
    dynamic_shared_ddr_size: int = 0
    dynamic_shared_ddr_ecc: bool = False
    network_heap_size: int = 0
    single_vtcm_page: bool = False
    constants: bytes = b""
    static_constants_ecc: bool = False
    dynamic_constants_size: int = 0
    dynamic_constants_ecc: bool = False
    constant_mappings: list[ConstantMapping] = field(default_factory=list)
    thread_descriptors: list[ThreadDescriptor] = field(default_factory=list)

    @property
    def static_constants_size(self) -> int:
        return len(self.constants)

    @property
    def constants_descriptor(self) -> bytes:
        """The packed descriptor of the constants segment."""
        return _CONST_DESC_FMT.pack(
            self.static_constants_size,
            self.dynamic_constants_size,
            self.static_constants_ecc,
            self.dynamic_constants_ecc,
        )

    def l2tcm_word(self, offset: int) -> int | None:
        """Return the last value initialised at ``offset``, if any."""
        value = None
        for word_offset, word in self.l2tcm_words:
            if word_offset == offset:
                value = word
        return value


def _align_to(value: int, alignment: int) -> int:
    return (value + alignment - 1) & ~(alignment - 1)


def thread_counts(config: ProgramConfig) -> tuple[int, int, int]:
    """Return the total, HMX and HVX thread counts of ``config``."""
    num_hmx = config.num_hmx_threads
    num_threads = config.num_threads or 4 + num_hmx
    if num_hmx > num_threads:
        raise ConfigError(
            "Config Error: numHmxThreads can't exceed numThreads"
        )
    if num_threads > MAX_NUM_THREADS:
        raise ConfigError(
            "Config Error: numThreads isn't valid. Supported values are: 1-6"
        )
    return num_threads, num_hmx, num_threads - num_hmx


def _nsp_mask(buff: IODescription, num_nsps: int) -> int:
    if not buff.nsps:
        return (1 << num_nsps) - 1
    mask = 0
    for nsp in buff.nsps:
        if nsp >= num_nsps:
            raise ConfigError(
                f"Config Error: Invalid nsp number {nsp}. "
                f"Valid values are 0-{num_nsps - 1}"
            )
        mask |= 1 << nsp
    return mask


def _mc_space(dest: Destination) -> MulticastAddrSpace:
    if dest is Destination.L2TCM:
        return MulticastAddrSpace.L2TCM
    if dest is Destination.VTCM:
        return MulticastAddrSpace.VTCM
    raise ConfigError(f"Invalid multicast destination: {int(dest)}")


def _is_mc(dest: Destination) -> bool:
    return dest is not Destination.DDR


class _LayoutBuilder:
    """Mutable state while the layout of one program is worked out."""

    def __init__(self, config: ProgramConfig, entry_point: int) -> None:
        self.config = config
        self.entry_point = entry_point
        self.layout = ProgramLayout()
        self.file_num = 0
        self.mc_id = 0
        self.db_num = 0
        self.ddr_size = 0
        self.l2tcm_size = 1
        self.vtcm_size = 1
        self.reserved_l2tcm = 0

    def build(self) -> ProgramLayout:
        cfg = self.config
        layout = self.layout
        if cfg.hw_version_major != 2:
            raise ConfigError(
                "Config Error: hwVersionMajor isn't valid. Supported values are: 2"
            )
        if cfg.hw_version_minor != 0:
            raise ConfigError(
                "Config Error: hwVersionMinor isn't valid. Supported values are: 0"
            )
        num_nsps = cfg.num_nsps
        if not 1 <= num_nsps <= MAX_NUM_CORES:
            raise ConfigError(
                "Config Error: numNSPs isn't valid. Supported values are: 1-16"
            )
        self.num_nsps = num_nsps
        all_mask = (1 << num_nsps) - 1
        layout.hw_version_major = cfg.hw_version_major
        layout.hw_version_minor = cfg.hw_version_minor
        layout.network_name = cfg.name
        layout.num_nsps = num_nsps
        layout.num_semaphores = COMPUTE_MAX_SEMAPHORES

        num_threads, num_hmx, num_hvx = thread_counts(cfg)
        self.num_threads = num_threads

        # Doorbell 0.. are the buffer doorbells; the last one is the exit doorbell.
        buffers = (*cfg.inputs, *cfg.outputs, *cfg.internal_buffers)
        num_dbs = 1 + sum(not buff.no_doorbell for buff in buffers)
        if num_dbs >= MIN_DOORBELLS:
            raise ConfigError(
                "Can only have 280 buffer doorbells due to hardcoded FW"
            )
        num_dbs = MIN_DOORBELLS
        layout.num_doorbells = num_dbs
        db_space = num_dbs * DB_SIZE

        layout.host_multicast_entries.append(HostMulticastEntry(all_mask, db_space))
        for core in range(num_nsps):
            layout.nsp_multicast_entries.append(
                NSPMulticastEntry(
                    core, 0, all_mask & ~(1 << core), db_space,
                    MulticastAddrSpace.L2TCM, 0,
                )
            )

        dummy_offset = _align_to(db_space, CACHE_LINE_SIZE)
        udma_start = _align_to(dummy_offset + DMADescriptor.SIZE, CACHE_LINE_SIZE)
        udma_size = num_threads * CACHE_LINE_SIZE * NUM_UDMA_CACHELINES_PER_THREAD
        layout.udma_dummy_start_desc_offset = dummy_offset
        layout.udma_buffer_start_offset = udma_start
        layout.udma_buffer_size = udma_size
        layout.l2tcm_init_size = dummy_offset + DMADescriptor.SIZE

        self.reserved_l2tcm = dummy_offset + udma_size
        self.l2tcm_size = max(self.l2tcm_size, self.reserved_l2tcm)

        dummy = DMADescriptor(done=True).pack()
        for index, (word,) in enumerate(_WORD.iter_unpack(dummy)):
            layout.l2tcm_words.append((dummy_offset + index * _WORD.size, word))

        layout.ports[INPUT_PORT_ID] = PortType.USER_IO
        layout.ports[OUTPUT_PORT_ID] = PortType.USER_IO

        layout.exit_doorbell_offset = db_space - DB_SIZE
        layout.l2tcm_words.append((db_space - DB_SIZE, 0))
        self.mc_id += 1

        self.prog_desc = ProgramDesc(
            num_dbs - 1, INPUT_SEMAPHORE, OUTPUT_SEMAPHORE, num_threads
        )

        in_mask = 0
        for buff in cfg.inputs:
            in_mask |= _nsp_mask(buff, num_nsps)
        out_mask = 0
        for buff in cfg.outputs:
            out_mask |= _nsp_mask(buff, num_nsps)

        wait_val = bin(in_mask).count("1")
        layout.semaphore_inits[INPUT_SEMAPHORE] = 0
        last = len(cfg.inputs) - 1
        for index, buff in enumerate(cfg.inputs):
            self._process(buff, UsageType.INPUT, INPUT_SEMAPHORE, wait_val, 0,
                          index == last)

        init_val = bin(out_mask).count("1")
        layout.semaphore_inits[OUTPUT_SEMAPHORE] = init_val
        last = len(cfg.outputs) - 1
        for index, buff in enumerate(cfg.outputs):
            self._process(buff, UsageType.OUTPUT, OUTPUT_SEMAPHORE, 0, init_val,
                          index == last)

        for buff in cfg.internal_buffers:
            self._process(buff, UsageType.INTERNAL, 0, 0, 0, False)

        udma_buff = IODescription(
            type=DataType.Int8Ty,
            dims=[udma_size],
            host_offset=0,
            dev_offset=udma_start,
            base_addr_offset=0,
            dest=Destination.L2TCM,
        )
        self.prog_desc.add_udma_desc_buffer(udma_buff, dummy_offset, all_mask)

        layout.vtcm_size = self.vtcm_size
        layout.l2tcm_size = self.l2tcm_size
        layout.static_shared_ddr_size = self.ddr_size
        layout.network_heap_size = cfg.heap_size
        layout.single_vtcm_page = cfg.single_vtcm_page

        layout.constants = self.prog_desc.serialize()
        layout.constant_mappings.append(
            ConstantMapping(all_mask, 0, len(layout.constants))
        )

        layout.thread_descriptors.extend(
            ThreadDescriptor(self.entry_point, False, True) for _ in range(num_hvx)
        )
        layout.thread_descriptors.extend(
            ThreadDescriptor(self.entry_point, True, False) for _ in range(num_hmx)
        )
        return layout

    def _process(
        self,
        buff: IODescription,
        usage: UsageType,
        sem_num: int,
        sem_wait_val: int,
        sem_init_val: int,
        last: bool,
    ) -> None:
        layout = self.layout
        dma_size = io_size(buff)
        dest = Destination(buff.dest)
        dev_offset = buff.dev_offset
        base_offset = buff.base_addr_offset
        nsp_mask = _nsp_mask(buff, self.num_nsps)
        internal = usage is UsageType.INTERNAL

        if _is_mc(dest):
            if base_offset % _BASE_ADDR_ALIGN:
                raise ConfigError(
                    "Config Error: baseAddrOffset values must be multiples of 4096"
                )
            if (usage is UsageType.OUTPUT and self.num_nsps != 1
                    and nsp_mask & (nsp_mask - 1)):
                raise ConfigError(
                    "Config Error: Each outputs buffer in L2TCM/VTCM must be "
                    "limited to a single NSP"
                )
            if not internal:
                layout.host_multicast_entries.append(
                    HostMulticastEntry(nsp_mask, dma_size)
                )
            space = _mc_space(dest)
            for core in range(self.num_nsps):
                layout.nsp_multicast_entries.append(
                    NSPMulticastEntry(core, 0, nsp_mask if internal else 0,
                                      dma_size, space, base_offset)
                )
            self.mc_id += 1
            end = base_offset + dev_offset + dma_size
            if dest is Destination.L2TCM:
                self.l2tcm_size = max(self.l2tcm_size, end)
                if self.l2tcm_size > L2TCM_MAX_SIZE:
                    raise ConfigError(
                        f"Config Error: L2TCM buffers can't go past {L2TCM_MAX_SIZE}"
                    )
                if dev_offset + base_offset < self.reserved_l2tcm:
                    raise ConfigError(
                        "Config Error: L2TCM buffers can't start before offset "
                        f"{self.reserved_l2tcm} when running with "
                        f"{self.num_threads} threads"
                    )
            else:
                self.vtcm_size = max(self.vtcm_size, end)
                if self.vtcm_size > VTCM_MAX_SIZE:
                    raise ConfigError(
                        f"Config Error: VTCM buffers can't go past {VTCM_MAX_SIZE}"
                    )
        else:
            if base_offset != 0:
                raise ConfigError(
                    "Config Error: DDR buffers don't support baseAddrOffest"
                )
            self.ddr_size = max(self.ddr_size, dev_offset + dma_size)

        sem_ops: list[SemaphoreOp] = []
        if not internal:
            if buff.in_sync_fence not in (0, 1):
                raise ConfigError("Config Error: inSyncFence must be 0 or 1")
            if buff.out_sync_fence not in (0, 1):
                raise ConfigError("Config Error: outSyncFence must be 0 or 1")
            sem_ops.append(SemaphoreOp(
                SemaphoreCmd.WAITEQ, sem_num, sem_wait_val, SemaphoreSync.PRE,
                buff.in_sync_fence, buff.out_sync_fence,
            ))
            if last:
                sem_ops.append(SemaphoreOp(
                    SemaphoreCmd.INIT, sem_num, sem_init_val, SemaphoreSync.POST,
                    buff.in_sync_fence, buff.out_sync_fence,
                ))

        db_offset = self.db_num * DB_SIZE
        db_ops: list[DoorbellOp] = []
        if not internal:
            db_ops.append(DoorbellOp(32, 0, db_offset, _DOORBELL_VALUE))

        if usage is UsageType.INPUT:
            layout.l2tcm_words.append((db_offset, 0))
        elif buff.allow_partial:
            raise ConfigError("Only Input buffers can have allowPartial set")
        elif usage is UsageType.OUTPUT:
            layout.l2tcm_words.append((db_offset, _DOORBELL_VALUE))
        elif internal:
            layout.l2tcm_words.append((db_offset, 0))
        else:
            raise ConfigError(
                "Only Input, Output, and Internal buffers are currently supported"
            )

        buff_mcid = self.mc_id - 1 if _is_mc(dest) else 0
        self.prog_desc.add_buffer(
            buff, self.db_num, 0, _DOORBELL_VALUE, _DOORBELL_VALUE, 0, 0,
            buff_mcid, nsp_mask, usage, buff.allow_partial,
        )
        self.db_num += 1

        if not internal:
            is_input = usage is UsageType.INPUT
            layout.dma_requests.append(DMARequest(
                file_num=self.file_num,
                host_offset=0,
                space=DMAAddrSpace.MC if _is_mc(dest) else DMAAddrSpace.DDR,
                dev_offset=dev_offset,
                size=dma_size,
                direction=DMADirection.IN if is_input else DMADirection.OUT,
                port_id=INPUT_PORT_ID if is_input else OUTPUT_PORT_ID,
                mcid=buff_mcid,
                semaphore_ops=tuple(sem_ops),
                doorbell_ops=tuple(db_ops),
            ))
            self.file_num += 1


class ComputeProgram:
    """A compute program described by a :class:`ProgramConfig`."""

    def __init__(self, config: ProgramConfig) -> None:
        self.config = config
        self.entry_point = 0

    def generate_layout(self) -> ProgramLayout:
        """Validate the configuration and work out the program's layout."""
        return _LayoutBuilder(self.config, self.entry_point).build()

    def write_constants(
        self, directory: str | os.PathLike[str] = "."
    ) -> ProgramLayout:
        """Write the constants and constants descriptor files into ``directory``."""
        layout = self.generate_layout()
        target = Path(directory)
        (target / CONSTANTS_FILE).write_bytes(layout.constants)
        (target / CONSTANTS_DESC_FILE).write_bytes(layout.constants_descriptor)
        return layout