# qaic-compute

Library support for preparing compute programs that run on the NSP cores of an
AI accelerator card. It reads the JSON program configuration, checks it, and
works out the device layout of the program. It can also produce the binary
constants images, the network descriptor and the named segments of a program
container. It uses only the standard library.

## Installation

```
pip install .
```

To run the test suite:

```
pip install .[test]
pytest
```

## Modules

| Module | Contents |
| --- | --- |
| `qaic_compute.config` | `ProgramConfig`, `IODescription`, `DataType`, `Destination`, `ConfigError` |
| `qaic_compute.program` | `ComputeProgram`, `ProgramLayout`, `thread_counts` |
| `qaic_compute.network` | `generate_network_descriptor`, `validate_qpc_sections` |
| `qaic_compute.progdesc` | `ProgramDesc`, `type_size`, `io_size` |
| `qaic_compute.layout` | `BufferDesc`, `ProgramDescHeader`, `DMADescriptor`, `UsageType`, `MemLoc`, `is_user_dma_error` |
| `qaic_compute.qpc` | `QPCBuilder`, `Segment` |
| `qaic_compute.tools` | `Tools`, `Toolset`, `ToolNotFoundError` |
| `qaic_compute.paths` | `split_extension`, `join_path` |

## Loading a configuration

`ProgramConfig.from_file`, `from_json` and `from_dict` read the JSON form,
using field names such as `numNSPs`, `numThreads`, `inputs`, `outputs` and
`internalBuffers`. Passing `"-"` to `from_file` reads standard input. An
unknown field, a malformed value or an unreadable file raises `ConfigError`,
which is a subclass of `ValueError`.

```python
from qaic_compute.config import ProgramConfig

config = ProgramConfig.from_json("""
{
  "name": "example",
  "hwVersionMajor": 2,
  "hwVersionMinor": 0,
  "numNSPs": 2,
  "inputs":  [{"type": "FloatTy", "dims": [256], "dest": "DDR"}],
  "outputs": [{"type": "FloatTy", "dims": [256], "dest": "DDR", "devOffset": 1024}]
}
""")
```

## Laying out a program

`ComputeProgram.generate_layout()` validates the configuration and returns a
`ProgramLayout`. The layout holds the multicast entries, the L2TCM word
initialisations, the doorbells, the semaphore initial values, the host DMA
requests and the thread descriptors. It also holds the VTCM, L2TCM and shared
DDR sizes, and the serialized program description in `constants`. Any rule the
configuration breaks raises `ConfigError`. Examples are the hardware version,
the number of NSPs or threads, buffer alignment, and memory limits.

```python
from qaic_compute.program import ComputeProgram

program = ComputeProgram(config)
layout = program.generate_layout()
print(layout.l2tcm_size, layout.static_shared_ddr_size, len(layout.constants))

# Writes constants.bin and constantsdesc.bin, and returns the layout.
program.write_constants("build")
```

`thread_counts(config)` returns the total, HMX and HVX thread counts. When
`numThreads` is not given, it defaults to four HVX threads plus the HMX threads.

## Network descriptor and container sections

```python
from qaic_compute.network import generate_network_descriptor, validate_qpc_sections

descriptor = generate_network_descriptor(config)
validate_qpc_sections(["network.elf", "networkdesc.bin"])                    # True
validate_qpc_sections(["network.elf", "networkdesc.bin", "constants.bin"])  # False
```

`validate_qpc_sections` requires `network.elf` and `networkdesc.bin`. If either
`constants.bin` or `constantsdesc.bin` is present, it requires both of them.

`QPCBuilder` collects named segments. Text data is stored with a terminating
NUL byte. Adding a segment under a name that is already present keeps the
existing segment. The `constants.bin` segment read by `add_segment_from_file`
gets the file size as its offset; every other file segment gets 0.

```python
from qaic_compute.qpc import QPCBuilder

qpc = QPCBuilder()
qpc.add_segment("networkdesc.bin", b"\x01\x02")
qpc.add_segment_from_file("constants.bin", "build/constants.bin")
for segment in qpc.segments():          # ordered by name
    print(segment.name, segment.offset, len(segment.data))
```

## Binary layouts

`BufferDesc` (40 bytes), `ProgramDescHeader` and `DMADescriptor` (16 bytes)
provide `pack()` and `unpack()` for their little-endian wire forms. A value out
of range, or input that is too short, raises `ValueError`.

## Locating tools

`Tools` searches for the toolchain programs. It looks first in the current
directory, then in the Hexagon tools path, then in any added search paths.
`load_standard_env_paths()` adds `$HEXAGON_TOOLS_DIR/bin` and every `PATH`
entry. The `find_c_compiler`, `find_cxx_compiler`, `find_linker`, `find_ar` and
`find_objcopy` methods return the path of the program. They default to
`clang`, `clang++`, `llvm-link`, `llvm-ar` and `llvm-objcopy`, and a name set
in `hexagon_toolset` takes their place. They raise `ToolNotFoundError` when the
program is not found.

## Logging

Debug messages go to the standard `logging` loggers `qaic_compute.toolchain`
and `qaic_compute.program`.

## What this package does not do

* It does not build argument lists for the compiler, linker, archiver or
  objcopy, and it never runs any external program. `Tools` only locates them.
* `QPCBuilder` collects segments but does not encode them into a packed
  program container file.
* It provides no command-line interface; it is used as a library.