"""Locating the external toolchain programs."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

_log = logging.getLogger("qaic_compute.toolchain")

_SEPARATORS = frozenset({"/", os.sep})


class ToolNotFoundError(FileNotFoundError):
    """Raised when a toolchain program cannot be found."""

    def __init__(self, program: str, search_paths: Sequence[str]) -> None:
        super().__init__(errno.ENOENT, f"tool {program!r} not found", program)
        self.program = program
        self.search_paths = tuple(search_paths)


@dataclass
class Toolset:
    """Optional overrides for the names of individual tools."""

    cc: str | None = None
    cxx: str | None = None
    ld: str | None = None
    ar: str | None = None
    objcopy: str | None = None

    def is_empty(self) -> bool:
        """Return True if no tool is set."""
        return all(
            value is None
            for value in (self.cc, self.cxx, self.ld, self.ar, self.objcopy)
        )


class Tools:
    """Search configuration for the toolchain programs."""

    def __init__(self) -> None:
        self.host_toolset = Toolset()
        self.hexagon_toolset = Toolset()
        self._hexagon_tools_path = ""
        self._extra_paths: list[str] = []
        self._cwd: str | None = None

    @property
    def hexagon_tools_path(self) -> str:
        return self._hexagon_tools_path

    def set_hexagon_tools_path(self, path: str) -> None:
        """Set the directory searched before any other added search path."""
        _log.debug("Setting hexagon tools path to %s", path)
        self._hexagon_tools_path = str(path)

    def add_search_path(self, path: str) -> None:
        """Append a directory to the tool search."""
        _log.debug("Adding tool search path %s", path)
        self._extra_paths.append(str(path))

    def load_standard_env_paths(
        self, environ: Mapping[str, str] | None = None
    ) -> None:
        """Add ``$HEXAGON_TOOLS_DIR/bin`` and every ``PATH`` entry."""
        env = os.environ if environ is None else environ
        hex_tools_dir = env.get("HEXAGON_TOOLS_DIR")
        if hex_tools_dir is not None:
            self.set_hexagon_tools_path(hex_tools_dir + "/bin")
        path_env = env.get("PATH")
        if path_env is not None:
            for entry in path_env.split(os.pathsep):
                if entry:
                    self.add_search_path(entry)

    def search_paths(self) -> list[str]:
        """Directories searched, in order: cwd, hexagon tools, added paths."""
        if self._cwd is None:
            try:
                self._cwd = os.getcwd()
            except OSError:
                self._cwd = None
        paths = []
        if self._cwd:
            paths.append(self._cwd)
        if self._hexagon_tools_path:
            paths.append(self._hexagon_tools_path)
        paths.extend(self._extra_paths)
        return paths

    def _find_program_by_name(self, program: str, paths: Sequence[str]) -> str:
        _log.debug("Searching for tool %s", program)
        if any(sep in program for sep in _SEPARATORS):
            return program
        dirs = list(paths)
        if not dirs:
            dirs = [d for d in os.environ.get("PATH", "").split(os.pathsep) if d]
        for directory in dirs:
            found = shutil.which(program, path=directory)
            if found:
                _log.debug("Found tool %s at %s", program, found)
                return found
        raise ToolNotFoundError(program, dirs)

    def _find(self, name: str | None, default: str) -> str:
        return self._find_program_by_name(name or default, self.search_paths())

    def find_c_compiler(self) -> str:
        return self._find(self.hexagon_toolset.cc, "clang")

    def find_cxx_compiler(self) -> str:
        return self._find(self.hexagon_toolset.cxx, "clang++")

    def find_linker(self) -> str:
        return self._find(self.hexagon_toolset.ld, "llvm-link")

    def find_ar(self) -> str:
        return self._find(self.hexagon_toolset.ar, "llvm-ar")

    def find_objcopy(self) -> str:
        return self._find(self.hexagon_toolset.objcopy, "llvm-objcopy")