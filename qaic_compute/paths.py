"""Small path helpers used when composing toolchain file names."""

from __future__ import annotations

import os

_SEPARATORS = frozenset({"/", os.sep})


def _is_separator(char: str) -> bool:
    return char in _SEPARATORS


def split_extension(path: str) -> tuple[str, str]:
    """Split ``path`` into the part before the extension and the extension.

    The extension includes its leading dot.  The special names ``.`` and
    ``..`` have no extension.
    """
    parent, name = os.path.split(path)
    if name in (".", ".."):
        stem, ext = name, ""
    else:
        dot = name.rfind(".")
        if dot == -1:
            stem, ext = name, ""
        else:
            stem, ext = name[:dot], name[dot:]
    base = join_path(parent, stem) if parent else stem
    return base, ext


def join_path(path: str, *args: str) -> str:
    """Append each non-empty component in ``args`` to ``path``.

    A separator is inserted only where neither side already provides one;
    leading separators of a component are dropped when ``path`` already ends
    with one.
    """
    result = path
    for component in args:
        if not component:
            continue
        if result and _is_separator(result[-1]):
            result += component.lstrip("".join(_SEPARATORS))
            continue
        if result and not _is_separator(component[0]):
            result += os.sep
        result += component
    return result