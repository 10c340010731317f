"""Navigation locator to storage path conversion.

Paths are plain strings: the root is ``""`` and every other path ends with
``/`` and never contains ``//``.
"""
import re

ROOT = ""
SEPARATOR = "/"
FRAGMENT_MARKER = "#"

_REPEATED_SEPARATORS = re.compile(r"/{2,}")


def normalize(raw_locator: str | None) -> str:
    """Turn a fragment locator such as ``#a/b`` into the path ``a/b/``."""
    locator = raw_locator or ""
    if locator.startswith(FRAGMENT_MARKER):
        locator = locator[1:]
    locator = _REPEATED_SEPARATORS.sub(SEPARATOR, locator).lstrip(SEPARATOR)
    if locator and not locator.endswith(SEPARATOR):
        locator += SEPARATOR
    return locator


def parent_of(path: str) -> str:
    """Return the path one level up; the parent of a top-level directory is root."""
    idx = path.rfind(SEPARATOR, 0, max(len(path) - 1, 0))
    if idx > 0:
        return normalize(path[:idx])
    return ROOT


def join(path: str, name: str) -> str:
    """Append one child segment to ``path``."""
    return normalize(f"{normalize(path)}{name.strip(SEPARATOR)}")


def is_root(path: str) -> bool:
    return normalize(path) == ROOT
