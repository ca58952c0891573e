from __future__ import annotations

import os
from pathlib import Path

from .errors import ConfinementError


def normalize_relative(requested_path: str) -> str:
    return requested_path.replace('\\', '/').lstrip('/')


def ensure_confined(candidate: str | os.PathLike, root: str | os.PathLike) -> Path:
    base = os.path.abspath(root)
    if '\x00' in os.fspath(candidate):
        raise ConfinementError('Invalid path')
    try:
        target = os.path.abspath(candidate)
    except (OSError, ValueError) as exc:
        raise ConfinementError('Invalid path') from exc

    # '/media' must not admit '/media-old'
    prefix = base if base.endswith(os.sep) else base + os.sep
    if target != base and not target.startswith(prefix):
        raise ConfinementError('Path traversal detected')
    return Path(target)


def validate_path(requested_path: str, root: str | os.PathLike) -> Path:
    """Resolve a client path inside ``root``.

    The result is made absolute lexically; symlinks are not followed and the
    target does not need to exist.
    """
    if '\x00' in requested_path:
        raise ConfinementError('Invalid path')

    rel = normalize_relative(requested_path)
    base = os.path.abspath(root)
    joined = os.path.join(base, rel.replace('/', os.sep))
    return ensure_confined(joined, base)


def relative_posix(path: str | os.PathLike, root: str | os.PathLike) -> str:
    return Path(os.path.relpath(path, os.path.abspath(root))).as_posix()
