from __future__ import annotations

from .errors import RangeError, UnsatisfiableRangeError

_UNIT_PREFIX = 'bytes='


def _parse_offset(value: str) -> int:
    if not value or not (value.isascii() and value.isdigit()):
        raise RangeError(f'Invalid byte offset: {value!r}')
    return int(value)


def parse_range(header: str, size: int) -> tuple[int, int]:
    """Interpret a single-span ``Range`` header against a resource of ``size`` bytes.

    Accepts ``bytes=N-M``, ``bytes=N-`` and ``bytes=-S``. Only the syntax is
    checked here; call :func:`check_satisfiable` on the result before serving.
    """
    header = (header or '').strip()
    if not header:
        raise RangeError('Empty Range header')
    if not header.startswith(_UNIT_PREFIX):
        raise RangeError('Unsupported range unit')

    span = header[len(_UNIT_PREFIX):]
    if ',' in span:
        raise RangeError('Multiple ranges are not supported')

    start_str, sep, end_str = span.partition('-')
    if not sep:
        raise RangeError('Missing range separator')

    if start_str == '':
        suffix = _parse_offset(end_str)
        suffix = min(suffix, size)
        return size - suffix, size - 1

    start = _parse_offset(start_str)
    if end_str == '':
        return start, size - 1
    return start, _parse_offset(end_str)


def check_satisfiable(start: int, end: int, size: int) -> None:
    if start < 0 or start > end or end >= size:
        raise UnsatisfiableRangeError(size)
