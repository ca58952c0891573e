from __future__ import annotations

import logging
import mimetypes
import stat as stat_mod
from pathlib import Path
from typing import BinaryIO, Iterator

from fastapi.responses import StreamingResponse
from starlette.requests import ClientDisconnect

from .errors import NotFoundError, RangeError, StorageError, UnsatisfiableRangeError
from .ranges import check_satisfiable, parse_range

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 32 * 1024
DEFAULT_MEDIA_TYPE = 'application/octet-stream'

mimetypes.add_type('video/mp4', '.mp4')
mimetypes.add_type('video/x-matroska', '.mkv')
mimetypes.add_type('video/quicktime', '.mov')
mimetypes.add_type('video/webm', '.webm')


def guess_media_type(path: Path) -> str:
    media_type, _ = mimetypes.guess_type(path.name.lower())
    return media_type or DEFAULT_MEDIA_TYPE


def iter_file_range(handle: BinaryIO, length: int, chunk_size: int = COPY_BUFFER_SIZE) -> Iterator[bytes]:
    remaining = length
    while remaining > 0:
        try:
            chunk = handle.read(min(chunk_size, remaining))
        except OSError as exc:
            logger.warning('Read failed mid-stream: %s', exc.strerror)
            return
        if not chunk:
            # file shrank underneath us
            return
        remaining -= len(chunk)
        yield chunk


class RangeFileResponse(StreamingResponse):
    """Streams ``length`` bytes from an already positioned file handle.

    The handle is closed once the response is finished, including when the
    client goes away halfway through.
    """

    def __init__(
        self,
        handle: BinaryIO,
        length: int,
        *,
        status_code: int,
        headers: dict[str, str],
        media_type: str,
        chunk_size: int = COPY_BUFFER_SIZE,
    ):
        self._handle = handle
        super().__init__(
            iter_file_range(handle, length, chunk_size),
            status_code=status_code,
            headers=headers,
            media_type=media_type,
        )

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (ClientDisconnect, OSError):
            logger.debug('Client disconnected during stream')
        finally:
            self._handle.close()


def _open_at(path: Path, offset: int) -> BinaryIO:
    try:
        handle = path.open('rb')
    except OSError as exc:
        raise StorageError('Cannot open file') from exc
    try:
        handle.seek(offset)
    except OSError as exc:
        handle.close()
        raise StorageError('Seek failed') from exc
    return handle


def stream_file(path: Path, range_header: str | None, chunk_size: int = COPY_BUFFER_SIZE) -> RangeFileResponse:
    """Build the 200 or 206 response for ``path``.

    Raises NotFoundError for missing files and directories,
    UnsatisfiableRangeError for malformed or out-of-bounds ranges and
    StorageError when the file cannot be opened or positioned.
    """
    try:
        info = path.stat()
    except OSError as exc:
        raise NotFoundError('File not found') from exc
    if stat_mod.S_ISDIR(info.st_mode):
        raise NotFoundError('File not found')

    size = info.st_size
    media_type = guess_media_type(path)
    headers = {'Accept-Ranges': 'bytes'}

    if not range_header:
        headers['Content-Length'] = str(size)
        return RangeFileResponse(
            _open_at(path, 0),
            size,
            status_code=200,
            headers=headers,
            media_type=media_type,
            chunk_size=chunk_size,
        )

    try:
        start, end = parse_range(range_header, size)
    except RangeError as exc:
        logger.debug('Malformed Range header %r: %s', range_header, exc)
        raise UnsatisfiableRangeError(size) from exc
    check_satisfiable(start, end, size)

    length = end - start + 1
    headers['Content-Range'] = f'bytes {start}-{end}/{size}'
    headers['Content-Length'] = str(length)
    return RangeFileResponse(
        _open_at(path, start),
        length,
        status_code=206,
        headers=headers,
        media_type=media_type,
        chunk_size=chunk_size,
    )
