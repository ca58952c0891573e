from __future__ import annotations

import os
from pathlib import Path

from .errors import ConfinementError, NotFoundError, StorageError, ValidationError
from .paths import ensure_confined, relative_posix, validate_path
from .streaming import COPY_BUFFER_SIZE, RangeFileResponse, stream_file
from .tree import TreeFilter, build_tree, search_terms

_FORBIDDEN_CHARS = ('/', '\\', '\x00')


class MediaLibrary:
    def __init__(self, root: str, extensions: frozenset[str] = frozenset(), chunk_size: int = COPY_BUFFER_SIZE):
        self.root = Path(os.path.abspath(root))
        self.extensions = extensions
        self.chunk_size = chunk_size

    def safe_path(self, rel: str) -> Path:
        return validate_path(rel, self.root)

    def tree(self, search: str = '') -> dict[str, dict]:
        tree_filter = TreeFilter(terms=tuple(search_terms(search)), extensions=self.extensions)
        return build_tree(str(self.root), tree_filter)

    def stream(self, rel: str, range_header: str | None) -> RangeFileResponse:
        return stream_file(self.safe_path(rel), range_header, self.chunk_size)

    def rename(self, rel: str, new_name: str) -> str:
        """Rename the file at ``rel`` to ``new_name`` in the same directory.

        Returns the new location relative to the root, slash separated.
        """
        if not rel or not new_name:
            raise ValidationError('path and new_name required')
        if any(sep in new_name for sep in _FORBIDDEN_CHARS) or new_name in ('.', '..'):
            raise ValidationError('new_name must be filename only')

        source = self.safe_path(rel)
        try:
            source.stat()
        except OSError as exc:
            raise NotFoundError('File not found') from exc

        try:
            target = ensure_confined(source.parent / new_name, self.root)
        except ConfinementError as exc:
            raise ValidationError('invalid new name') from exc

        try:
            os.rename(source, target)
        except OSError as exc:
            raise StorageError('rename failed') from exc
        return relative_posix(target, self.root)
