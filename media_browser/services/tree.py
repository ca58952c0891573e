from __future__ import annotations

import logging
import os
import stat as stat_mod
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)

TreeNode = Union[int, dict]


def display_name(name: str) -> str:
    # undecodable bytes come back from listdir as surrogates, which JSON cannot carry
    return os.fsencode(name).decode('utf-8', 'replace')


def search_terms(query: str) -> list[str]:
    return [term.casefold() for term in query.split()]


def matches_query(rel_path: str, terms) -> bool:
    haystack = rel_path.casefold()
    return all(term in haystack for term in terms)


@dataclass(frozen=True)
class TreeFilter:
    terms: tuple[str, ...] = ()
    extensions: frozenset[str] = frozenset()

    @property
    def active(self) -> bool:
        return bool(self.terms or self.extensions)

    def accepts(self, rel_path: str, name: str) -> bool:
        if self.extensions and os.path.splitext(name)[1].lower() not in self.extensions:
            return False
        return matches_query(rel_path, self.terms)


def build_tree(root: str, tree_filter: TreeFilter | None = None) -> dict[str, dict]:
    """Snapshot ``root`` as ``{basename: {child: size | {...}}}``.

    Only a failure to read ``root`` itself is raised. Entries that cannot be
    stat'ed or listed are left out of the result.
    """
    info = os.stat(root)
    if not stat_mod.S_ISDIR(info.st_mode):
        raise NotADirectoryError(root)

    base = display_name(os.path.basename(os.path.normpath(root)))
    return {base: _build_node(root, '', tree_filter or TreeFilter())}


def _build_node(directory: str, rel_dir: str, tree_filter: TreeFilter) -> dict[str, TreeNode]:
    # byte-wise order, independent of the filesystem's enumeration order
    names = sorted(os.listdir(directory), key=os.fsencode)

    node: dict[str, TreeNode] = {}
    for name in names:
        full = os.path.join(directory, name)
        key = display_name(name)
        rel = f'{rel_dir}/{key}' if rel_dir else key
        try:
            info = os.stat(full)
        except OSError as exc:
            logger.debug('Skipping unreadable entry %s: %s', rel, exc.strerror)
            continue

        if stat_mod.S_ISDIR(info.st_mode):
            try:
                child = _build_node(full, rel, tree_filter)
            except OSError as exc:
                logger.debug('Skipping unreadable directory %s: %s', rel, exc.strerror)
                continue
            if tree_filter.active and not child:
                continue
            node[key] = child
        elif tree_filter.accepts(rel, key):
            node[key] = info.st_size
    return node
