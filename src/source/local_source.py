# src/source/local_source.py — v1
"""Local filesystem tree source.

References are absolute directory paths. Entities and child containers are
listed in name order; symlinked directories are listed as entities, never
descended into, so a link loop cannot grow the queue forever. Entries that
cannot be inspected (permission denied, vanished) are skipped and the rest
of the listing continues.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from collections.abc import AsyncIterator, Iterator
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISDIR

from treescan.source.base_tree_source import (
    BaseTreeSource,
    NodeNotFoundError,
    SourceAccessError,
)
from treescan.source.models import ChildContainer, ContainerInfo, EntityInfo

logger = logging.getLogger(__name__)

# System junk never reported
JUNK_FILES = {".DS_Store", "Thumbs.db", "desktop.ini"}

FOLDER_MIME = "inode/directory"


def _timestamp(epoch: float) -> str:
    return datetime.fromtimestamp(epoch, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class LocalTreeSource(BaseTreeSource):
    """Walk directories on the local filesystem."""

    def __init__(self, skip_hidden: bool = False) -> None:
        self._skip_hidden = skip_hidden

    async def resolve(self, ref: str) -> ContainerInfo:
        """Resolve a directory path."""
        path = Path(ref).expanduser()
        try:
            if not path.is_dir():
                raise NodeNotFoundError(ref)
            stat = path.stat()
        except OSError as e:
            raise NodeNotFoundError(ref) from e
        return ContainerInfo(
            ref_id=str(path.absolute()),
            name=path.absolute().name or str(path.absolute()),
            created=_timestamp(stat.st_ctime),
            modified=_timestamp(stat.st_mtime),
            url=path.absolute().as_uri(),
        )

    async def iter_entities(self, ref: str) -> AsyncIterator[EntityInfo]:
        """Yield files (and symlinked directories) inside a directory."""
        for child, stat, is_container in self._entries(ref):
            if is_container:
                continue
            mime, _ = mimetypes.guess_type(child.name)
            yield EntityInfo(
                ref_id=str(child),
                name=child.name,
                mime_type=FOLDER_MIME if S_ISDIR(stat.st_mode) else (mime or ""),
                created=_timestamp(stat.st_ctime),
                modified=_timestamp(stat.st_mtime),
                url=child.as_uri(),
            )

    async def iter_containers(self, ref: str) -> AsyncIterator[ChildContainer]:
        """Yield real (non-symlink) subdirectories."""
        for child, _, is_container in self._entries(ref):
            if is_container:
                yield ChildContainer(ref_id=str(child), name=child.name)

    def _entries(self, ref: str) -> Iterator[tuple[Path, os.stat_result, bool]]:
        """Listed children with their stat and whether each is a real directory."""
        for child in self._list_dir(ref):
            try:
                stat = child.stat()
                is_container = S_ISDIR(stat.st_mode) and not child.is_symlink()
            except FileNotFoundError as e:
                # Dangling symlink or vanished entry
                logger.debug("Skipping unreadable entry %s: %s", child, e)
                continue
            except OSError as e:
                logger.warning("Skipping entry %s that cannot be inspected: %s", child, e)
                continue
            yield child, stat, is_container

    def _list_dir(self, ref: str) -> list[Path]:
        path = Path(ref).expanduser().absolute()
        try:
            children = sorted(path.iterdir(), key=lambda p: p.name)
        except FileNotFoundError as e:
            raise NodeNotFoundError(ref) from e
        except OSError as e:
            raise SourceAccessError(f"Cannot list {ref}: {e}") from e
        return [
            c for c in children
            if c.name not in JUNK_FILES
            and not (self._skip_hidden and c.name.startswith("."))
        ]
