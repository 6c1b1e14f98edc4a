# src/source/memory_source.py — v1
"""In-memory tree source.

Used by tests and demos. Supports failure injection: unresolvable
containers and listings that fail after a number of children.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from treescan.source.base_tree_source import (
    BaseTreeSource,
    NodeNotFoundError,
    SourceAccessError,
)
from treescan.source.models import ChildContainer, ContainerInfo, EntityInfo


@dataclass
class _Folder:
    ref_id: str
    name: str
    files: list[EntityInfo] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)


class MemoryTreeSource(BaseTreeSource):
    """Tree held in dicts; insertion order is enumeration order."""

    def __init__(self) -> None:
        self._folders: dict[str, _Folder] = {}
        self.unresolvable: set[str] = set()
        # ref -> number of children listed before the listing raises
        self.failing_listings: dict[str, int] = {}

    # --- Building ---

    def add_folder(self, ref_id: str, name: str, parent: str | None = None) -> str:
        self._folders[ref_id] = _Folder(ref_id=ref_id, name=name)
        if parent is not None:
            self._folders[parent].folders.append(ref_id)
        return ref_id

    def add_file(
        self, parent: str, ref_id: str, name: str, mime_type: str = "",
    ) -> str:
        self._folders[parent].files.append(
            EntityInfo(
                ref_id=ref_id,
                name=name,
                mime_type=mime_type,
                created="2026-01-01 00:00:00",
                modified="2026-01-02 00:00:00",
                url=f"memory://{ref_id}",
            )
        )
        return ref_id

    @classmethod
    def from_dict(cls, tree: dict[str, Any]) -> MemoryTreeSource:
        """Build from {"name": ..., "files": [...], "folders": [{...}]}.

        Reference ids are the slash-joined paths, so the root id is its name.
        """
        source = cls()
        source._load(tree, parent=None, parent_path="")
        return source

    def _load(self, node: dict[str, Any], parent: str | None, parent_path: str) -> None:
        path = f"{parent_path}/{node['name']}" if parent_path else node["name"]
        self.add_folder(path, node["name"], parent)
        for file_name in node.get("files", []):
            self.add_file(path, f"{path}/{file_name}", file_name)
        for child in node.get("folders", []):
            self._load(child, parent=path, parent_path=path)

    # --- BaseTreeSource ---

    async def resolve(self, ref: str) -> ContainerInfo:
        folder = self._folders.get(ref)
        if folder is None or ref in self.unresolvable:
            raise NodeNotFoundError(ref)
        return ContainerInfo(
            ref_id=folder.ref_id,
            name=folder.name,
            created="2026-01-01 00:00:00",
            modified="2026-01-02 00:00:00",
            url=f"memory://{folder.ref_id}",
        )

    async def iter_entities(self, ref: str) -> AsyncIterator[EntityInfo]:
        folder = self._get(ref)
        budget = self.failing_listings.get(ref)
        for i, entity in enumerate(folder.files):
            if budget is not None and i >= budget:
                raise SourceAccessError(f"Listing failed for {ref}")
            yield entity

    async def iter_containers(self, ref: str) -> AsyncIterator[ChildContainer]:
        folder = self._get(ref)
        for child_id in folder.folders:
            yield ChildContainer(ref_id=child_id, name=self._folders[child_id].name)

    def _get(self, ref: str) -> _Folder:
        folder = self._folders.get(ref)
        if folder is None:
            raise NodeNotFoundError(ref)
        return folder
