# src/scan/row_builder.py — v1
"""Build ResultRows from source records."""

from __future__ import annotations

from treescan.core.models import QueueNode, ResultRow
from treescan.core.schema import join_path, split_extension
from treescan.source.models import ContainerInfo, EntityInfo


def parent_of(path: str) -> str:
    return path.rsplit("/", 1)[0] if "/" in path else ""


def file_row(entity: EntityInfo, node: QueueNode) -> ResultRow:
    """Row for a leaf entity found while expanding node."""
    return ResultRow(
        kind="file",
        ref_id=entity.ref_id,
        name=entity.name,
        path=join_path(node.path, entity.name),
        parent_path=node.path,
        depth=node.depth + 1,
        mime_type=entity.mime_type,
        extension=split_extension(entity.name),
        created=entity.created,
        modified=entity.modified,
        url=entity.url,
    )


def folder_row(
    info: ContainerInfo,
    node: QueueNode,
    file_count: int | None = None,
    folder_count: int | None = None,
) -> ResultRow:
    """Row for the container being expanded."""
    return ResultRow(
        kind="folder",
        ref_id=info.ref_id,
        name=info.name,
        path=node.path,
        parent_path=parent_of(node.path),
        depth=node.depth,
        created=info.created,
        modified=info.modified,
        url=info.url,
        file_count=file_count,
        folder_count=folder_count,
    )
