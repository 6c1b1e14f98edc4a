# src/source/base_tree_source.py — v1
"""Abstract hierarchical store accessor.

Containers are addressed by an opaque reference. Child listings are async
iterators so callers can check a deadline between children.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from treescan.source.models import ChildContainer, ContainerInfo, EntityInfo


class SourceAccessError(Exception):
    """A source operation failed (permissions, transport, ...)."""


class NodeNotFoundError(SourceAccessError):
    """The referenced container does not exist or is not accessible."""

    def __init__(self, ref: str) -> None:
        self.ref = ref
        super().__init__(f"Container not found or inaccessible: {ref}")


class BaseTreeSource(ABC):
    """Unified interface for tree sources (local filesystem, memory, ...)."""

    @abstractmethod
    async def resolve(self, ref: str) -> ContainerInfo:
        """Resolve a container reference.

        Raises:
            NodeNotFoundError: If the container cannot be resolved.
        """

    @abstractmethod
    def iter_entities(self, ref: str) -> AsyncIterator[EntityInfo]:
        """Yield the leaf entities directly inside a container."""

    @abstractmethod
    def iter_containers(self, ref: str) -> AsyncIterator[ChildContainer]:
        """Yield the child containers directly inside a container."""
