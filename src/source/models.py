# src/source/models.py — v1
"""Records returned by hierarchical tree sources."""

from __future__ import annotations

from pydantic import BaseModel


class ContainerInfo(BaseModel):
    """A resolved container (folder)."""

    ref_id: str
    name: str
    created: str = ""
    modified: str = ""
    url: str = ""


class EntityInfo(BaseModel):
    """A leaf entity (file) inside a container."""

    ref_id: str
    name: str
    mime_type: str = ""
    created: str = ""
    modified: str = ""
    url: str = ""


class ChildContainer(BaseModel):
    """A container listed as a child of another container."""

    ref_id: str
    name: str
