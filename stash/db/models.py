"""Dataclass models representing DB rows.

These are plain Python objects, not ORM models.  The DB layer serialises /
deserialises to and from these types.

``archived_at`` and ``deleted_at`` are stored as two nullable timestamps but
callers should reason about :attr:`lifecycle` and move between states with
the transition helpers, which return new instances.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional, TypeVar

from stash.errors import LifecycleError


class ResourceType(str, Enum):
    LINK = "link"
    GITHUB = "github"
    DOCUMENT = "document"
    IMAGE = "image"
    ARTICLE = "article"

    @property
    def label(self) -> str:
        return TYPE_LABELS[self]


TYPE_LABELS: dict[ResourceType, str] = {
    ResourceType.LINK: "Link",
    ResourceType.GITHUB: "GitHub",
    ResourceType.DOCUMENT: "Document",
    ResourceType.IMAGE: "Image",
    ResourceType.ARTICLE: "Article",
}


class Lifecycle(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    DELETED = "deleted"


_T = TypeVar("_T", bound="_Lifecycled")


class _Lifecycled:
    """Archive / soft-delete transitions shared by resources and folders."""

    created_at: int
    archived_at: Optional[int]
    deleted_at: Optional[int]

    @property
    def lifecycle(self) -> Lifecycle:
        # Soft delete is orthogonal to archive; a deleted row reads as deleted.
        if self.deleted_at is not None:
            return Lifecycle.DELETED
        if self.archived_at is not None:
            return Lifecycle.ARCHIVED
        return Lifecycle.ACTIVE

    def _check_timestamp(self, at: int) -> None:
        if at < self.created_at:
            raise LifecycleError(
                f"Timestamp {at} is earlier than creation time {self.created_at}"
            )

    def archive(self: _T, at: int) -> _T:
        if self.archived_at is not None:
            raise LifecycleError("Already archived")
        self._check_timestamp(at)
        return replace(self, archived_at=at)  # type: ignore[type-var]

    def unarchive(self: _T) -> _T:
        if self.archived_at is None:
            raise LifecycleError("Not archived")
        return replace(self, archived_at=None)  # type: ignore[type-var]

    def soft_delete(self: _T, at: int) -> _T:
        if self.deleted_at is not None:
            raise LifecycleError("Already deleted")
        self._check_timestamp(at)
        return replace(self, deleted_at=at)  # type: ignore[type-var]

    def restore(self: _T) -> _T:
        if self.deleted_at is None:
            raise LifecycleError("Not deleted")
        return replace(self, deleted_at=None)  # type: ignore[type-var]


@dataclass
class Resource(_Lifecycled):
    id: str
    user_id: str
    type: ResourceType
    title: str
    created_at: int
    updated_at: int
    description: Optional[str] = None
    url: Optional[str] = None
    storage_path: Optional[str] = None
    file_name: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    folder_id: Optional[str] = None
    position: int = 0
    archived_at: Optional[int] = None
    deleted_at: Optional[int] = None


@dataclass
class Folder(_Lifecycled):
    id: str
    user_id: str
    name: str
    resource_type: ResourceType
    created_at: int
    updated_at: int
    parent_id: Optional[str] = None
    color: str = "#6366f1"
    icon: Optional[str] = None
    position: int = 0
    archived_at: Optional[int] = None
    deleted_at: Optional[int] = None


@dataclass
class FolderTreeNode:
    folder: Folder
    children: list[FolderTreeNode] = field(default_factory=list)
    resources: list[Resource] = field(default_factory=list)
