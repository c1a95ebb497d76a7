"""In-memory model of remote files and folders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from cloudsync.errors import InvalidArgumentError


class ItemType(str, Enum):
    FILE = "file"
    FOLDER = "folder"


class HashType(str, Enum):
    """Content hash algorithm reported by a backend."""

    SHA1 = "sha1"
    SHA256 = "sha256"
    MD5 = "md5"
    # Dropbox content_hash: SHA-256 over per-4MiB-block SHA-256 digests.
    DROPBOX = "dropbox"
    # Zero-value hash for listed files that carry no content hash.
    NONE = "none"


@dataclass(eq=False)
class CloudItem:
    """
    Base node of the remote item tree.

    Notes:
        - `parent` is set while the item is linked into a folder's children,
          so an item belongs to at most one sibling list.
        - `path` is only filled by backends that address items by path.
    """

    id: str
    name: str
    last_sync_time: Optional[datetime] = None
    path: Optional[str] = None
    parent: Optional["CloudFolder"] = field(default=None, repr=False)

    @property
    def item_type(self) -> ItemType:
        raise NotImplementedError

    @property
    def is_folder(self) -> bool:
        return self.item_type is ItemType.FOLDER


@dataclass(eq=False)
class CloudFile(CloudItem):
    hash_type: HashType = HashType.NONE
    hash_value: str = ""
    download_url: Optional[str] = None

    @property
    def item_type(self) -> ItemType:
        return ItemType.FILE


@dataclass(eq=False)
class CloudFolder(CloudItem):
    children: list[CloudItem] = field(default_factory=list, repr=False)

    @property
    def item_type(self) -> ItemType:
        return ItemType.FOLDER

    def append_child(self, item: CloudItem) -> None:
        """
        Link `item` at the end of this folder's children.

        Raises:
            InvalidArgumentError: if the item is already linked elsewhere or
                linking it would create a cycle.
        """
        if item.parent is not None:
            raise InvalidArgumentError(
                "Item already belongs to a folder",
                details={"item_id": item.id, "parent_id": item.parent.id},
            )
        if isinstance(item, CloudFolder):
            node: Optional[CloudFolder] = self
            while node is not None:
                if node is item:
                    raise InvalidArgumentError(
                        "Folder cannot contain itself",
                        details={"item_id": item.id},
                    )
                node = node.parent

        item.parent = self
        self.children.append(item)

    def extend_children(self, items: Iterable[CloudItem]) -> list[CloudItem]:
        """Append items in order. Returns the appended items."""
        appended: list[CloudItem] = []
        for item in items:
            self.append_child(item)
            appended.append(item)
        return appended

    def remove_child(self, item: CloudItem) -> None:
        self.children.remove(item)
        item.parent = None

    def find_child(self, name: str) -> Optional[CloudItem]:
        for child in self.children:
            if child.name == name:
                return child
        return None

    def files(self) -> list[CloudFile]:
        return [c for c in self.children if isinstance(c, CloudFile)]
