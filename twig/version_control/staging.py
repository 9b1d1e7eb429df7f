"""
Staging area for version control.

Records pending additions and removals layered on top of the head commit's
tracked mapping. The staging area is applied and cleared by the next commit.
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

from loguru import logger

from .errors import NothingToRemoveError
from .objects import Commit, blob_digest

if TYPE_CHECKING:
    from .storage import VersionStorage
    from .worktree import WorkingTree

log = logger.bind(component="staging")


class StagingArea:
    """
    Pending change set for the next commit.

    Attributes:
        to_add: Mapping from path to the digest of its staged content
        to_remove: Mapping from path to the head digest being removed

    A path is never present in both mappings at once.
    """

    def __init__(
        self,
        to_add: Optional[Dict[str, str]] = None,
        to_remove: Optional[Dict[str, str]] = None,
    ):
        self.to_add: Dict[str, str] = dict(to_add or {})
        self.to_remove: Dict[str, str] = dict(to_remove or {})

    def stage_add(
        self, path: str, content: bytes, head: Commit, store: "VersionStorage"
    ) -> Optional[str]:
        """
        Stage the working-tree content of a path.

        If the head commit already tracks identical content, the path is
        unstaged on both sides instead. Otherwise the content is stored as a
        blob and staged for addition.

        Args:
            path: Working-tree path
            content: Current bytes of the file
            head: Head commit
            store: Object store receiving the blob

        Returns:
            Digest of the staged blob, or None if nothing needed staging
        """
        digest = blob_digest(content)
        if head.tracked.get(path) == digest:
            self.to_add.pop(path, None)
            self.to_remove.pop(path, None)
            log.debug(f"{path} matches head; nothing staged")
            return None

        store.put(content)
        self.record_add(path, digest)
        log.debug("Staged {}", path, digest=digest[:8])
        return digest

    def stage_remove(self, path: str, head: Commit, worktree: "WorkingTree") -> None:
        """
        Unstage a pending addition, or stage removal of a tracked path.

        A path tracked by head is deleted from the working tree (if present)
        and recorded for removal.

        Raises:
            NothingToRemoveError: If the path is neither staged nor tracked
        """
        if path in self.to_add:
            del self.to_add[path]
            log.debug(f"Unstaged {path}")
        elif path in head.tracked:
            if worktree.exists(path):
                worktree.delete(path)
            self.record_remove(path, head.tracked[path])
            log.debug(f"Staged removal of {path}")
        else:
            raise NothingToRemoveError()

    def record_add(self, path: str, digest: str) -> None:
        self.to_remove.pop(path, None)
        self.to_add[path] = digest

    def record_remove(self, path: str, digest: str) -> None:
        self.to_add.pop(path, None)
        self.to_remove[path] = digest

    def clear(self) -> None:
        """Empty both sides of the staging area."""
        self.to_add = {}
        self.to_remove = {}

    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove

    def contains_add(self, path: str) -> bool:
        return path in self.to_add

    def contains_remove(self, path: str) -> bool:
        return path in self.to_remove

    def to_dict(self) -> Dict[str, Any]:
        """Convert staging area to dictionary for serialization."""
        return {
            "to_add": dict(sorted(self.to_add.items())),
            "to_remove": dict(sorted(self.to_remove.items())),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "StagingArea":
        """Create staging area from dictionary (None yields an empty one)."""
        if not data:
            return cls()
        return cls(to_add=data.get("to_add"), to_remove=data.get("to_remove"))

    def __repr__(self) -> str:
        return f"StagingArea(to_add={self.to_add!r}, to_remove={self.to_remove!r})"
