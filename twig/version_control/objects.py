"""
Object model for version control.

Defines commits, the persisted repository state, and the digest functions
that give blobs and commits their content-derived identities.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import hashlib
import json

from .errors import CorruptedStateError

INITIAL_COMMIT_MESSAGE = "initial commit"
EPOCH_TIMESTAMP = datetime(1970, 1, 1, tzinfo=timezone.utc).isoformat()


def blob_digest(content: bytes) -> str:
    """Compute the digest identifying a blob's bytes."""
    return hashlib.sha1(content).hexdigest()


def commit_digest(
    message: str,
    timestamp: str,
    tracked: Mapping[str, str],
    parent: Optional[str],
    merge_parent: Optional[str] = None,
) -> str:
    """
    Compute the digest identifying a commit.

    The fields are hashed through a canonical JSON encoding so that field
    boundaries are unambiguous and the tracked mapping is order-independent.
    """
    payload = json.dumps(
        [message, timestamp, dict(tracked), parent or "", merge_parent or ""],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def _frozen_mapping(items: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(sorted(items.items())))


@dataclass(frozen=True)
class Commit:
    """
    Immutable snapshot node in the commit DAG.

    Attributes:
        message: Commit message
        timestamp: ISO-8601 UTC creation time
        tracked: Read-only mapping from path to blob digest
        parent: Digest of the primary parent (None for the initial commit)
        merge_parent: Digest of the second parent of a merge commit
        digest: Self-identifying hash over all other fields
    """

    message: str
    timestamp: str
    tracked: Mapping[str, str]
    parent: Optional[str]
    merge_parent: Optional[str]
    digest: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "tracked", _frozen_mapping(self.tracked))

    @classmethod
    def create(
        cls,
        message: str,
        parent: "Commit",
        to_add: Mapping[str, str],
        to_remove: Iterable[str],
        merge_parent: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> "Commit":
        """
        Build a child commit of ``parent``.

        The tracked mapping is the parent's mapping overlaid with ``to_add``
        and then stripped of every path in ``to_remove``.
        """
        tracked = dict(parent.tracked)
        tracked.update(to_add)
        for path in to_remove:
            tracked.pop(path, None)

        timestamp = timestamp or datetime.now(timezone.utc).isoformat()
        digest = commit_digest(message, timestamp, tracked, parent.digest, merge_parent)
        return cls(
            message=message,
            timestamp=timestamp,
            tracked=tracked,
            parent=parent.digest,
            merge_parent=merge_parent,
            digest=digest,
        )

    @property
    def parents(self) -> Tuple[str, ...]:
        """Digests of all parents, primary first."""
        return tuple(p for p in (self.parent, self.merge_parent) if p)

    @property
    def is_merge(self) -> bool:
        return self.merge_parent is not None

    def verify(self) -> bool:
        """Check that the stored digest matches the commit's fields."""
        expected = commit_digest(
            self.message, self.timestamp, self.tracked, self.parent, self.merge_parent
        )
        return expected == self.digest

    def to_dict(self) -> Dict[str, Any]:
        """Convert commit to dictionary for serialization."""
        return {
            "digest": self.digest,
            "message": self.message,
            "timestamp": self.timestamp,
            "tracked": dict(self.tracked),
            "parent": self.parent,
            "merge_parent": self.merge_parent,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Commit":
        """Create commit from dictionary."""
        return cls(
            message=data["message"],
            timestamp=data["timestamp"],
            tracked=data.get("tracked", {}),
            parent=data.get("parent"),
            merge_parent=data.get("merge_parent"),
            digest=data["digest"],
        )

    def to_json(self) -> str:
        """Convert commit to JSON string."""
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)

    @classmethod
    def from_json(cls, json_str: str) -> "Commit":
        """Create commit from JSON string."""
        return cls.from_dict(json.loads(json_str))


def initial_commit() -> Commit:
    """The root commit shared by every repository."""
    return Commit(
        message=INITIAL_COMMIT_MESSAGE,
        timestamp=EPOCH_TIMESTAMP,
        tracked={},
        parent=None,
        merge_parent=None,
        digest=commit_digest(INITIAL_COMMIT_MESSAGE, EPOCH_TIMESTAMP, {}, None),
    )


@dataclass
class RepositoryState:
    """
    Branch table plus the current-branch pointer.

    ``head`` is derived from the branch table, so it always equals
    ``branches[current_branch]``.
    """

    current_branch: str
    branches: Dict[str, str] = field(default_factory=dict)

    @property
    def head(self) -> str:
        return self.branches[self.current_branch]

    def to_dict(self) -> Dict[str, Any]:
        """Convert state to dictionary for serialization."""
        return {
            "head": self.head,
            "current_branch": self.current_branch,
            "branches": dict(sorted(self.branches.items())),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryState":
        """Create state from dictionary, checking the head invariant."""
        try:
            state = cls(
                current_branch=data["current_branch"],
                branches=dict(data["branches"]),
            )
            head = state.head
        except (KeyError, TypeError) as e:
            raise CorruptedStateError(f"Malformed repository state: {e}") from e

        if data.get("head", head) != head:
            raise CorruptedStateError(
                f"Head {data['head']} does not match branch "
                f"'{state.current_branch}' at {head}"
            )
        return state
