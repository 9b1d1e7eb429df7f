"""
Commit graph for version control.

Creates commits, tracks branch tips and walks the commit DAG.
"""

from collections import deque
from typing import Dict, Iterator, List, Optional

from loguru import logger

from .errors import (
    BranchExistsError,
    BranchNotFoundError,
    CurrentBranchRemovalError,
    EmptyMessageError,
    NothingStagedError,
)
from .objects import Commit, RepositoryState
from .staging import StagingArea
from .storage import VersionStorage

log = logger.bind(component="graph")


class CommitGraph:
    """
    Immutable commits linked by parent digests, plus the branch table.

    Commits are resolved lazily through the object store; a small in-memory
    cache avoids re-reading records during a single invocation.
    """

    def __init__(self, storage: VersionStorage, state: RepositoryState):
        self.storage = storage
        self.state = state
        self._cache: Dict[str, Commit] = {}

    # Lookup

    def get(self, digest: str) -> Commit:
        """Load a commit by full digest."""
        commit = self._cache.get(digest)
        if commit is None:
            commit = self.storage.get_commit(digest)
            self._cache[digest] = commit
        return commit

    def resolve(self, commit_id: str) -> Commit:
        """Load a commit by full digest or unique digest prefix."""
        return self.get(self.storage.resolve_commit_id(commit_id))

    @property
    def head(self) -> str:
        return self.state.head

    @property
    def current_branch(self) -> str:
        return self.state.current_branch

    def head_commit(self) -> Commit:
        return self.get(self.state.head)

    def branch_tip(self, name: str) -> Commit:
        """
        Get the tip commit of a branch.

        Raises:
            BranchNotFoundError: If the branch does not exist
        """
        if name not in self.state.branches:
            raise BranchNotFoundError()
        return self.get(self.state.branches[name])

    def has_branch(self, name: str) -> bool:
        return name in self.state.branches

    def list_branches(self) -> List[str]:
        return sorted(self.state.branches)

    # Commit creation

    def commit(self, message: str, staged: StagingArea) -> Commit:
        """
        Commit the staged changes on top of head.

        Advances the current branch and head to the new commit and clears the
        staging area.

        Raises:
            EmptyMessageError: If message is empty
            NothingStagedError: If nothing is staged
        """
        return self._commit(message, staged, merge_parent=None)

    def merge_commit(
        self, message: str, merge_parent: Commit, staged: StagingArea
    ) -> Commit:
        """
        Like ``commit`` but records ``merge_parent`` as the second parent.

        A merge commit is recorded even when the merge staged nothing, since
        the second parent is itself the change.
        """
        return self._commit(message, staged, merge_parent=merge_parent)

    def _commit(
        self, message: str, staged: StagingArea, merge_parent: Optional[Commit]
    ) -> Commit:
        if not message:
            raise EmptyMessageError()
        if staged.is_empty() and merge_parent is None:
            raise NothingStagedError()

        commit = Commit.create(
            message=message,
            parent=self.head_commit(),
            to_add=staged.to_add,
            to_remove=staged.to_remove,
            merge_parent=merge_parent.digest if merge_parent else None,
        )
        self.storage.put_commit(commit)
        self._cache[commit.digest] = commit

        self.state.branches[self.state.current_branch] = commit.digest
        staged.clear()

        log.info(
            "Committed {}: {}",
            commit.digest[:8],
            message,
            commit_id=commit.digest,
            branch=self.state.current_branch,
            merge=commit.is_merge,
        )
        return commit

    # Traversal

    def iter_mainline(self, digest: Optional[str] = None) -> Iterator[Commit]:
        """Walk primary-parent links from ``digest`` (default: head)."""
        current: Optional[str] = digest or self.state.head
        while current:
            commit = self.get(current)
            yield commit
            current = commit.parent

    def ancestor_distances(self, digest: str) -> Dict[str, int]:
        """
        Breadth-first distances from ``digest`` to every ancestor.

        Both parent links are followed; the commit itself has distance 0.
        """
        distances = {digest: 0}
        queue = deque([digest])
        while queue:
            current = queue.popleft()
            for parent in self.get(current).parents:
                if parent not in distances:
                    distances[parent] = distances[current] + 1
                    queue.append(parent)
        return distances

    # Branch table

    def create_branch(self, name: str) -> None:
        """
        Create a branch pointing at head. Does not switch to it.

        Raises:
            BranchExistsError: If the name is taken
        """
        if name in self.state.branches:
            raise BranchExistsError()
        self.state.branches[name] = self.state.head
        log.info(f"Created branch: {name} at {self.state.head[:8]}")

    def remove_branch(self, name: str) -> None:
        """
        Delete a branch pointer. Commits are never deleted.

        Raises:
            BranchNotFoundError: If the branch does not exist
            CurrentBranchRemovalError: If it is the current branch
        """
        if name not in self.state.branches:
            raise BranchNotFoundError()
        if name == self.state.current_branch:
            raise CurrentBranchRemovalError()
        del self.state.branches[name]
        log.info(f"Removed branch: {name}")

    def switch_branch(self, name: str) -> None:
        if name not in self.state.branches:
            raise BranchNotFoundError()
        self.state.current_branch = name
        log.info(f"Switched to branch: {name}")

    def move_current_branch(self, digest: str) -> None:
        """Point the current branch (and thereby head) at ``digest``."""
        self.state.branches[self.state.current_branch] = digest
        log.info(
            "Moved {} to {}",
            self.state.current_branch,
            digest[:8],
            branch=self.state.current_branch,
        )
