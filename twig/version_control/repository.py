"""
Repository facade for the version control core.

Provides git-like operations over a working tree: staging, committing,
history queries, branching, checkout, reset and merge.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from twig.config import Config, config as default_config
from twig.logging import track_operation

from .errors import (
    AlreadyInitializedError,
    MessageNotFoundError,
    UsageError,
    WorkingFileNotFoundError,
)
from .graph import CommitGraph
from .merge import MergeEngine, MergeResult
from .objects import Commit, RepositoryState, blob_digest, initial_commit
from .staging import StagingArea
from .storage import VersionStorage
from .worktree import WorkingTree, WorkingTreeSync, normalize_path

log = logger.bind(component="repository")


@dataclass
class StatusReport:
    """Snapshot of branches, staged changes and working-tree drift."""

    current_branch: str
    branches: List[str]
    staged: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    modified: Dict[str, str] = field(default_factory=dict)
    untracked: List[str] = field(default_factory=list)

    def is_clean(self) -> bool:
        return not (self.staged or self.removed or self.modified or self.untracked)


def _require(value: Any, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise UsageError(f"A {what} is required.")
    return value


class Repository:
    """
    A working tree plus its version history.

    State is loaded once when the repository is opened, mutated in memory by
    each operation, and written back by ``save()``. Used as a context manager
    it saves on a clean exit and persists nothing if the block raises.

    Example:
        >>> with Repository.init(Path("project")) as repo:
        ...     repo.add("notes.txt")
        ...     repo.commit("Add notes")
    """

    def __init__(self, root: Path = Path("."), config: Optional[Config] = None):
        """
        Open an existing repository.

        Args:
            root: Working-tree root
            config: Configuration (default: the environment-derived config)

        Raises:
            NotInitializedError: If no repository exists at root
        """
        self.config = config or default_config
        self.root = Path(root)
        self.storage = VersionStorage(self.config.storage.repo_path(self.root))

        state = self.storage.load_state()
        self.staging = StagingArea.from_dict(self.storage.load_staging())
        self.worktree = WorkingTree(self.root, ignore=(self.config.storage.repo_dir,))
        self.graph = CommitGraph(self.storage, state)
        self.sync = WorkingTreeSync(self.worktree, self.storage, self.graph, self.staging)
        self.merger = MergeEngine(self.graph, self.staging, self.sync, self.storage)

    @classmethod
    def init(cls, root: Path = Path("."), config: Optional[Config] = None) -> "Repository":
        """
        Create a repository with the initial commit on the default branch.

        Raises:
            AlreadyInitializedError: If a repository already exists at root
        """
        config = config or default_config
        storage = VersionStorage(config.storage.repo_path(Path(root)))
        if storage.base_dir.exists():
            raise AlreadyInitializedError()

        storage.create()
        first = initial_commit()
        storage.put_commit(first)

        branch = config.storage.default_branch
        storage.save_state(RepositoryState(branch, {branch: first.digest}))
        storage.save_staging(StagingArea().to_dict())

        log.info(f"Initialized repository at {storage.base_dir}")
        return cls(root, config)

    @classmethod
    def open(cls, root: Path = Path("."), config: Optional[Config] = None) -> "Repository":
        return cls(root, config)

    def save(self) -> None:
        """Persist the branch table and staging area."""
        self.storage.save_state(self.graph.state)
        self.storage.save_staging(self.staging.to_dict())

    def __enter__(self) -> "Repository":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if exc_type is None:
            self.save()

    # Accessors

    @property
    def head(self) -> Commit:
        return self.graph.head_commit()

    @property
    def current_branch(self) -> str:
        return self.graph.current_branch

    def list_branches(self) -> List[str]:
        return self.graph.list_branches()

    # Staging

    @track_operation("add")
    def add(self, path: str) -> Optional[str]:
        """
        Stage a working file for the next commit.

        Returns:
            Digest of the staged content, or None if it matches head

        Raises:
            WorkingFileNotFoundError: If the file does not exist
        """
        path = normalize_path(path)
        if not self.worktree.exists(path):
            raise WorkingFileNotFoundError()
        content = self.worktree.read_bytes(path)
        return self.staging.stage_add(path, content, self.head, self.storage)

    @track_operation("remove")
    def remove(self, path: str) -> None:
        """Unstage a file, or stage a tracked file for removal and delete it."""
        self.staging.stage_remove(normalize_path(path), self.head, self.worktree)

    @track_operation("commit")
    def commit(self, message: str) -> Commit:
        """Record the staged changes as a new commit on the current branch."""
        if not isinstance(message, str):
            raise UsageError("A commit message is required.")
        return self.graph.commit(message, self.staging)

    # History

    @track_operation("log")
    def log(self) -> List[Commit]:
        """Commits from head back to the initial commit along primary parents."""
        return list(self.graph.iter_mainline())

    @track_operation("global_log")
    def global_log(self) -> List[Commit]:
        """Every commit ever made, in digest order."""
        return [self.graph.get(digest) for digest in self.storage.list_commits()]

    @track_operation("find")
    def find(self, message: str) -> List[str]:
        """
        Digests of all commits whose message is exactly ``message``.

        Raises:
            MessageNotFoundError: If there are none
        """
        _require(message, "commit message")
        matches = [c.digest for c in self.global_log() if c.message == message]
        if not matches:
            raise MessageNotFoundError()
        return matches

    @track_operation("status")
    def status(self) -> StatusReport:
        """Report branches, staged changes, unstaged modifications and untracked files."""
        head = self.head
        files = set(self.worktree.list_files())
        to_add = self.staging.to_add
        to_remove = self.staging.to_remove

        modified: Dict[str, str] = {}
        for path, digest in to_add.items():
            if path not in files:
                modified[path] = "deleted"
            elif self._digest_of(path) != digest:
                modified[path] = "modified"

        for path, digest in head.tracked.items():
            if path in to_add or path in to_remove:
                continue
            if path not in files:
                modified[path] = "deleted"
            elif self._digest_of(path) != digest:
                modified[path] = "modified"

        untracked = sorted(
            path
            for path in files
            if (path not in to_add and path not in head.tracked) or path in to_remove
        )

        return StatusReport(
            current_branch=self.current_branch,
            branches=self.list_branches(),
            staged=sorted(to_add),
            removed=sorted(to_remove),
            modified=dict(sorted(modified.items())),
            untracked=untracked,
        )

    def _digest_of(self, path: str) -> str:
        return blob_digest(self.worktree.read_bytes(path))

    # Checkout

    @track_operation("checkout_file")
    def checkout_file(self, path: str) -> None:
        """Restore a file from the head commit without staging it."""
        self.sync.checkout_path(self.head, normalize_path(path))

    @track_operation("checkout_commit_file")
    def checkout_commit_file(self, commit_id: str, path: str) -> None:
        """Restore a file from the commit with the given id or unique prefix."""
        _require(commit_id, "commit id")
        commit = self.graph.resolve(commit_id)
        self.sync.checkout_path(commit, normalize_path(path))

    @track_operation("checkout_branch")
    def checkout_branch(self, name: str) -> Commit:
        """Switch to a branch, replacing the working tree with its tip."""
        return self.sync.checkout_branch(_require(name, "branch name"))

    # Branches

    @track_operation("branch")
    def branch(self, name: str) -> None:
        """Create a branch at head without switching to it."""
        self.graph.create_branch(_require(name, "branch name"))

    @track_operation("remove_branch")
    def remove_branch(self, name: str) -> None:
        """Delete a branch pointer."""
        self.graph.remove_branch(_require(name, "branch name"))

    @track_operation("merge")
    def merge(self, name: str) -> MergeResult:
        """Merge the given branch into the current branch."""
        return self.merger.merge(_require(name, "branch name"))

    @track_operation("fast_forward")
    def fast_forward(self, name: str) -> Commit:
        """
        Move the current branch ahead to the tip of a descendant branch.

        Used when ``merge`` reports the given branch is fast-forwardable.
        """
        return self.merger.fast_forward(_require(name, "branch name"))

    @track_operation("reset")
    def reset(self, commit_id: str) -> Commit:
        """
        Check out every file of a commit and move the current branch to it.

        Accepts a full digest or a unique prefix.
        """
        _require(commit_id, "commit id")
        commit = self.graph.resolve(commit_id)
        self.sync.reset(commit)
        return commit
