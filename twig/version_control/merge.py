"""
Three-way merge between branch tips.

Locates the split point of two commits in the DAG, classifies every path in
the union of the three tracked mappings, and applies the result to the
working tree and staging area before recording a two-parent commit.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional, Tuple

from loguru import logger

from .errors import (
    AlreadyAncestorError,
    BranchNotFoundError,
    DivergedBranchesError,
    FastForwardableError,
    SelfMergeError,
    UncommittedChangesError,
)
from .graph import CommitGraph
from .objects import Commit, initial_commit
from .staging import StagingArea
from .storage import VersionStorage
from .worktree import WorkingTreeSync

log = logger.bind(component="merge")

CONFLICT_START = b"<<<<<<< HEAD\n"
CONFLICT_SEPARATOR = b"=======\n"
CONFLICT_END = b">>>>>>>\n"


class MergeAction(str, Enum):
    """Outcome of merging one path."""

    KEEP = "keep"
    TAKE_GIVEN = "take_given"
    REMOVE = "remove"
    CONFLICT = "conflict"


@dataclass
class PathMerge:
    """Classification of a single path, with the digest each side holds."""

    path: str
    action: MergeAction
    split: Optional[str]
    current: Optional[str]
    given: Optional[str]


@dataclass
class MergeResult:
    """A completed merge: the new commit and any conflicted paths."""

    commit: Commit
    split_point: str
    conflicts: List[str] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)


def modified(base: Mapping[str, str], branch: Mapping[str, str], path: str) -> bool:
    """Whether ``branch`` differs from ``base`` at ``path`` (absence counts)."""
    return base.get(path) != branch.get(path)


def classify_path(
    split: Optional[str], current: Optional[str], given: Optional[str]
) -> MergeAction:
    """
    Decide how to merge one path from its split, current and given digests.

    None means the path is absent on that side.
    """
    current_changed = split != current
    given_changed = split != given

    if not given_changed:
        return MergeAction.KEEP
    if not current_changed:
        return MergeAction.REMOVE if given is None else MergeAction.TAKE_GIVEN
    if current == given:
        return MergeAction.KEEP
    return MergeAction.CONFLICT


def plan_merge(
    split: Mapping[str, str],
    current: Mapping[str, str],
    given: Mapping[str, str],
) -> List[PathMerge]:
    """Classify every path in the union of the three tracked mappings."""
    paths = set(split) | set(current) | set(given)
    plan = []
    for path in sorted(paths):
        s, c, g = split.get(path), current.get(path), given.get(path)
        plan.append(PathMerge(path, classify_path(s, c, g), s, c, g))
    return plan


def conflict_content(current: Optional[bytes], given: Optional[bytes]) -> bytes:
    """Build the conflict-marked file body; absent sides contribute nothing."""
    return (
        CONFLICT_START
        + (current or b"")
        + CONFLICT_SEPARATOR
        + (given or b"")
        + CONFLICT_END
    )


def find_split_point(graph: CommitGraph, current: str, given: str) -> str:
    """
    Find the nearest common ancestor of two commits.

    Computes breadth-first distances from both tips over the full ancestor
    DAG and picks the common ancestor with the smallest combined distance,
    breaking ties by digest. Falls back to the initial commit when the tips
    share no ancestor.
    """
    current_distances = graph.ancestor_distances(current)
    given_distances = graph.ancestor_distances(given)

    common = current_distances.keys() & given_distances.keys()
    if not common:
        return initial_commit().digest

    return min(common, key=lambda d: (current_distances[d] + given_distances[d], d))


class MergeEngine:
    """Runs a merge of another branch into the current branch."""

    def __init__(
        self,
        graph: CommitGraph,
        staging: StagingArea,
        sync: WorkingTreeSync,
        storage: VersionStorage,
    ):
        self.graph = graph
        self.staging = staging
        self.sync = sync
        self.storage = storage

    def merge(self, branch_name: str) -> MergeResult:
        """
        Merge ``branch_name`` into the current branch.

        Conflicts do not abort the merge: conflicted files are written with
        markers, staged, and reported in the result.

        Raises:
            BranchNotFoundError: If the branch does not exist
            SelfMergeError: If it is the current branch
            UncommittedChangesError: If the staging area is not empty
            FastForwardableError: If the current head is an ancestor of it
            AlreadyAncestorError: If it is an ancestor of the current head
            UntrackedFileWouldBeOverwrittenError: If an untracked file is in the way
            PathObstructedError: If a directory or file blocks a written path
        """
        current, given, split_digest = self._prepare(branch_name)

        if split_digest == current.digest:
            raise FastForwardableError()
        if split_digest == given.digest:
            raise AlreadyAncestorError()

        split = self.graph.get(split_digest)
        plan = plan_merge(split.tracked, current.tracked, given.tracked)
        log.debug(
            "Merging {} from split point {}",
            branch_name,
            split_digest[:8],
            paths=len(plan),
        )

        writes = [
            entry.path
            for entry in plan
            if entry.action in (MergeAction.TAKE_GIVEN, MergeAction.CONFLICT)
        ]
        removes = [entry.path for entry in plan if entry.action == MergeAction.REMOVE]
        self.sync.safety_check(given, writes, removing=removes)

        conflicts = self._apply(plan, given)

        message = f"Merged {branch_name} into {self.graph.current_branch}."
        commit = self.graph.merge_commit(message, given, self.staging)

        if conflicts:
            log.warning(
                "Encountered a merge conflict.", conflicts=conflicts, commit=commit.digest
            )
        return MergeResult(commit=commit, split_point=split_digest, conflicts=conflicts)

    def fast_forward(self, branch_name: str) -> Commit:
        """
        Advance the current branch to the tip of ``branch_name``.

        Only valid when the current head is an ancestor of that tip. No
        commit is created; the working tree is replaced with the tip's files.

        Raises:
            BranchNotFoundError: If the branch does not exist
            SelfMergeError: If it is the current branch
            UncommittedChangesError: If the staging area is not empty
            AlreadyAncestorError: If it is an ancestor of the current head
            DivergedBranchesError: If the branches have diverged
            UntrackedFileWouldBeOverwrittenError: If an untracked file is in the way
            PathObstructedError: If a directory or file blocks a written path
        """
        current, given, split_digest = self._prepare(branch_name)

        if split_digest == given.digest:
            raise AlreadyAncestorError()
        if split_digest != current.digest:
            raise DivergedBranchesError()

        self.sync.fast_forward(given)
        log.info(
            "Fast-forwarded {} to {}", self.graph.current_branch, given.digest[:8]
        )
        return given

    def _prepare(self, branch_name: str) -> Tuple[Commit, Commit, str]:
        self._validate(branch_name)
        current = self.graph.head_commit()
        given = self.graph.branch_tip(branch_name)
        return current, given, find_split_point(self.graph, current.digest, given.digest)

    def _validate(self, branch_name: str) -> None:
        if not self.graph.has_branch(branch_name):
            raise BranchNotFoundError()
        if branch_name == self.graph.current_branch:
            raise SelfMergeError()
        if not self.staging.is_empty():
            raise UncommittedChangesError()

    def _apply(self, plan: List[PathMerge], given: Commit) -> List[str]:
        worktree = self.sync.worktree
        # Removals first, so a file can take the place of a removed directory
        for entry in plan:
            if entry.action == MergeAction.REMOVE:
                assert entry.current is not None
                worktree.delete(entry.path)
                self.staging.record_remove(entry.path, entry.current)

        conflicts = []
        for entry in plan:
            if entry.action == MergeAction.TAKE_GIVEN:
                assert entry.given is not None
                self.sync.materialize(given, [entry.path])
                self.staging.record_add(entry.path, entry.given)
            elif entry.action == MergeAction.CONFLICT:
                content = conflict_content(
                    self.storage.get(entry.current) if entry.current else None,
                    self.storage.get(entry.given) if entry.given else None,
                )
                digest = self.storage.put(content)
                worktree.write_bytes(entry.path, content)
                self.staging.record_add(entry.path, digest)
                conflicts.append(entry.path)
        return conflicts
