"""
Version control core for twig.

Content-addressed object storage, an immutable commit DAG, a staging area,
working-tree synchronization and three-way merge.
"""

from .errors import (
    TwigError,
    UsageError,
    RepositoryStateError,
    NotInitializedError,
    AlreadyInitializedError,
    CorruptedStateError,
    UnknownReferenceError,
    BranchNotFoundError,
    CommitNotFoundError,
    BlobNotFoundError,
    MessageNotFoundError,
    PreconditionError,
    UncommittedChangesError,
    SelfMergeError,
    AlreadyAncestorError,
    FastForwardableError,
    NothingStagedError,
    EmptyMessageError,
    WorkingFileNotFoundError,
    NothingToRemoveError,
    UntrackedFileWouldBeOverwrittenError,
    BranchExistsError,
    CurrentBranchRemovalError,
    AlreadyOnBranchError,
    FileNotInCommitError,
    PathObstructedError,
    DivergedBranchesError,
)

from .objects import (
    Commit,
    RepositoryState,
    blob_digest,
    commit_digest,
    initial_commit,
    INITIAL_COMMIT_MESSAGE,
    EPOCH_TIMESTAMP,
)

from .storage import VersionStorage
from .staging import StagingArea
from .graph import CommitGraph
from .worktree import WorkingTree, WorkingTreeSync, normalize_path

from .merge import (
    MergeAction,
    MergeEngine,
    MergeResult,
    PathMerge,
    classify_path,
    conflict_content,
    find_split_point,
    plan_merge,
)

from .repository import Repository, StatusReport

__all__ = [
    # Errors
    "TwigError",
    "UsageError",
    "RepositoryStateError",
    "NotInitializedError",
    "AlreadyInitializedError",
    "CorruptedStateError",
    "UnknownReferenceError",
    "BranchNotFoundError",
    "CommitNotFoundError",
    "BlobNotFoundError",
    "MessageNotFoundError",
    "PreconditionError",
    "UncommittedChangesError",
    "SelfMergeError",
    "AlreadyAncestorError",
    "FastForwardableError",
    "NothingStagedError",
    "EmptyMessageError",
    "WorkingFileNotFoundError",
    "NothingToRemoveError",
    "UntrackedFileWouldBeOverwrittenError",
    "BranchExistsError",
    "CurrentBranchRemovalError",
    "AlreadyOnBranchError",
    "FileNotInCommitError",
    "PathObstructedError",
    "DivergedBranchesError",
    # Objects
    "Commit",
    "RepositoryState",
    "blob_digest",
    "commit_digest",
    "initial_commit",
    "INITIAL_COMMIT_MESSAGE",
    "EPOCH_TIMESTAMP",
    # Components
    "VersionStorage",
    "StagingArea",
    "CommitGraph",
    "WorkingTree",
    "WorkingTreeSync",
    "normalize_path",
    # Merge
    "MergeAction",
    "MergeEngine",
    "MergeResult",
    "PathMerge",
    "classify_path",
    "conflict_content",
    "find_split_point",
    "plan_merge",
    # Facade
    "Repository",
    "StatusReport",
]
