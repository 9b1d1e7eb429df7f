"""
Exception hierarchy for the version control core.

Every failure carries a stable ``kind`` identifier plus a human-readable
message. Errors are grouped into four categories: usage, repository state,
unknown references and unmet preconditions.
"""

from typing import Optional


class TwigError(Exception):
    """Base exception for version control errors."""

    kind = "error"
    default_message = "Version control error."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class UsageError(TwigError):
    """Raised when arguments have the wrong shape."""

    kind = "usage"
    default_message = "Incorrect operands."


# Repository state


class RepositoryStateError(TwigError):
    """Base exception for repository presence/consistency problems."""

    kind = "repository_state"


class NotInitializedError(RepositoryStateError):
    kind = "not_initialized"
    default_message = "Not in an initialized twig directory."


class AlreadyInitializedError(RepositoryStateError):
    kind = "already_initialized"
    default_message = (
        "A twig version-control system already exists in the current directory."
    )


class CorruptedStateError(RepositoryStateError):
    """Raised when a persisted state or staging file cannot be decoded."""

    kind = "corrupted_state"
    default_message = "Repository state is corrupted."


# Unknown references


class UnknownReferenceError(TwigError):
    """Base exception for lookups of branches, commits or blobs that fail."""

    kind = "unknown_reference"


class BranchNotFoundError(UnknownReferenceError):
    kind = "branch_not_found"
    default_message = "A branch with that name does not exist."


class CommitNotFoundError(UnknownReferenceError):
    kind = "commit_not_found"
    default_message = "No commit with that id exists."


class BlobNotFoundError(UnknownReferenceError):
    kind = "blob_not_found"
    default_message = "No blob with that digest exists."


class MessageNotFoundError(UnknownReferenceError):
    kind = "message_not_found"
    default_message = "Found no commit with that message."


# Preconditions


class PreconditionError(TwigError):
    """Base exception for operations refused in the current state."""

    kind = "precondition"


class UncommittedChangesError(PreconditionError):
    kind = "uncommitted_changes"
    default_message = "You have uncommitted changes."


class SelfMergeError(PreconditionError):
    kind = "self_merge"
    default_message = "Cannot merge a branch with itself."


class AlreadyAncestorError(PreconditionError):
    kind = "already_ancestor"
    default_message = "Given branch is an ancestor of the current branch."


class FastForwardableError(PreconditionError):
    kind = "fast_forwardable"
    default_message = (
        "Current branch is an ancestor of the given branch; check it out instead."
    )


class NothingStagedError(PreconditionError):
    kind = "nothing_staged"
    default_message = "No changes added to the commit."


class EmptyMessageError(PreconditionError):
    kind = "empty_message"
    default_message = "Please enter a commit message."


class WorkingFileNotFoundError(PreconditionError):
    kind = "file_not_found"
    default_message = "File does not exist."


class NothingToRemoveError(PreconditionError):
    kind = "nothing_to_remove"
    default_message = "No reason to remove the file."


class UntrackedFileWouldBeOverwrittenError(PreconditionError):
    kind = "untracked_file_would_be_overwritten"
    default_message = (
        "There is an untracked file in the way; delete it, or add and commit it first."
    )

    def __init__(self, path: Optional[str] = None, message: Optional[str] = None):
        self.path = path
        super().__init__(message)


class BranchExistsError(PreconditionError):
    kind = "branch_exists"
    default_message = "A branch with that name already exists."


class CurrentBranchRemovalError(PreconditionError):
    kind = "current_branch_removal"
    default_message = "Cannot remove the current branch."


class AlreadyOnBranchError(PreconditionError):
    kind = "already_on_branch"
    default_message = "No need to checkout the current branch."


class FileNotInCommitError(PreconditionError):
    kind = "file_not_in_commit"
    default_message = "File does not exist in that commit."


class PathObstructedError(PreconditionError):
    """Raised when a directory or file blocks a path that must be written."""

    kind = "path_obstructed"
    default_message = (
        "A file or directory is in the way; move it or clear it out first."
    )

    def __init__(self, path: Optional[str] = None, message: Optional[str] = None):
        self.path = path
        super().__init__(message)


class DivergedBranchesError(PreconditionError):
    kind = "diverged_branches"
    default_message = "Current branch cannot be fast-forwarded; merge instead."
