"""
Working-tree access and synchronization.

``WorkingTree`` is the narrow filesystem interface the core reads and writes
files through. ``WorkingTreeSync`` materializes commits into it and guards
checkout, reset and merge against clobbering untracked files and against
files and directories standing where the other kind must go.
"""

from pathlib import Path, PurePosixPath
from typing import AbstractSet, Iterable, List, Optional, Sequence

from loguru import logger

from .errors import (
    AlreadyOnBranchError,
    BranchNotFoundError,
    FileNotInCommitError,
    PathObstructedError,
    UntrackedFileWouldBeOverwrittenError,
    UsageError,
)
from .graph import CommitGraph
from .objects import Commit, blob_digest
from .staging import StagingArea
from .storage import VersionStorage

log = logger.bind(component="worktree")


def normalize_path(path: str) -> str:
    """
    Normalize a working-tree path to the relative POSIX form used as a key.

    Raises:
        UsageError: If the path is empty, absolute or escapes the tree
    """
    if not path:
        raise UsageError("A file name is required.")
    pure = PurePosixPath(str(path).replace("\\", "/"))
    if pure.is_absolute() or ".." in pure.parts:
        raise UsageError(f"Path must stay inside the working tree: {path}")
    normalized = pure.as_posix()
    if normalized in ("", "."):
        raise UsageError("A file name is required.")
    return normalized


class WorkingTree:
    """
    Filesystem primitives for the files under a repository root.

    Paths are relative POSIX strings. The repository metadata directory is
    never listed or touched. Directories are implicit: they are created when
    a file is written below them and pruned once their last file is deleted.
    """

    def __init__(self, root: Path, ignore: Sequence[str] = (".twig",)):
        self.root = Path(root)
        self.ignore = tuple(ignore)

    def _resolve(self, path: str) -> Path:
        normalized = normalize_path(path)
        if normalized.split("/", 1)[0] in self.ignore:
            raise UsageError(f"Cannot operate on repository metadata: {path}")
        return self.root / normalized

    def exists(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def is_dir(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def read_bytes(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def write_bytes(self, path: str, content: bytes) -> None:
        """
        Write a file, creating parent directories as needed.

        A directory holding no files at ``path`` is replaced by the file.
        """
        target = self._resolve(path)
        if target.is_dir():
            self._remove_empty_tree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

    def delete(self, path: str) -> None:
        """Delete a file, then any parent directories it leaves empty."""
        target = self._resolve(path)
        if target.is_file():
            target.unlink()
            self._prune(target.parent)

    def list_files(self, under: Optional[str] = None) -> List[str]:
        """
        All regular files below the root (or below ``under``), as sorted
        paths relative to the root.
        """
        base = self._resolve(under) if under else self.root
        files = []
        for entry in base.rglob("*"):
            relative = entry.relative_to(self.root)
            if relative.parts[0] in self.ignore or not entry.is_file():
                continue
            files.append(relative.as_posix())
        return sorted(files)

    def _prune(self, directory: Path) -> None:
        while directory != self.root and not any(directory.iterdir()):
            directory.rmdir()
            directory = directory.parent

    @staticmethod
    def _remove_empty_tree(directory: Path) -> None:
        # Deepest first; rmdir refuses to remove anything still holding a file
        subdirs = sorted((p for p in directory.rglob("*") if p.is_dir()), reverse=True)
        for subdir in subdirs:
            subdir.rmdir()
        directory.rmdir()


class WorkingTreeSync:
    """
    Moves commit contents into the working tree.

    Every operation that overwrites working files runs ``safety_check`` to
    completion before touching the filesystem, so a refused operation leaves
    the tree unchanged.
    """

    def __init__(
        self,
        worktree: WorkingTree,
        storage: VersionStorage,
        graph: CommitGraph,
        staging: StagingArea,
    ):
        self.worktree = worktree
        self.storage = storage
        self.graph = graph
        self.staging = staging

    def materialize(self, commit: Commit, paths: Optional[Iterable[str]] = None) -> None:
        """Write the commit's version of each path (default: all tracked)."""
        for path in sorted(paths if paths is not None else commit.tracked):
            self.worktree.write_bytes(path, self.storage.get(commit.tracked[path]))
        log.debug(f"Materialized {commit.digest[:8]}")

    def is_untracked(self, path: str, head: Optional[Commit] = None) -> bool:
        """A working file neither staged for addition nor tracked by head."""
        head = head or self.graph.head_commit()
        return (
            self.worktree.exists(path)
            and not self.staging.contains_add(path)
            and path not in head.tracked
        )

    def obstruction(
        self, path: str, removing: AbstractSet[str] = frozenset()
    ) -> Optional[str]:
        """
        Find what would stop ``path`` from being written as a file.

        A directory at ``path`` is in the way unless every file inside it is
        about to be removed. A file at one of its parent paths is in the way
        unless it is about to be removed.

        Returns:
            The blocking working-tree path, or None
        """
        if self.worktree.is_dir(path):
            if any(f not in removing for f in self.worktree.list_files(path)):
                return path
            return None
        for parent in PurePosixPath(path).parents:
            name = parent.as_posix()
            if name != "." and self.worktree.exists(name) and name not in removing:
                return name
        return None

    def safety_check(
        self,
        target: Commit,
        paths: Optional[Iterable[str]] = None,
        exempt_matching: bool = False,
        removing: Iterable[str] = (),
    ) -> None:
        """
        Refuse to overwrite untracked working files or obstructing paths.

        Args:
            target: Commit whose files are about to be written
            paths: Paths to check (default: everything ``target`` tracks)
            exempt_matching: Allow untracked files whose bytes already equal
                the target's version
            removing: Paths the operation deletes before writing

        Raises:
            PathObstructedError: If a directory or file blocks a path
            UntrackedFileWouldBeOverwrittenError: For the first offending path
        """
        head = self.graph.head_commit()
        removed = frozenset(removing)
        for path in sorted(paths if paths is not None else target.tracked):
            blocker = self.obstruction(path, removed)
            if blocker is not None:
                log.warning("Path in the way of {}: {}", path, blocker)
                raise PathObstructedError(blocker)
            if not self.is_untracked(path, head):
                continue
            if exempt_matching and path in target.tracked:
                current = blob_digest(self.worktree.read_bytes(path))
                if current == target.tracked[path]:
                    continue
            log.warning("Untracked file in the way: {}", path)
            raise UntrackedFileWouldBeOverwrittenError(path)

    def checkout_path(self, commit: Commit, path: str) -> None:
        """
        Restore one path from ``commit``. The staging area is not altered.

        Raises:
            FileNotInCommitError: If the commit does not track the path
        """
        if path not in commit.tracked:
            raise FileNotInCommitError()
        self.safety_check(commit, [path])
        self.materialize(commit, [path])
        log.info(f"Checked out {path} from {commit.digest[:8]}")

    def checkout_branch(self, name: str) -> Commit:
        """
        Replace the working tree with a branch's tip and switch to it.

        Paths tracked by head or staged for addition but absent from the
        target are deleted; the staging area is cleared.

        Raises:
            BranchNotFoundError: If the branch does not exist
            AlreadyOnBranchError: If it is the current branch
            UntrackedFileWouldBeOverwrittenError: If an untracked file is in the way
            PathObstructedError: If a directory or file blocks a target path
        """
        if not self.graph.has_branch(name):
            raise BranchNotFoundError("No such branch exists.")
        if name == self.graph.current_branch:
            raise AlreadyOnBranchError()

        target = self.graph.branch_tip(name)
        self._replace_tree(target)
        self.graph.switch_branch(name)
        return target

    def fast_forward(self, commit: Commit) -> None:
        """
        Move the current branch ahead to a descendant ``commit``, replacing
        the working tree with its files exactly as a branch checkout would.
        """
        self._replace_tree(commit)
        self.graph.move_current_branch(commit.digest)

    def reset(self, commit: Commit) -> None:
        """
        Restore every file tracked by ``commit`` and move the current branch
        to it. Files the commit does not track are left alone.
        """
        self.safety_check(commit, exempt_matching=True)
        self.materialize(commit)
        self.staging.clear()
        self.graph.move_current_branch(commit.digest)

    def _replace_tree(self, target: Commit) -> None:
        head = self.graph.head_commit()
        stale = (set(head.tracked) | set(self.staging.to_add)) - set(target.tracked)
        self.safety_check(target, removing=stale)

        for path in sorted(stale):
            self.worktree.delete(path)
        self.materialize(target)
        self.staging.clear()
