"""
Storage backend for version control.

Handles persistence of blobs, commits, the branch table and the staging area.
"""

import json
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, IO

from loguru import logger

from .errors import (
    BlobNotFoundError,
    CommitNotFoundError,
    CorruptedStateError,
    NotInitializedError,
)
from .objects import Commit, RepositoryState, blob_digest

log = logger.bind(component="storage")

COMMIT_ID_PATTERN = re.compile(r"[0-9a-f]{1,40}")


class VersionStorage:
    """
    File-based, content-addressed storage for a repository.

    Layout:
    - .twig/
      - blobs/
        - {digest}          (raw file bytes)
      - commits/
        - {digest}.json     (serialized commit)
      - state.json          (current branch, head, branch table)
      - staging.json        (pending additions and removals)

    Blobs and commits are append-only: a digest that is already present is
    never rewritten. State and staging files are replaced atomically.
    """

    def __init__(self, base_dir: Path):
        """
        Initialize storage.

        Args:
            base_dir: Repository metadata directory (e.g. ``<root>/.twig``)
        """
        self.base_dir = Path(base_dir)
        self.blobs_dir = self.base_dir / "blobs"
        self.commits_dir = self.base_dir / "commits"
        self.state_file = self.base_dir / "state.json"
        self.staging_file = self.base_dir / "staging.json"

    def exists(self) -> bool:
        """Whether a repository has been initialized here."""
        return self.state_file.exists()

    def create(self) -> None:
        """Create the directory structure for a new repository."""
        self.blobs_dir.mkdir(parents=True, exist_ok=True)
        self.commits_dir.mkdir(parents=True, exist_ok=True)

    # Blobs

    def put(self, content: bytes) -> str:
        """
        Store blob content.

        Args:
            content: Raw bytes

        Returns:
            Digest of the content; identical bytes always yield the same digest
            and are stored once.
        """
        digest = blob_digest(content)
        blob_file = self.blobs_dir / digest
        if not blob_file.exists():
            with self._atomic_write(blob_file, "wb") as f:
                f.write(content)
            log.debug(f"Stored blob {digest[:8]}", size=len(content))
        return digest

    def get(self, digest: str) -> bytes:
        """
        Load blob content.

        Raises:
            BlobNotFoundError: If no blob with that digest is stored
        """
        blob_file = self.blobs_dir / digest
        if not blob_file.is_file():
            raise BlobNotFoundError(f"No blob with digest {digest} exists.")
        return blob_file.read_bytes()

    # Commits

    def put_commit(self, commit: Commit) -> str:
        """
        Save a commit, keyed by its own digest.

        Returns:
            The commit's digest
        """
        commit_file = self._commit_file(commit.digest)
        if not commit_file.exists():
            with self._atomic_write(commit_file, "w") as f:
                f.write(commit.to_json())
            log.debug(f"Stored commit {commit.digest[:8]}", message=commit.message)
        return commit.digest

    def get_commit(self, digest: str) -> Commit:
        """
        Load a commit from storage.

        Raises:
            CommitNotFoundError: If the commit is absent
            CorruptedStateError: If the stored record does not match its digest
        """
        commit_file = self._commit_file(digest)
        if not commit_file.is_file():
            raise CommitNotFoundError()

        try:
            commit = Commit.from_json(commit_file.read_text(encoding="utf-8"))
        except (ValueError, KeyError) as e:
            raise CorruptedStateError(f"Unreadable commit {digest}: {e}") from e

        if commit.digest != digest or not commit.verify():
            raise CorruptedStateError(f"Commit {digest} does not match its digest")
        return commit

    def has_commit(self, digest: str) -> bool:
        return self._commit_file(digest).is_file()

    def list_commits(self) -> List[str]:
        """
        List all commit digests.

        Returns:
            Digests of every stored commit, sorted
        """
        return sorted(f.stem for f in self.commits_dir.glob("*.json"))

    def resolve_commit_id(self, commit_id: str) -> str:
        """
        Resolve a full digest or a unique digest prefix.

        Raises:
            CommitNotFoundError: If the id is not lowercase hex, or the prefix
                is unmatched or ambiguous
        """
        if not COMMIT_ID_PATTERN.fullmatch(commit_id or ""):
            raise CommitNotFoundError()
        if self.has_commit(commit_id):
            return commit_id

        matches = [d for d in self.list_commits() if d.startswith(commit_id)]
        if len(matches) != 1:
            if len(matches) > 1:
                log.debug("Ambiguous commit prefix {}", commit_id, matches=len(matches))
            raise CommitNotFoundError()
        return matches[0]

    # Repository state and staging

    def save_state(self, state: RepositoryState) -> None:
        """Persist the branch table and current branch."""
        self._write_json(self.state_file, state.to_dict())

    def load_state(self) -> RepositoryState:
        """
        Load the branch table and current branch.

        Raises:
            NotInitializedError: If no state file exists
        """
        if not self.state_file.exists():
            raise NotInitializedError()
        return RepositoryState.from_dict(self._read_json(self.state_file))

    def save_staging(self, data: Dict[str, Any]) -> None:
        """Persist the serialized staging area."""
        self._write_json(self.staging_file, data)

    def load_staging(self) -> Optional[Dict[str, Any]]:
        """Load the serialized staging area, or None if none was saved."""
        if not self.staging_file.exists():
            return None
        return self._read_json(self.staging_file)

    def _commit_file(self, digest: str) -> Path:
        return self.commits_dir / f"{digest}.json"

    def _write_json(self, filepath: Path, data: Dict[str, Any]) -> None:
        with self._atomic_write(filepath, "w") as f:
            json.dump(data, f, indent=2, sort_keys=True)

    def _read_json(self, filepath: Path) -> Dict[str, Any]:
        try:
            with open(filepath, "r", encoding="utf-8") as f:
                return json.load(f)
        except ValueError as e:
            raise CorruptedStateError(f"Unreadable {filepath.name}: {e}") from e

    @contextmanager
    def _atomic_write(self, filepath: Path, mode: str) -> Iterator[IO[Any]]:
        """
        Context manager for atomic file write operations.

        Writes to a temporary file in the same directory, then renames it
        over the target so readers never observe a partial file.

        Args:
            filepath: Target file path
            mode: "w" for text or "wb" for bytes

        Yields:
            File object for writing
        """
        temp_fd, temp_path = tempfile.mkstemp(
            dir=filepath.parent, prefix=f".{filepath.name}.", suffix=".tmp"
        )
        try:
            if "b" in mode:
                with os.fdopen(temp_fd, mode) as f:
                    yield f
            else:
                with os.fdopen(temp_fd, mode, encoding="utf-8") as f:
                    yield f
            os.replace(temp_path, filepath)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
