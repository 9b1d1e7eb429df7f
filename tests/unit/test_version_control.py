"""
Unit tests for the Repository facade.

Tests init/open, staging, commits, history queries, status, checkout,
branches and reset through the public operations.
"""

import tempfile
from pathlib import Path
from typing import Callable

import pytest

from twig.config import Config
from twig.version_control import (
    AlreadyInitializedError,
    BranchNotFoundError,
    CommitNotFoundError,
    EmptyMessageError,
    FileNotInCommitError,
    MessageNotFoundError,
    NotInitializedError,
    NothingStagedError,
    NothingToRemoveError,
    Repository,
    UsageError,
    WorkingFileNotFoundError,
    initial_commit,
)


class TestRepositoryLifecycle:
    """Tests for creating, opening and saving repositories."""

    def test_init_creates_initial_commit(self) -> None:
        """Test a new repository has one commit on master."""
        with tempfile.TemporaryDirectory() as tmpdir:
            repo = Repository.init(Path(tmpdir), Config())

            assert repo.current_branch == "master"
            assert repo.list_branches() == ["master"]
            assert repo.head == initial_commit()
            assert repo.staging.is_empty()
            assert (Path(tmpdir) / ".twig").is_dir()

    def test_init_twice(self) -> None:
        """Test init refuses an existing repository."""
        with tempfile.TemporaryDirectory() as tmpdir:
            Repository.init(Path(tmpdir), Config())
            with pytest.raises(AlreadyInitializedError):
                Repository.init(Path(tmpdir), Config())

    def test_open_without_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(NotInitializedError):
                Repository.open(Path(tmpdir), Config())

    def test_state_persists_across_sessions(
        self, tmp_path: Path, config: Config, write_file: Callable
    ) -> None:
        """Test branches and staging survive reopening."""
        with Repository.init(tmp_path, config) as repo:
            write_file("a.txt", "a")
            repo.add("a.txt")
            repo.commit("add a")
            repo.branch("dev")
            write_file("b.txt", "b")
            repo.add("b.txt")

        reopened = Repository.open(tmp_path, config)
        assert reopened.list_branches() == ["dev", "master"]
        assert reopened.head.message == "add a"
        assert reopened.staging.to_add.keys() == {"b.txt"}

    def test_failed_operation_saves_nothing(
        self, tmp_path: Path, config: Config, write_file: Callable
    ) -> None:
        """Test a session that raises leaves the persisted state alone."""
        Repository.init(tmp_path, config)
        write_file("a.txt", "a")

        with pytest.raises(NothingStagedError):
            with Repository.open(tmp_path, config) as repo:
                repo.add("a.txt")
                repo.commit("add a")
                repo.commit("nothing left")

        reopened = Repository.open(tmp_path, config)
        assert reopened.head == initial_commit()
        assert reopened.staging.is_empty()


class TestStagingOperations:
    """Tests for add and remove."""

    def test_add_missing_file(self, repo: Repository) -> None:
        with pytest.raises(WorkingFileNotFoundError):
            repo.add("missing.txt")

    def test_add_returns_digest(self, repo: Repository, write_file: Callable) -> None:
        write_file("a.txt", "a")
        digest = repo.add("a.txt")
        assert digest is not None
        assert repo.staging.to_add == {"a.txt": digest}

    def test_add_rejects_escaping_path(self, repo: Repository) -> None:
        with pytest.raises(UsageError):
            repo.add("../outside.txt")

    def test_remove_unknown(self, repo: Repository) -> None:
        with pytest.raises(NothingToRemoveError):
            repo.remove("nope.txt")

    def test_remove_then_commit(self, repo: Repository, write_file: Callable) -> None:
        """Test a staged removal drops the path from the next commit."""
        write_file("a.txt", "a")
        repo.add("a.txt")
        repo.commit("add a")

        repo.remove("a.txt")
        commit = repo.commit("remove a")
        assert "a.txt" not in commit.tracked
        assert not (repo.root / "a.txt").exists()


class TestCommitOperations:
    """Tests for commit, log, global_log and find."""

    def test_commit_requires_message(self, repo: Repository, write_file: Callable) -> None:
        write_file("a.txt", "a")
        repo.add("a.txt")
        with pytest.raises(EmptyMessageError):
            repo.commit("")

    def test_commit_requires_changes(self, repo: Repository) -> None:
        with pytest.raises(NothingStagedError):
            repo.commit("empty")

    def test_commit_leaves_working_tree_alone(
        self, repo: Repository, write_file: Callable
    ) -> None:
        """Test later edits to a committed file do not change the commit."""
        write_file("a.txt", "v1")
        repo.add("a.txt")
        commit = repo.commit("v1")
        write_file("a.txt", "v2")

        assert repo.storage.get(commit.tracked["a.txt"]) == b"v1"

    def test_log_follows_first_parents(
        self, repo: Repository, write_file: Callable
    ) -> None:
        write_file("a.txt", "1")
        repo.add("a.txt")
        repo.commit("one")
        write_file("a.txt", "2")
        repo.add("a.txt")
        repo.commit("two")

        assert [c.message for c in repo.log()] == ["two", "one", "initial commit"]

    def test_global_log_includes_other_branches(
        self, repo: Repository, write_file: Callable
    ) -> None:
        """Test commits on every branch, including deleted ones, are listed."""
        repo.branch("side")
        repo.checkout_branch("side")
        write_file("s.txt", "s")
        repo.add("s.txt")
        side = repo.commit("side work")
        repo.checkout_branch("master")
        repo.remove_branch("side")

        digests = [c.digest for c in repo.global_log()]
        assert side.digest in digests
        assert initial_commit().digest in digests
        assert digests == sorted(digests)

    def test_find(self, repo: Repository, write_file: Callable) -> None:
        """Test every commit with the exact message is found."""
        write_file("a.txt", "1")
        repo.add("a.txt")
        first = repo.commit("same")
        write_file("a.txt", "2")
        repo.add("a.txt")
        second = repo.commit("same")

        assert sorted(repo.find("same")) == sorted([first.digest, second.digest])
        with pytest.raises(MessageNotFoundError):
            repo.find("sam")


class TestStatus:
    """Tests for status reporting."""

    def test_clean_repository(self, repo: Repository) -> None:
        report = repo.status()
        assert report.current_branch == "master"
        assert report.branches == ["master"]
        assert report.is_clean()

    def test_staged_removed_and_untracked(
        self, repo: Repository, write_file: Callable
    ) -> None:
        write_file("tracked.txt", "t")
        repo.add("tracked.txt")
        repo.commit("track")

        write_file("staged.txt", "s")
        repo.add("staged.txt")
        repo.remove("tracked.txt")
        write_file("loose.txt", "l")

        report = repo.status()
        assert report.staged == ["staged.txt"]
        assert report.removed == ["tracked.txt"]
        assert report.untracked == ["loose.txt"]
        assert report.modified == {}

    def test_unstaged_modifications(self, repo: Repository, write_file: Callable) -> None:
        """Test tracked and staged files that drifted from their recorded content."""
        write_file("edited.txt", "v1")
        write_file("gone.txt", "g")
        repo.add("edited.txt")
        repo.add("gone.txt")
        repo.commit("base")

        write_file("edited.txt", "v2")
        (repo.root / "gone.txt").unlink()
        write_file("staged.txt", "s1")
        repo.add("staged.txt")
        write_file("staged.txt", "s2")

        report = repo.status()
        assert report.modified == {
            "edited.txt": "modified",
            "gone.txt": "deleted",
            "staged.txt": "modified",
        }

    def test_removed_file_recreated_is_untracked(
        self, repo: Repository, write_file: Callable
    ) -> None:
        write_file("a.txt", "a")
        repo.add("a.txt")
        repo.commit("add a")
        repo.remove("a.txt")
        write_file("a.txt", "back")

        report = repo.status()
        assert report.removed == ["a.txt"]
        assert report.untracked == ["a.txt"]


class TestCheckoutAndBranches:
    """Tests for checkout, branch, remove_branch and reset."""

    def test_checkout_file_from_head(self, repo: Repository, write_file: Callable) -> None:
        write_file("a.txt", "v1")
        repo.add("a.txt")
        repo.commit("v1")
        write_file("a.txt", "scratch")

        repo.checkout_file("a.txt")
        assert (repo.root / "a.txt").read_text() == "v1"

    def test_checkout_file_from_commit_prefix(
        self, repo: Repository, write_file: Callable
    ) -> None:
        write_file("a.txt", "v1")
        repo.add("a.txt")
        first = repo.commit("v1")
        write_file("a.txt", "v2")
        repo.add("a.txt")
        repo.commit("v2")

        repo.checkout_commit_file(first.digest[:8], "a.txt")
        assert (repo.root / "a.txt").read_text() == "v1"
        assert repo.staging.is_empty()

    def test_checkout_file_unknown_commit(self, repo: Repository) -> None:
        with pytest.raises(CommitNotFoundError):
            repo.checkout_commit_file("deadbeef", "a.txt")

    def test_checkout_file_not_in_commit(self, repo: Repository) -> None:
        with pytest.raises(FileNotInCommitError):
            repo.checkout_file("a.txt")

    def test_branch_and_checkout(self, repo: Repository, write_file: Callable) -> None:
        repo.branch("dev")
        assert repo.current_branch == "master"

        repo.checkout_branch("dev")
        write_file("dev.txt", "d")
        repo.add("dev.txt")
        dev_commit = repo.commit("dev work")

        assert repo.graph.branch_tip("dev") == dev_commit
        assert repo.graph.branch_tip("master") == initial_commit()

    def test_remove_unknown_branch(self, repo: Repository) -> None:
        with pytest.raises(BranchNotFoundError):
            repo.remove_branch("nope")

    def test_empty_branch_name(self, repo: Repository) -> None:
        with pytest.raises(UsageError):
            repo.branch("")

    def test_reset_by_prefix(self, repo: Repository, write_file: Callable) -> None:
        """Test reset moves the branch and restores tracked files."""
        write_file("a.txt", "v1")
        repo.add("a.txt")
        first = repo.commit("v1")
        write_file("a.txt", "v2")
        write_file("b.txt", "b")
        repo.add("a.txt")
        repo.add("b.txt")
        repo.commit("v2")

        assert repo.reset(first.digest[:10]) == first
        assert repo.head == first
        assert (repo.root / "a.txt").read_text() == "v1"
        assert [c.message for c in repo.log()] == ["v1", "initial commit"]

    def test_reset_unknown_commit(self, repo: Repository) -> None:
        with pytest.raises(CommitNotFoundError):
            repo.reset("0" * 40)

    def test_reset_rejects_path_like_id(self, repo: Repository) -> None:
        """Test an id naming a metadata file is reported as an unknown commit."""
        with pytest.raises(CommitNotFoundError):
            repo.reset("../state")
        assert repo.head == initial_commit()
