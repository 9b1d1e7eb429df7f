"""
Unit tests for CommitGraph.

Tests commit creation, branch table maintenance and DAG traversal.
"""

from pathlib import Path

import pytest

from twig.version_control import (
    BranchExistsError,
    BranchNotFoundError,
    CommitGraph,
    CurrentBranchRemovalError,
    EmptyMessageError,
    NothingStagedError,
    RepositoryState,
    StagingArea,
    VersionStorage,
    initial_commit,
)


@pytest.fixture
def graph(tmp_path: Path) -> CommitGraph:
    storage = VersionStorage(tmp_path / ".twig")
    storage.create()
    first = initial_commit()
    storage.put_commit(first)
    return CommitGraph(storage, RepositoryState("master", {"master": first.digest}))


def staged(**files: str) -> StagingArea:
    return StagingArea(to_add=dict(files))


class TestCommitCreation:
    """Tests for commit and merge_commit."""

    def test_commit_advances_branch(self, graph: CommitGraph) -> None:
        """Test commit moves the current branch and clears staging."""
        staging = staged(a="d1")
        commit = graph.commit("first", staging)

        assert graph.head == commit.digest
        assert graph.state.branches["master"] == commit.digest
        assert commit.parent == initial_commit().digest
        assert dict(commit.tracked) == {"a": "d1"}
        assert staging.is_empty()

    def test_commit_is_persisted(self, graph: CommitGraph) -> None:
        """Test the new commit is readable from storage."""
        commit = graph.commit("first", staged(a="d1"))
        assert graph.storage.get_commit(commit.digest) == commit

    def test_commit_applies_removals(self, graph: CommitGraph) -> None:
        """Test staged removals drop paths from the child mapping."""
        graph.commit("first", staged(a="d1", b="d2"))
        staging = StagingArea(to_remove={"a": "d1"})
        commit = graph.commit("second", staging)
        assert dict(commit.tracked) == {"b": "d2"}

    def test_empty_message(self, graph: CommitGraph) -> None:
        """Test empty message is rejected before staging is checked."""
        with pytest.raises(EmptyMessageError):
            graph.commit("", StagingArea())

    def test_nothing_staged(self, graph: CommitGraph) -> None:
        """Test plain commit with empty staging."""
        with pytest.raises(NothingStagedError):
            graph.commit("nothing", StagingArea())
        assert graph.head == initial_commit().digest

    def test_merge_commit_allows_empty_staging(self, graph: CommitGraph) -> None:
        """Test merge commit records the second parent even with no changes."""
        other = graph.commit("other", staged(a="d1"))
        graph.create_branch("side")
        graph.move_current_branch(initial_commit().digest)

        merged = graph.merge_commit("Merged side into master.", other, StagingArea())
        assert merged.parent == initial_commit().digest
        assert merged.merge_parent == other.digest


class TestTraversal:
    """Tests for mainline and ancestor walks."""

    def test_iter_mainline(self, graph: CommitGraph) -> None:
        """Test walking first parents back to the initial commit."""
        first = graph.commit("one", staged(a="1"))
        second = graph.commit("two", staged(a="2"))

        messages = [c.message for c in graph.iter_mainline()]
        assert messages == ["two", "one", "initial commit"]
        assert [c.digest for c in graph.iter_mainline(first.digest)] == [
            first.digest,
            initial_commit().digest,
        ]
        assert second.parent == first.digest

    def test_ancestor_distances_follow_both_parents(self, graph: CommitGraph) -> None:
        """Test distances include merge-parent ancestry."""
        root = initial_commit().digest
        left = graph.commit("left", staged(a="1"))

        graph.create_branch("right")
        graph.switch_branch("right")
        graph.move_current_branch(root)
        right = graph.commit("right", staged(b="1"))

        merged = graph.merge_commit("merge", left, staged(a="1"))
        distances = graph.ancestor_distances(merged.digest)

        assert distances[merged.digest] == 0
        assert distances[right.digest] == 1
        assert distances[left.digest] == 1
        assert distances[root] == 2


class TestBranches:
    """Tests for the branch table."""

    def test_create_branch_points_at_head(self, graph: CommitGraph) -> None:
        """Test a new branch starts at head and does not become current."""
        commit = graph.commit("one", staged(a="1"))
        graph.create_branch("dev")

        assert graph.branch_tip("dev") == commit
        assert graph.current_branch == "master"
        assert graph.list_branches() == ["dev", "master"]

    def test_create_existing_branch(self, graph: CommitGraph) -> None:
        with pytest.raises(BranchExistsError):
            graph.create_branch("master")

    def test_remove_branch(self, graph: CommitGraph) -> None:
        """Test removing a branch keeps its commits."""
        graph.create_branch("dev")
        graph.switch_branch("dev")
        commit = graph.commit("on dev", staged(a="1"))
        graph.switch_branch("master")

        graph.remove_branch("dev")
        assert not graph.has_branch("dev")
        assert graph.get(commit.digest) == commit

    def test_remove_missing_branch(self, graph: CommitGraph) -> None:
        with pytest.raises(BranchNotFoundError):
            graph.remove_branch("nope")

    def test_remove_current_branch(self, graph: CommitGraph) -> None:
        with pytest.raises(CurrentBranchRemovalError):
            graph.remove_branch("master")

    def test_branch_tip_unknown(self, graph: CommitGraph) -> None:
        with pytest.raises(BranchNotFoundError):
            graph.branch_tip("nope")

    def test_head_tracks_current_branch(self, graph: CommitGraph) -> None:
        """Test head is always the current branch's tip."""
        graph.create_branch("dev")
        graph.switch_branch("dev")
        commit = graph.commit("dev work", staged(a="1"))

        assert graph.head == commit.digest
        graph.switch_branch("master")
        assert graph.head == initial_commit().digest
