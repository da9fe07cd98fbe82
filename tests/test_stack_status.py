"""
Tests for stack status classification.
"""

import pytest

from cloudformation.stack_status import (
    StackState,
    StackStatus,
    StackStatusClass,
    classify_stack_status,
)


class TestClassifyStackStatus:
    """Test classify_stack_status."""

    @pytest.mark.parametrize(
        "raw",
        ["CREATE_IN_PROGRESS", "UPDATE_COMPLETE_CLEANUP_IN_PROGRESS", "DELETE_IN_PROGRESS"],
    )
    def test_in_progress(self, raw: str) -> None:
        """Test statuses still moving are in progress."""
        assert classify_stack_status(raw) is StackStatusClass.IN_PROGRESS

    @pytest.mark.parametrize("raw", ["CREATE_COMPLETE", "UPDATE_COMPLETE", "IMPORT_COMPLETE"])
    def test_success(self, raw: str) -> None:
        """Test settled healthy statuses are successes."""
        assert classify_stack_status(raw) is StackStatusClass.SUCCESS

    @pytest.mark.parametrize(
        "raw",
        [
            "CREATE_FAILED",
            "ROLLBACK_COMPLETE",
            "ROLLBACK_FAILED",
            "DELETE_FAILED",
            "UPDATE_ROLLBACK_COMPLETE",
            "UPDATE_ROLLBACK_FAILED",
        ],
    )
    def test_failure(self, raw: str) -> None:
        """Test failed and rolled back statuses are failures."""
        assert classify_stack_status(raw) is StackStatusClass.FAILURE

    @pytest.mark.parametrize("raw", [None, "DELETE_COMPLETE", "REVIEW_IN_PROGRESS"])
    def test_not_found(self, raw) -> None:
        """Test missing, deleted and review-only stacks count as not found."""
        assert classify_stack_status(raw) is StackStatusClass.NOT_FOUND

    def test_unknown_status_is_in_progress(self) -> None:
        """Test an unrecognised status is never treated as terminal."""
        assert classify_stack_status("SOMETHING_NEW") is StackStatusClass.IN_PROGRESS

    def test_parse_unknown(self) -> None:
        """Test parsing unknown values."""
        assert StackStatus.parse("CREATE_COMPLETE") is StackStatus.CREATE_COMPLETE
        assert StackStatus.parse("SOMETHING_NEW") is None
        assert StackStatus.parse(None) is None


class TestStackState:
    """Test StackState derived properties."""

    def test_from_description(self) -> None:
        """Test building a state from a describe_stacks record."""
        state = StackState.from_description(
            {"StackStatus": "DELETE_FAILED", "StackStatusReason": "Bucket not empty"}
        )

        assert state.status == "DELETE_FAILED"
        assert str(state) == "DELETE_FAILED (Bucket not empty)"
        assert state.is_terminal
        assert not state.is_success
        assert not state.is_deleted

    def test_str_without_reason(self) -> None:
        """Test rendering without a reason."""
        assert str(StackState("UPDATE_COMPLETE")) == "UPDATE_COMPLETE"

    @pytest.mark.parametrize("raw", ["ROLLBACK_COMPLETE", "ROLLBACK_FAILED", "CREATE_FAILED"])
    def test_creation_failure(self, raw: str) -> None:
        """Test statuses only deletion can recover from."""
        assert StackState(raw).is_creation_failure

    @pytest.mark.parametrize("raw", ["UPDATE_ROLLBACK_COMPLETE", "CREATE_COMPLETE", "DELETE_FAILED"])
    def test_not_creation_failure(self, raw: str) -> None:
        """Test statuses that can still be updated."""
        assert not StackState(raw).is_creation_failure

    def test_review_in_progress_not_terminal(self) -> None:
        """Test a review-only stack is not found but has not settled."""
        state = StackState("REVIEW_IN_PROGRESS")

        assert state.is_not_found
        assert not state.is_terminal

    def test_unknown_not_terminal(self) -> None:
        """Test unknown statuses keep waiters polling."""
        assert not StackState("SOMETHING_NEW").is_terminal

    def test_deleted(self) -> None:
        """Test DELETE_COMPLETE."""
        state = StackState("DELETE_COMPLETE")

        assert state.is_deleted
        assert state.is_terminal
        assert state.is_not_found
