"""
Tests for the fixed-interval retry wrapper.
"""

import pytest
from unittest.mock import Mock

from wskproj.errors import WhiskError
from wskproj.retry import retry


class TestRetry:
    """Test retry semantics."""

    def test_success_on_first_attempt(self):
        """No delay when the first call succeeds."""
        operation = Mock(return_value="ok")
        sleep = Mock()

        assert retry(3, 1.0, operation, sleep=sleep) == "ok"
        assert operation.call_count == 1
        sleep.assert_not_called()

    def test_fails_twice_then_succeeds(self):
        """Third attempt succeeds with max_attempts=3."""
        operation = Mock(side_effect=[WhiskError("one"), WhiskError("two"), "done"])
        sleep = Mock()

        assert retry(3, 2.5, operation, sleep=sleep) == "done"
        assert operation.call_count == 3
        assert sleep.call_count == 2
        sleep.assert_called_with(2.5)

    def test_always_failing_raises_last_error(self):
        """The error from the Nth invocation is raised."""
        errors = [WhiskError(f"attempt {i}") for i in range(1, 6)]
        operation = Mock(side_effect=errors)

        with pytest.raises(WhiskError) as exc_info:
            retry(5, 0, operation, sleep=lambda _: None)

        assert exc_info.value is errors[4]
        assert operation.call_count == 5

    def test_no_sleep_after_last_attempt(self):
        """Waits only between attempts."""
        operation = Mock(side_effect=WhiskError("down"))
        sleep = Mock()

        with pytest.raises(WhiskError):
            retry(3, 1.0, operation, sleep=sleep)

        assert sleep.call_count == 2

    def test_non_retriable_error_propagates_immediately(self):
        """Errors outside retry_on are not retried."""
        operation = Mock(side_effect=KeyError("bug"))

        with pytest.raises(KeyError):
            retry(3, 0, operation, retry_on=(WhiskError,), sleep=lambda _: None)

        assert operation.call_count == 1

    def test_at_least_one_attempt(self):
        """Zero attempts still invokes the operation once."""
        operation = Mock(return_value=42)
        assert retry(0, 0, operation, sleep=lambda _: None) == 42
        assert operation.call_count == 1
