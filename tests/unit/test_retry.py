"""Unit tests for retry_on_conflict."""

from unittest.mock import Mock

import pytest

from egressip import exceptions
from egressip.retry import is_optimistic_conflict, retry_on_conflict


def _conflict():
    return exceptions.OptimisticConflict(port_id="port-1", details="stale revision")


class TestRetryOnConflict:
    """Tests for the bounded retry combinator."""

    def test_returns_first_result(self):
        sleep = Mock()
        fn = Mock(return_value="done")

        assert retry_on_conflict(fn, sleep=sleep) == "done"
        fn.assert_called_once_with()
        sleep.assert_not_called()

    def test_retries_until_success(self):
        sleep = Mock()
        fn = Mock(side_effect=[_conflict(), _conflict(), "done"])

        assert retry_on_conflict(fn, steps=5, interval=0.5, jitter=0, sleep=sleep) == "done"
        assert fn.call_count == 3
        assert sleep.call_count == 2
        sleep.assert_called_with(0.5)

    def test_exhausted_budget_raises_last_conflict(self):
        sleep = Mock()
        fn = Mock(side_effect=_conflict())

        with pytest.raises(exceptions.OptimisticConflict, match="stale revision"):
            retry_on_conflict(fn, steps=4, sleep=sleep)
        assert fn.call_count == 4
        assert sleep.call_count == 3

    def test_other_errors_are_not_retried(self):
        sleep = Mock()
        fn = Mock(side_effect=exceptions.RemoteDirectoryError(details="boom"))

        with pytest.raises(exceptions.RemoteDirectoryError):
            retry_on_conflict(fn, sleep=sleep)
        fn.assert_called_once_with()
        sleep.assert_not_called()

    def test_backoff_factor(self):
        sleep = Mock()
        fn = Mock(side_effect=[_conflict(), _conflict(), _conflict(), "done"])

        retry_on_conflict(fn, steps=4, interval=1.0, factor=2.0, jitter=0, sleep=sleep)
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 4.0]

    def test_jitter_stays_within_bounds(self):
        sleep = Mock()
        fn = Mock(side_effect=[_conflict(), "done"])

        retry_on_conflict(fn, interval=1.0, jitter=0.1, sleep=sleep)
        waited = sleep.call_args.args[0]
        assert 1.0 <= waited <= 1.1

    def test_custom_predicate(self):
        sleep = Mock()
        fn = Mock(side_effect=[KeyError("again"), "done"])

        result = retry_on_conflict(fn, is_conflict=lambda e: isinstance(e, KeyError), sleep=sleep)
        assert result == "done"

    def test_steps_must_be_positive(self):
        with pytest.raises(ValueError):
            retry_on_conflict(Mock(), steps=0)

    def test_is_optimistic_conflict(self):
        assert is_optimistic_conflict(_conflict())
        assert not is_optimistic_conflict(exceptions.RemoteDirectoryError(details="x"))
