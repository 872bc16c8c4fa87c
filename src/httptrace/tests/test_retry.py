"""Tests for retry policy, backoff and the retrying clients."""

from __future__ import annotations

import pytest

from httptrace import ErrorCode, Request, Response, RetryingClient, RetryPolicy, TransportError, get_logger
from httptrace.retry import NO_RETRY, ConstantBackoff, ExponentialBackoff, LinearBackoff


class FlakyClient:
    """Fails with the given errors in order, then succeeds."""

    def __init__(self, *errors: Exception) -> None:
        self.errors = list(errors)
        self.attempts = 0

    def execute(self, request: Request) -> Response:
        self.attempts += 1
        if self.errors:
            raise self.errors.pop(0)
        return Response(200)


def refused() -> TransportError:
    return TransportError("connection refused", ErrorCode.CONNECTION_ERROR)


class TestBackoff:
    def test_exponential_is_capped(self) -> None:
        b = ExponentialBackoff(base=0.1, max_delay=1.0, multiplier=2.0)
        assert [b.delay(i) for i in range(5)] == pytest.approx([0.1, 0.2, 0.4, 0.8, 1.0])

    def test_exponential_jitter_stays_in_range(self) -> None:
        b = ExponentialBackoff(base=1.0, max_delay=1.0, jitter=True)
        assert all(0.5 <= b.delay(0) <= 1.5 for _ in range(100))

    def test_linear_and_constant(self) -> None:
        assert LinearBackoff(base=0.1, increment=0.2, max_delay=0.4).delay(3) == pytest.approx(0.4)
        assert ConstantBackoff(0.25).delay(7) == 0.25


class TestPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.max_attempts == 5
        assert not policy.is_disabled
        assert NO_RETRY.is_disabled

    def test_attempt_limit(self) -> None:
        policy = RetryPolicy(max_attempts=2)
        assert policy.should_retry(refused(), attempt=0)
        assert not policy.should_retry(refused(), attempt=1)

    def test_non_retryable_codes(self) -> None:
        policy = RetryPolicy()
        assert not policy.should_retry(ValueError("bad input"), attempt=0)
        assert policy.should_retry(ConnectionRefusedError("connection refused"), attempt=0)

    def test_codes_from_strings(self) -> None:
        policy = RetryPolicy(retryable_codes=["TIMEOUT"])
        assert policy.retryable_codes == frozenset({ErrorCode.TIMEOUT})
        assert not policy.should_retry(refused(), attempt=0)
        assert policy.model_dump()["retryable_codes"] == ["TIMEOUT"]

    @pytest.mark.parametrize("attempts", [0, 11])
    def test_attempt_bounds(self, attempts: int) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=attempts)

    def test_from_settings(self) -> None:
        policy = RetryPolicy.from_settings(3, period=0.2, max_period=0.5, multiplier=2.0)
        assert policy.max_attempts == 3
        assert [policy.delay(i) for i in range(3)] == pytest.approx([0.2, 0.4, 0.5])


class TestRetryingClient:
    def test_succeeds_after_retries(self, logs) -> None:
        delegate, sleeps = FlakyClient(refused(), refused()), []
        client = RetryingClient(delegate, RetryPolicy(max_attempts=3, backoff=ConstantBackoff(0.01)),
                                sleep=sleeps.append)

        assert client.execute(Request("GET", "http://svc/a")).status_code == 200
        assert delegate.attempts == 3
        assert sleeps == [0.01, 0.01]
        assert logs.events("warning").count("attempt failed, retrying") == 2

    def test_reraises_last_error_unchanged(self) -> None:
        errors = [refused(), refused()]
        client = RetryingClient(FlakyClient(*errors), RetryPolicy(max_attempts=2), sleep=lambda _: None)

        with pytest.raises(TransportError) as exc_info:
            client.execute(Request("GET", "http://svc/a"))
        assert exc_info.value is errors[1]

    def test_non_retryable_error_is_not_retried(self) -> None:
        delegate = FlakyClient(KeyError("boom"))
        client = RetryingClient(delegate, RetryPolicy(max_attempts=5), sleep=lambda _: None)

        with pytest.raises(KeyError):
            client.execute(Request("GET", "http://svc/a"))
        assert delegate.attempts == 1

    def test_entries_logged_during_an_attempt_carry_its_number(self, logs) -> None:
        class LoggingClient(FlakyClient):
            def execute(self, request: Request) -> Response:
                get_logger("delegate").info("sending")
                return super().execute(request)

        client = RetryingClient(LoggingClient(refused(), refused()), RetryPolicy(max_attempts=3),
                                sleep=lambda _: None)
        client.execute(Request("GET", "http://svc/a"))

        assert [e.context["attempt"] for e in logs.entries if e.event == "sending"] == [1, 2, 3]
        assert [e.context["attempt"] for e in logs.entries if e.event == "attempt failed, retrying"] == [1, 2]

    def test_attempts_get_their_own_headers(self) -> None:
        seen: list[Request] = []

        class RecordingClient(FlakyClient):
            def execute(self, request: Request) -> Response:
                seen.append(request)
                request.headers["traceId"] = str(len(seen))
                return super().execute(request)

        request = Request("GET", "http://svc/a", {"Accept": "text/plain"})
        RetryingClient(RecordingClient(refused()), RetryPolicy(max_attempts=2), sleep=lambda _: None).execute(request)

        assert [r.headers["traceId"] for r in seen] == ["1", "2"]
        assert seen[0].headers is not seen[1].headers
        assert seen[1].headers["Accept"] == "text/plain"
        assert "traceId" not in request.headers
