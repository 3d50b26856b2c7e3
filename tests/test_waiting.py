from __future__ import annotations

import unittest

from app.scanning.waiting import WaitOutcome, await_condition


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class TestAwaitCondition(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()

    def _wait(self, predicate, *, deadline: float = 2.0) -> WaitOutcome:
        return await_condition(
            predicate,
            poll_interval=0.5,
            deadline=deadline,
            sleep=self.clock.sleep,
            clock=self.clock,
        )

    def test_ready_immediately_does_not_sleep(self) -> None:
        self.assertIs(self._wait(lambda: True), WaitOutcome.READY)
        self.assertEqual(self.clock.sleeps, [])

    def test_ready_after_polls(self) -> None:
        answers = iter([False, False, True])
        self.assertIs(self._wait(lambda: next(answers)), WaitOutcome.READY)
        self.assertEqual(self.clock.sleeps, [0.5, 0.5])

    def test_times_out_at_deadline(self) -> None:
        self.assertIs(self._wait(lambda: False, deadline=1.2), WaitOutcome.TIMED_OUT)
        self.assertAlmostEqual(sum(self.clock.sleeps), 1.2)

    def test_predicate_errors_count_as_not_ready(self) -> None:
        calls = {"count": 0}

        def flaky() -> bool:
            calls["count"] += 1
            if calls["count"] < 3:
                raise RuntimeError("execution context was destroyed")
            return True

        self.assertIs(self._wait(flaky), WaitOutcome.READY)
        self.assertEqual(calls["count"], 3)

    def test_past_deadline_still_checks_once(self) -> None:
        self.assertIs(self._wait(lambda: True, deadline=-1.0), WaitOutcome.READY)
        self.assertIs(self._wait(lambda: False, deadline=-1.0), WaitOutcome.TIMED_OUT)


if __name__ == "__main__":
    unittest.main()
