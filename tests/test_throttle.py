from __future__ import annotations

import unittest

from chartlayout.throttle import PointerThrottle


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class PointerThrottleTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = FakeClock()
        self.calls: list[int] = []
        self.throttle = PointerThrottle(self.calls.append, 0.1, self.clock)

    def test_leading_call_runs_immediately(self) -> None:
        self.throttle(1)
        self.assertEqual(self.calls, [1])
        self.assertFalse(self.throttle.pending)

    def test_trailing_call_keeps_latest_arguments(self) -> None:
        self.throttle(1)
        self.clock.now = 0.02
        self.throttle(2)
        self.throttle(3)
        self.assertTrue(self.throttle.pending)
        self.clock.now = 0.05
        self.assertFalse(self.throttle.poll())
        self.clock.now = 0.1
        self.assertTrue(self.throttle.poll())
        self.assertEqual(self.calls, [1, 3])
        self.assertFalse(self.throttle.poll())

    def test_call_after_quiet_period_runs_at_once(self) -> None:
        self.throttle(1)
        self.clock.now = 0.5
        self.throttle(2)
        self.assertEqual(self.calls, [1, 2])

    def test_cancel_drops_pending_call(self) -> None:
        self.throttle(1)
        self.throttle(2)
        with self.assertLogs("chartlayout.throttle", level="DEBUG"):
            self.throttle.cancel()
        self.clock.now = 1.0
        self.assertFalse(self.throttle.poll())
        self.assertEqual(self.calls, [1])
        self.throttle(3)
        self.assertEqual(self.calls, [1, 3])

    def test_flush_runs_pending_call_now(self) -> None:
        self.throttle(1)
        self.throttle(2)
        self.assertTrue(self.throttle.flush())
        self.assertFalse(self.throttle.flush())
        self.assertEqual(self.calls, [1, 2])

    def test_zero_interval_never_defers(self) -> None:
        throttle = PointerThrottle(self.calls.append, 0.0, self.clock)
        throttle(1)
        throttle(2)
        self.assertEqual(self.calls, [1, 2])

    def test_negative_interval_rejected(self) -> None:
        with self.assertRaises(ValueError):
            PointerThrottle(self.calls.append, -1.0, self.clock)


if __name__ == "__main__":
    unittest.main()
