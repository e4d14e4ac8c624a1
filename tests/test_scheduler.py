"""
Unit tests for the scheduling abstraction.
"""
import asyncio
import logging
import unittest

from letter_quiz.scheduler import AsyncioScheduler, TimerSchedulingError, VirtualScheduler


class TestVirtualScheduler(unittest.TestCase):
    """Test cases for the simulated-clock scheduler."""

    def setUp(self):
        self.scheduler = VirtualScheduler()
        logging.disable(logging.CRITICAL)

    def tearDown(self):
        logging.disable(logging.NOTSET)

    def test_after_runs_once_when_due(self):
        calls = []
        self.scheduler.after(2.0, lambda: calls.append(self.scheduler.now()))

        self.scheduler.advance(1.0)
        self.assertEqual(calls, [])

        self.scheduler.advance(5.0)
        self.assertEqual(calls, [2.0])
        self.assertEqual(self.scheduler.now(), 6.0)

    def test_after_zero_never_runs_synchronously(self):
        calls = []
        self.scheduler.after(0, lambda: calls.append("ran"))
        self.assertEqual(calls, [])

        self.scheduler.run_pending()
        self.assertEqual(calls, ["ran"])

    def test_every_keeps_fixed_cadence(self):
        times = []
        self.scheduler.every(1.0, lambda: times.append(self.scheduler.now()))

        self.scheduler.advance(3.5)
        self.assertEqual(times, [1.0, 2.0, 3.0])

    def test_every_rejects_non_positive_interval(self):
        with self.assertRaises(TimerSchedulingError):
            self.scheduler.every(0, lambda: None)

    def test_cancelled_handle_never_fires(self):
        calls = []
        handle = self.scheduler.every(1.0, lambda: calls.append(1))
        self.scheduler.advance(2.0)
        handle.cancel()
        handle.cancel()
        self.scheduler.advance(5.0)

        self.assertEqual(len(calls), 2)
        self.assertTrue(handle.cancelled)
        self.assertEqual(self.scheduler.pending_count(), 0)

    def test_ties_run_in_scheduling_order(self):
        order = []
        self.scheduler.after(1.0, lambda: order.append("first"))
        self.scheduler.after(1.0, lambda: order.append("second"))
        self.scheduler.advance(1.0)
        self.assertEqual(order, ["first", "second"])

    def test_callbacks_scheduled_while_advancing_run_in_same_advance(self):
        order = []

        def chain():
            order.append("outer")
            self.scheduler.after(1.0, lambda: order.append("inner"))

        self.scheduler.after(1.0, chain)
        self.scheduler.advance(3.0)
        self.assertEqual(order, ["outer", "inner"])

    def test_callback_exception_does_not_stop_clock(self):
        calls = []

        def boom():
            raise RuntimeError("callback failure")

        self.scheduler.after(1.0, boom)
        self.scheduler.after(2.0, lambda: calls.append("after failure"))
        self.scheduler.advance(2.0)
        self.assertEqual(calls, ["after failure"])

    def test_advance_rejects_negative(self):
        with self.assertRaises(ValueError):
            self.scheduler.advance(-1)


class TestAsyncioScheduler(unittest.IsolatedAsyncioTestCase):
    """Test cases for the asyncio-backed scheduler."""

    async def test_after_fires_on_running_loop(self):
        scheduler = AsyncioScheduler()
        fired = asyncio.Event()
        scheduler.after(0.01, fired.set)
        await asyncio.wait_for(fired.wait(), timeout=1.0)
        self.assertTrue(fired.is_set())

    async def test_every_repeats_until_cancelled(self):
        scheduler = AsyncioScheduler()
        calls = []
        handle = scheduler.every(0.01, lambda: calls.append(1))
        await asyncio.sleep(0.1)
        handle.cancel()
        count = len(calls)
        await asyncio.sleep(0.05)

        self.assertGreaterEqual(count, 2)
        self.assertEqual(len(calls), count)

    async def test_cancel_before_due(self):
        scheduler = AsyncioScheduler()
        calls = []
        handle = scheduler.after(0.02, lambda: calls.append(1))
        handle.cancel()
        await asyncio.sleep(0.05)
        self.assertEqual(calls, [])

    async def test_now_uses_loop_time(self):
        scheduler = AsyncioScheduler()
        loop = asyncio.get_running_loop()
        self.assertAlmostEqual(scheduler.now(), loop.time(), delta=0.05)


class TestAsyncioSchedulerWithoutLoop(unittest.TestCase):
    """Scheduling needs a loop; reading the time does not."""

    def test_after_without_running_loop_raises(self):
        scheduler = AsyncioScheduler()
        with self.assertRaises(TimerSchedulingError):
            scheduler.after(1.0, lambda: None)

    def test_every_on_closed_loop_raises(self):
        loop = asyncio.new_event_loop()
        loop.close()
        scheduler = AsyncioScheduler(loop)
        with self.assertRaises(TimerSchedulingError):
            scheduler.every(1.0, lambda: None)

    def test_now_without_loop_falls_back_to_monotonic(self):
        scheduler = AsyncioScheduler()
        self.assertIsInstance(scheduler.now(), float)


if __name__ == '__main__':
    unittest.main()
