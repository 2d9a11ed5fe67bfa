from unittest.mock import patch

import pytest

from infiltrator.util.clock import SimulationClock, TickPacer


class TestSimulationClock:
    def test_advance_moves_time_forward(self) -> None:
        clock = SimulationClock()
        assert clock.now() == 0
        assert clock.advance(100) == 100
        assert clock.advance(50) == 150

    def test_time_never_runs_backwards(self) -> None:
        clock = SimulationClock(start_ms=500)
        assert clock.advance(-200) == 500
        assert clock.advance(0) == 500

    def test_set_restores_an_earlier_time(self) -> None:
        clock = SimulationClock(start_ms=9000)
        assert clock.set(1200) == 1200
        assert clock.now() == 1200
        assert clock.set(-5) == 0


class TestTickPacer:
    def test_first_tick_does_not_wait(self) -> None:
        pacer = TickPacer(100)
        with (
            patch("time.perf_counter", return_value=10.0),
            patch("time.sleep") as sleep,
        ):
            assert pacer.wait() == 0
        sleep.assert_not_called()

    def test_waits_out_the_rest_of_the_slot(self) -> None:
        pacer = TickPacer(100)
        times = iter([10.0, 10.03])
        with (
            patch("time.perf_counter", side_effect=lambda: next(times)),
            patch("time.sleep") as sleep,
        ):
            pacer.wait()
            waited = pacer.wait()

        assert waited == pytest.approx(70)
        assert sleep.call_args.args[0] == pytest.approx(0.07)

    def test_overrun_restarts_the_schedule(self) -> None:
        pacer = TickPacer(100)
        times = iter([10.0, 10.5, 10.55])
        with (
            patch("time.perf_counter", side_effect=lambda: next(times)),
            patch("time.sleep") as sleep,
        ):
            pacer.wait()
            assert pacer.wait() == 0
            assert pacer.wait() == pytest.approx(50)
        sleep.assert_called_once()
