"""Tests for canopy_sim.driver — play/pause and time-accumulated stepping."""

import pytest

from canopy_sim.config import default_config
from canopy_sim.driver import StepDriver
from canopy_sim.engine import ForestSimulator, StepReport


@pytest.fixture
def driver():
    return StepDriver(ForestSimulator(default_config()), step_interval=0.5)


class TestPlayState:
    def test_starts_paused(self, driver):
        assert not driver.playing
        assert driver.advance(10.0) is None
        assert driver.simulator.generation == 0
        assert driver.elapsed == 0.0

    def test_toggle(self, driver):
        assert driver.toggle() is True
        assert driver.toggle() is False

    def test_play_pause(self, driver):
        driver.play()
        assert driver.playing
        driver.pause()
        assert not driver.playing

    def test_interval_from_config(self):
        sim = ForestSimulator(default_config())
        assert StepDriver(sim).step_interval == 0.01

    def test_bad_interval(self):
        with pytest.raises(ValueError):
            StepDriver(ForestSimulator(default_config()), step_interval=0.0)


class TestAdvance:
    def test_accumulates_until_interval(self, driver):
        driver.play()
        assert driver.advance(0.25) is None
        assert driver.elapsed == 0.25
        report = driver.advance(0.25)
        assert isinstance(report, StepReport)
        assert driver.simulator.generation == 1
        assert driver.elapsed == 0.0
        assert driver.last_report is report

    def test_one_step_per_call(self, driver):
        driver.play()
        driver.advance(5.0)
        assert driver.simulator.generation == 1
        assert driver.elapsed == 0.0

    def test_many_frames(self, driver):
        driver.play()
        for _ in range(20):
            driver.advance(0.125)
        assert driver.simulator.generation == 5

    def test_negative_dt(self, driver):
        with pytest.raises(ValueError):
            driver.advance(-0.1)


class TestManualControls:
    def test_request_step_while_paused(self, driver):
        report = driver.request_step()
        assert report.generation == 1
        assert not driver.playing

    def test_reset(self, driver):
        driver.play()
        driver.advance(0.5)
        driver.advance(0.25)
        driver.reset()
        assert driver.simulator.generation == 0
        assert len(driver.simulator) == 50
        assert driver.elapsed == 0.0
        assert driver.last_report is None
        assert driver.playing
