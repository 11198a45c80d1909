import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from mechsim.core.control_core import ControllerGains
from mechsim.core.core import LinearConfig, MechanismVariant
from mechsim.response import plot_response, simulate, step_response_metrics
from mechsim.setup.base_simulator import SimulationSession


@pytest.fixture
def elevator():
    session = SimulationSession(LinearConfig(), ControllerGains(kp=50.0, kd=5.0))
    session.set_target(0.5)
    return session


def test_simulate_records_every_step(elevator):
    history = simulate(elevator, steps=100)
    assert len(history) == 100
    assert history.time[0] == pytest.approx(0.02)
    assert history.time[-1] == pytest.approx(2.0)
    assert history.position[-1] == elevator.position
    assert np.all(history.target == 0.5)
    assert np.all(np.abs(history.voltage) <= 12.0)


def test_simulate_duration(elevator):
    history = simulate(elevator, duration=1.0, dt=0.01)
    assert len(history) == 100
    assert elevator.dt == 0.01


def test_simulate_requires_length(elevator):
    with pytest.raises(ValueError):
        simulate(elevator)


def test_metrics_first_order_response():
    t = np.linspace(0.0, 10.0, 1001)
    y = 1.0 - np.exp(-t)
    metrics = step_response_metrics(t, y, 1.0)

    # 10-90% rise of a first-order lag is ln(9) time constants
    assert metrics.rise_time == pytest.approx(np.log(9.0), abs=0.02)
    assert metrics.overshoot_pct == 0.0
    assert metrics.settling_time == pytest.approx(-np.log(0.02), abs=0.02)
    assert metrics.steady_state_error == pytest.approx(np.exp(-10.0))


def test_metrics_overshoot_and_negative_step():
    t = np.arange(5) * 0.1
    y = np.array([1.0, 0.4, -0.2, 0.05, 0.0])
    metrics = step_response_metrics(t, y, 0.0)
    assert metrics.overshoot_pct == pytest.approx(20.0)
    assert metrics.settling_time == pytest.approx(0.4)


def test_metrics_never_settles():
    t = np.arange(4) * 0.1
    y = np.array([0.0, 0.5, 1.5, 0.5])
    metrics = step_response_metrics(t, y, 1.0)
    assert np.isnan(metrics.settling_time)


def test_elevator_response_settles(elevator):
    history = simulate(elevator, steps=500)
    metrics = step_response_metrics(history.time, history.position, 0.5, initial=0.0)
    assert metrics.settling_time < 5.0
    assert abs(metrics.steady_state_error) < 0.01
    assert "overshoot" in metrics.summary()


@pytest.mark.parametrize("mode", ["position", "velocity"])
def test_plot_response_saves_file(tmp_path, elevator, mode):
    history = simulate(elevator, steps=20)
    path = tmp_path / f"{mode}.png"
    fig = plot_response(history, MechanismVariant.LINEAR, mode=mode, path=path)
    assert path.exists()
    assert len(fig.axes) == 3
