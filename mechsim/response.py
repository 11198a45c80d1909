#!/usr/bin/env python3
"""
Mechanism Response Analysis

Runs a session headless, records telemetry into numpy arrays, and computes
step-response metrics for tuning.
"""

from dataclasses import dataclass
from typing import Optional

import matplotlib.pyplot as plt
import numpy as np

from mechsim.core.control_core import ControlMode
from mechsim.core.core import MechanismVariant


@dataclass
class TelemetryHistory:
    """Per-step telemetry arrays, one entry per step() call."""
    time: np.ndarray
    position: np.ndarray
    velocity: np.ndarray
    acceleration: np.ndarray
    voltage: np.ndarray
    current: np.ndarray
    target: np.ndarray
    target_velocity: np.ndarray

    def __len__(self):
        return len(self.time)


@dataclass
class ResponseMetrics:
    rise_time: float
    overshoot_pct: float
    settling_time: float
    steady_state_error: float

    def summary(self):
        return (f"rise={self.rise_time:.3f}s overshoot={self.overshoot_pct:.1f}% "
                f"settle={self.settling_time:.3f}s sse={self.steady_state_error:.4g}")


def simulate(session, duration=None, steps=None, dt=None):
    """
    Step a session and record its telemetry.

    Args:
        session: SimulationSession (its setpoints should already be set)
        duration: simulated seconds; ignored when steps is given
        steps: number of step() calls
        dt: timestep override, defaults to the session's current dt

    Returns:
        TelemetryHistory
    """
    dt = session.dt if dt is None else dt
    if steps is None:
        if duration is None:
            raise ValueError("simulate() needs either duration or steps")
        steps = int(round(duration / dt))
    if steps < 0:
        raise ValueError(f"steps must be non-negative, got {steps}")

    fields = ('time', 'position', 'velocity', 'acceleration', 'voltage', 'current',
              'target', 'target_velocity')
    data = {name: np.zeros(steps) for name in fields}

    for i in range(steps):
        session.step(dt)
        telemetry = session.get_telemetry()
        data['time'][i] = telemetry['elapsed_time']
        for name in fields[1:]:
            data[name][i] = telemetry[name]

    return TelemetryHistory(**data)


def step_response_metrics(t, y, target, initial=None, tol=0.02):
    """
    - Rise time: 10→90% of step magnitude
    - Overshoot: % of step magnitude past the target
    - Settling time: earliest time after which the response
      stays within ±tol*|step| for the rest of the run
    - Steady-state error: target minus final value
    """
    t = np.asarray(t, dtype=float)
    y = np.asarray(y, dtype=float)
    target = float(target)
    n = len(t)
    if n < 2:
        return ResponseMetrics(np.nan, 0.0, np.nan, np.nan)

    y0 = float(y[0]) if initial is None else float(initial)
    step = target - y0

    # ----- Rise time -----
    rise = np.nan
    if abs(step) > 1e-9:
        progress = (y - y0) / step
        idx10 = np.where(progress >= 0.10)[0]
        idx90 = np.where(progress >= 0.90)[0]
        if len(idx10) and len(idx90) and idx90[0] >= idx10[0]:
            rise = t[idx90[0]] - t[idx10[0]]

    # ----- Overshoot -----
    overshoot = 0.0
    if abs(step) > 1e-9:
        peak = np.max((y - target) * np.sign(step))
        overshoot = max(peak / abs(step) * 100.0, 0.0)

    # ----- Settling time: stay in band for rest of run -----
    eps = max(tol * abs(step), 1e-6)
    outside = np.where(np.abs(y - target) > eps)[0]
    if len(outside) == 0:
        settle = t[0]
    elif outside[-1] < n - 1:
        settle = t[outside[-1] + 1]
    else:
        settle = np.nan

    return ResponseMetrics(rise_time=float(rise), overshoot_pct=float(overshoot),
                           settling_time=float(settle), steady_state_error=float(target - y[-1]))


def plot_response(history: TelemetryHistory, variant=MechanismVariant.ROTATIONAL,
                  mode=ControlMode.POSITION, title: Optional[str] = None, path=None):
    """
    Plot tracked quantity vs setpoint, voltage and current against time.

    Saves to path when given, otherwise shows the figure. Returns the figure.
    """
    if ControlMode.parse(mode) is ControlMode.POSITION:
        label, measured, setpoint, suffix = 'Position', history.position, history.target, ''
    else:
        label, measured, setpoint, suffix = 'Velocity', history.velocity, history.target_velocity, '/s'

    if variant is MechanismVariant.ROTATIONAL:
        measured, setpoint, unit = np.degrees(measured), np.degrees(setpoint), 'deg'
    else:
        unit = 'm'

    fig, (ax1, ax2, ax3) = plt.subplots(3, 1, figsize=(12, 9), sharex=True)

    ax1.plot(history.time, setpoint, 'b-', label='Target', linewidth=2)
    ax1.plot(history.time, measured, 'r--', label=label, linewidth=1.5)
    ax1.set_ylabel(f'{label} [{unit}{suffix}]')
    ax1.legend()
    ax1.grid(True, alpha=0.3)
    ax1.set_title(title or 'Closed-Loop Response')

    ax2.plot(history.time, history.voltage, 'g-', linewidth=1.5)
    ax2.set_ylabel('Voltage [V]')
    ax2.grid(True, alpha=0.3)

    ax3.plot(history.time, history.current, 'm-', linewidth=1.5)
    ax3.set_xlabel('Time [s]')
    ax3.set_ylabel('Current [A]')
    ax3.grid(True, alpha=0.3)

    plt.tight_layout()

    if path is not None:
        fig.savefig(path)
        plt.close(fig)
    else:
        plt.show()
    return fig
