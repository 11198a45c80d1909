#!/usr/bin/env python3
"""
Mechanism Control Core

- ControlMode: position or velocity closed loop
- ControllerGains: PID and feedforward gains
- PIDController: single-axis PID with optional anti-windup and derivative filter
- Feedforward: static/velocity/acceleration/gravity feedforward
- ControlLaw: PID + feedforward voltage command, clamped to the battery
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

import numpy as np

from mechsim.core.utils import BATTERY_VOLTAGE


class ControlMode(Enum):
    POSITION = "position"
    VELOCITY = "velocity"

    @classmethod
    def parse(cls, mode):
        """Accept a ControlMode or its string value."""
        if isinstance(mode, cls):
            return mode
        try:
            return cls(str(mode).lower())
        except ValueError:
            raise ValueError(f"Unknown control mode: {mode}. "
                             f"Available: {[m.value for m in cls]}") from None


@dataclass(frozen=True)
class ControllerGains:
    """
    Feedback (kp, ki, kd) and feedforward (ks, kv, ka, kg) gains.

    kg=None means "derive gravity compensation from the mechanism".
    """
    kp: float = 1.0
    ki: float = 0.0
    kd: float = 0.0
    ks: float = 0.0
    kv: float = 0.0
    ka: float = 0.0
    kg: Optional[float] = None

    def with_kg(self, kg):
        return replace(self, kg=kg)


class PIDController:
    """
    Single-axis PID controller.

    Integrates error with rectangular rule and differentiates the raw error,
    so a setpoint step produces a derivative kick on the next update.
    """

    def __init__(self, kp=1.0, ki=0.0, kd=0.0,
                 integral_limit=None,
                 derivative_filter_alpha=0.0):
        """
        Args:
            kp: Proportional gain
            ki: Integral gain
            kd: Derivative gain
            integral_limit: Clamp for the integral accumulator (None = no anti-windup)
            derivative_filter_alpha: Low-pass filter coefficient (0=none, 0.1=light, 0.5=heavy)
        """
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.integral_limit = integral_limit
        self.derivative_filter_alpha = derivative_filter_alpha

        self.integral = 0.0
        self.prev_error = 0.0
        self.filtered_derivative = 0.0

    def update(self, error, dt):
        """
        Compute PID output for one timestep.

        Args:
            error: setpoint minus measurement
            dt: timestep in seconds, must be > 0

        Returns:
            controller output (volts)
        """
        self.integral += error * dt
        if self.integral_limit is not None:
            self.integral = float(np.clip(self.integral, -self.integral_limit, self.integral_limit))

        raw_derivative = (error - self.prev_error) / dt
        if self.derivative_filter_alpha > 0:
            self.filtered_derivative = (self.derivative_filter_alpha * raw_derivative +
                                        (1 - self.derivative_filter_alpha) * self.filtered_derivative)
            derivative = self.filtered_derivative
        else:
            derivative = raw_derivative

        self.prev_error = error

        return self.kp * error + self.ki * self.integral + self.kd * derivative

    def reset(self):
        """Reset PID state."""
        self.integral = 0.0
        self.prev_error = 0.0
        self.filtered_derivative = 0.0


class Feedforward:
    """kS·sign(v) + kV·v + kA·a + kG"""

    def __init__(self, ks=0.0, kv=0.0, ka=0.0, kg=0.0):
        self.ks = ks
        self.kv = kv
        self.ka = ka
        self.kg = kg

    def calculate(self, velocity, acceleration):
        # np.sign(0) == 0, so there is no static term at rest
        static_component = self.ks * float(np.sign(velocity))
        velocity_component = self.kv * velocity
        acceleration_component = self.ka * acceleration

        return static_component + velocity_component + acceleration_component + self.kg


class ControlLaw:
    """
    PID feedback plus feedforward, producing a battery-limited voltage.

    Switching mode keeps the PID history.
    """

    def __init__(self, gains: ControllerGains, battery_voltage=BATTERY_VOLTAGE,
                 integral_limit=None, derivative_filter_alpha=0.0):
        if gains.kg is None:
            raise ValueError("ControlLaw needs a resolved kg; derive it before construction")

        self.gains = gains
        self.battery_voltage = battery_voltage
        self.mode = ControlMode.POSITION

        self.pid = PIDController(kp=gains.kp, ki=gains.ki, kd=gains.kd,
                                 integral_limit=integral_limit,
                                 derivative_filter_alpha=derivative_filter_alpha)
        self.feedforward = Feedforward(ks=gains.ks, kv=gains.kv, ka=gains.ka, kg=gains.kg)

    def set_mode(self, mode):
        self.mode = ControlMode.parse(mode)

    def error(self, target, target_velocity, position, velocity):
        if self.mode is ControlMode.POSITION:
            return target - position
        return target_velocity - velocity

    def calculate(self, target, target_velocity, position, velocity, acceleration, dt):
        """Compute the voltage command, clamped to the battery voltage."""
        feedback = self.pid.update(self.error(target, target_velocity, position, velocity), dt)
        raw = feedback + self.feedforward.calculate(velocity, acceleration)

        return float(np.clip(raw, -self.battery_voltage, self.battery_voltage))

    def reset(self):
        self.pid.reset()
