#!/usr/bin/env python3
"""
Mechanism Simulator - Session

One SimulationSession owns one mechanism's configuration and mutable state.
The host drives it by calling step() from its own loop; nothing here blocks
or schedules. Sessions share no state, so a host simulating several
mechanisms creates one session per mechanism.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Optional, Union

from mechsim.core.control_core import ControlLaw, ControllerGains, ControlMode
from mechsim.core.core import DynamicsFactory, MechanismVariant, MotorConstants, enforce_limits, \
    semi_implicit_euler_step
from mechsim.core.utils import BATTERY_VOLTAGE, GRAVITY, SimulationConfig, format_angle, \
    format_electrical, format_length, format_time, require_positive
from mechsim.setup.hardware_config import build_mechanism_config, get_mechanism, resolve_motor_constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SimulationState:
    """Snapshot of a session's mutable state."""
    position: float
    velocity: float
    acceleration: float
    voltage: float
    current: float
    integral_accumulator: float
    previous_error: float
    elapsed_time: float
    target: float
    target_velocity: float
    control_mode: ControlMode


class SimulationSession:
    """
    Closed-loop single-axis mechanism simulation.

    Per step: control law -> motor model -> mechanism dynamics ->
    semi-implicit Euler -> limit enforcement.
    """

    def __init__(self, mechanism, gains: Optional[ControllerGains] = None,
                 motor: Union[str, MotorConstants] = "NEO", gearing=1.0, motor_count=1,
                 dt=SimulationConfig.DEFAULT_DT,
                 battery_voltage=BATTERY_VOLTAGE, gravity=GRAVITY,
                 integral_limit=None, derivative_filter_alpha=0.0):
        """
        Args:
            mechanism: RotationalConfig or LinearConfig
            gains: controller gains; gains.kg=None derives gravity compensation
            motor: motor table key (fail-open) or pre-scaled MotorConstants
            gearing: reduction ratio, ignored when motor is MotorConstants
            motor_count: number of motors, ignored when motor is MotorConstants
            dt: initial timestep in seconds
            battery_voltage: voltage clamp magnitude
            gravity: gravitational acceleration in m/s²
            integral_limit: optional PID anti-windup clamp
            derivative_filter_alpha: optional PID derivative low-pass coefficient
        """
        if isinstance(motor, MotorConstants):
            self.motor = motor
        else:
            self.motor = resolve_motor_constants(motor, gearing=gearing, motor_count=motor_count)

        self.mechanism = mechanism
        self.dynamics = DynamicsFactory.create(mechanism, self.motor, gravity)
        self.dt = require_positive("dt", dt)

        gains = gains if gains is not None else ControllerGains()
        if gains.kg is None:
            gains = gains.with_kg(self.dynamics.gravity_feedforward())
            logger.debug("Derived kG = %.4f V", gains.kg)
        self.gains = gains

        self.control = ControlLaw(gains, battery_voltage=battery_voltage,
                                  integral_limit=integral_limit,
                                  derivative_filter_alpha=derivative_filter_alpha)

        self.position = mechanism.start_position
        self.velocity = 0.0
        self.acceleration = 0.0
        self.voltage = 0.0
        self.current = 0.0
        self.elapsed_time = 0.0
        self.target = 0.0
        self.target_velocity = 0.0

        self._limit_contact = None
        self._events = deque(maxlen=SimulationConfig.EVENT_LOG_SIZE)

    # ==========================================
    # --- CONTROL SURFACE ---
    # ==========================================
    def step(self, dt=None):
        """Advance one control + dynamics + integration cycle."""
        if dt is not None:
            self.dt = require_positive("dt", dt)
        dt = self.dt
        self.elapsed_time += dt

        self.voltage = self.control.calculate(self.target, self.target_velocity,
                                              self.position, self.velocity,
                                              self.acceleration, dt)

        self.acceleration, self.current = self.dynamics.compute(self.voltage, self.position, self.velocity)

        position, velocity = semi_implicit_euler_step(self.position, self.velocity, self.acceleration, dt)
        self.position, self.velocity, hit = enforce_limits(position, velocity,
                                                           self.mechanism.lower_limit,
                                                           self.mechanism.upper_limit)

        if hit != self._limit_contact:
            if hit is not None:
                self.log(f"Hit {hit} limit at {self._format_position(self.position)}")
            self._limit_contact = hit

    def set_target(self, value):
        """Set the position setpoint. Out-of-range targets are not rejected."""
        self.target = value

    def set_target_velocity(self, value):
        self.target_velocity = value

    def set_control_mode(self, mode):
        """Switch position/velocity control without clearing PID history."""
        self.control.set_mode(mode)
        self.log(f"Control mode: {self.control.mode.value}")

    def reset(self):
        """
        Zero the dynamic state and PID history.

        Position returns to 0, not to the configured starting position.
        Target, target velocity and control mode are kept.
        """
        self.position = 0.0
        self.velocity = 0.0
        self.acceleration = 0.0
        self.voltage = 0.0
        self.current = 0.0
        self.elapsed_time = 0.0
        self.control.reset()
        self._limit_contact = None
        self.log("Simulation reset")

    # ==========================================
    # --- TELEMETRY ---
    # ==========================================
    @property
    def control_mode(self):
        return self.control.mode

    @property
    def state(self) -> SimulationState:
        return SimulationState(
            position=self.position,
            velocity=self.velocity,
            acceleration=self.acceleration,
            voltage=self.voltage,
            current=self.current,
            integral_accumulator=self.control.pid.integral,
            previous_error=self.control.pid.prev_error,
            elapsed_time=self.elapsed_time,
            target=self.target,
            target_velocity=self.target_velocity,
            control_mode=self.control.mode,
        )

    def get_telemetry(self):
        """Read-only telemetry in SI units (radians or meters)."""
        return {
            'position': self.position,
            'velocity': self.velocity,
            'acceleration': self.acceleration,
            'voltage': self.voltage,
            'current': self.current,
            'target': self.target,
            'target_velocity': self.target_velocity,
            'control_mode': self.control.mode.value,
            'elapsed_time': self.elapsed_time,
        }

    def format_telemetry(self):
        """One-line telemetry in display units."""
        if self.mechanism.variant is MechanismVariant.ROTATIONAL:
            velocity = f"{format_angle(self.velocity)}/s"
        else:
            velocity = f"{format_length(self.velocity)}/s"
        return (
            f"t={format_time(self.elapsed_time)} "
            f"pos={self._format_position(self.position)} "
            f"target={self._format_position(self.target)} "
            f"vel={velocity} "
            f"{format_electrical(self.voltage, self.current)}"
        )

    def _format_position(self, value):
        if self.mechanism.variant is MechanismVariant.ROTATIONAL:
            return format_angle(value)
        return format_length(value)

    def log(self, message):
        """Add message to the session event log."""
        self._events.append((self.elapsed_time, message))
        logger.debug("[t=%s] %s", format_time(self.elapsed_time), message)

    def get_log(self):
        return list(self._events)


def create_session(mechanism_name, gains: Optional[ControllerGains] = None,
                   motor="NEO", gearing=1.0, motor_count=1, **kwargs):
    """
    Build a session from a mechanism preset.

    Mechanism overrides (length, mass, min_angle, ...) are taken from kwargs;
    the remaining kwargs go to SimulationSession. Presets without gravity
    compensation always get kg=0.
    """
    definition = get_mechanism(mechanism_name)
    session_keys = {'dt', 'battery_voltage', 'gravity', 'integral_limit', 'derivative_filter_alpha'}
    session_kwargs = {k: v for k, v in kwargs.items() if k in session_keys}
    overrides = {k: v for k, v in kwargs.items() if k not in session_keys}

    config = build_mechanism_config(definition.name, **overrides)

    gains = gains if gains is not None else ControllerGains()
    if not definition.requires_gravity_compensation:
        gains = gains.with_kg(0.0)

    session = SimulationSession(config, gains, motor=motor, gearing=gearing,
                                motor_count=motor_count, **session_kwargs)
    session.log(f"{definition.name} session ready: {session.format_telemetry()}")
    return session
