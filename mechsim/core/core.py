#!/usr/bin/env python3
"""
Mechanism Simulation Core Components

Shared classes for single-axis mechanism simulation:
- MotorConstants: gear/count-scaled DC motor constants
- motor_current_and_torque: first-order DC motor electrical model
- RotationalConfig / LinearConfig: mechanism geometry and limits
- RotationalDynamics / LinearDynamics: torque -> acceleration per mechanism variant
- semi_implicit_euler_step / enforce_limits: fixed-step integrator
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mechsim.core.utils import GRAVITY, require_ordered, require_positive

logger = logging.getLogger(__name__)


class MechanismVariant(Enum):
    ROTATIONAL = "rotational"
    LINEAR = "linear"


@dataclass(frozen=True)
class MotorConstants:
    """
    DC motor constants as seen from the mechanism side of the gearbox.

    Attributes:
        kv: Speed constant in RPM/V, already divided by gearing.
        kt: Torque constant in N·m/A, already multiplied by gearing.
        R: Terminal resistance in ohms, already divided by motor count.
        mass: Aggregate mass of all motors in kg.
        gearing: Mechanism reduction (motor turns per mechanism turn).
    """
    kv: float
    kt: float
    R: float
    mass: float
    gearing: float = 1.0

    def __post_init__(self):
        require_positive("kv", self.kv)
        require_positive("kt", self.kt)
        require_positive("R", self.R)
        require_positive("gearing", self.gearing)

    @property
    def torque_per_volt(self):
        """Stall torque per applied volt (kt / R)."""
        return self.kt / self.R


def motor_current_and_torque(motor: MotorConstants, voltage, angular_velocity):
    """
    First-order DC motor electrical model.

    backEmf = angular_velocity * (1/kv) * (2π/60)
    current = (voltage - backEmf) / R
    torque  = current * kt

    Current is not limited.

    Args:
        motor: gear-scaled motor constants
        voltage: applied voltage in volts
        angular_velocity: mechanism angular velocity, same frame as motor.kv

    Returns:
        (current, torque) in amps and N·m
    """
    back_emf = angular_velocity * (1 / motor.kv) * ((2 * math.pi) / 60)
    current = (voltage - back_emf) / motor.R
    torque = current * motor.kt
    return current, torque


# ============================================================================
# MECHANISM CONFIGURATION
# ============================================================================

@dataclass(frozen=True)
class RotationalConfig:
    """
    Arm/pivot geometry. Angles are in radians, zero is straight up.

    moment_of_inertia defaults to a uniform rod about its end, mass·length²/3.
    """
    length: float = 1.0
    mass: float = 5.0
    moment_of_inertia: Optional[float] = None
    min_angle: float = -math.pi / 2
    max_angle: float = math.pi / 2
    starting_angle: float = 0.0

    variant = MechanismVariant.ROTATIONAL

    def __post_init__(self):
        require_positive("length", self.length)
        require_positive("mass", self.mass)
        require_ordered("min_angle", self.min_angle, "max_angle", self.max_angle)
        if self.moment_of_inertia is None:
            object.__setattr__(self, "moment_of_inertia",
                               self.mass * self.length * self.length / 3)
        require_positive("moment_of_inertia", self.moment_of_inertia)

    @property
    def lower_limit(self):
        return self.min_angle

    @property
    def upper_limit(self):
        return self.max_angle

    @property
    def start_position(self):
        return self.starting_angle


@dataclass(frozen=True)
class LinearConfig:
    """
    Elevator carriage on a cable drum. Heights are in meters.

    starting_height defaults to min_height.
    """
    mass: float = 5.0
    drum_radius: float = 0.0254
    min_height: float = 0.0
    max_height: float = 1.0
    starting_height: Optional[float] = None

    variant = MechanismVariant.LINEAR

    def __post_init__(self):
        require_positive("mass", self.mass)
        require_positive("drum_radius", self.drum_radius)
        require_ordered("min_height", self.min_height, "max_height", self.max_height)
        if self.starting_height is None:
            object.__setattr__(self, "starting_height", self.min_height)

    @property
    def lower_limit(self):
        return self.min_height

    @property
    def upper_limit(self):
        return self.max_height

    @property
    def start_position(self):
        return self.starting_height


# ============================================================================
# MECHANISM DYNAMICS
# ============================================================================

class MechanismDynamics(ABC):
    """Maps applied voltage and mechanism state to acceleration."""

    variant = None

    def __init__(self, config, motor: MotorConstants, gravity=GRAVITY):
        self.config = config
        self.motor = motor
        self.g = gravity

    @abstractmethod
    def compute(self, voltage, position, velocity):
        """
        Returns:
            (acceleration, current) in mechanism units per s² and amps
        """
        raise NotImplementedError

    @abstractmethod
    def gravity_feedforward(self) -> float:
        """Voltage that holds the mechanism's full gravity load at zero velocity."""
        raise NotImplementedError


class RotationalDynamics(MechanismDynamics):
    """Arm or pivot rotating about one end; gravity torque follows sin(angle)."""

    variant = MechanismVariant.ROTATIONAL

    def compute(self, voltage, position, velocity):
        cfg = self.config
        current, motor_torque = motor_current_and_torque(self.motor, voltage, velocity)

        gravity_torque = cfg.mass * self.g * (cfg.length / 2) * math.sin(position)
        net_torque = motor_torque - gravity_torque

        return net_torque / cfg.moment_of_inertia, current

    def gravity_feedforward(self):
        cfg = self.config
        return cfg.mass * self.g * cfg.length / 2 / self.motor.torque_per_volt


class LinearDynamics(MechanismDynamics):
    """
    Elevator driven through a drum.

    State is linear; the motor model is evaluated in the drum's rotational
    frame and the result is converted back to linear acceleration.
    """

    variant = MechanismVariant.LINEAR

    def compute(self, voltage, position, velocity):
        cfg = self.config
        r = cfg.drum_radius

        rot_velocity = velocity / r
        current, motor_torque = motor_current_and_torque(self.motor, voltage, rot_velocity)

        # Gravity always opposes upward travel
        gravity_torque = cfg.mass * self.g * r
        net_torque = motor_torque - gravity_torque

        rot_inertia = cfg.mass * r * r
        rot_acceleration = net_torque / rot_inertia

        return rot_acceleration * r, current

    def gravity_feedforward(self):
        cfg = self.config
        return cfg.mass * self.g * cfg.drum_radius / self.motor.torque_per_volt


class DynamicsFactory:
    """Factory for creating dynamics from a mechanism config."""

    _dynamics = {
        MechanismVariant.ROTATIONAL: RotationalDynamics,
        MechanismVariant.LINEAR: LinearDynamics,
    }

    @staticmethod
    def create(config, motor: MotorConstants, gravity=GRAVITY) -> MechanismDynamics:
        variant = getattr(config, "variant", None)
        if variant not in DynamicsFactory._dynamics:
            raise ValueError(f"Unsupported mechanism config: {type(config).__name__}. "
                             f"Available: {[v.value for v in DynamicsFactory._dynamics]}")

        dynamics = DynamicsFactory._dynamics[variant](config, motor, gravity)
        logger.debug("Created %s dynamics for %s", variant.value, config)
        return dynamics


# ============================================================================
# INTEGRATION
# ============================================================================

def semi_implicit_euler_step(position, velocity, acceleration, dt):
    """
    Semi-implicit (symplectic) Euler step.

    Velocity is updated first and the new velocity moves the position.

    Returns:
        (new_position, new_velocity)
    """
    velocity = velocity + acceleration * dt
    position = position + velocity * dt
    return position, velocity


def enforce_limits(position, velocity, lower, upper):
    """
    Clamp position into [lower, upper] as a one-sided inelastic wall.

    Velocity into a violated limit is zeroed; velocity away from it is kept.

    Returns:
        (position, velocity, hit) where hit names the limit that was hit, or None
    """
    hit = None
    if position < lower:
        position = lower
        velocity = max(0.0, velocity)
        hit = "lower"
    if position > upper:
        position = upper
        velocity = min(0.0, velocity)
        hit = "upper"
    return position, velocity, hit
