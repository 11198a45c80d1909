#!/usr/bin/env python3
"""
Hardware Configuration

Motor constant table and mechanism presets used to build simulation sessions.

Motor lookups are fail-open: an unknown motor name resolves to the default
motor so a session can always be constructed. Mechanism lookups are strict.
"""

import logging
import math
from dataclasses import dataclass

from mechsim.core.core import LinearConfig, MechanismVariant, MotorConstants, RotationalConfig
from mechsim.core.utils import require_positive

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MotorSpec:
    """Single-motor constants before gearing/count scaling."""
    kv: float          # RPM/V
    kt: float          # N·m/A
    resistance: float  # Ohms
    mass: float        # kg


DEFAULT_MOTOR = "NEO"

MOTORS = {
    "NEO": MotorSpec(kv=473, kt=0.025, resistance=0.116, mass=0.425),
    "NEO550": MotorSpec(kv=774, kt=0.015, resistance=0.08, mass=0.235),
    "Falcon500": MotorSpec(kv=577, kt=0.019, resistance=0.115, mass=0.31),
    "KrakenX60": MotorSpec(kv=590, kt=0.021, resistance=0.1, mass=0.39),
    "KrakenX44": MotorSpec(kv=590, kt=0.014, resistance=0.15, mass=0.26),
    "Cu60": MotorSpec(kv=567.6, kt=0.0166, resistance=0.027, mass=0.100),
    "Minion": MotorSpec(kv=627.6, kt=0.0155, resistance=0.060, mass=0.063),
    "NEOVortex": MotorSpec(kv=575.1, kt=0.0171, resistance=0.057, mass=0.072),
}

# Form/display names that differ from the simulation table keys
MOTOR_ALIASES = {
    "Krakenx60": "KrakenX60",
    "Krakenx44": "KrakenX44",
    "KrakenX40": "KrakenX44",
    "Krakenx40": "KrakenX44",
}


def list_motors():
    """Get list of available motor names."""
    return list(MOTORS.keys())


def canonical_motor_name(motor_type):
    """Resolve aliases; unknown names fall back to DEFAULT_MOTOR."""
    name = str(motor_type)
    name = MOTOR_ALIASES.get(name, name)
    if name not in MOTORS:
        logger.warning("Unknown motor type %r, falling back to %s", motor_type, DEFAULT_MOTOR)
        return DEFAULT_MOTOR
    return name


def resolve_motor_constants(motor_type=DEFAULT_MOTOR, gearing=1.0, motor_count=1) -> MotorConstants:
    """
    Build gear/count-scaled motor constants.

    Args:
        motor_type: Motor table key or alias. Unknown keys use DEFAULT_MOTOR.
        gearing: Reduction ratio, > 0
        motor_count: Number of identical motors driving the mechanism, >= 1

    Returns:
        MotorConstants with kv/gearing, kt·gearing, R/count and mass·count
    """
    require_positive("gearing", gearing)
    if not math.isfinite(motor_count) or int(motor_count) != motor_count or motor_count < 1:
        raise ValueError(f"motor_count must be a positive integer, got {motor_count}")

    spec = MOTORS[canonical_motor_name(motor_type)]
    constants = MotorConstants(
        kv=spec.kv / gearing,
        kt=spec.kt * gearing,
        R=spec.resistance / motor_count,
        mass=spec.mass * motor_count,
        gearing=gearing,
    )
    logger.debug("Resolved %s x%d @ %.3g:1 -> %s", motor_type, motor_count, gearing, constants)
    return constants


# ============================================================================
# MECHANISM PRESETS
# ============================================================================

@dataclass(frozen=True)
class MechanismDefinition:
    name: str
    description: str
    variant: MechanismVariant
    requires_gravity_compensation: bool
    defaults: dict


MECHANISMS = {
    "Arm": MechanismDefinition(
        name="Arm",
        description="Rotational mechanism with gravity effects",
        variant=MechanismVariant.ROTATIONAL,
        requires_gravity_compensation=True,
        defaults={"length": 1.0, "mass": 5.0,
                  "min_angle": -math.pi / 2, "max_angle": math.pi / 2,
                  "starting_angle": 0.0},
    ),
    "Elevator": MechanismDefinition(
        name="Elevator",
        description="Linear vertical mechanism",
        variant=MechanismVariant.LINEAR,
        requires_gravity_compensation=True,
        defaults={"mass": 5.0, "drum_radius": 0.0254,
                  "min_height": 0.0, "max_height": 1.0},
    ),
    "Pivot": MechanismDefinition(
        name="Pivot",
        description="Rotational mechanism without significant gravity effects",
        variant=MechanismVariant.ROTATIONAL,
        requires_gravity_compensation=False,
        defaults={"length": 0.3, "mass": 2.0,
                  "min_angle": -math.pi / 2, "max_angle": math.pi / 2,
                  "starting_angle": 0.0},
    ),
}

_CONFIG_TYPES = {
    MechanismVariant.ROTATIONAL: RotationalConfig,
    MechanismVariant.LINEAR: LinearConfig,
}


def get_mechanism(name) -> MechanismDefinition:
    """Look up a mechanism preset by case-insensitive name."""
    for key, mechanism in MECHANISMS.items():
        if key.lower() == str(name).lower():
            return mechanism
    raise ValueError(f"Unknown mechanism type: {name}. Available: {list(MECHANISMS.keys())}")


def build_mechanism_config(name, **overrides):
    """
    Create a RotationalConfig/LinearConfig from a preset.

    Overrides replace preset defaults; None values are ignored.
    """
    mechanism = get_mechanism(name)
    params = dict(mechanism.defaults)
    params.update({k: v for k, v in overrides.items() if v is not None})
    return _CONFIG_TYPES[mechanism.variant](**params)
