#!/usr/bin/env python3
"""
Shared utilities and constants for mechanism simulators.
"""

import math

import numpy as np

# ============================================================================
# PHYSICAL CONSTANTS
# ============================================================================

GRAVITY = 9.81
BATTERY_VOLTAGE = 12.0

# ============================================================================
# TIMING CONSTANTS
# ============================================================================


class SimulationConfig:
    """Configuration for simulation stepping."""
    DEFAULT_DT = 0.02
    EVENT_LOG_SIZE = 200


# ============================================================================
# FORMATTING UTILITIES
# ============================================================================

def format_time(seconds, decimals=2):
    """Format time with consistent precision."""
    return f"{seconds:.{decimals}f}s"


def format_angle(radians, decimals=1):
    """Format an angle given in radians as degrees."""
    return f"{math.degrees(radians):.{decimals}f}°"


def format_length(meters, decimals=3):
    return f"{meters:.{decimals}f}m"


def format_electrical(voltage, current, decimals=2):
    """Format voltage/current pair."""
    return f"{voltage:.{decimals}f}V, {current:.{decimals}f}A"


# ============================================================================
# VALIDATION UTILITIES
# ============================================================================

def require_positive(name, value):
    """Raise ValueError unless value is a finite number greater than zero."""
    if not np.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be a positive number, got {value}")
    return value


def require_ordered(lower_name, lower, upper_name, upper):
    """Raise ValueError unless lower <= upper; NaN bounds are rejected, infinite ones allowed."""
    if not lower <= upper:
        raise ValueError(f"{lower_name} ({lower}) must not exceed {upper_name} ({upper})")
