#!/usr/bin/env python3
"""
Headless Mechanism Simulator with PID + Feedforward Control

Usage:
    python -m mechsim.mechanism_sim arm --target 30 --kp 20 --kd 1 --gearing 50
    python -m mechsim.mechanism_sim elevator --target 0.5 --kp 50 --kd 5 --plot response.png
"""

import argparse
import logging
import math

from mechsim.core.control_core import ControllerGains, ControlMode
from mechsim.core.core import MechanismVariant
from mechsim.core.utils import SimulationConfig
from mechsim.response import plot_response, simulate, step_response_metrics
from mechsim.setup.base_simulator import create_session
from mechsim.setup.hardware_config import DEFAULT_MOTOR, MECHANISMS, canonical_motor_name, list_motors


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Single-axis mechanism PID + feedforward simulation")
    p.add_argument("mechanism", type=str.lower, choices=[m.lower() for m in MECHANISMS],
                   help="Mechanism preset")
    p.add_argument("--motor", default=DEFAULT_MOTOR,
                   help=f"Motor type ({', '.join(list_motors())}); unknown names use {DEFAULT_MOTOR}")
    p.add_argument("--gearing", type=float, default=1.0, help="Gear reduction")
    p.add_argument("--motor-count", type=int, default=1, help="Number of motors")
    p.add_argument("--mode", choices=[m.value for m in ControlMode], default=ControlMode.POSITION.value,
                   help="Control mode")
    p.add_argument("--target", type=float, default=0.0,
                   help="Setpoint: degrees (deg/s) for arm/pivot, meters (m/s) for elevator")
    p.add_argument("--kp", type=float, default=1.0)
    p.add_argument("--ki", type=float, default=0.0)
    p.add_argument("--kd", type=float, default=0.0)
    p.add_argument("--ks", type=float, default=0.0)
    p.add_argument("--kv", type=float, default=0.0)
    p.add_argument("--ka", type=float, default=0.0)
    p.add_argument("--kg", type=float, default=None, help="Gravity feedforward [V]; derived if omitted")
    p.add_argument("--duration", type=float, default=5.0, help="Simulation time [s]")
    p.add_argument("--dt", type=float, default=SimulationConfig.DEFAULT_DT, help="Time step [s]")
    p.add_argument("--plot", type=str, default=None, help="Optional path for a response plot")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(levelname)s %(name)s: %(message)s")

    gains = ControllerGains(kp=args.kp, ki=args.ki, kd=args.kd,
                            ks=args.ks, kv=args.kv, ka=args.ka, kg=args.kg)
    session = create_session(args.mechanism, gains, motor=args.motor,
                             gearing=args.gearing, motor_count=args.motor_count, dt=args.dt)

    rotational = session.mechanism.variant is MechanismVariant.ROTATIONAL
    setpoint = math.radians(args.target) if rotational else args.target

    session.set_control_mode(args.mode)
    if session.control_mode is ControlMode.POSITION:
        session.set_target(setpoint)
    else:
        session.set_target_velocity(setpoint)

    start = session.position
    history = simulate(session, duration=args.duration)

    print("=" * 60)
    print(f"{args.mechanism.title()} | {canonical_motor_name(args.motor)} x{args.motor_count} @ {args.gearing:g}:1 | "
          f"kG={session.gains.kg:.3f} V")
    print("=" * 60)
    for time_s, message in session.get_log():
        print(f"[{time_s:6.2f}s] {message}")
    print(session.format_telemetry())

    if len(history):
        if session.control_mode is ControlMode.POSITION:
            metrics = step_response_metrics(history.time, history.position, setpoint, initial=start)
        else:
            metrics = step_response_metrics(history.time, history.velocity, setpoint, initial=0.0)
        print(metrics.summary())

    if args.plot and len(history):
        plot_response(history, session.mechanism.variant, session.control_mode,
                      title=f"{args.mechanism.title()} {args.mode} response", path=args.plot)
        print(f"Plot saved to {args.plot}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
