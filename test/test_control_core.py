import pytest

from mechsim.core.control_core import ControlLaw, ControllerGains, ControlMode, Feedforward, PIDController


def test_pid_output_sequence():
    pid = PIDController(kp=2.0, ki=3.0, kd=0.5)

    assert pid.update(1.0, 0.1) == pytest.approx(2.0 * 1.0 + 3.0 * 0.1 + 0.5 * 10.0)
    assert pid.integral == pytest.approx(0.1)
    assert pid.prev_error == 1.0

    assert pid.update(0.5, 0.1) == pytest.approx(2.0 * 0.5 + 3.0 * 0.15 + 0.5 * -5.0)


def test_pid_integral_unbounded_by_default():
    pid = PIDController(kp=0.0, ki=1.0)
    for _ in range(100):
        pid.update(1.0, 0.1)
    assert pid.integral == pytest.approx(10.0)


def test_pid_optional_anti_windup():
    pid = PIDController(kp=0.0, ki=1.0, integral_limit=0.2)
    for _ in range(100):
        pid.update(1.0, 0.1)
    assert pid.integral == pytest.approx(0.2)

    for _ in range(100):
        pid.update(-1.0, 0.1)
    assert pid.integral == pytest.approx(-0.2)


def test_pid_optional_derivative_filter():
    pid = PIDController(kp=0.0, kd=1.0, derivative_filter_alpha=0.5)
    # Raw derivative is 10, half of it passes on the first update
    assert pid.update(1.0, 0.1) == pytest.approx(5.0)


def test_pid_reset():
    pid = PIDController(kp=1.0, ki=1.0, kd=1.0)
    pid.update(2.0, 0.1)
    pid.reset()
    assert pid.integral == 0.0
    assert pid.prev_error == 0.0
    assert pid.filtered_derivative == 0.0


def test_feedforward_terms():
    ff = Feedforward(ks=0.5, kv=2.0, ka=0.1, kg=1.0)
    assert ff.calculate(3.0, 4.0) == pytest.approx(0.5 + 6.0 + 0.4 + 1.0)
    assert ff.calculate(-3.0, 0.0) == pytest.approx(-0.5 - 6.0 + 1.0)


def test_feedforward_no_static_term_at_rest():
    ff = Feedforward(ks=1.0)
    assert ff.calculate(0.0, 0.0) == 0.0
    assert ff.calculate(1e-9, 0.0) == pytest.approx(1.0, rel=1e-6)


def test_control_mode_parse():
    assert ControlMode.parse("position") is ControlMode.POSITION
    assert ControlMode.parse("Velocity") is ControlMode.VELOCITY
    assert ControlMode.parse(ControlMode.VELOCITY) is ControlMode.VELOCITY
    with pytest.raises(ValueError):
        ControlMode.parse("torque")


def test_controller_gains_defaults():
    gains = ControllerGains()
    assert (gains.kp, gains.ki, gains.kd) == (1.0, 0.0, 0.0)
    assert gains.kg is None
    assert gains.with_kg(2.5).kg == 2.5


def test_control_law_requires_resolved_kg():
    with pytest.raises(ValueError):
        ControlLaw(ControllerGains())


def test_control_law_position_and_velocity_error():
    law = ControlLaw(ControllerGains(kp=1.0, kg=0.0))
    assert law.error(target=2.0, target_velocity=5.0, position=0.5, velocity=1.0) == 1.5

    law.set_mode("velocity")
    assert law.error(target=2.0, target_velocity=5.0, position=0.5, velocity=1.0) == 4.0


@pytest.mark.parametrize("kp, expected", [(100.0, 12.0), (-100.0, -12.0), (1.0, 1.0)])
def test_control_law_clamps_to_battery(kp, expected):
    law = ControlLaw(ControllerGains(kp=kp, kg=0.0))
    voltage = law.calculate(target=1.0, target_velocity=0.0, position=0.0,
                            velocity=0.0, acceleration=0.0, dt=0.02)
    assert voltage == expected


def test_control_law_mode_switch_keeps_history():
    law = ControlLaw(ControllerGains(kp=0.0, ki=1.0, kg=0.0))
    law.calculate(1.0, 0.0, 0.0, 0.0, 0.0, 0.1)
    law.set_mode(ControlMode.VELOCITY)
    assert law.pid.integral == pytest.approx(0.1)
    assert law.pid.prev_error == 1.0
