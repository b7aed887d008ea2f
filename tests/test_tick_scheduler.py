import pytest

from pidloop.controller.pid_controller import PIDController

def make(**kwargs):
    msgs = []
    kwargs.setdefault('output_min', -10.0)
    kwargs.setdefault('output_max', 10.0)
    return PIDController(log_fn=msgs.append, **kwargs), msgs

def test_no_calculation_until_period_elapses():
    ctrl, _ = make(kp=1.0, period=0.25)
    results = [ctrl.tick_from_error(1.0, 0.1) for _ in range(3)]
    assert results == [False, False, True]
    assert ctrl.get_last_value() == pytest.approx(1.0)
    # remainder carries to the next tick
    assert ctrl._tick_buffer == pytest.approx(0.05)

def test_skipped_ticks_leave_last_output_unchanged():
    ctrl, _ = make(kp=1.0, period=0.25)
    assert not ctrl.tick_from_error(3.0, 0.1)
    assert ctrl.get_last_value() == 0.0
    assert ctrl.get_previous_error() == 0.0

def test_calculation_uses_period_as_dt():
    ctrl, _ = make(kp=0.0, ki=1.0, period=0.25)
    for _ in range(3):
        ctrl.tick_from_error(1.0, 0.1)
    assert ctrl.get_integral_accumulator() == pytest.approx(0.25)

def test_tick_with_measurement():
    ctrl, _ = make(kp=1.0, period=0.2)
    assert not ctrl.tick(1.0, 0.25, 0.15)
    assert ctrl.tick(1.0, 0.25, 0.15)
    assert ctrl.get_last_value() == pytest.approx(0.75)
    assert ctrl.get_previous_input() == 0.25

def test_overshooting_dt_calculates_immediately_with_full_dt():
    ctrl, msgs = make(kp=0.0, ki=1.0, period=0.2)
    assert ctrl.tick_from_error(1.0, 0.5)
    assert ctrl.get_integral_accumulator() == pytest.approx(0.5)
    assert ctrl._tick_buffer == 0.0
    assert any('exceeded period' in m for m in msgs)

def test_overshooting_dt_keeps_existing_carry():
    ctrl, _ = make(kp=1.0, period=0.2)
    assert not ctrl.tick_from_error(1.0, 0.1)
    assert ctrl.tick_from_error(1.0, 0.5)
    assert ctrl._tick_buffer == pytest.approx(0.1)

def test_pass_through_calculates_every_tick_with_caller_dt():
    ctrl, _ = make(kp=0.0, ki=1.0, period=0.0)
    assert ctrl.tick_from_error(1.0, 0.03)
    assert ctrl.tick_from_error(1.0, 0.03)
    assert ctrl.get_integral_accumulator() == pytest.approx(0.06)

    ctrl, _ = make(kp=1.0, period=-1.0)
    assert ctrl.tick(2.0, 1.5, 0.01)
    assert ctrl.get_last_value() == pytest.approx(0.5)

def test_gated_ticks_are_noops_when_disabled():
    ctrl, _ = make(kp=1.0, period=0.1)
    ctrl.set_enabled(False)
    assert not ctrl.tick_if_enabled(1.0, 0.0, 0.5)
    assert not ctrl.tick_from_error_if_enabled(1.0, 0.5)
    assert ctrl.get_last_value() == 0.0
    assert ctrl._tick_buffer == 0.0

def test_gated_ticks_run_when_enabled():
    ctrl, _ = make(kp=1.0, period=0.1)
    assert ctrl.tick_if_enabled(0.5, 0.0, 0.1)
    assert ctrl.get_last_value() == pytest.approx(0.5)
    assert ctrl.tick_from_error_if_enabled(0.25, 0.1)
    assert ctrl.get_last_value() == pytest.approx(0.25)

def test_reenable_clears_tick_buffer():
    ctrl, _ = make(kp=1.0, period=0.25)
    ctrl.tick_from_error(1.0, 0.2)
    ctrl.set_enabled(False)
    ctrl.set_enabled(True)
    assert ctrl._tick_buffer == 0.0
    assert not ctrl.tick_from_error(1.0, 0.2)
