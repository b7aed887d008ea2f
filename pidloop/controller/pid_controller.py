
import numpy as np
from ..utils.numeric import is_nearly_zero, clamp, accumulate_buffer

class PIDController:
    """Three-term controller with anti-windup, kick-free derivative, a fixed
    period tick scheduler and an output averaging window.

    The owning loop calls tick(...) every frame with the elapsed time and reads
    the result back with get_last_value() or get_average_value(). Calculations
    only happen once per `period` seconds of accumulated time; period <= 0
    calculates on every tick.

    Not thread safe: one owner, or external locking.
    """
    def __init__(self, kp=1.0, ki=0.0, kd=0.0, output_min=0.0, output_max=1.0,
                 period=0.2, window_size=1, log_fn=print):
        self.kp, self.ki, self.kd = kp, ki, kd
        self.output_min = output_min
        self.output_max = output_max
        # use set_period() to change this on the fly
        self.period = period
        self.log = log_fn
        self._enabled = True
        self._window_size = int(window_size)
        self.clear_state()

    def clear_state(self):
        """Reset everything that describes an active controller run."""
        self._tick_buffer = 0.0
        self._integral = 0.0
        self._prev_output = 0.0
        self._prev_input = 0.0
        self._prev_error = 0.0
        self._clear_window()

    def calculate(self, target, measured, dt):
        """Calculate from a setpoint and a measurement. The derivative acts on
        the measurement, so setpoint steps do not kick the output.
        """
        if is_nearly_zero(dt):
            self.log("[PID] delta time nearly zero")
            return 0.0

        err = float(target - measured)
        out = self._p_term(err)
        out += self._i_term(err, dt)
        out += self._d_term_on_input(measured, dt)

        self._prev_error = err
        self._prev_input = float(measured)
        return self._clamp_and_record(out)

    def calculate_from_error(self, error, dt):
        """Calculate from a raw error. Susceptible to derivative kick."""
        if is_nearly_zero(dt):
            self.log("[PID] delta time nearly zero")
            return 0.0

        err = float(error)
        out = self._p_term(err)
        out += self._i_term(err, dt)
        out += self._d_term_on_error(err, dt)

        self._prev_error = err
        return self._clamp_and_record(out)

    def _p_term(self, err):
        if is_nearly_zero(self.kp):
            return 0.0
        return self.kp * err

    def _i_term(self, err, dt):
        # zero gain freezes the accumulator instead of erasing it
        if is_nearly_zero(self.ki):
            return self._integral
        # gain applied per step so retuning on the fly does not rescale history
        self._integral += self.ki * err * dt
        self._integral = clamp(self._integral, self.output_min, self.output_max)
        return self._integral

    def _d_term_on_error(self, err, dt):
        if dt < 0 or is_nearly_zero(dt) or is_nearly_zero(self.kd):
            return 0.0
        return self.kd * (err - self._prev_error) / dt

    def _d_term_on_input(self, measured, dt):
        if dt < 0 or is_nearly_zero(dt) or is_nearly_zero(self.kd):
            return 0.0
        # d(error)/dt == -d(input)/dt while the setpoint holds
        return -self.kd * (measured - self._prev_input) / dt

    def _clamp_and_record(self, out):
        out = clamp(out, self.output_min, self.output_max)
        self._prev_output = out
        if self._window_size > 1:
            self._window[self._cursor] = out
            self._cursor = (self._cursor + 1) % self._window_size
        return out

    def tick(self, target, measured, dt):
        """Accumulate dt and calculate when a full period has elapsed.
        Returns True if a calculation happened.
        """
        return self._tick(lambda step: self.calculate(target, measured, step), dt)

    def tick_from_error(self, error, dt):
        return self._tick(lambda step: self.calculate_from_error(error, step), dt)

    def tick_if_enabled(self, target, measured, dt):
        if self._enabled:
            return self.tick(target, measured, dt)
        return False

    def tick_from_error_if_enabled(self, error, dt):
        if self._enabled:
            return self.tick_from_error(error, dt)
        return False

    def _tick(self, calc, dt):
        if self.period <= 0:
            # no period: calculate every frame
            calc(dt)
            return True

        if dt > self.period:
            self.log(f"[PID] tick time {dt:.3f}s exceeded period {self.period:.3f}s, result may be unstable")
            # the whole frame is one bucket; existing carry is kept
            self._tick_buffer, _ = accumulate_buffer(self._tick_buffer, dt, dt)
            calc(dt)
            return True

        self._tick_buffer, overflowed = accumulate_buffer(self._tick_buffer, dt, self.period)
        if overflowed:
            calc(self.period)
            return True
        return False

    def _clear_window(self):
        self._window = np.zeros(max(self._window_size, 0), dtype=float)
        self._cursor = 0

    def set_averaging_window_size(self, n):
        """Resize the averaging window. Clears its contents."""
        self._window_size = int(n)
        self._clear_window()

    def get_averaging_window_size(self):
        return self._window_size

    def get_average_value(self):
        if self._window_size <= 1:
            return self._prev_output
        return float(np.sum(self._window[:self._window_size]) / self._window_size)

    def get_last_value(self):
        return self._prev_output

    def set_period(self, period):
        """Change the period, scaling ki and kd so loop dynamics are kept.
        No scaling when moving to or from pass-through (period <= 0).
        """
        if (period > 0 and not is_nearly_zero(period)
                and self.period > 0 and not is_nearly_zero(self.period)):
            ratio = period / self.period
            self.ki *= ratio
            self.kd /= ratio
        self.period = period

    def is_enabled(self):
        return self._enabled

    def set_enabled(self, enable, clear_integral=False):
        """Enable or disable. Enabling a disabled controller re-initializes it,
        seeding the integral with the last output unless clear_integral is set.
        """
        if not self._enabled and enable:
            self._initialize(clear_integral)
        self._enabled = bool(enable)

    def _initialize(self, clear_integral):
        integral = 0.0 if clear_integral else self._prev_output
        self._integral = clamp(integral, self.output_min, self.output_max)
        self._tick_buffer = 0.0
        self._prev_input = 0.0
        self._prev_error = 0.0
        self._clear_window()

    def get_previous_error(self):
        return self._prev_error

    def get_previous_input(self):
        """Only tracked by calculate(); calculate_from_error() leaves it alone."""
        return self._prev_input

    def get_integral_accumulator(self):
        return self._integral
