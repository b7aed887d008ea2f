
import numpy as np

class PlantModel:
    """Simulated process driven by a controller action.
    Subclasses implement _derivative(); noise is added on measurement only.
    """
    def __init__(self, initial_value=0.0, noise_std=0.0, rng=None, log_fn=print):
        self.initial_value = float(initial_value)
        self.noise_std = float(noise_std)
        self._rng = rng if rng is not None else np.random.default_rng(0)
        self.log = log_fn
        self.value = self.initial_value

    def reset(self):
        self.value = self.initial_value

    def step(self, action, dt):
        """Advance by dt seconds under a constant action (explicit Euler)."""
        if dt <= 0:
            return self.value
        self.value += self._derivative(float(action)) * dt
        return self.value

    def measure(self):
        if self.noise_std <= 0:
            return self.value
        return self.value + float(self._rng.normal(0, self.noise_std))

    def _derivative(self, action):
        """Override in subclass."""
        return 0.0

class FirstOrderPlant(PlantModel):
    """tau * dy/dt = gain * u - y"""
    def __init__(self, gain=1.0, time_constant=1.0, **kwargs):
        super().__init__(**kwargs)
        if time_constant <= 0:
            raise ValueError(f"time_constant must be positive, got {time_constant}")
        self.gain = float(gain)
        self.tau = float(time_constant)
        self.log(f"[PLANT] first order: gain={self.gain:.3f} tau={self.tau:.3f}s")

    def _derivative(self, action):
        return (self.gain * action - self.value) / self.tau
