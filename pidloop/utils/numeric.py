
import numpy as np

ZERO_THRESHOLD = 1e-5

def is_nearly_zero(value, tolerance=ZERO_THRESHOLD):
    """True if value is exactly 0 or strictly inside (-tolerance, tolerance)."""
    return value == 0.0 or (-tolerance < value < tolerance)

def clamp(value, lo, hi):
    return float(np.clip(value, lo, hi))

def accumulate_buffer(buffer, dt, bucket):
    """Add dt to a time buffer and report whether it overflowed.
    buffer: accumulated seconds so far
    dt: seconds to add
    bucket: overflow size; one bucket is removed on overflow
    Returns (new_buffer, overflowed).
    """
    buffer += dt
    if buffer >= bucket:
        return buffer - bucket, True
    return buffer, False
