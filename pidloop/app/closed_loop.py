
import argparse
import numpy as np

from ..controller.pid_controller import PIDController
from ..plant.first_order import FirstOrderPlant

def load_config(path):
    import yaml
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)

def build_controller(ctrl_cfg, log_fn=print):
    ctrl = PIDController(kp=ctrl_cfg.get('kp', 1.0),
                         ki=ctrl_cfg.get('ki', 0.0),
                         kd=ctrl_cfg.get('kd', 0.0),
                         output_min=ctrl_cfg.get('output_min', 0.0),
                         output_max=ctrl_cfg.get('output_max', 1.0),
                         period=ctrl_cfg.get('period', 0.2),
                         window_size=ctrl_cfg.get('window_size', 1),
                         log_fn=log_fn)
    return ctrl

def setpoint_at(schedule, t):
    """schedule: list of [start_time, value], sorted by start_time.
    Returns the value of the last step started at or before t (0.0 before the first).
    """
    value = 0.0
    for start, v in schedule:
        if t < start:
            break
        value = float(v)
    return value

def run(cfg, log_fn=print):
    """Drive a simulated plant with the controller, the way an owning loop would.
    Frame times are jittered so ticks and calculations fall out of step.
    Returns a summary dict.
    """
    log = log_fn
    ctrl = build_controller(cfg['controller'], log_fn=log)
    gated = bool(cfg['controller'].get('enabled_tick', False))

    rng = np.random.default_rng(cfg.get('seed', 42))
    p_cfg = cfg.get('plant', {})
    plant = FirstOrderPlant(gain=p_cfg.get('gain', 1.0),
                            time_constant=p_cfg.get('time_constant', 1.0),
                            initial_value=p_cfg.get('initial_value', 0.0),
                            noise_std=p_cfg.get('noise_std', 0.0),
                            rng=rng, log_fn=log)

    loop_cfg = cfg.get('loop', {})
    dt_mean = float(loop_cfg.get('dt_mean', 0.05))
    dt_jitter = float(loop_cfg.get('dt_jitter', 0.0))
    schedule = cfg.get('setpoints', [[0.0, 0.5]])
    seconds = float(cfg['seconds'])

    t = 0.0
    ticks = 0
    calcs = 0
    errors = []
    log(f"[START] seconds={seconds} period={ctrl.period} kp={ctrl.kp} ki={ctrl.ki} kd={ctrl.kd}")
    try:
        while t < seconds:
            dt = max(1e-3, dt_mean + float(rng.uniform(-dt_jitter, dt_jitter)))
            target = setpoint_at(schedule, t)
            measured = plant.measure()
            if gated:
                did_calc = ctrl.tick_if_enabled(target, measured, dt)
            else:
                did_calc = ctrl.tick(target, measured, dt)
            ticks += 1
            if did_calc:
                calcs += 1
                log(f"[CTRL] t={t:.2f} target={target:.3f} measured={measured:.3f} "
                    f"out={ctrl.get_last_value():.3f} avg={ctrl.get_average_value():.3f}")
            plant.step(ctrl.get_average_value(), dt)
            errors.append(target - plant.value)
            t += dt
    except KeyboardInterrupt:
        log("[STOP] Interrupted by user.")
    finally:
        log(f"[END] ticks={ticks} calculations={calcs}")

    errors = np.asarray(errors, dtype=float)
    return {
        'ticks': ticks,
        'calculations': calcs,
        'final_value': float(plant.value),
        'final_setpoint': setpoint_at(schedule, t),
        'mean_abs_error': float(np.mean(np.abs(errors))) if errors.size else 0.0,
    }

def main():
    p = argparse.ArgumentParser()
    p.add_argument('--config', default='configs/config.yaml')
    p.add_argument('--seconds', type=float, default=None)
    p.add_argument('--seed', type=int, default=None)
    args = p.parse_args()

    cfg = load_config(args.config)
    if args.seconds is not None:
        cfg['seconds'] = args.seconds
    if args.seed is not None:
        cfg['seed'] = args.seed

    # Logging
    def log(msg): print(msg)

    summary = run(cfg, log_fn=log)
    log(f"[SUMMARY] final={summary['final_value']:.3f} setpoint={summary['final_setpoint']:.3f} "
        f"mean_abs_error={summary['mean_abs_error']:.4f}")

if __name__ == '__main__':
    main()
