# experiments/exp02_planar_pose_graph_view.py

import jax.numpy as jnp
import numpy as np

from smooth_jit import DiffType, MinimizeOptions, minimize
from smooth_jit.lie import SE2


def build_square_loop(num_poses: int = 8):
    """
    Planar loop of SE(2) poses stored in one flat numpy state vector.

    Every pose is a ``GroupMap`` view into ``state``; the solver writes the
    optimized poses straight back into the buffer.

    Factors:
      - prior on pose0 at identity
      - odometry: +1m forward and a 2*pi/N left turn between consecutive poses
      - loop closure from the last pose back to pose0
    """
    state = np.zeros(num_poses * SE2.rep_size)
    views = [SE2.map(state, i * SE2.rep_size) for i in range(num_poses)]

    # Drifting initial guess.
    for i, v in enumerate(views):
        v.assign(SE2.exp(jnp.array([1.1 * i, 0.2 * i, 0.0])))

    step = SE2.exp(jnp.array([1.0, 0.0, 2.0 * jnp.pi / num_poses]))

    def residual(*ps):
        terms = [ps[0].log()]
        for a, b in zip(ps, ps[1:] + ps[:1]):
            terms.append((a.inverse() @ b) - step)
        return jnp.concatenate(terms)

    return state, views, residual


def main():
    state, views, residual = build_square_loop()
    print("initial state:", state.round(3))

    summary = minimize(residual, *views, options=MinimizeOptions(), diff=DiffType.AUTODIFF)

    print(f"status: {summary.status.value} after {summary.iterations} iterations, |f| = {summary.f_norm:.3e}")
    print("optimized state:", state.round(3))
    for i, v in enumerate(views):
        print(f"pose{i}: xy = {np.asarray(v.value().translation()).round(3)}, theta = {float(v.value().rotation().angle()):+.3f}")


if __name__ == "__main__":
    main()
