# Copyright (c) 2025.
# This file is part of smooth-jit, released under the MIT License.

import time

import jax
import jax.numpy as jnp

from smooth_jit import DiffType, MinimizeOptions, minimize
from smooth_jit.lie import SE3


def build_se3_chain(num_poses: int = 10):
    """
    SE3 pose chain:
        pose0 --odom--> pose1 --odom--> ... --odom--> pose_{N-1}
    Prior on pose0 at identity, odom edges of +1m in x with a small yaw.
    Initial guesses are random perturbations of identity.
    """
    step = SE3.exp(jnp.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.05]))

    keys = jax.random.split(jax.random.PRNGKey(0), num_poses)
    poses = [SE3.exp(0.1 * jax.random.normal(k, (6,))) for k in keys]

    def residual(ps):
        terms = [ps[0].log()]
        for a, b in zip(ps[:-1], ps[1:]):
            # Measured relative motion vs predicted relative motion.
            terms.append((a.inverse() @ b) - step)
        return jnp.concatenate(terms)

    return residual, poses


def run_benchmark(num_poses: int = 50, diff: DiffType = DiffType.AUTODIFF, use_jit: bool = True):
    print("=== SE3 Levenberg-Marquardt Benchmark ===")
    print(f"num_poses = {num_poses}, diff = {diff.name}, use_jit = {use_jit}")

    options = MinimizeOptions(jit=use_jit)

    # Warmup: compile the Jacobian once
    residual, poses = build_se3_chain(num_poses)
    minimize(residual, poses, options=options, diff=diff)

    residual, poses = build_se3_chain(num_poses)
    t0 = time.time()
    summary = minimize(residual, poses, options=options, diff=diff)
    t1 = time.time()

    print(f"Elapsed time: {(t1 - t0) * 1000:.3f} ms")
    print(f"status = {summary.status.value}, iterations = {summary.iterations}, |f| = {summary.f_norm:.3e}")
    print(f"pose0 (opt):   {poses[0].log()}")
    print(f"poseN-1 (opt): {poses[-1].translation()}")


if __name__ == "__main__":
    run_benchmark(num_poses=50, diff=DiffType.AUTODIFF, use_jit=True)
    run_benchmark(num_poses=10, diff=DiffType.NUMERICAL, use_jit=False)
