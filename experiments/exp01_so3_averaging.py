# experiments/exp01_so3_averaging.py

import jax
import jax.numpy as jnp

from smooth_jit import MinimizeOptions, minimize
from smooth_jit.lie import SO3


def build_noisy_rotations(num_samples: int = 20, noise: float = 0.1):
    """
    Noisy observations of one rotation.

    Each sample is ``truth * exp(n_i)`` with ``n_i ~ N(0, noise^2 I)``.
    The geodesic mean minimizes

        sum_i || log(mean^-1 * sample_i) ||^2

    which is a plain nonlinear least-squares problem on SO(3).
    """
    truth = SO3.exp(jnp.array([0.3, -0.8, 1.2]))
    keys = jax.random.split(jax.random.PRNGKey(42), num_samples)
    samples = [truth + noise * jax.random.normal(k, (3,)) for k in keys]
    return truth, samples


def main():
    truth, samples = build_noisy_rotations()

    def residual(mean):
        return jnp.concatenate([s - mean for s in samples])

    print("=== SO(3) geodesic averaging ===")
    summary = minimize(residual, SO3.identity(), options=MinimizeOptions(verbose=True))
    mean = summary.values[0]

    print(f"status: {summary.status.value} after {summary.iterations} iterations")
    print(f"truth: {truth.log()}")
    print(f"mean:  {mean.log()}")
    print(f"angle between mean and truth: {float(jnp.linalg.norm(mean - truth)):.4e} rad")


if __name__ == "__main__":
    import logging

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    main()
