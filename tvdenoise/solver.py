"""
Split Bregman total variation restoration.

Solves, for a fixed fidelity strength lambda,

    min_u  TV(u) + lambda * F(u, f)

where TV is the channel-coupled isotropic total variation and F is the
negative log-likelihood of the noise model:

- gaussian: F = 1/2 ||u - f||^2
- laplace:  F = ||u - f||_1
- poisson:  F = sum(u - f log u)

The gradient is split as d = grad u with penalty gamma1. The Laplace and
Poisson fidelities are split further with an auxiliary z and penalty gamma2,
so that every u subproblem is a screened Poisson equation solved exactly
with a DCT.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Union
import logging
import numpy as np

from tvdenoise.errors import (
    AllocationError,
    InvalidParameterError,
    SolverFailure,
)
from tvdenoise.noise_models import NoiseModel, get_noise_model
from tvdenoise.utils import (
    gradient,
    gradient_adjoint,
    laplacian_eigenvalues,
    shrink,
    solve_screened_poisson,
    vector_shrink,
)

logger = logging.getLogger(__name__)

# States passed to the progress callback
STATE_RUNNING = 0
STATE_CONVERGED = 1
STATE_MAX_ITER = 2

PlotFn = Callable[[int, int, float, np.ndarray], None]


@dataclass
class SolverOptions:
    noise_model: NoiseModel = NoiseModel.GAUSSIAN
    lam: float = 25.0
    tol: float = 1e-3
    max_iter: int = 100
    gamma1: float = 5.0
    gamma2: float = 8.0
    plot_fn: Optional[PlotFn] = None

    def set_noise_model(self, model: Union[str, NoiseModel]):
        self.noise_model = get_noise_model(model)

    def set_lambda(self, lam: float):
        if not lam > 0:
            raise InvalidParameterError("lambda must be positive.")
        self.lam = float(lam)

    def set_tol(self, tol: float):
        self.tol = float(tol)

    def set_max_iter(self, max_iter: int):
        self.max_iter = int(max_iter)

    def set_plot_fn(self, plot_fn: Optional[PlotFn]):
        self.plot_fn = plot_fn


@dataclass
class RestoreResult:
    converged: bool
    num_iter: int
    delta: float


class RestoreFn(Protocol):
    def __call__(
        self, u: np.ndarray, f: np.ndarray, options: SolverOptions
    ) -> RestoreResult:
        """
        Restores f into u.

        u is read as the initial guess and overwritten with the result.
        """
        pass


def _check_inputs(u: np.ndarray, f: np.ndarray, options: SolverOptions):
    if u.shape != f.shape:
        raise SolverFailure(f"Image shapes differ: {u.shape} vs {f.shape}")
    if u.ndim != 3:
        raise SolverFailure(f"Expected planar (C, H, W) buffers, got {u.shape}")
    if not options.lam > 0:
        raise SolverFailure("lambda must be positive.")
    if options.tol <= 0 or options.max_iter < 1:
        raise SolverFailure("Invalid tolerance or iteration limit.")
    if options.noise_model is NoiseModel.POISSON and np.any(f < 0):
        raise SolverFailure("Poisson noise model requires a nonnegative image.")


def tv_restore(u: np.ndarray, f: np.ndarray, options: SolverOptions) -> RestoreResult:
    """
    TV restoration with the split Bregman method.

    Parameters:
    u: np.ndarray
        Initial guess of shape (C, H, W), overwritten with the restoration
    f: np.ndarray
        Observed noisy image, same shape as u
    options: SolverOptions
        Noise model, lambda, stopping rule and penalty parameters

    Returns:
    result: RestoreResult
        Whether the relative change dropped below tol, the iteration count
        and the last relative change
    """
    model = get_noise_model(options.noise_model)
    _check_inputs(u, f, options)
    lam = options.lam
    gamma1 = options.gamma1
    gamma2 = options.gamma2
    use_z = model is not NoiseModel.GAUSSIAN

    try:
        eigenvalues = laplacian_eigenvalues(*u.shape[-2:])
        d = gradient(u)
        b = np.zeros_like(d)
        if model is NoiseModel.LAPLACE:
            z = u - f
        else:
            z = u.copy()
        b2 = np.zeros_like(u)
        u_prev = np.empty_like(u)
    except MemoryError as e:
        raise AllocationError("Memory allocation failed") from e

    delta = np.inf
    state = STATE_MAX_ITER
    num_iter = 0
    for num_iter in range(1, options.max_iter + 1):
        u_prev[...] = u

        # u subproblem
        rhs = gamma1 * gradient_adjoint(d - b)
        if model is NoiseModel.GAUSSIAN:
            rhs += lam * f
            u[...] = solve_screened_poisson(rhs, lam, gamma1, eigenvalues)
        elif model is NoiseModel.LAPLACE:
            rhs += gamma2 * (f + z - b2)
            u[...] = solve_screened_poisson(rhs, gamma2, gamma1, eigenvalues)
        else:
            rhs += gamma2 * (z - b2)
            u[...] = solve_screened_poisson(rhs, gamma2, gamma1, eigenvalues)

        # d subproblem and Bregman update
        grad_u = gradient(u)
        d = vector_shrink(grad_u + b, 1.0 / gamma1)
        b += grad_u - d

        # z subproblem and Bregman update
        if use_z:
            if model is NoiseModel.LAPLACE:
                z = shrink(u - f + b2, lam / gamma2)
                b2 += u - f - z
            else:
                s = 0.5 * (u + b2 - lam / gamma2)
                z = s + np.sqrt(s**2 + lam * f / gamma2)
                b2 += u - z

        if not np.all(np.isfinite(u)):
            raise SolverFailure(f"Non-finite values at iteration {num_iter}")

        norm_u = np.linalg.norm(u)
        delta = np.linalg.norm(u - u_prev) / (norm_u if norm_u > 0 else 1.0)
        # The first iteration from d = grad u can leave u unchanged
        if num_iter > 1 and delta < options.tol:
            state = STATE_CONVERGED
            break
        if options.plot_fn is not None:
            options.plot_fn(STATE_RUNNING, num_iter, delta, u)

    if options.plot_fn is not None:
        options.plot_fn(state, num_iter, delta, u)

    converged = state == STATE_CONVERGED
    if converged:
        logger.debug(f"Converged in {num_iter} iterations (delta={delta:.2e})")
    else:
        logger.warning(
            f"Maximum number of iterations ({options.max_iter}) reached "
            f"(delta={delta:.2e} > tol={options.tol:.2e})"
        )
    return RestoreResult(converged=converged, num_iter=num_iter, delta=float(delta))
