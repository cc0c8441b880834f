import numpy as np
import pytest

from tvdenoise.errors import InvalidParameterError, SolverFailure, UnknownModelError
from tvdenoise.image import Image
from tvdenoise.metrics import compute_rmse
from tvdenoise.noise import add_noise
from tvdenoise.noise_models import NoiseModel, initial_lambda
from tvdenoise.solver import (
    STATE_CONVERGED,
    STATE_MAX_ITER,
    STATE_RUNNING,
    SolverOptions,
    tv_restore,
)


def make_square(size=32, low=0.2, high=0.8):
    clean = np.full((1, size, size), low)
    clean[0, size // 4 : 3 * size // 4, size // 4 : 3 * size // 4] = high
    return clean


@pytest.mark.parametrize("model", list(NoiseModel))
def test_constant_image_is_fixed_point(model):
    f = np.full((3, 6, 5), 0.4)
    u = f.copy()
    options = SolverOptions(noise_model=model, lam=10.0, tol=1e-6, max_iter=20)
    result = tv_restore(u, f, options)
    np.testing.assert_allclose(u, f, atol=1e-10)
    assert result.converged


@pytest.mark.parametrize("model", list(NoiseModel))
def test_tv_restore_reduces_noise(model):
    """Restoring at the empirical lambda moves u closer to the clean image."""
    sigma = 0.1
    clean = make_square()
    f = add_noise(Image(clean), model, sigma, rng=0).data
    u = f.copy()
    options = SolverOptions(
        noise_model=model, lam=initial_lambda(model, sigma), tol=1e-3, max_iter=100
    )
    tv_restore(u, f, options)
    assert compute_rmse(clean, u) < 0.75 * compute_rmse(clean, f)


def test_tv_restore_overwrites_initial_guess():
    rng = np.random.default_rng(0)
    f = rng.random((1, 8, 8))
    u = f.copy()
    buffer_id = id(u)
    options = SolverOptions(lam=2.0, tol=1e-4, max_iter=50)
    tv_restore(u, f, options)
    assert id(u) == buffer_id
    assert not np.array_equal(u, f)


def test_tv_restore_iteration_limit():
    rng = np.random.default_rng(0)
    f = rng.random((1, 8, 8))
    u = f.copy()
    options = SolverOptions(lam=1.0, tol=1e-12, max_iter=1)
    result = tv_restore(u, f, options)
    assert not result.converged
    assert result.num_iter == 1


def test_tv_restore_progress_callback():
    calls = []
    f = make_square(8)
    u = f.copy()
    options = SolverOptions(lam=5.0, tol=1e-12, max_iter=3)
    options.set_plot_fn(lambda state, it, delta, x: calls.append((state, it)))
    tv_restore(u, f, options)
    assert calls[:2] == [(STATE_RUNNING, 1), (STATE_RUNNING, 2)]
    assert calls[-1][0] in (STATE_CONVERGED, STATE_MAX_ITER)


def test_tv_restore_failures():
    f = np.zeros((1, 4, 4))
    with pytest.raises(SolverFailure):
        tv_restore(np.zeros((1, 4, 5)), f, SolverOptions())
    with pytest.raises(SolverFailure):
        tv_restore(f.copy(), f, SolverOptions(lam=0.0))
    with pytest.raises(SolverFailure):
        tv_restore(f.copy(), f - 1.0, SolverOptions(noise_model=NoiseModel.POISSON))


def test_solver_options_setters():
    options = SolverOptions()
    options.set_noise_model("laplace")
    assert options.noise_model is NoiseModel.LAPLACE
    with pytest.raises(UnknownModelError):
        options.set_noise_model("uniform")
    with pytest.raises(InvalidParameterError):
        options.set_lambda(-1.0)
    options.set_tol(1e-2)
    options.set_max_iter(40)
    assert (options.tol, options.max_iter) == (1e-2, 40)
