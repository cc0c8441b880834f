import numpy as np

from tvdenoise.utils import (
    gradient,
    gradient_adjoint,
    shrink,
    solve_screened_poisson,
    vector_shrink,
)


def test_gradient_adjoint():
    """<grad u, d> == <u, grad^T d>."""
    rng = np.random.default_rng(1)
    u = rng.standard_normal((3, 5, 6))
    d = rng.standard_normal((2, 3, 5, 6))
    np.testing.assert_allclose(
        np.sum(gradient(u) * d), np.sum(u * gradient_adjoint(d))
    )


def test_gradient_neumann_boundary():
    image = np.array([[[0.0, 1.0, 3.0], [2.0, 2.0, 2.0]]])
    gx, gy = gradient(image)
    np.testing.assert_allclose(gx[0], [[1.0, 2.0, 0.0], [0.0, 0.0, 0.0]])
    np.testing.assert_allclose(gy[0], [[2.0, 1.0, -1.0], [0.0, 0.0, 0.0]])


def test_solve_screened_poisson():
    rng = np.random.default_rng(2)
    u = rng.standard_normal((2, 6, 9))
    alpha, beta = 3.0, 5.0
    rhs = alpha * u + beta * gradient_adjoint(gradient(u))
    np.testing.assert_allclose(solve_screened_poisson(rhs, alpha, beta), u, atol=1e-10)


def test_shrink():
    np.testing.assert_allclose(shrink(np.array([-3.0, 0.5, 2.0]), 1.0), [-2.0, 0.0, 1.0])

    d = np.zeros((2, 1, 1, 2))
    d[0, 0, 0, 0] = 3.0
    d[1, 0, 0, 0] = 4.0
    out = vector_shrink(d, 1.0)
    np.testing.assert_allclose(out[:, 0, 0, 0], [2.4, 3.2])
    np.testing.assert_allclose(out[:, 0, 0, 1], [0.0, 0.0])
