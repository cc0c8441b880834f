import numpy as np

from tvdenoise.image import Image
from tvdenoise.metrics import compute_mae, compute_psnr, compute_rmse


def test_rmse_identity():
    rng = np.random.default_rng(0)
    x = Image(rng.random((3, 8, 9)))
    assert compute_rmse(x, x) == 0


def test_rmse_symmetric():
    rng = np.random.default_rng(1)
    a = Image(rng.random((3, 8, 9)))
    b = Image(rng.random((3, 8, 9)))
    assert compute_rmse(a, b) == compute_rmse(b, a)


def test_rmse_known_value():
    """The mean runs over every sample of every channel."""
    a = np.zeros((3, 2, 2))
    b = np.zeros((3, 2, 2))
    b[0] = 1.0
    np.testing.assert_allclose(compute_rmse(a, b), np.sqrt(4 / 12))


def test_mae_and_psnr():
    a = np.zeros((1, 4, 4))
    b = np.full((1, 4, 4), 0.1)
    np.testing.assert_allclose(compute_mae(a, b), 0.1)
    np.testing.assert_allclose(compute_psnr(a, b), 20.0)
    assert compute_psnr(a, a) == float("inf")
