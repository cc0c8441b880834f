import numpy as np
from skimage.metrics import peak_signal_noise_ratio as psnr
from sklearn.metrics import root_mean_squared_error as rmse

from tvdenoise.image import Image


def _as_array(x):
    return x.data if isinstance(x, Image) else np.asarray(x, dtype=np.float64)


def compute_rmse(reference, candidate) -> float:
    """
    Root mean square error between two images of the same shape.

    The mean is taken over every sample of every channel. Shapes are not
    validated here; callers pass buffers that share the same allocation
    layout.
    """
    return float(rmse(_as_array(reference).ravel(), _as_array(candidate).ravel()))


def compute_mae(reference, candidate) -> float:
    diff = _as_array(reference) - _as_array(candidate)
    return float(np.mean(np.abs(diff)))


def compute_max_difference(reference, candidate) -> float:
    return float(np.max(np.abs(_as_array(reference) - _as_array(candidate))))


def compute_psnr(reference, candidate, data_range: float = 1.0) -> float:
    """Peak signal-to-noise ratio in dB; infinite for identical images."""
    ref = _as_array(reference)
    cand = _as_array(candidate)
    if np.array_equal(ref, cand):
        return float("inf")
    return float(psnr(ref, cand, data_range=data_range))
