from enum import Enum
from typing import Union
import numpy as np

from tvdenoise.errors import InvalidParameterError, UnknownModelError

MIN_LAMBDA = 1e-4


class NoiseModel(str, Enum):
    GAUSSIAN = "gaussian"
    LAPLACE = "laplace"
    POISSON = "poisson"

    def __str__(self):
        return self.value


def get_noise_model(model: Union[str, NoiseModel]) -> NoiseModel:
    """Resolves a noise model name, raising UnknownModelError if it is not known."""
    if isinstance(model, NoiseModel):
        return model
    try:
        return NoiseModel(str(model).strip().lower())
    except ValueError:
        raise UnknownModelError(model) from None


def initial_lambda(model: Union[str, NoiseModel], sigma: float) -> float:
    """
    Empirical estimate of the optimal lambda for a given noise level.

    Parameters:
    model: str or NoiseModel
        "gaussian", "laplace" or "poisson"
    sigma: float
        Noise standard deviation relative to intensities in [0, 1]

    Returns:
    lam: float
        Initial fidelity strength, never below MIN_LAMBDA
    """
    model = get_noise_model(model)
    if not sigma > 0:
        raise InvalidParameterError("sigma must be positive.")

    if model is NoiseModel.GAUSSIAN:
        lam = 0.7079 / sigma + 0.002686 / (sigma * sigma)
    elif model is NoiseModel.LAPLACE:
        lam = (-0.00416 * sigma + 0.001301) / (
            ((sigma - 0.2042) * sigma + 0.01635) * sigma + 5.836e-4
        )
    else:
        lam = 0.2839 / sigma + 0.001502 / (sigma * sigma)

    # Prevent nonpositive lambda
    return max(lam, MIN_LAMBDA)


def update_lambda(
    model: Union[str, NoiseModel], lam: float, rmse: float, sigma: float
) -> float:
    """
    Discrepancy principle correction of lambda.

    An rmse above sigma means the restoration is smoothing too much, so
    lambda is increased; below sigma it is decreased. The result is kept
    at or above MIN_LAMBDA so a zero residual cannot zero out lambda.
    """
    model = get_noise_model(model)
    if model is NoiseModel.LAPLACE:
        lam = lam * np.sqrt(rmse / sigma)
    else:
        lam = lam * rmse / sigma
    return max(float(lam), MIN_LAMBDA)
