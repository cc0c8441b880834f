"""
Synthetic noise generation.

Used to build test inputs for the denoiser. The noise level ``sigma`` is
relative to intensities in [0, 1]:

- gaussian: Y = X + Normal(0, sigma^2)
- laplace:  Y = X + Laplace(0, sigma / sqrt(2))
- poisson:  Y = a * Poisson(X / a), with a = sigma^2 / mean(X)
"""

from typing import Tuple, Union
import numpy as np

from tvdenoise.errors import InvalidParameterError
from tvdenoise.image import Image
from tvdenoise.noise_models import NoiseModel, get_noise_model


def parse_noise_spec(
    spec: str, display_scaling: float = 255.0
) -> Tuple[NoiseModel, float]:
    """
    Parses "<model>" or "<model>:<sigma>".

    sigma is given in display units and is returned divided by
    ``display_scaling``. A missing sigma is returned as -1.
    """
    name, sep, sigma_str = spec.partition(":")
    model = get_noise_model(name)
    if not sep:
        return model, -1.0
    try:
        sigma = float(sigma_str) / display_scaling
    except ValueError:
        raise InvalidParameterError(f"Invalid sigma \"{sigma_str}\".") from None
    if not sigma > 0:
        raise InvalidParameterError("sigma must be positive.")
    return model, sigma


def add_noise(
    image: Image,
    model: Union[str, NoiseModel],
    sigma: float,
    rng: Union[np.random.Generator, int, None] = None,
) -> Image:
    model = get_noise_model(model)
    if not sigma > 0:
        raise InvalidParameterError("sigma must be positive.")
    rng = np.random.default_rng(rng)
    clean = image.data

    if model is NoiseModel.GAUSSIAN:
        noisy = clean + rng.normal(0, sigma, clean.shape)
    elif model is NoiseModel.LAPLACE:
        noisy = clean + rng.laplace(0, sigma / np.sqrt(2), clean.shape)
    else:
        mean = np.mean(clean)
        if np.any(clean < 0) or mean <= 0:
            raise InvalidParameterError(
                "Poisson noise requires a nonnegative image with positive mean."
            )
        a = sigma**2 / mean
        noisy = a * rng.poisson(clean / a)

    return Image(noisy)
