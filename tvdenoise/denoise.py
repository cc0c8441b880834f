from dataclasses import dataclass
from typing import Optional, Tuple, Union
import logging
import numpy as np

from tvdenoise.calibration import CalibrationState, calibrate
from tvdenoise.config import Config
from tvdenoise.errors import (
    AllocationError,
    InvalidParameterError,
    SolverFailure,
    TVDenoiseError,
)
from tvdenoise.image import Image
from tvdenoise.metrics import compute_rmse
from tvdenoise.noise_models import NoiseModel, get_noise_model
from tvdenoise.solver import RestoreFn, SolverOptions, tv_restore

logger = logging.getLogger(__name__)


@dataclass
class DenoiseResult:
    lam: float
    rmse: Optional[float] = None
    calibration: Optional[CalibrationState] = None


def _buffer(x: Union[Image, np.ndarray]) -> np.ndarray:
    return x.data if isinstance(x, Image) else x


def _restore(restore: RestoreFn, u: np.ndarray, f: np.ndarray, options: SolverOptions):
    try:
        restore(u, f, options)
    except (SolverFailure, AllocationError):
        raise
    except MemoryError as e:
        raise AllocationError("Memory allocation failed") from e
    except TVDenoiseError as e:
        raise SolverFailure(f"Error in computation: {e}") from e


def denoise(
    u: Union[Image, np.ndarray],
    f: Union[Image, np.ndarray],
    model: Union[str, NoiseModel],
    sigma: float,
    lam: float,
    restore: RestoreFn = tv_restore,
    config: Optional[Config] = None,
    verbose: bool = False,
) -> DenoiseResult:
    """
    TV regularized denoising.

    If sigma > 0, lambda is tuned with the discrepancy principle (see
    calibrate) using coarse solves; otherwise the given lambda is used.
    A final, more accurate solve at the selected lambda is then written
    into u, warm started from the previous result.

    Parameters:
    u: Image or np.ndarray
        Output buffer, same shape as f, overwritten in place
    f: Image or np.ndarray
        Noisy image
    model: str or NoiseModel
        "gaussian", "laplace" or "poisson"
    sigma: float
        Noise standard deviation relative to [0, 1] intensities, or <= 0
        to use lam directly
    lam: float
        Fidelity strength, used only when sigma <= 0
    """
    model = get_noise_model(model)
    config = config or Config()
    u_data, f_data = _buffer(u), _buffer(f)
    if u_data.shape != f_data.shape:
        raise InvalidParameterError(
            f"Image shapes differ: {u_data.shape} vs {f_data.shape}"
        )
    if sigma <= 0 and not lam > 0:
        raise InvalidParameterError("Either sigma or lambda must be positive.")

    logger.info(f"TV regularized denoising with {model.value.capitalize()} noise model")

    # Set initial guess as u = f
    u_data[...] = f_data
    options = SolverOptions(gamma1=config.gamma1, gamma2=config.gamma2)
    options.set_noise_model(model)
    options.set_plot_fn(None)
    options.set_tol(config.coarse_tol)
    options.set_max_iter(config.coarse_max_iter)

    calibration = None
    if sigma <= 0:
        options.set_lambda(lam)
        # Coarse solve at the fixed lambda, refined by the final solve
        _restore(restore, u_data, f_data, options)
    else:
        calibration = calibrate(
            u_data,
            f_data,
            model,
            sigma,
            options,
            restore=restore,
            rounds=config.tune_iterations,
            verbose=verbose,
            display_scaling=config.display_scaling,
        )

    # Final denoising
    options.set_tol(config.final_tol)
    options.set_max_iter(config.final_max_iter)
    _restore(restore, u_data, f_data, options)

    result = DenoiseResult(lam=options.lam, calibration=calibration)
    if sigma > 0:
        result.rmse = compute_rmse(f_data, u_data)
        logger.info(
            f"Final lambda {result.lam:.4f}, distance "
            f"{config.display_scaling * result.rmse:.5f} "
            f"(target = {config.display_scaling * sigma:.5f})"
        )
    return result


def denoise_image(
    noisy: Image,
    model: Union[str, NoiseModel],
    sigma: float,
    lam: float,
    restore: RestoreFn = tv_restore,
    config: Optional[Config] = None,
    verbose: bool = False,
) -> Tuple[Image, DenoiseResult]:
    """Allocates the output image and denoises ``noisy`` into it."""
    get_noise_model(model)
    try:
        u = Image.zeros_like(noisy)
    except MemoryError as e:
        raise AllocationError("Memory allocation failed") from e
    result = denoise(u, noisy, model, sigma, lam, restore, config, verbose)
    return u, result
