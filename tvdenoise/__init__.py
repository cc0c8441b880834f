"""
Total variation regularized denoising (tvdenoise) package.

This package denoises images corrupted by Gaussian, Laplace or Poisson noise
with a TV regularized model, selecting the fidelity strength lambda
automatically from the noise level with the discrepancy principle.
"""

__version__ = "0.1.0"
__all__ = [
    "calibration",
    "config",
    "denoise",
    "errors",
    "image",
    "imageio",
    "metrics",
    "noise",
    "noise_models",
    "solver",
]
