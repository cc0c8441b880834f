import numpy as np
from scipy.fft import dctn, idctn


def forward_difference_x(u: np.ndarray) -> np.ndarray:
    """Forward differences along the last axis, zero on the last column (Neumann)."""
    g = np.zeros_like(u)
    g[..., :, :-1] = u[..., :, 1:] - u[..., :, :-1]
    return g


def forward_difference_y(u: np.ndarray) -> np.ndarray:
    """Forward differences along the row axis, zero on the last row (Neumann)."""
    g = np.zeros_like(u)
    g[..., :-1, :] = u[..., 1:, :] - u[..., :-1, :]
    return g


def adjoint_difference_x(y: np.ndarray) -> np.ndarray:
    """Adjoint of forward_difference_x (negative backward divergence)."""
    out = np.zeros_like(y)
    out[..., :, :-1] -= y[..., :, :-1]
    out[..., :, 1:] += y[..., :, :-1]
    return out


def adjoint_difference_y(y: np.ndarray) -> np.ndarray:
    """Adjoint of forward_difference_y (negative backward divergence)."""
    out = np.zeros_like(y)
    out[..., :-1, :] -= y[..., :-1, :]
    out[..., 1:, :] += y[..., :-1, :]
    return out


def gradient(u: np.ndarray) -> np.ndarray:
    """Stacks the x and y forward differences along a new leading axis."""
    return np.stack((forward_difference_x(u), forward_difference_y(u)))


def gradient_adjoint(d: np.ndarray) -> np.ndarray:
    """Computes grad^T d = -div d for d of shape (2, ...)."""
    return adjoint_difference_x(d[0]) + adjoint_difference_y(d[1])


def laplacian_eigenvalues(H: int, W: int) -> np.ndarray:
    """
    Eigenvalues of grad^T grad under Neumann boundaries.

    The operator is diagonalized by the orthonormal type II DCT, so
    solve_screened_poisson can invert it in O(N log N).
    """
    ky = 2 - 2 * np.cos(np.pi * np.arange(H) / H)
    kx = 2 - 2 * np.cos(np.pi * np.arange(W) / W)
    return ky[:, np.newaxis] + kx[np.newaxis, :]


def solve_screened_poisson(
    rhs: np.ndarray, alpha: float, beta: float, eigenvalues: np.ndarray = None
) -> np.ndarray:
    """
    Solves (alpha I + beta grad^T grad) u = rhs for each plane of rhs.

    Parameters:
    rhs: np.ndarray
        Right hand side of shape (..., H, W)
    alpha: float
        Identity weight, must be positive
    beta: float
        Laplacian weight
    eigenvalues: np.ndarray
        Precomputed output of laplacian_eigenvalues(H, W)
    """
    if eigenvalues is None:
        eigenvalues = laplacian_eigenvalues(*rhs.shape[-2:])
    rhs_hat = dctn(rhs, type=2, axes=(-2, -1), norm="ortho")
    rhs_hat /= alpha + beta * eigenvalues
    return idctn(rhs_hat, type=2, axes=(-2, -1), norm="ortho")


def shrink(x: np.ndarray, t: float) -> np.ndarray:
    """Scalar soft thresholding."""
    return np.sign(x) * np.maximum(np.abs(x) - t, 0)


def vector_shrink(d: np.ndarray, t: float) -> np.ndarray:
    """
    Vectorial soft thresholding.

    The magnitude is taken jointly over the two leading axes (gradient
    direction and channel), which couples the channels of color images.
    """
    norm = np.sqrt(np.sum(d**2, axis=(0, 1), keepdims=True))
    factor = np.maximum(norm - t, 0) / np.where(norm > 0, norm, 1)
    return d * factor
