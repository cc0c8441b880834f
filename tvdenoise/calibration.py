from dataclasses import dataclass, field
from typing import List, Union
import logging
import numpy as np

from rich import print
from rich.table import Table

from tvdenoise.errors import (
    AllocationError,
    InvalidParameterError,
    SolverFailure,
    TVDenoiseError,
)
from tvdenoise.metrics import compute_rmse
from tvdenoise.noise_models import (
    NoiseModel,
    get_noise_model,
    initial_lambda,
    update_lambda,
)
from tvdenoise.solver import RestoreFn, SolverOptions, tv_restore

logger = logging.getLogger(__name__)

# Number of iterations for tuning lambda
TUNE_ITERATIONS = 5


@dataclass
class CalibrationRound:
    lam: float
    rmse: float


@dataclass
class CalibrationState:
    initial_lam: float
    lam: float
    sigma: float
    rounds: List[CalibrationRound] = field(default_factory=list)

    def to_table(self, display_scaling: float = 255.0) -> Table:
        table = Table(title="Tuning lambda")
        table.add_column("round", justify="right")
        table.add_column("lambda", justify="right")
        table.add_column(
            f"distance (target = {display_scaling * self.sigma:.5f})",
            justify="right",
        )
        for k, r in enumerate(self.rounds):
            table.add_row(str(k), f"{r.lam:.4f}", f"{display_scaling * r.rmse:.5f}")
        table.add_row("final", f"{self.lam:.4f}", "")
        return table


def calibrate(
    u: np.ndarray,
    f: np.ndarray,
    model: Union[str, NoiseModel],
    sigma: float,
    options: SolverOptions,
    restore: RestoreFn = tv_restore,
    rounds: int = TUNE_ITERATIONS,
    verbose: bool = False,
    display_scaling: float = 255.0,
) -> CalibrationState:
    """
    Tune lambda according to the discrepancy principle.

    Starting from the empirical estimate given by initial_lambda, each round
    restores f at the current lambda and rescales lambda by how far the
    residual rmse(f, u) is from sigma. A fixed number of rounds is run.

    Every restore uses the current u as the initial guess and overwrites it
    with the result: the restoration at the previous lambda is a good
    estimate for the next one. On return, u holds the restoration computed
    before the last update of lambda; options carries the updated lambda,
    which is not solved for here.

    Parameters:
    u: np.ndarray
        Working buffer, initialized by the caller (usually with f)
    f: np.ndarray
        Noisy image
    model: str or NoiseModel
        Noise model
    sigma: float
        Noise standard deviation relative to intensities in [0, 1]
    options: SolverOptions
        Solver configuration, lambda is written into it after every round
    restore: RestoreFn
        TV restoration routine

    Returns:
    state: CalibrationState
        Final lambda and the lambda/rmse history of every round
    """
    model = get_noise_model(model)
    if not sigma > 0:
        raise InvalidParameterError("sigma must be positive.")

    lam = initial_lambda(model, sigma)
    options.set_lambda(lam)
    state = CalibrationState(initial_lam=lam, lam=lam, sigma=sigma)
    logger.info(
        f"Tuning lambda (initial {lam:.4f}, target distance "
        f"{display_scaling * sigma:.5f})"
    )

    for k in range(rounds):
        try:
            restore(u, f, options)
        except (SolverFailure, AllocationError):
            raise
        except MemoryError as e:
            raise AllocationError("Memory allocation failed") from e
        except TVDenoiseError as e:
            raise SolverFailure(f"Error in computation: {e}") from e

        rmse = compute_rmse(f, u)
        state.rounds.append(CalibrationRound(lam=lam, rmse=rmse))
        lam = update_lambda(model, lam, rmse, sigma)
        options.set_lambda(lam)
        state.lam = lam
        logger.debug(
            f"round {k}: distance {display_scaling * rmse:.5f}, next lambda {lam:.4f}"
        )

    if verbose:
        print(state.to_table(display_scaling))
    return state
