"""Command line programs: tvdenoise, imnoise and imdiff."""

import argparse
import logging
import sys

import numpy as np
from rich import print
from rich.table import Table

from tvdenoise import __version__
from tvdenoise.config import get_config
from tvdenoise.denoise import denoise_image
from tvdenoise.errors import InvalidParameterError, TVDenoiseError, UnknownModelError
from tvdenoise.image import Image, check_same_shape
from tvdenoise.imageio import read_image, write_image
from tvdenoise.log import setup_logging
from tvdenoise.metrics import (
    compute_mae,
    compute_max_difference,
    compute_psnr,
    compute_rmse,
)
from tvdenoise.noise import add_noise, parse_noise_spec

logger = logging.getLogger(__name__)

# Exit statuses
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

NOISE_MODELS_HELP = """\
noise models:
  gaussian  Additive white Gaussian noise
            Y[n] ~ Normal(X[n], sigma^2)
  laplace   Laplace noise
            Y[n] ~ Laplace(X[n], sigma/sqrt(2))
  poisson   Poisson noise
            Y[n] ~ Poisson(X[n]/a) a
            where a = 255 sigma^2 / (mean X)
"""


def _quality(value):
    try:
        quality = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid quality \"{value}\"")
    if not 1 <= quality <= 100:
        raise argparse.ArgumentTypeError("JPEG quality must be between 1 and 100.")
    return quality


def _positive_float(value):
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number \"{value}\"")
    if not number > 0:
        raise argparse.ArgumentTypeError("lambda must be positive.")
    return number


def build_denoise_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tvdenoise",
        description=(
            "Total variation regularized denoising. Either lambda (the "
            "fidelity strength) or sigma (the noise standard deviation) "
            "should be specified. If sigma is specified, then lambda is "
            "selected automatically with the discrepancy principle."
        ),
        epilog=NOISE_MODELS_HELP
        + "\nexample:\n  tvdenoise -n laplace:10 noisy.bmp denoised.bmp\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("noisy", help="Path to the noisy input image")
    parser.add_argument("denoised", help="Path to write the denoised image")
    parser.add_argument(
        "-n",
        "--noise",
        default="gaussian",
        metavar="<model>[:<sigma>]",
        help="Noise model, optionally with sigma in [0, 255] units",
    )
    parser.add_argument(
        "-l",
        "--lambda",
        dest="lam",
        type=_positive_float,
        default=-1.0,
        metavar="<number>",
        help="Fidelity strength",
    )
    parser.add_argument(
        "-q",
        "--quality",
        type=_quality,
        default=None,
        metavar="<number>",
        help="Quality for saving JPEG images (1 to 100)",
    )
    parser.add_argument("--config", default=None, help="YAML configuration file")
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def main(argv=None) -> int:
    parser = build_denoise_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = get_config(args.config, jpeg_quality=args.quality)
        model, sigma = parse_noise_spec(args.noise, config.display_scaling)
    except (InvalidParameterError, UnknownModelError) as e:
        parser.error(str(e))

    if sigma < 0 and args.lam < 0:
        parser.error("Either sigma or lambda must be specified.")

    try:
        noisy = read_image(args.noisy)
        denoised, result = denoise_image(
            noisy, model, sigma, args.lam, config=config, verbose=True
        )
        write_image(denoised, args.denoised, quality=config.jpeg_quality)
    except TVDenoiseError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    logger.info(f"Wrote {args.denoised} (lambda = {result.lam:.4f})")
    return EXIT_SUCCESS


def build_noise_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imnoise",
        description="Simulate noise on an image.",
        epilog=NOISE_MODELS_HELP
        + "\nexample:\n  imnoise gaussian:15 clean.bmp noisy.bmp\n",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("noise", metavar="<model>:<sigma>", help="Noise model and sigma")
    parser.add_argument("clean", help="Path to the input image")
    parser.add_argument("noisy", help="Path to write the noisy image")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument(
        "-q", "--quality", type=_quality, default=95, metavar="<number>"
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def imnoise_main(argv=None) -> int:
    parser = build_noise_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        model, sigma = parse_noise_spec(args.noise)
    except (InvalidParameterError, UnknownModelError) as e:
        parser.error(str(e))
    if sigma < 0:
        parser.error("sigma must be specified as <model>:<sigma>.")

    try:
        clean = read_image(args.clean)
        noisy = add_noise(clean, model, sigma, rng=args.seed)
        write_image(noisy, args.noisy, quality=args.quality)
    except TVDenoiseError as e:
        logger.error(str(e))
        return EXIT_FAILURE
    return EXIT_SUCCESS


def build_diff_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imdiff", description="Compare two images."
    )
    parser.add_argument("reference", help="Path to the reference image")
    parser.add_argument("other", help="Path to the image to compare")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def _match_channels(a: Image, b: Image):
    if a.num_channels == 1 and b.num_channels == 3:
        a = Image(np.repeat(a.data, 3, axis=0))
    elif a.num_channels == 3 and b.num_channels == 1:
        b = Image(np.repeat(b.data, 3, axis=0))
    return a, b


def image_difference_table(reference: Image, other: Image, scaling: float = 255.0) -> Table:
    check_same_shape(reference, other)
    table = Table(title="Image difference")
    table.add_column("metric")
    table.add_column("value", justify="right")
    table.add_row("Maximum absolute difference", f"{scaling * compute_max_difference(reference, other):g}")
    table.add_row("Mean squared error", f"{(scaling * compute_rmse(reference, other)) ** 2:.4f}")
    table.add_row("Root mean squared error", f"{scaling * compute_rmse(reference, other):.4f}")
    table.add_row("Peak signal-to-noise ratio", f"{compute_psnr(reference, other):.4f} dB")
    table.add_row("Mean absolute error", f"{scaling * compute_mae(reference, other):.4f}")
    return table


def imdiff_main(argv=None) -> int:
    parser = build_diff_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        reference, other = _match_channels(
            read_image(args.reference), read_image(args.other)
        )
        table = image_difference_table(reference, other)
    except TVDenoiseError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    print(table)
    return EXIT_SUCCESS


if __name__ == "__main__":
    sys.exit(main())
