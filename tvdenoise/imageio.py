import os
import tempfile
import numpy as np
from PIL import Image as PILImage, UnidentifiedImageError

from tvdenoise.errors import ImageIOError
from tvdenoise.image import Image, is_grayscale, to_grayscale

JPEG_EXTENSIONS = (".jpg", ".jpeg", ".jpe", ".jfif")


def read_image(image_path) -> Image:
    """
    Reads an image as planar RGB with intensities in [0, 1].

    Images whose three channels are identical are returned with a single
    channel.
    """
    try:
        with PILImage.open(image_path) as pil_image:
            rgb = np.asarray(pil_image.convert("RGB"), dtype=np.float64) / 255.0
    except (OSError, UnidentifiedImageError) as e:
        raise ImageIOError(f"Failed to read \"{image_path}\": {e}") from e

    image = Image.from_array(rgb)
    if is_grayscale(image):
        image = to_grayscale(image)
    return image


def write_image(image: Image, image_path, quality: int = 95):
    """
    Writes an image quantized to 8 bits; quality applies to JPEG output.

    The image is saved to a temporary file next to ``image_path`` and moved
    into place once complete, so a failed write leaves any existing file
    untouched.
    """
    pixels = np.clip(image.to_array(), 0, 1)
    pixels = np.round(255 * pixels).astype(np.uint8)
    kwargs = {}
    if str(image_path).lower().endswith(JPEG_EXTENSIONS):
        kwargs["quality"] = quality

    directory = os.path.dirname(os.path.abspath(image_path))
    suffix = os.path.splitext(str(image_path))[1]
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(suffix=suffix, prefix=".tvdenoise-", dir=directory)
        os.close(fd)
        PILImage.fromarray(pixels).save(tmp_path, **kwargs)
        # mkstemp creates the file private; use the usual permissions instead
        umask = os.umask(0)
        os.umask(umask)
        os.chmod(tmp_path, 0o666 & ~umask)
        os.replace(tmp_path, image_path)
    except (OSError, ValueError, KeyError) as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise ImageIOError(f"Failed to write \"{image_path}\": {e}") from e
