from dataclasses import dataclass
import numpy as np

from tvdenoise.errors import InvalidParameterError


@dataclass
class Image:
    """
    Planar floating-point image.

    ``data`` has shape ``(num_channels, height, width)``: the channels are
    stored as contiguous planes of ``width * height`` samples each.
    """

    data: np.ndarray

    def __post_init__(self):
        self.data = np.ascontiguousarray(self.data, dtype=np.float64)
        if self.data.ndim != 3:
            raise InvalidParameterError(
                f"Image data must be planar (channels, height, width), got shape {self.data.shape}"
            )
        if self.data.shape[0] not in (1, 3):
            raise InvalidParameterError(
                f"Images must have 1 or 3 channels, got {self.data.shape[0]}"
            )

    @classmethod
    def from_array(cls, array: np.ndarray, planar: bool = False) -> "Image":
        """Builds an image from a (H, W), (H, W, C) or, if planar, (C, H, W) array."""
        array = np.asarray(array, dtype=np.float64)
        if array.ndim == 2:
            return cls(array[np.newaxis, :, :])
        if array.ndim == 3 and not planar:
            return cls(np.moveaxis(array, -1, 0))
        return cls(array)

    @classmethod
    def zeros_like(cls, other: "Image") -> "Image":
        return cls(np.zeros_like(other.data))

    @property
    def num_channels(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def shape(self):
        return self.data.shape

    @property
    def size(self) -> int:
        return self.data.size

    def copy(self) -> "Image":
        return Image(self.data.copy())

    def to_array(self) -> np.ndarray:
        """Interleaved (H, W, C) view for display, or (H, W) for grayscale."""
        if self.num_channels == 1:
            return self.data[0]
        return np.moveaxis(self.data, 0, -1)


def is_grayscale(image: Image) -> bool:
    """Test whether the red, green and blue planes are exactly equal."""
    if image.num_channels == 1:
        return True
    red, green, blue = image.data
    return bool(np.array_equal(red, green) and np.array_equal(red, blue))


def to_grayscale(image: Image) -> Image:
    """Keeps only the first plane; meant for images where is_grayscale holds."""
    return Image(image.data[:1].copy())


def check_same_shape(a: Image, b: Image):
    if a.shape != b.shape:
        raise InvalidParameterError(
            f"Image shapes differ: {a.shape} vs {b.shape}"
        )
