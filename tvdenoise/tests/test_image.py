import numpy as np
import pytest

from tvdenoise.errors import InvalidParameterError
from tvdenoise.image import Image, check_same_shape, is_grayscale, to_grayscale


def test_replicated_plane_is_grayscale():
    rng = np.random.default_rng(0)
    plane = rng.random((5, 7))
    image = Image(np.stack([plane, plane, plane]))
    assert is_grayscale(image)
    gray = to_grayscale(image)
    assert gray.num_channels == 1
    np.testing.assert_array_equal(gray.data[0], plane)


def test_single_pixel_difference_is_color():
    plane = np.full((5, 7), 0.5)
    data = np.stack([plane, plane, plane])
    data[2, 4, 6] += 1e-12
    assert not is_grayscale(Image(data))


def test_one_channel_is_grayscale():
    assert is_grayscale(Image(np.zeros((1, 3, 3))))


def test_from_array_layouts():
    interleaved = np.zeros((4, 6, 3))
    image = Image.from_array(interleaved)
    assert (image.num_channels, image.height, image.width) == (3, 4, 6)

    image = Image.from_array(np.zeros((4, 6)))
    assert image.shape == (1, 4, 6)

    image = Image.from_array(np.zeros((3, 4, 6)), planar=True)
    assert image.shape == (3, 4, 6)
    assert image.to_array().shape == (4, 6, 3)


def test_invalid_channel_count():
    with pytest.raises(InvalidParameterError):
        Image(np.zeros((2, 4, 4)))
    with pytest.raises(InvalidParameterError):
        Image(np.zeros((4, 4)))


def test_check_same_shape():
    check_same_shape(Image(np.zeros((1, 2, 2))), Image(np.ones((1, 2, 2))))
    with pytest.raises(InvalidParameterError):
        check_same_shape(Image(np.zeros((1, 2, 2))), Image(np.zeros((3, 2, 2))))
