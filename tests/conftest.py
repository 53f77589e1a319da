import numpy as np
import pytest


def solid_rgba(h: int, w: int, color: tuple[int, int, int]) -> np.ndarray:
    img = np.zeros((h, w, 4), dtype=np.uint8)
    img[:, :, :3] = color
    img[:, :, 3] = 255
    return img


@pytest.fixture
def gray_wall() -> np.ndarray:
    return solid_rgba(40, 40, (128, 128, 128))


@pytest.fixture
def red_square_scene() -> np.ndarray:
    """40x40 light-grey wall with a dark-red 10x10 square at rows/cols 15..24."""
    img = solid_rgba(40, 40, (230, 230, 230))
    img[15:25, 15:25, :3] = (180, 30, 30)
    return img


@pytest.fixture
def ring_mask() -> np.ndarray:
    """20x20 mask with a closed 10x10 ring (3 px thick) around a 4x4 hole."""
    mask = np.zeros((20, 20), dtype=np.uint8)
    mask[5:15, 5:15] = 255
    mask[8:12, 8:12] = 0
    return mask


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def make_rgba():
    return solid_rgba


@pytest.fixture
def color_strip_scene() -> np.ndarray:
    """80x80 grey wall, a black 10x10 square and a magenta strip beside it.

    The strip has the wall's luma, so it produces no gradient edge, but its
    colour is far from the wall: only the colour branch can detect it.
    """
    img = solid_rgba(80, 80, (200, 200, 200))
    img[20:30, 20:30, :3] = (0, 0, 0)
    img[20:30, 40:46, :3] = (250, 180, 250)
    return img
