import math
from dataclasses import dataclass

import numpy as np

float_tolerance = 1e-7


def round_half_away(value):
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)
    """
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class Keypoint:
    """Scale-space interest point, subpixel position plus detection scale.

    Construction rejects non-finite coordinates and a scale that is not a
    positive number, so every Keypoint can be described as it is.
    """
    x: float
    y: float
    scale: float

    def __post_init__(self):
        if not (math.isfinite(self.x) and math.isfinite(self.y)):
            raise ValueError(f"Keypoint position must be finite, got ({self.x}, {self.y})")
        if not math.isfinite(self.scale) or self.scale <= 0:
            raise ValueError(f"Keypoint scale must be a positive number, got {self.scale}")

    @classmethod
    def from_cv_keypoint(cls, keypoint):
        """Convert an OpenCV KeyPoint (size is a diameter) into a Keypoint
        """
        return cls(float(keypoint.pt[0]), float(keypoint.pt[1]), 0.5 * float(keypoint.size))


class GradientMaps:
    """Per-pixel gradient magnitude and orientation (radians) for one scale level.

    Both arrays are indexed [row, col] and must share the same 2-D shape. They are
    held as read-only views so that extraction can share them between keypoints.
    """

    def __init__(self, magnitude, orientation):
        magnitude = np.asarray(magnitude, dtype=np.float64)
        orientation = np.asarray(orientation, dtype=np.float64)
        if magnitude.ndim != 2 or orientation.ndim != 2:
            raise ValueError(f"Gradient maps must be 2-D, got magnitude {magnitude.ndim}-D "
                             f"and orientation {orientation.ndim}-D")
        if magnitude.shape != orientation.shape:
            raise ValueError(f"Magnitude map {magnitude.shape} and orientation map "
                             f"{orientation.shape} must have the same shape")
        # read-only views, the caller keeps its own arrays writable
        magnitude = magnitude.view()
        orientation = orientation.view()
        magnitude.setflags(write=False)
        orientation.setflags(write=False)
        self.magnitude = magnitude
        self.orientation = orientation

    @property
    def height(self):
        return self.magnitude.shape[0]

    @property
    def width(self):
        return self.magnitude.shape[1]

    @property
    def shape(self):
        return self.magnitude.shape


def as_gradient_maps(maps):
    """Accept GradientMaps or a (magnitude, orientation) pair, checking the shapes of a pair
    """
    if isinstance(maps, GradientMaps):
        return maps
    try:
        magnitude, orientation = maps
    except (TypeError, ValueError):
        raise ValueError("Expected GradientMaps or a (magnitude, orientation) pair of arrays") from None
    return GradientMaps(magnitude, orientation)


@dataclass(frozen=True, eq=False)
class OrientedFeatureVector:
    """Fixed-length descriptor tagged with the orientation it was sampled under
    """
    angle: float
    values: np.ndarray

    def __post_init__(self):
        values = np.array(self.values, dtype=np.float64).ravel()
        values.setflags(write=False)
        object.__setattr__(self, 'values', values)

    def __len__(self):
        return len(self.values)

    def as_uint8(self):
        # same saturation as the OpenCV unsigned char descriptor convention
        quantized = np.round(512 * self.values)
        quantized[quantized < 0] = 0
        quantized[quantized > 255] = 255
        return quantized.astype(np.uint8)
