"""Oriented local descriptors sampled from gradient maps.

For every dominant orientation of a keypoint, GradientFeatureExtractor visits
the pixels of a square patch centred on the keypoint and rotated to that
orientation. Each pixel's gradient goes to a fresh GradientFeatureProvider,
which builds the descriptor. The patch side is magnification * scale pixels. For
a SIFT provider with 4x4 spatial bins, a magnification of about 12 (3 per bin)
is typical.
"""
import logging
import math
from collections import namedtuple

import numpy as np

from dominant_orientation import DominantOrientationExtractor
from feature_types import OrientedFeatureVector, as_gradient_maps, round_half_away

logger = logging.getLogger(__name__)

SamplingGeometry = namedtuple('SamplingGeometry', ['bounding_box_size', 'extra_sampling', 'sampling_box_size',
                                                   'oriented_size', 'half_size'])


def sampling_geometry(scale, magnification, oversampling, orientation):
    """Size the oriented sampling square of a keypoint and its axis aligned pixel bound

    bounding_box_size is the side of the unit patch in pixels. sampling_box_size
    adds the provider's oversampling on each side. half_size is the half side,
    rounded half away from zero, of the axis aligned box that contains the
    sampling square once it is rotated by orientation.
    """
    sin = math.sin(orientation)
    cos = math.cos(orientation)
    bounding_box_size = magnification * scale
    extra_sampling = oversampling * bounding_box_size
    sampling_box_size = extra_sampling + bounding_box_size + extra_sampling
    oriented_size = abs(sin * sampling_box_size) + abs(cos * sampling_box_size)
    half_size = round_half_away(oriented_size / 2.0)
    return SamplingGeometry(bounding_box_size, extra_sampling, sampling_box_size, oriented_size, half_size)


class GradientFeatureExtractor:

    def __init__(self, factory, orientation_extractor=None, magnification=12.0):
        if not math.isfinite(magnification) or magnification <= 0:
            raise ValueError(f"Magnification must be a positive number, got {magnification}")
        self.factory = factory
        if orientation_extractor is None:
            orientation_extractor = DominantOrientationExtractor()
        self.orientation_extractor = orientation_extractor
        self.magnification = magnification

    @classmethod
    def from_params(cls, factory, params=None):
        if params is None:
            params = {}
        orientation_extractor = DominantOrientationExtractor(
            num_bins=params.get('num_bins', 36),
            radius_factor=params.get('radius_factor', 3),
            scale_factor=params.get('scale_factor', 1.5),
            peak_ratio=params.get('peak_ratio', 0.8)
        )
        return cls(factory, orientation_extractor, magnification=params.get('magnification', 12.0))

    def extract_feature(self, keypoint, maps):
        """Describe the keypoint once per dominant orientation.

        Returns a list of OrientedFeatureVector, which is empty when no dominant
        orientation is found. Raises ValueError for magnitude and orientation
        maps of different shapes.
        """
        return self._describe(keypoint, as_gradient_maps(maps))

    def extract_features(self, keypoints, maps):
        """Describe a batch of keypoints, one result list per keypoint in input order
        """
        logger.debug('Generating descriptors...')
        maps = as_gradient_maps(maps)
        features = [self._describe(keypoint, maps) for keypoint in keypoints]
        logger.debug('Generated %d descriptors for %d keypoints', sum(len(f) for f in features), len(features))
        return features

    def _describe(self, keypoint, maps):
        orientations = self.orientation_extractor.extract_orientations(keypoint, maps)
        return [self.create_feature(keypoint.x, keypoint.y, keypoint.scale, orientation, maps)
                for orientation in orientations]

    def create_feature(self, fx, fy, scale, orientation, maps):
        """Pass every pixel of the oriented sampling patch to a new provider and return its vector
        """
        provider = self.factory.new_provider()
        provider.set_patch_orientation(orientation)

        # integer centre of the patch
        ix = round_half_away(fx)
        iy = round_half_away(fy)

        sin = math.sin(orientation)
        cos = math.cos(orientation)

        oversampling = provider.oversampling_amount()
        geometry = sampling_geometry(scale, self.magnification, oversampling, orientation)
        bounding_box_size = geometry.bounding_box_size
        half_size = geometry.half_size

        # offsets of the bounding box that land inside the image; the rest are dropped
        y_start, y_stop = max(-half_size, -iy), min(half_size, maps.height - 1 - iy)
        x_start, x_stop = max(-half_size, -ix), min(half_size, maps.width - 1 - ix)

        if y_start <= y_stop and x_start <= x_stop:
            y, x = np.mgrid[y_start:y_stop + 1, x_start:x_stop + 1]
            # position of each pixel in the rotated unit patch
            sx = 0.5 + ((-sin * y + cos * x) - (fx - ix)) / bounding_box_size
            sy = 0.5 + ((cos * y + sin * x) - (fy - iy)) / bounding_box_size

            inside = (sx > -oversampling) & (sx < 1 + oversampling) & (sy > -oversampling) & (sy < 1 + oversampling)
            rows = y[inside] + iy
            cols = x[inside] + ix
            # boolean indexing keeps row-major order, y outer and x inner
            for sample in zip(sx[inside].tolist(), sy[inside].tolist(),
                              maps.magnitude[rows, cols].tolist(), maps.orientation[rows, cols].tolist()):
                provider.add_sample(*sample)

        feature = provider.get_feature_vector()
        if feature.angle != orientation:
            feature = OrientedFeatureVector(orientation, feature.values)
        return feature
