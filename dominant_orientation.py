import logging

import numpy as np

from feature_types import float_tolerance, round_half_away

logger = logging.getLogger(__name__)


class DominantOrientationExtractor:
    """Assign one or more dominant gradient orientations to a keypoint.

    A magnitude weighted orientation histogram is built over a circular
    neighbourhood of the keypoint, with a Gaussian falloff from the centre. Every
    smoothed histogram peak reaching peak_ratio of the highest peak becomes its
    own orientation, so a corner or junction can yield several.
    """

    def __init__(self, num_bins=36, radius_factor=3, scale_factor=1.5, peak_ratio=0.8):
        self.num_bins = num_bins
        self.radius_factor = radius_factor
        self.scale_factor = scale_factor
        self.peak_ratio = peak_ratio

    def extract_orientations(self, keypoint, maps):
        """Return the dominant orientations of the keypoint, in radians in [0, 2*pi)
        """
        histogram = self.orientation_histogram(keypoint, maps)
        if histogram.max() <= 0:
            logger.debug('No orientation support around (%.2f, %.2f), skipping...', keypoint.x, keypoint.y)
            return []
        return self.find_peaks(self.smooth_histogram(histogram))

    def orientation_histogram(self, keypoint, maps):
        sigma = self.scale_factor * keypoint.scale
        radius = round_half_away(self.radius_factor * sigma)
        variance = sigma ** 2
        # a variance that underflows to zero also rounds the radius to zero, leaving the centre pixel alone
        weight_factor = -0.5 / variance if variance > 0 else 0.
        cx = round_half_away(keypoint.x)
        cy = round_half_away(keypoint.y)

        # clip the square around the keypoint to the image, then keep the disc
        top, bottom = max(cy - radius, 0), min(cy + radius, maps.height - 1)
        left, right = max(cx - radius, 0), min(cx + radius, maps.width - 1)
        if top > bottom or left > right:
            return np.zeros(self.num_bins)

        i, j = np.mgrid[top - cy:bottom - cy + 1, left - cx:right - cx + 1]
        distance_sq = i ** 2 + j ** 2
        inside = distance_sq <= radius ** 2
        magnitude = maps.magnitude[top:bottom + 1, left:right + 1][inside]
        orientation = maps.orientation[top:bottom + 1, left:right + 1][inside]
        weight = np.exp(weight_factor * distance_sq[inside])

        bin_position = np.mod(orientation, 2 * np.pi) * self.num_bins / (2 * np.pi)
        bins = np.floor(bin_position + 0.5).astype(int) % self.num_bins
        return np.bincount(bins, weights=weight * magnitude, minlength=self.num_bins)

    @staticmethod
    def smooth_histogram(histogram):
        # circular [1, 4, 6, 4, 1] / 16 filter
        return (6 * histogram
                + 4 * (np.roll(histogram, 1) + np.roll(histogram, -1))
                + np.roll(histogram, 2) + np.roll(histogram, -2)) / 16.

    def find_peaks(self, smooth_histogram):
        num_bins = len(smooth_histogram)
        orientation_max = smooth_histogram.max()
        orientation_peaks = np.where(np.logical_and(smooth_histogram > np.roll(smooth_histogram, 1),
                                                    smooth_histogram > np.roll(smooth_histogram, -1)))[0]
        orientations = []
        for peak_index in orientation_peaks:
            peak_value = smooth_histogram[peak_index]
            if peak_value < self.peak_ratio * orientation_max:
                continue
            # quadratic interpolation of the peak between its two neighbours
            left_value = smooth_histogram[(peak_index - 1) % num_bins]
            right_value = smooth_histogram[(peak_index + 1) % num_bins]
            interpolated_peak_index = (peak_index + 0.5 * (left_value - right_value)
                                       / (left_value - 2 * peak_value + right_value)) % num_bins
            orientation = interpolated_peak_index * 2 * np.pi / num_bins
            if abs(orientation - 2 * np.pi) < float_tolerance:
                orientation = 0.
            orientations.append(float(orientation))
        return orientations
