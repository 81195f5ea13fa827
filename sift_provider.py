import numpy as np
from numpy.linalg import norm

from feature_types import OrientedFeatureVector, float_tolerance
from gradient_provider import GradientFeatureProvider, GradientFeatureProviderFactory


class SIFTFeatureProvider(GradientFeatureProvider):
    """SIFT style spatial histogram of gradient orientations.

    The patch is split into num_spatial_bins x num_spatial_bins cells, each
    holding a num_ori_bins orientation histogram. Every sample is Gaussian
    weighted by its distance from the patch centre and spread over its eight
    neighbouring bins by trilinear interpolation. The final vector is normalised,
    clipped at value_threshold and normalised again, which makes it robust to
    illumination changes.
    """

    def __init__(self, num_ori_bins=8, num_spatial_bins=4, value_threshold=0.2, gaussian_sigma=0.5):
        super().__init__()
        self.num_ori_bins = num_ori_bins
        self.num_spatial_bins = num_spatial_bins
        self.value_threshold = value_threshold
        self.weight_multiplier = -0.5 / (gaussian_sigma ** 2)
        # padded by one cell on each side for samples interpolated from outside the patch
        self.histogram_tensor = np.zeros((num_spatial_bins + 2, num_spatial_bins + 2, num_ori_bins))

    def oversampling_amount(self):
        # half a spatial bin, the reach of the interpolation
        return 0.5 / self.num_spatial_bins

    def _accumulate(self, sx, sy, magnitude, orientation):
        num_bins = self.num_spatial_bins
        row_bin = sy * num_bins - 0.5
        col_bin = sx * num_bins - 0.5
        if not (-1 < row_bin < num_bins and -1 < col_bin < num_bins):
            return

        weight = np.exp(self.weight_multiplier * ((sx - 0.5) ** 2 + (sy - 0.5) ** 2))
        magnitude = weight * magnitude
        relative_orientation = np.mod(orientation - self.patch_orientation, 2 * np.pi)
        orientation_bin = relative_orientation * self.num_ori_bins / (2 * np.pi)

        row_bin_floor, col_bin_floor, orientation_bin_floor = np.floor([row_bin, col_bin, orientation_bin]).astype(int)
        row_fraction, col_fraction, orientation_fraction = row_bin - row_bin_floor, col_bin - col_bin_floor, orientation_bin - orientation_bin_floor
        if orientation_bin_floor < 0:
            orientation_bin_floor += self.num_ori_bins
        if orientation_bin_floor >= self.num_ori_bins:
            orientation_bin_floor -= self.num_ori_bins
        next_orientation_bin = (orientation_bin_floor + 1) % self.num_ori_bins

        c1 = magnitude * row_fraction
        c0 = magnitude * (1 - row_fraction)
        c11 = c1 * col_fraction
        c10 = c1 * (1 - col_fraction)
        c01 = c0 * col_fraction
        c00 = c0 * (1 - col_fraction)

        # +1 for the padding
        row, col = row_bin_floor + 1, col_bin_floor + 1
        histogram = self.histogram_tensor
        histogram[row, col, orientation_bin_floor] += c00 * (1 - orientation_fraction)
        histogram[row, col, next_orientation_bin] += c00 * orientation_fraction
        histogram[row, col + 1, orientation_bin_floor] += c01 * (1 - orientation_fraction)
        histogram[row, col + 1, next_orientation_bin] += c01 * orientation_fraction
        histogram[row + 1, col, orientation_bin_floor] += c10 * (1 - orientation_fraction)
        histogram[row + 1, col, next_orientation_bin] += c10 * orientation_fraction
        histogram[row + 1, col + 1, orientation_bin_floor] += c11 * (1 - orientation_fraction)
        histogram[row + 1, col + 1, next_orientation_bin] += c11 * orientation_fraction

    def _finalize(self):
        descriptor_vector = self.histogram_tensor[1:-1, 1:-1, :].flatten()
        threshold = norm(descriptor_vector) * self.value_threshold
        descriptor_vector[descriptor_vector > threshold] = threshold
        descriptor_vector /= max(norm(descriptor_vector), float_tolerance)
        return OrientedFeatureVector(self.patch_orientation, descriptor_vector)


class SIFTFeatureProviderFactory(GradientFeatureProviderFactory):

    def __init__(self, num_ori_bins=8, num_spatial_bins=4, value_threshold=0.2, gaussian_sigma=0.5,
                 magnification_factor=3):
        self.num_ori_bins = num_ori_bins
        self.num_spatial_bins = num_spatial_bins
        self.value_threshold = value_threshold
        self.gaussian_sigma = gaussian_sigma
        self.magnification_factor = magnification_factor

    def new_provider(self):
        return SIFTFeatureProvider(self.num_ori_bins, self.num_spatial_bins,
                                   self.value_threshold, self.gaussian_sigma)

    def magnification(self):
        """Sampling patch size relative to keypoint scale suited to this layout (12 for 4x4 bins)
        """
        return self.magnification_factor * self.num_spatial_bins

    def descriptor_length(self):
        return self.num_spatial_bins * self.num_spatial_bins * self.num_ori_bins
