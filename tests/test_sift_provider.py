import math

import numpy as np
import pytest

from feature_types import OrientedFeatureVector
from gradient_provider import GradientFeatureProvider
from sift_provider import SIFTFeatureProvider, SIFTFeatureProviderFactory


def test_factory_builds_fresh_providers():
    factory = SIFTFeatureProviderFactory()
    a = factory.new_provider()
    b = factory.new_provider()
    assert isinstance(a, GradientFeatureProvider)
    assert a is not b
    assert a.histogram_tensor is not b.histogram_tensor


def test_factory_magnification_and_length():
    assert SIFTFeatureProviderFactory().magnification() == 12
    assert SIFTFeatureProviderFactory().descriptor_length() == 128
    factory = SIFTFeatureProviderFactory(num_ori_bins=4, num_spatial_bins=2, magnification_factor=2.5)
    assert factory.magnification() == 5
    assert len(factory.new_provider().get_feature_vector()) == 16


def test_oversampling_is_half_a_spatial_bin():
    assert SIFTFeatureProvider().oversampling_amount() == pytest.approx(0.125)
    assert SIFTFeatureProvider(num_spatial_bins=2).oversampling_amount() == pytest.approx(0.25)


def test_vector_is_tagged_and_normalised():
    provider = SIFTFeatureProvider()
    provider.set_patch_orientation(1.25)
    rng = np.random.default_rng(0)
    for sx, sy, magnitude, orientation in rng.uniform(0, 1, (200, 4)):
        provider.add_sample(sx, sy, magnitude, orientation * 2 * math.pi)

    feature = provider.get_feature_vector()

    assert isinstance(feature, OrientedFeatureVector)
    assert feature.angle == 1.25
    assert feature.values.shape == (128,)
    assert np.linalg.norm(feature.values) == pytest.approx(1.0)
    assert np.all(feature.values >= 0)


def test_empty_provider_gives_zero_vector():
    feature = SIFTFeatureProvider().get_feature_vector()
    assert np.count_nonzero(feature.values) == 0


def test_sample_at_bin_centre_fills_one_bin():
    provider = SIFTFeatureProvider()
    # centre of spatial cell (row 1, col 2), orientation exactly on bin 3
    provider.add_sample(2.5 / 4, 1.5 / 4, 1.0, 3 * 2 * math.pi / 8)

    values = provider.get_feature_vector().values.reshape(4, 4, 8)

    assert values[1, 2, 3] == pytest.approx(1.0)
    assert np.count_nonzero(values > 1e-12) == 1


def test_orientation_is_relative_to_patch():
    a = SIFTFeatureProvider()
    a.set_patch_orientation(0.0)
    a.add_sample(0.4, 0.6, 1.0, 1.0)
    b = SIFTFeatureProvider()
    b.set_patch_orientation(2.0)
    b.add_sample(0.4, 0.6, 1.0, 3.0)

    np.testing.assert_allclose(a.get_feature_vector().values, b.get_feature_vector().values, atol=1e-12)


def test_orientation_wraps_around():
    provider = SIFTFeatureProvider()
    provider.set_patch_orientation(0.5)
    # relative orientation of -2*pi/16 falls between the last and the first bin
    provider.add_sample(0.375, 0.375, 1.0, 0.5 - 2 * math.pi / 16)
    values = provider.get_feature_vector().values.reshape(4, 4, 8)
    assert values[1, 1, 7] == pytest.approx(values[1, 1, 0])
    assert values[1, 1, 7] > 0


def test_large_values_are_clipped():
    provider = SIFTFeatureProvider()
    provider.add_sample(0.375, 0.375, 100.0, 0.0)
    provider.add_sample(0.625, 0.625, 1.0, math.pi)
    values = provider.get_feature_vector().values
    # the dominant entry is clipped so the small one survives normalisation
    assert values.max() / values[values > 1e-9].min() < 100


def test_samples_beyond_padding_are_ignored():
    provider = SIFTFeatureProvider()
    provider.add_sample(1.5, 0.5, 1.0, 0.0)
    provider.add_sample(0.5, -0.3, 1.0, 0.0)
    assert np.count_nonzero(provider.get_feature_vector().values) == 0


def test_second_get_feature_vector_is_rejected():
    provider = SIFTFeatureProvider()
    provider.get_feature_vector()
    with pytest.raises(RuntimeError, match="cannot be reused"):
        provider.get_feature_vector()


def test_add_sample_after_finalisation_is_rejected():
    provider = SIFTFeatureProvider()
    provider.add_sample(0.5, 0.5, 1.0, 0.0)
    provider.get_feature_vector()
    with pytest.raises(RuntimeError, match="add_sample"):
        provider.add_sample(0.5, 0.5, 1.0, 0.0)
    with pytest.raises(RuntimeError, match="set_patch_orientation"):
        provider.set_patch_orientation(1.0)
