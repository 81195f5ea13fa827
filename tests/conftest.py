import numpy as np
import pytest

from feature_types import GradientMaps, OrientedFeatureVector
from gradient_provider import GradientFeatureProvider, GradientFeatureProviderFactory


class RecordingProvider(GradientFeatureProvider):
    """Keeps every sample it receives; its vector is the sample count"""

    def __init__(self, oversampling=0.0):
        super().__init__()
        self.oversampling = oversampling
        self.samples = []

    def oversampling_amount(self):
        return self.oversampling

    def _accumulate(self, sx, sy, magnitude, orientation):
        self.samples.append((sx, sy, magnitude, orientation))

    def _finalize(self):
        return OrientedFeatureVector(self.patch_orientation, [len(self.samples)])


class RecordingFactory(GradientFeatureProviderFactory):

    def __init__(self, oversampling=0.0):
        self.oversampling = oversampling
        self.providers = []

    def new_provider(self):
        provider = RecordingProvider(self.oversampling)
        self.providers.append(provider)
        return provider


class FixedOrientationExtractor:
    """Stands in for the dominant orientation extractor"""

    def __init__(self, orientations):
        self.orientations = list(orientations)
        self.calls = 0

    def extract_orientations(self, keypoint, maps):
        self.calls += 1
        return list(self.orientations)


@pytest.fixture
def recording_factory():
    return RecordingFactory()


@pytest.fixture
def index_maps():
    """100x100 maps whose magnitude is the flat pixel index, so samples identify their pixel"""
    height, width = 100, 100
    magnitude = np.arange(height * width, dtype=np.float64).reshape(height, width)
    orientation = np.zeros((height, width))
    return GradientMaps(magnitude, orientation)


@pytest.fixture
def random_maps():
    rng = np.random.default_rng(1234)
    magnitude = rng.uniform(0, 1, (64, 64))
    orientation = rng.uniform(0, 2 * np.pi, (64, 64))
    return GradientMaps(magnitude, orientation)
