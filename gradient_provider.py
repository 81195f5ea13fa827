"""Accumulation strategies fed by the gradient feature extractor.

A provider receives samples in normalised patch coordinates, where the unit
square [0, 1] x [0, 1] is the patch and (0.5, 0.5) its centre. It turns them
into a fixed length OrientedFeatureVector. One provider describes exactly one
(keypoint, orientation) pair. Once get_feature_vector() has been called the
provider is finished; feeding it again, or finalising it twice, is a
precondition violation and raises RuntimeError.
"""
import abc


class GradientFeatureProvider(metaclass=abc.ABCMeta):

    def __init__(self):
        self.patch_orientation = 0.
        self._finalized = False

    @abc.abstractmethod
    def oversampling_amount(self):
        """Fraction of the unit patch, per side, that samples may extend beyond it
        """

    def set_patch_orientation(self, angle):
        self._check_not_finalized('set_patch_orientation')
        self.patch_orientation = angle

    def add_sample(self, sx, sy, magnitude, orientation):
        """Accumulate the gradient at patch coordinates (sx, sy)
        """
        self._check_not_finalized('add_sample')
        self._accumulate(sx, sy, magnitude, orientation)

    def get_feature_vector(self):
        """Finalise the accumulated state and return the OrientedFeatureVector.

        May only be called once per provider.
        """
        self._check_not_finalized('get_feature_vector')
        self._finalized = True
        return self._finalize()

    @abc.abstractmethod
    def _accumulate(self, sx, sy, magnitude, orientation):
        pass

    @abc.abstractmethod
    def _finalize(self):
        pass

    def _check_not_finalized(self, operation):
        if self._finalized:
            raise RuntimeError(f"{type(self).__name__}.{operation}() called after get_feature_vector(); "
                               "providers cannot be reused")


class GradientFeatureProviderFactory(metaclass=abc.ABCMeta):

    @abc.abstractmethod
    def new_provider(self):
        """Return a fresh GradientFeatureProvider
        """
