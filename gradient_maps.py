import logging

import cv2
import numpy as np

from feature_types import GradientMaps

logger = logging.getLogger(__name__)


def compute_gradient_maps(image, sigma=None):
    """Compute the gradient magnitude and orientation maps of a grayscale image

    The image is optionally blurred to the working scale first. Gradients use
    central differences, with dy measured upwards (row above minus row below).
    With that convention, a pixel offset rotated by R(-a) sees its gradient angle
    grow by a, which matches the rotation applied when sampling patches.
    Orientations are in [0, 2*pi). Border pixels lack a full neighbourhood and
    get zero magnitude.
    """
    image = np.asarray(image)
    if image.ndim != 2:
        raise ValueError(f"Expected a single channel image, got shape {image.shape}")
    image = image.astype('float32')
    if sigma is not None and sigma > 0:
        logger.debug('Blurring image to sigma %.3f...', sigma)
        image = cv2.GaussianBlur(image, (0, 0), sigmaX=sigma, sigmaY=sigma)

    logger.debug('Computing gradient maps...')
    image = image.astype(np.float64)
    dx = np.zeros_like(image)
    dy = np.zeros_like(image)
    dx[1:-1, 1:-1] = image[1:-1, 2:] - image[1:-1, :-2]
    dy[1:-1, 1:-1] = image[:-2, 1:-1] - image[2:, 1:-1]

    magnitude = np.sqrt(dx * dx + dy * dy)
    orientation = np.mod(np.arctan2(dy, dx), 2 * np.pi)
    # arctan2 of -0.0 can land exactly on 2*pi after the modulo
    orientation[orientation >= 2 * np.pi] = 0.0
    return GradientMaps(magnitude, orientation)
