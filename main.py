import argparse
import logging
import math
import time

import cv2
import numpy as np
from matplotlib import pyplot as plt

from feature_types import Keypoint, round_half_away
from gradient_extractor import GradientFeatureExtractor
from gradient_maps import compute_gradient_maps
from sift_provider import SIFTFeatureProviderFactory

logger = logging.getLogger(__name__)


def create_test_image(size=300):
    """Synthetic grayscale image with a few geometric shapes
    """
    s = size / 300.
    test_image = np.zeros((size, size), dtype=np.uint8)
    cv2.rectangle(test_image, (int(50 * s), int(50 * s)), (int(100 * s), int(100 * s)), 255, -1)
    cv2.circle(test_image, (int(200 * s), int(150 * s)), max(1, int(30 * s)), 180, -1)
    cv2.line(test_image, (int(100 * s), int(200 * s)), (int(200 * s), int(250 * s)), 120, max(1, int(5 * s)))
    return test_image


def grid_keypoints(image_shape, scale, step):
    """Keypoints on a regular grid, row by row
    """
    height, width = image_shape[:2]
    return [Keypoint(float(x), float(y), scale)
            for y in range(step // 2, height, step)
            for x in range(step // 2, width, step)]


def draw_features(image, keypoints, features, color=(0, 255, 0), thickness=1):
    """Draw each keypoint as a circle with one radius per extracted orientation
    """
    if len(image.shape) == 2:
        vis_img = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    else:
        vis_img = image.copy()

    for keypoint, keypoint_features in zip(keypoints, features):
        if not keypoint_features:
            continue
        center = (round_half_away(keypoint.x), round_half_away(keypoint.y))
        radius = max(2, round_half_away(3 * keypoint.scale))
        cv2.circle(vis_img, center, radius, color, thickness)
        for feature in keypoint_features:
            # orientations are measured with y pointing up
            end = (round_half_away(keypoint.x + radius * math.cos(feature.angle)),
                   round_half_away(keypoint.y - radius * math.sin(feature.angle)))
            cv2.line(vis_img, center, end, color, thickness)
    return vis_img


def run_demo(size=300, scale=2.0, magnification=None, step=None, sigma=1.0):
    """Extract SIFT style descriptors on a keypoint grid over the synthetic image
    """
    factory = SIFTFeatureProviderFactory()
    if magnification is None:
        magnification = factory.magnification()
    if step is None:
        step = max(1, round_half_away(magnification * scale))

    image = create_test_image(size)
    maps = compute_gradient_maps(image, sigma=sigma)
    extractor = GradientFeatureExtractor(factory, magnification=magnification)
    keypoints = grid_keypoints(image.shape, scale, step)

    start_time = time.time()
    features = extractor.extract_features(keypoints, maps)
    elapsed_time = time.time() - start_time

    described = sum(1 for keypoint_features in features if keypoint_features)
    total = sum(len(keypoint_features) for keypoint_features in features)
    logger.info('Described %d of %d keypoints with %d oriented vectors of length %d in %.4f seconds',
                described, len(keypoints), total, factory.descriptor_length(), elapsed_time)
    return image, keypoints, features


def main(argv=None):
    parser = argparse.ArgumentParser(description="Oriented gradient descriptors on a synthetic image")
    parser.add_argument('--size', type=int, default=300, help="side of the synthetic image in pixels")
    parser.add_argument('--scale', type=float, default=2.0, help="scale of the grid keypoints")
    parser.add_argument('--magnification', type=float, default=None,
                        help="patch size relative to scale (default: suited to the SIFT layout)")
    parser.add_argument('--step', type=int, default=None, help="keypoint grid spacing in pixels")
    parser.add_argument('--show', action='store_true', help="display the oriented keypoints")
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')

    image, keypoints, features = run_demo(args.size, args.scale, args.magnification, args.step)

    if args.show:
        vis_img = draw_features(image, keypoints, features)
        plt.figure(figsize=(10, 8))
        plt.imshow(cv2.cvtColor(vis_img, cv2.COLOR_BGR2RGB))
        plt.title(f"Oriented features: {sum(len(f) for f in features)} descriptors")
        plt.axis('off')
        plt.show()
    return 0


if __name__ == "__main__":
    main()
