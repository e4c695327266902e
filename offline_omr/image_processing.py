# image_processing.py
"""
Functions for loading answer-sheet images and normalizing them for OMR.

Every operation returns a new RasterImage; the source buffer is never
modified, so preprocessing can be re-run from the original image whenever
the settings change.
"""
import logging

import cv2
import numpy as np

from . import config
from .errors import ImageLoadError
from .schemas import PerspectiveQuad, RasterImage

logger = logging.getLogger(__name__)


def _to_rgba(decoded, source):
    """Converts an OpenCV-decoded array (gray, BGR or BGRA) to a RasterImage."""
    if decoded is None:
        raise ImageLoadError(f"Error: Could not read image at {source}")
    if np.issubdtype(decoded.dtype, np.floating):
        # Float TIFF scans, intensities in [0, 1]
        decoded = np.clip(np.rint(decoded * 255.0), 0, 255).astype(np.uint8)
    elif np.issubdtype(decoded.dtype, np.integer) and decoded.dtype != np.uint8:
        # 16-bit PNG/TIFF scans
        decoded = cv2.convertScaleAbs(decoded, alpha=255.0 / np.iinfo(decoded.dtype).max)
    elif decoded.dtype != np.uint8:
        raise ImageLoadError(f"Unsupported pixel type {decoded.dtype} in {source}")
    if decoded.ndim == 2:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_GRAY2RGBA)
    elif decoded.shape[2] == 3:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_BGR2RGBA)
    elif decoded.shape[2] == 4:
        rgba = cv2.cvtColor(decoded, cv2.COLOR_BGRA2RGBA)
    else:
        raise ImageLoadError(f"Unsupported channel count {decoded.shape[2]} in {source}")
    return RasterImage(rgba)


def load_image(image_path):
    """Loads an image from the specified path."""
    decoded = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    image = _to_rgba(decoded, image_path)
    logger.info("Loaded image: %s (%dx%d)", image_path, image.width, image.height)
    return image


def decode_image(data):
    """Decodes an encoded image (PNG, JPEG, ...) held in memory."""
    buffer = np.frombuffer(data, dtype=np.uint8)
    if buffer.size == 0:
        raise ImageLoadError("Error: Image data is empty")
    decoded = cv2.imdecode(buffer, cv2.IMREAD_UNCHANGED)
    return _to_rgba(decoded, "<memory>")


def to_bgr(image):
    """RGBA -> BGR array for drawing and writing with OpenCV."""
    return cv2.cvtColor(image.pixels, cv2.COLOR_RGBA2BGR)


def to_grayscale(image):
    """Unweighted channel average (R + G + B) / 3 as a float array."""
    return image.pixels[..., :3].astype(np.float32).sum(axis=2) / 3.0


def rotate(image, degrees):
    """
    Rotates the image about its centre without resizing the canvas.

    Positive angles turn clockwise as displayed. Canvas area the rotated
    source no longer covers is left transparent black.
    """
    if degrees % 360 == 0:
        return image.copy()
    h, w = image.height, image.width
    center = ((w - 1) / 2.0, (h - 1) / 2.0)
    # OpenCV's positive angle is counter-clockwise on a y-down image.
    matrix = cv2.getRotationMatrix2D(center, -degrees, 1.0)
    rotated = cv2.warpAffine(
        image.pixels, matrix, (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    logger.debug("Rotated image by %s degrees", degrees)
    return RasterImage(rotated)


def apply_brightness_contrast(image, brightness, contrast):
    """
    out = (in - 128) * contrast/100 + 128 + (brightness - 100), clipped to [0, 255].

    Only drawn pixels are filtered; fully transparent canvas is left as is.
    Alpha is unchanged.
    """
    result = image.copy()
    if brightness == config.DEFAULT_BRIGHTNESS and contrast == config.DEFAULT_CONTRAST:
        return result

    rgb = image.pixels[..., :3].astype(np.float32)
    pivot = config.CONTRAST_PIVOT
    adjusted = (rgb - pivot) * (contrast / 100.0) + pivot + (brightness - 100)
    adjusted = np.clip(np.rint(adjusted), 0, 255).astype(np.uint8)

    drawn = image.pixels[..., 3] > 0
    result.pixels[drawn, :3] = adjusted[drawn]
    return result


def warp_perspective(image, quad):
    """Maps the quadrilateral onto the full canvas, keeping the dimensions."""
    h, w = image.height, image.width
    dest_points = np.array([
        [0, 0],
        [w - 1, 0],
        [w - 1, h - 1],
        [0, h - 1]], dtype="float32")
    matrix = cv2.getPerspectiveTransform(quad.as_array(), dest_points)
    warped = cv2.warpPerspective(
        image.pixels, matrix, (w, h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=(0, 0, 0, 0),
    )
    return RasterImage(warped)


def apply_perspective_correction(image, quad, enabled=None):
    """
    Perspective step of the preprocessing chain.

    Unless enabled (config.PERSPECTIVE_WARP_ENABLED), the corner points are
    accepted but not applied and the image passes through unchanged.
    """
    if enabled is None:
        enabled = config.PERSPECTIVE_WARP_ENABLED
    if not enabled:
        logger.debug("Perspective correction not applied (placeholder step)")
        return image.copy()
    if quad == PerspectiveQuad.for_size(image.width, image.height):
        return image.copy()
    logger.debug("Warping perspective quad %s", quad)
    return warp_perspective(image, quad)


def binarize(image, threshold):
    """
    Grayscale then threshold: R, G, B become 255 if the average is above
    the threshold, else 0. Alpha is preserved.
    """
    gray = to_grayscale(image)
    binary = np.where(gray > threshold, 255, 0).astype(np.uint8)
    result = image.copy()
    result.pixels[..., 0] = binary
    result.pixels[..., 1] = binary
    result.pixels[..., 2] = binary
    return result


def preprocess(source, settings):
    """
    Rotation, brightness/contrast, perspective correction and binarization,
    applied in that order to a copy of the source image.
    """
    image = rotate(source, settings.rotation)
    image = apply_brightness_contrast(image, settings.brightness, settings.contrast)
    image = apply_perspective_correction(image, settings.perspective)
    image = binarize(image, settings.threshold)
    logger.info(
        "Preprocessing applied (rotation=%s, brightness=%s, contrast=%s, threshold=%s)",
        settings.rotation, settings.brightness, settings.contrast, settings.threshold)
    return image
