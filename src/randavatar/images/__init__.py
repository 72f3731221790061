"""Image pipeline: source bytes to Slack-ready avatar PNGs."""

from randavatar.images.normalizer import (
    MAX_X,
    MAX_Y,
    MIN_X,
    MIN_Y,
    CropBox,
    NormalizedImage,
    compute_scale,
    normalize,
)

__all__ = [
    "MAX_X",
    "MAX_Y",
    "MIN_X",
    "MIN_Y",
    "CropBox",
    "NormalizedImage",
    "compute_scale",
    "normalize",
]
