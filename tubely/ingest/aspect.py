from __future__ import annotations

import enum

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
RATIO_TOLERANCE = 0.01


class AspectCategory(str, enum.Enum):
    landscape = "landscape"
    portrait = "portrait"
    other = "other"


def classify(width: int, height: int) -> AspectCategory:
    """Bucket a frame size into the category used as the storage key prefix.

    Landscape is checked before portrait; anything outside the tolerance of
    both known ratios (including a zero height) is ``other``.
    """
    if height <= 0 or width <= 0:
        return AspectCategory.other

    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) < RATIO_TOLERANCE:
        return AspectCategory.landscape
    if abs(ratio - PORTRAIT_RATIO) < RATIO_TOLERANCE:
        return AspectCategory.portrait
    return AspectCategory.other


__all__ = ["AspectCategory", "classify", "RATIO_TOLERANCE"]
