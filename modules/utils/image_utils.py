"""Utility helpers for turning generated bytes into displayable images."""

from __future__ import annotations

import io
import logging
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def load_image(data: bytes) -> Optional[Image.Image]:
    """Decode PNG bytes into a PIL image, or None when they are not an image."""
    if not data:
        return None
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Could not decode image payload (%d bytes): %s", len(data), exc)
        return None
    return image


def placeholder_image(size: Tuple[int, int] = (128, 128)) -> Image.Image:
    """Neutral square shown in place of a payload that cannot be decoded."""
    return Image.new("RGB", size, "#eeeeee")


def generate_thumbnail(image: Image.Image, max_size: Tuple[int, int] = (128, 128)) -> Image.Image:
    """Create a thumbnail suitable for history previews."""
    thumb = image.copy()
    thumb.thumbnail(max_size)
    return thumb
