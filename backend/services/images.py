# backend/services/images.py

import io
import logging
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def is_image(content):
    """Return True if the bytes decode as an image Pillow understands."""
    if not content:
        return False
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
        return True
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        logger.debug(f"Rejected non-image upload: {e}")
        return False
