# backend/services/catalog.py

import logging
from dataclasses import dataclass, asdict
from models import db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeletionOutcome:
    """
    Result of removing a gallery image.

    The document entry is removed even when the blob delete fails, so
    `blob_removed` can be False while `document_removed` is True. Such blobs
    stay orphaned in storage.
    """
    document_removed: bool
    blob_removed: bool

    def to_dict(self):
        return asdict(self)


def delete_gallery_image(storage, fabric, segment, url):
    """Best-effort blob delete, then drop the URL from the fabric's gallery."""
    blob_removed = False
    try:
        blob_removed, message = storage.delete_file(url)
        if not blob_removed:
            logger.warning(f"Storage deletion failed for {url} (removing from fabric {fabric.id} anyway): {message}")
    except Exception as e:
        logger.warning(f"Storage deletion attempt failed for {url} (removing from fabric {fabric.id} anyway): {e}")

    fabric.remove_image(segment, url)
    db.session.commit()
    logger.info(f"Removed image from fabric {fabric.id} {segment} collection")
    return DeletionOutcome(document_removed=True, blob_removed=blob_removed)


def rename_if_changed(fabric, new_name):
    """Return the trimmed name when it differs from the stored one, else None."""
    trimmed = (new_name or '').strip()
    if trimmed and trimmed != (fabric.name or '').strip():
        return trimmed
    return None
