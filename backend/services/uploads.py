# backend/services/uploads.py
# Concurrent image uploads for the fabric catalog

import re
import time
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from concurrent.futures import ThreadPoolExecutor, as_completed
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

GALLERY_SEGMENTS = ('men', 'women', 'kids')
SEGMENTS = ('main',) + GALLERY_SEGMENTS
DEFAULT_MAX_WORKERS = 8


class UploadError(Exception):
    """A file in an upload batch could not be stored."""


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content: bytes


@dataclass
class FabricImages:
    folder: str
    main_image: str
    collections: Dict[str, List[str]] = field(default_factory=dict)


class UploadProgress:
    """
    Counts finished uploads across all segments of one batch.

    `on_increment` is called after each finished upload while the lock is
    held, so listeners run one at a time even though uploads run in a pool.
    """

    def __init__(self, total: int, on_increment: Optional[Callable[[], None]] = None):
        self.total = total
        self._completed = 0
        self._lock = threading.Lock()
        self._on_increment = on_increment

    @property
    def completed(self) -> int:
        return self._completed

    def increment(self) -> int:
        with self._lock:
            self._completed += 1
            if self._on_increment is not None:
                self._on_increment()
            return self._completed

    @property
    def percent(self) -> int:
        return round(self._completed / self.total * 100) if self.total > 0 else 0

    @property
    def done(self) -> bool:
        return self._completed >= self.total

    def to_dict(self):
        return {
            'completed': self._completed,
            'total': self.total,
            'percent': self.percent,
            'done': self.done,
        }


class ProgressRegistry:
    """In-memory lookup of running batches so the UI can poll their progress"""

    def __init__(self):
        self._batches: Dict[str, UploadProgress] = {}
        self._lock = threading.Lock()

    def start(self, upload_id: Optional[str], total: int,
              on_increment: Optional[Callable[[], None]] = None) -> UploadProgress:
        progress = UploadProgress(total, on_increment=on_increment)
        if upload_id:
            with self._lock:
                self._batches[upload_id] = progress
        return progress

    def get(self, upload_id: str) -> Optional[UploadProgress]:
        with self._lock:
            return self._batches.get(upload_id)

    def discard(self, upload_id: Optional[str]):
        if upload_id:
            with self._lock:
                self._batches.pop(upload_id, None)


def now_ms() -> int:
    return int(time.time() * 1000)


def make_folder_base(name: str, timestamp_ms: Optional[int] = None) -> str:
    """Folder name for a new fabric: sanitized display name plus a timestamp."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    base = re.sub(r'\s+', '_', name.strip())
    base = re.sub(r'[^\w-]', '', base, flags=re.ASCII)
    return f"{base}_{timestamp_ms}"


def build_blob_path(folder: str, segment: str, filename: str,
                    timestamp_ms: Optional[int] = None) -> str:
    if segment not in SEGMENTS:
        raise ValueError(f"Unknown image segment: {segment}")
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    safe_name = secure_filename(filename) or 'image'
    return f"fabrics/{folder}/{segment}/{timestamp_ms}_{safe_name}"


def _upload_one(storage, upload: UploadedFile, blob_path: str,
                progress: Optional[UploadProgress]) -> str:
    success, message, url = storage.upload_file(upload.content, blob_path)
    if not success:
        raise UploadError(f"{upload.filename}: {message}")
    if progress is not None:
        progress.increment()
    return url


def upload_all(storage, jobs: Sequence[Tuple[str, UploadedFile]],
               progress: Optional[UploadProgress] = None,
               max_workers: int = DEFAULT_MAX_WORKERS) -> List[str]:
    """
    Upload every (blob_path, file) pair concurrently.

    Returns the download URLs in job order once all uploads have finished.
    The first failure raises UploadError; blobs already stored by the other
    jobs are left where they are.
    """
    if not jobs:
        return []

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(jobs)))) as executor:
        futures = [
            executor.submit(_upload_one, storage, upload, blob_path, progress)
            for blob_path, upload in jobs
        ]
        for future in as_completed(futures):
            error = future.exception()
            if error is not None:
                logger.error(f"Upload batch aborted: {error}")
                if isinstance(error, UploadError):
                    raise error
                raise UploadError(str(error)) from error

        return [future.result() for future in futures]


def upload_fabric_images(storage, fabric_name: str, main_image: UploadedFile,
                         collections: Dict[str, Sequence[UploadedFile]],
                         progress: Optional[UploadProgress] = None,
                         max_workers: int = DEFAULT_MAX_WORKERS) -> FabricImages:
    """Upload a new fabric's main image and galleries under one fresh folder"""
    folder = make_folder_base(fabric_name)

    jobs = [(build_blob_path(folder, 'main', main_image.filename), main_image)]
    spans = {}
    for segment in GALLERY_SEGMENTS:
        files = list(collections.get(segment) or [])
        start = len(jobs)
        jobs.extend((build_blob_path(folder, segment, f.filename), f) for f in files)
        spans[segment] = (start, len(jobs))

    logger.info(f"Uploading {len(jobs)} images for fabric '{fabric_name}' to fabrics/{folder}")
    urls = upload_all(storage, jobs, progress=progress, max_workers=max_workers)

    return FabricImages(
        folder=folder,
        main_image=urls[0],
        collections={segment: urls[start:end] for segment, (start, end) in spans.items()},
    )


def upload_segment_images(storage, fabric_id, segment: str, files: Sequence[UploadedFile],
                          progress: Optional[UploadProgress] = None,
                          max_workers: int = DEFAULT_MAX_WORKERS) -> List[str]:
    """Upload images into one segment folder of an existing fabric"""
    jobs = [(build_blob_path(str(fabric_id), segment, f.filename), f) for f in files]
    return upload_all(storage, jobs, progress=progress, max_workers=max_workers)
