# backend/services/blob_storage.py
# Blob storage for fabric images: Azure Blob Storage with a local-disk fallback

import os
import logging
import mimetypes
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse
from azure.storage.blob import BlobServiceClient, ContentSettings
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError, AzureError
from flask import current_app

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = '/uploads/'

IMAGE_CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp',
    'bmp': 'image/bmp',
    'tif': 'image/tiff',
    'tiff': 'image/tiff',
}


class BlobStorageService:
    """Stores fabric images by blob path and hands back a download URL"""

    def __init__(self, connection_string: Optional[str] = None,
                 container_name: str = 'uploads', local_root: str = 'uploads'):
        self.container_name = container_name
        self.local_root = local_root
        self.container_client = None

        if connection_string:
            try:
                service_client = BlobServiceClient.from_connection_string(connection_string)
                self.container_client = service_client.get_container_client(container_name)
                self._create_container()
                logger.info(f"Fabric images stored in Azure container '{container_name}'")
            except (AzureError, ValueError) as e:
                logger.error(f"Azure Storage unavailable, falling back to local disk: {e}")
                self.container_client = None
        else:
            logger.warning(f"No Azure Storage connection string - fabric images stored under {local_root}")

    @property
    def use_azure(self) -> bool:
        return self.container_client is not None

    def _create_container(self):
        try:
            self.container_client.create_container()
            logger.info(f"Created container: {self.container_name}")
        except ResourceExistsError:
            pass

    def _local_path(self, blob_path: str) -> str:
        return os.path.join(self.local_root, *blob_path.split('/'))

    def upload_file(self, file_content: bytes, blob_path: str) -> Tuple[bool, str, Optional[str]]:
        """
        Store one image at blob_path.

        Args:
            file_content: raw image bytes
            blob_path: path inside the container, e.g. fabrics/<folder>/men/<ms>_<name>

        Returns:
            (success, message, url). url is None when success is False.
        """
        try:
            if self.use_azure:
                blob_client = self.container_client.get_blob_client(blob_path)
                blob_client.upload_blob(
                    file_content,
                    overwrite=True,
                    content_settings=ContentSettings(content_type=self._get_content_type(blob_path)),
                )
                logger.debug(f"Stored {blob_path} in Azure ({len(file_content)} bytes)")
                return True, "Stored", blob_client.url

            local_path = self._local_path(blob_path)
            os.makedirs(os.path.dirname(local_path), exist_ok=True)
            with open(local_path, 'wb') as f:
                f.write(file_content)
            logger.debug(f"Stored {blob_path} on local disk ({len(file_content)} bytes)")
            return True, "Stored (local disk)", f"{LOCAL_URL_PREFIX}{blob_path}"

        except (AzureError, OSError) as e:
            logger.error(f"Could not store {blob_path}: {e}")
            return False, f"Upload failed: {e}", None

    def blob_path_from_url(self, file_url: str) -> str:
        """Recover the blob path a download URL points at."""
        if file_url.startswith(LOCAL_URL_PREFIX):
            return file_url[len(LOCAL_URL_PREFIX):]
        path = unquote(urlparse(file_url).path)
        marker = f'/{self.container_name}/'
        if marker in path:
            return path.split(marker, 1)[1]
        return path.lstrip('/')

    def delete_file(self, file_url: str) -> Tuple[bool, str]:
        """
        Delete the blob behind a download URL.
        A blob that is already gone counts as deleted.
        """
        blob_path = self.blob_path_from_url(file_url)
        try:
            if self.use_azure:
                try:
                    self.container_client.delete_blob(blob_path)
                except ResourceNotFoundError:
                    return True, "Already deleted"
                logger.info(f"Deleted blob {blob_path}")
                return True, "Deleted"

            local_path = self._local_path(blob_path)
            if not os.path.exists(local_path):
                return True, "Already deleted"
            os.remove(local_path)
            logger.info(f"Deleted local image {local_path}")
            return True, "Deleted"

        except (AzureError, OSError) as e:
            logger.error(f"Could not delete {blob_path}: {e}")
            return False, f"Deletion failed: {e}"

    def _get_content_type(self, blob_path: str) -> str:
        ext = blob_path.lower().rsplit('.', 1)[-1]
        if ext in IMAGE_CONTENT_TYPES:
            return IMAGE_CONTENT_TYPES[ext]
        guessed, _ = mimetypes.guess_type(blob_path)
        return guessed or 'application/octet-stream'


def init_app(app):
    """Build the storage service from app config and attach it to the app"""
    local_root = app.config.get('UPLOAD_FOLDER', 'uploads')
    if not os.path.isabs(local_root):
        local_root = os.path.join(app.instance_path, local_root)

    service = BlobStorageService(
        connection_string=app.config.get('AZURE_STORAGE_CONNECTION_STRING'),
        container_name=app.config.get('AZURE_STORAGE_CONTAINER_NAME', 'uploads'),
        local_root=local_root,
    )
    app.extensions['blob_storage'] = service
    return service


def get_storage() -> BlobStorageService:
    return current_app.extensions['blob_storage']
