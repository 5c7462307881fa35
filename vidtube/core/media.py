# vidtube/core/media.py
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from vidtube.core.config import settings
from vidtube.core.errors import Internal

logger = logging.getLogger(__name__)


class MediaError(Internal):
    default_message = "Failed to upload media. Please try again"


@dataclass(frozen=True)
class MediaAsset:
    url: str
    public_id: str
    resource_type: str = "image"
    duration: Optional[float] = None


class MediaStore:
    """Cloudinary upload and destroy calls, run off the event loop."""

    def __init__(self, cloud_name: str, api_key: str, api_secret: str, timeout: float = 120.0):
        self.options = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
            "secure": True,
            "timeout": timeout,
        }

    async def upload(self, path: str, resource_type: str = "auto") -> MediaAsset:
        try:
            body = await run_in_threadpool(
                cloudinary.uploader.upload, path, resource_type=resource_type, **self.options
            )
        except CloudinaryError as e:
            logger.error(f"Media host upload of {path} ({resource_type}) failed: {e}")
            raise MediaError("Media host upload failed") from e
        try:
            asset = MediaAsset(
                url=body["secure_url"],
                public_id=body["public_id"],
                resource_type=body.get("resource_type", resource_type),
                duration=body.get("duration"),
            )
        except KeyError as e:
            raise MediaError("Media host returned an incomplete upload response") from e
        logger.info(f"Uploaded {path} as {asset.public_id}")
        return asset

    async def destroy(self, public_id: str, resource_type: str = "image") -> None:
        try:
            body = await run_in_threadpool(
                cloudinary.uploader.destroy, public_id, resource_type=resource_type, **self.options
            )
        except CloudinaryError as e:
            logger.error(f"Media host destroy of {public_id} ({resource_type}) failed: {e}")
            raise MediaError("Media host destroy failed") from e
        # "not found" means the asset is already gone
        if body.get("result") not in ("ok", "not found"):
            raise MediaError(f"Media host refused to destroy {public_id}")
        logger.info(f"Destroyed media asset {public_id}")


class UploadBatch:
    """
    Tracks every asset uploaded inside an ``async with`` block.

    If the block raises, all assets uploaded so far are destroyed before the
    error propagates, so a failed multi-asset publish leaves nothing orphaned
    on the media host.
    """

    def __init__(self, store: MediaStore):
        self.store = store
        self.assets: List[MediaAsset] = []

    async def upload(self, path: str, resource_type: str = "auto") -> MediaAsset:
        asset = await self.store.upload(path, resource_type)
        self.assets.append(asset)
        return asset

    async def rollback(self) -> None:
        for asset in reversed(self.assets):
            try:
                await self.store.destroy(asset.public_id, asset.resource_type)
            except MediaError:
                logger.error(f"Could not roll back media asset {asset.public_id}; it is orphaned on the host")
        self.assets.clear()

    async def __aenter__(self) -> "UploadBatch":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            logger.warning(f"Rolling back {len(self.assets)} uploaded asset(s) after {exc_type.__name__}")
            await self.rollback()
        return False


async def discard_asset(store: MediaStore, public_id: Optional[str], resource_type: str = "image") -> None:
    """Destroy an asset the database no longer references; failures only leave an orphan behind."""
    if not public_id:
        return
    try:
        await store.destroy(public_id, resource_type)
    except MediaError:
        logger.error(f"Failed to destroy replaced media asset {public_id}")


@asynccontextmanager
async def staged_upload(upload: Optional[UploadFile]) -> AsyncIterator[Optional[str]]:
    """Write an incoming file to the temp dir for the media store and remove it afterwards."""
    if upload is None or not upload.filename:
        yield None
        return
    os.makedirs(settings.upload_tmp_dir, exist_ok=True)
    suffix = os.path.splitext(upload.filename)[1]
    fd, path = tempfile.mkstemp(suffix=suffix, dir=settings.upload_tmp_dir)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(await upload.read())
        yield path
    finally:
        if os.path.exists(path):
            os.remove(path)


media_store: Optional[MediaStore] = None


def get_media_store() -> MediaStore:
    global media_store
    if media_store is None:
        if not (settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret):
            logger.error("Media host credentials are not configured (CLOUDINARY_*).")
            raise Internal("Media storage is not configured")
        media_store = MediaStore(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            timeout=settings.media_timeout_seconds,
        )
    return media_store
