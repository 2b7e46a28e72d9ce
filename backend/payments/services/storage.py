from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit
from uuid import uuid4

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    name: str
    url: str


def upload_buffer(content: bytes, *, folder: str, filename: str) -> UploadedFile:
    """
    Store `content` under `folder` on the configured default storage.

    S3 when USE_S3_MEDIA is on, the local media directory otherwise. The stored
    name gets a random prefix so repeated uploads never overwrite each other.
    A relative media URL is made absolute against BACKEND_URL.
    """

    name = default_storage.save(
        f"{folder.strip('/')}/{uuid4().hex}-{filename}",
        ContentFile(content),
    )
    url = default_storage.url(name) or ""
    if url and not urlsplit(url).netloc:
        url = f"{settings.BACKEND_URL.rstrip('/')}/{url.lstrip('/')}"
    return UploadedFile(name=name, url=url)


def discard_upload(uploaded: UploadedFile) -> None:
    try:
        default_storage.delete(uploaded.name)
    except Exception:
        logger.warning("Unable to remove orphaned upload %s", uploaded.name, exc_info=True)
