# backend/app/services/file_storage.py
from __future__ import annotations

import logging
import mimetypes
import posixpath
import re
import secrets
import time
from pathlib import Path
from typing import Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings
from fastapi import HTTPException

from ..config import settings

log = logging.getLogger("utleieskade.storage")

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}

_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_-]+")


def get_container_client() -> Optional[ContainerClient]:
    """None when blob storage is not configured; callers then use local disk."""
    cs = (settings.azure_storage_connection_string or "").strip()
    if not cs:
        return None
    try:
        service = BlobServiceClient.from_connection_string(cs)
        return service.get_container_client(settings.azure_storage_container_name)
    except (AzureError, ValueError):
        log.exception("blob storage client could not be created; using local disk")
        return None


def sanitize_file_path(raw: str) -> str:
    """
    Normalizes a caller-supplied path and strips traversal segments so the
    result is always relative to the storage root.
    """
    p = (raw or "").replace("\\", "/")
    p = posixpath.normpath("/" + p).lstrip("/")
    parts = [seg for seg in p.split("/") if seg not in ("", ".", "..")]
    return "/".join(parts)


def build_file_name(original: str) -> str:
    stem, ext = posixpath.splitext(posixpath.basename(original or "file"))
    stem = _SAFE_NAME_RE.sub("-", stem).strip("-")[:60] or "file"
    return f"{stem}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext.lower()}"


def validate_upload(filename: str, content_type: Optional[str], size: int) -> None:
    ext = posixpath.splitext(filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS or (content_type and content_type.lower() not in ALLOWED_CONTENT_TYPES):
        raise HTTPException(status_code=400, detail="Only images are allowed (jpeg, jpg, png, gif, webp).")
    if size > int(settings.upload_max_bytes):
        raise HTTPException(status_code=400, detail="File too large. Maximum size is 5MB.")


def _local_root() -> Path:
    return Path(settings.uploads_dir).resolve()


def _local_path(rel: str) -> Path:
    root = _local_root()
    target = (root / rel).resolve()
    if root != target and root not in target.parents:
        raise HTTPException(status_code=400, detail="Invalid file path.")
    return target


def store_file(data: bytes, *, filename: str, content_type: Optional[str], folder: str = "uploads") -> str:
    """Stores the bytes and returns the path relative to the storage root."""
    rel = sanitize_file_path(f"{folder}/{build_file_name(filename)}")

    container = get_container_client()
    if container is not None:
        try:
            container.upload_blob(
                name=rel,
                data=data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type or "application/octet-stream"),
            )
            log.info("stored blob %s (%s bytes)", rel, len(data))
            return rel
        except AzureError:
            log.exception("blob upload failed for %s; falling back to local disk", rel)

    path = _local_path(rel)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    log.info("stored file %s (%s bytes)", rel, len(data))
    return rel


def read_file(raw_path: str) -> tuple[bytes, str]:
    rel = sanitize_file_path(raw_path)
    if not rel:
        raise HTTPException(status_code=404, detail="File not found.")
    content_type = mimetypes.guess_type(rel)[0] or "application/octet-stream"

    container = get_container_client()
    if container is not None:
        try:
            data = container.get_blob_client(rel).download_blob().readall()
            return data, content_type
        except ResourceNotFoundError:
            pass
        except AzureError:
            log.exception("blob download failed for %s; trying local disk", rel)

    path = _local_path(rel)
    if not path.is_file():
        raise HTTPException(status_code=404, detail="File not found.")
    return path.read_bytes(), content_type


def public_url(rel: str, base_url: str = "") -> str:
    base = (settings.public_base_url or base_url or "").rstrip("/")
    return f"{base}/files/{rel}"
