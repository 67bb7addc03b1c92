# backend/app/routers/files.py
from __future__ import annotations

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile

from ..auth import Principal, get_principal
from ..config import settings
from ..responses import base_url, envelope
from ..services.file_storage import public_url, read_file, store_file, validate_upload

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload", status_code=201)
def upload(request: Request, file: UploadFile = File(...), p: Principal = Depends(get_principal)):
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded.")
    # one byte past the limit is enough to reject
    data = file.file.read(int(settings.upload_max_bytes) + 1)
    validate_upload(file.filename, file.content_type, len(data))
    rel = store_file(data, filename=file.filename, content_type=file.content_type, folder="uploads")
    return envelope(
        "File uploaded successfully",
        {"fileName": rel.rsplit("/", 1)[-1], "filePath": rel, "fileUrl": public_url(rel, base_url(request))},
    )


@router.get("/{file_path:path}")
def get_file(file_path: str):
    data, content_type = read_file(file_path)
    return Response(content=data, media_type=content_type)
