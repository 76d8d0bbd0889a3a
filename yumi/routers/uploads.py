"""Upload API — images proxied to the CDN (JPEG/PNG/WebP/GIF, size-capped)."""

import filetype
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile

from ..config import settings
from ..dependencies import require_user
from ..models import User
from ..rate_limit import limiter
from ..services import media_service

router = APIRouter(tags=["uploads"])


@router.post("/api/upload", status_code=201)
@limiter.limit(settings.rate_limit_upload)
async def upload_image(
    request: Request,
    file: UploadFile = File(...),
    folder: str | None = Form(None),
    kind: str | None = Form(None),
    user: User = Depends(require_user),
):
    if file.content_type not in media_service.ALLOWED_CONTENT_TYPES:
        raise HTTPException(400, "Tipo de archivo no permitido (JPEG, PNG, WebP o GIF)")
    content = await file.read()
    if not content:
        raise HTTPException(400, "El archivo está vacío")
    if len(content) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(400, f"El archivo supera el máximo de {settings.max_upload_size_mb} MB")
    # Magic bytes, not the declared content type
    guessed = filetype.guess(content)
    if guessed is None or guessed.mime not in media_service.ALLOWED_CONTENT_TYPES:
        raise HTTPException(400, "El contenido del archivo no es una imagen válida")
    try:
        return await media_service.upload_image(
            content, file.filename or "upload", file.content_type, folder=folder, kind=kind
        )
    except media_service.MediaServiceError as e:
        raise HTTPException(500, f"Error al subir la imagen: {e}")


@router.delete("/api/upload")
async def delete_image(
    public_id: str | None = Query(None),
    user: User = Depends(require_user),
):
    if not public_id:
        raise HTTPException(400, "Se requiere public_id")
    try:
        return await media_service.destroy_image(public_id)
    except media_service.MediaServiceError as e:
        raise HTTPException(500, f"Error al eliminar la imagen: {e}")
