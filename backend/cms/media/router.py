from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from ..auth.dependencies import require_editor
from ..exceptions import ValidationError
from .schemas import MediaDeleteResponse, MediaFileOut, MediaListResponse, MediaUploadResponse
from .storage import MediaStorageDep

router = APIRouter(prefix="/media", tags=["media"], dependencies=[Depends(require_editor)])


@router.post("/upload", response_model=MediaUploadResponse)
async def upload_media(storage: MediaStorageDep, file: UploadFile = File(...)):
    if not file.filename:
        raise ValidationError("No file provided")
    # type check first so disallowed uploads are never buffered
    storage.validate(file.content_type, 1)
    # one byte past the cap is enough to know the file is too large
    content = await file.read(storage.max_bytes + 1)
    stored = await storage.save(content, file.filename, file.content_type)
    return MediaUploadResponse(**asdict(stored))


@router.delete("/delete", response_model=MediaDeleteResponse)
async def delete_media(storage: MediaStorageDep, path: str = Query(...)):
    await storage.delete(path)
    return MediaDeleteResponse(path=path)


@router.get("/list", response_model=MediaListResponse)
async def list_media(
    storage: MediaStorageDep,
    year: Optional[str] = None,
    month: Optional[str] = None,
):
    if not year:
        return MediaListResponse(years=await storage.list_years())
    if not month:
        return MediaListResponse(year=year, months=await storage.list_months(year))
    files = await storage.list_files(year, month)
    return MediaListResponse(
        year=year,
        month=month,
        media=[MediaFileOut(**asdict(f)) for f in files],
    )
