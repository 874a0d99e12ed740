from datetime import datetime
from typing import List, Optional

from ..models import CustomModel


class MediaUploadResponse(CustomModel):
    success: bool = True
    url: str
    file_name: str
    original_name: str
    file_size: int
    file_type: str


class MediaDeleteResponse(CustomModel):
    success: bool = True
    message: str = "File deleted successfully"
    path: str


class MediaFileOut(CustomModel):
    name: str
    original_name: str
    url: str
    size: int
    modified_at: datetime


class MediaListResponse(CustomModel):
    """One of ``years``, ``months`` or ``media`` is filled depending on the query."""
    success: bool = True
    year: Optional[str] = None
    month: Optional[str] = None
    years: Optional[List[str]] = None
    months: Optional[List[str]] = None
    media: Optional[List[MediaFileOut]] = None
