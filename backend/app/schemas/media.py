from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class MediaResponse(BaseModel):
    id: str
    filename: str
    original_filename: str
    url: str
    file_size: int
    mime_type: str
    uploaded_by: str
    is_featured: bool
    alt_text: Optional[str] = ""
    created_at: datetime

    class Config:
        from_attributes = True
