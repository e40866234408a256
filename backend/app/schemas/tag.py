from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field("", max_length=500)


class TagUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)


class TagResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = ""
    usage_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
