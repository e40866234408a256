from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field("", max_length=500)
    parent_id: Optional[str] = None
    display_order: int = Field(default=0, ge=0)


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    parent_id: Optional[str] = None
    display_order: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class CategoryBrief(BaseModel):
    id: str
    name: str
    slug: str

    class Config:
        from_attributes = True


class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = ""
    parent_id: Optional[str] = None
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CategoryDetailResponse(CategoryResponse):
    parent: Optional[CategoryBrief] = None
    children: List[CategoryBrief] = []
    article_count: int = 0


class CategoryTreeNode(BaseModel):
    id: str
    name: str
    slug: str
    display_order: int
    children: List["CategoryTreeNode"] = []


CategoryTreeNode.model_rebuild()
