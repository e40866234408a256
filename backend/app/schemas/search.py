from enum import Enum
from typing import List, Optional
from pydantic import BaseModel
from app.schemas.article import ArticleSummary
from app.schemas.category import CategoryResponse
from app.schemas.tag import TagResponse


class SearchType(str, Enum):
    ALL = "all"
    ARTICLES = "articles"
    CATEGORIES = "categories"
    TAGS = "tags"


class SearchResponse(BaseModel):
    query: str
    type: SearchType
    articles: Optional[List[ArticleSummary]] = None
    articles_total: Optional[int] = None
    categories: Optional[List[CategoryResponse]] = None
    tags: Optional[List[TagResponse]] = None
