from sqlalchemy.orm import Session

from app.core.exceptions import ValidationError
from app.repositories.category_repository import CategoryRepository
from app.repositories.tag_repository import TagRepository
from app.schemas.category import CategoryResponse
from app.schemas.search import SearchResponse, SearchType
from app.schemas.tag import TagResponse
from app.services.article_service import ArticleService

SECONDARY_RESULTS_LIMIT = 10


class SearchService:
    @staticmethod
    def search(db: Session, query: str, type: SearchType, page: int, limit: int) -> SearchResponse:
        """Search articles, categories and tags; ``type`` narrows to one of them."""
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query is required")

        response = SearchResponse(query=query, type=type)
        if type in (SearchType.ALL, SearchType.ARTICLES):
            articles = ArticleService.search_articles(db, query, page, limit)
            response.articles = articles.articles
            response.articles_total = articles.total
        if type in (SearchType.ALL, SearchType.CATEGORIES):
            categories, _ = CategoryRepository.find_all(db, search=query, limit=SECONDARY_RESULTS_LIMIT)
            response.categories = [CategoryResponse.model_validate(c) for c in categories]
        if type in (SearchType.ALL, SearchType.TAGS):
            tags, _ = TagRepository.find_all(db, query, SECONDARY_RESULTS_LIMIT, 0)
            response.tags = [TagResponse.model_validate(t) for t in tags]
        return response
