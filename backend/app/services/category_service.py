import logging
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from app.models.category import Category
from app.models.user import User
from app.repositories.category_repository import CategoryRepository
from app.schemas.category import (
    CategoryBrief,
    CategoryCreate,
    CategoryDetailResponse,
    CategoryResponse,
    CategoryTreeNode,
    CategoryUpdate,
)
from app.schemas.pagination import PaginatedResponse, PaginationParams
from app.utils.slug import unique_slug

logger = logging.getLogger(__name__)

RESERVED_CATEGORY_SLUGS = frozenset({"tree"})


class CategoryService:
    @staticmethod
    def _require_manager(user: User):
        if not user.can_manage_categories():
            raise ForbiddenError("Editor role required to manage categories")

    @staticmethod
    def get_category_or_404(db: Session, category_id: str) -> Category:
        category = CategoryRepository.get_by_id(db, category_id)
        if not category:
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
        return category

    @staticmethod
    def get_by_slug_or_404(db: Session, slug: str) -> Category:
        category = CategoryRepository.get_by_slug(db, slug)
        if not category:
            raise NotFoundError("Category not found", code="CATEGORY_NOT_FOUND")
        return category

    @staticmethod
    def to_detail(db: Session, category: Category) -> CategoryDetailResponse:
        return CategoryDetailResponse(
            **CategoryResponse.model_validate(category).model_dump(),
            parent=CategoryBrief.model_validate(category.parent) if category.parent else None,
            children=[CategoryBrief.model_validate(c) for c in category.children],
            article_count=CategoryRepository.article_count(db, category.id, published_only=True),
        )

    @staticmethod
    def create_category(db: Session, data: CategoryCreate, user: User) -> CategoryDetailResponse:
        """Create a category (editor+)"""
        CategoryService._require_manager(user)
        if CategoryRepository.name_taken(db, data.name):
            raise ConflictError("Category name already exists", code="CATEGORY_EXISTS")
        if data.parent_id:
            CategoryService.get_category_or_404(db, data.parent_id)

        category = Category(
            name=data.name,
            slug=unique_slug(
                data.name,
                lambda s: CategoryRepository.exists_by_slug(db, s),
                "category",
                RESERVED_CATEGORY_SLUGS,
            ),
            description=data.description or "",
            parent_id=data.parent_id,
            display_order=data.display_order,
        )
        CategoryRepository.save(db, category)
        logger.info(f"Category created: {category.slug}")
        return CategoryService.to_detail(db, category)

    @staticmethod
    def get_category(db: Session, slug: str) -> CategoryDetailResponse:
        return CategoryService.to_detail(db, CategoryService.get_by_slug_or_404(db, slug))

    @staticmethod
    def list_categories(
        db: Session,
        pagination: PaginationParams,
        include_inactive: bool = False,
        parent_only: bool = False,
        search: Optional[str] = None,
    ) -> PaginatedResponse[CategoryResponse]:
        categories, total = CategoryRepository.find_all(
            db,
            include_inactive=include_inactive,
            parent_only=parent_only,
            search=search,
            limit=pagination.limit,
            offset=pagination.offset,
        )
        return PaginatedResponse[CategoryResponse].build(
            [CategoryResponse.model_validate(c) for c in categories], total, pagination.page, pagination.limit
        )

    @staticmethod
    def get_tree(db: Session) -> List[CategoryTreeNode]:
        """Active categories as a forest, siblings ordered by display_order then name."""
        categories = CategoryRepository.all_active(db)
        nodes: Dict[str, CategoryTreeNode] = {
            c.id: CategoryTreeNode(id=c.id, name=c.name, slug=c.slug, display_order=c.display_order)
            for c in categories
        }
        roots = []
        for c in categories:
            node = nodes[c.id]
            if c.parent_id and c.parent_id in nodes:
                nodes[c.parent_id].children.append(node)
            else:
                roots.append(node)
        return roots

    @staticmethod
    def _would_create_cycle(db: Session, category_id: str, new_parent_id: str) -> bool:
        """True if ``new_parent_id`` is the category itself or one of its descendants."""
        seen = set()
        current = new_parent_id
        while current:
            if current == category_id or current in seen:
                return True
            seen.add(current)
            parent = CategoryRepository.get_by_id(db, current)
            current = parent.parent_id if parent else None
        return False

    @staticmethod
    def update_category(db: Session, category_id: str, data: CategoryUpdate, user: User) -> CategoryDetailResponse:
        """Update a category, rejecting moves that would create a cycle"""
        CategoryService._require_manager(user)
        category = CategoryService.get_category_or_404(db, category_id)

        if data.name is not None and data.name != category.name:
            if CategoryRepository.name_taken(db, data.name, exclude_id=category.id):
                raise ConflictError("Category name already exists", code="CATEGORY_EXISTS")
            category.name = data.name
            category.slug = unique_slug(
                data.name,
                lambda s: s != category.slug and CategoryRepository.exists_by_slug(db, s),
                "category",
                RESERVED_CATEGORY_SLUGS,
            )
        if "parent_id" in data.model_fields_set:
            if data.parent_id:
                if data.parent_id == category.id:
                    raise ValidationError("A category cannot be its own parent", code="INVALID_PARENT")
                CategoryService.get_category_or_404(db, data.parent_id)
                if CategoryService._would_create_cycle(db, category.id, data.parent_id):
                    raise ValidationError("Category hierarchy cannot contain cycles", code="INVALID_PARENT")
            category.parent_id = data.parent_id or None
        if data.description is not None:
            category.description = data.description
        if data.display_order is not None:
            category.display_order = data.display_order
        if data.is_active is not None:
            category.is_active = data.is_active

        CategoryRepository.save(db, category)
        return CategoryService.to_detail(db, category)

    @staticmethod
    def delete_category(db: Session, category_id: str, user: User):
        """Delete a category without subcategories or articles"""
        CategoryService._require_manager(user)
        category = CategoryService.get_category_or_404(db, category_id)
        if CategoryRepository.children_count(db, category.id) > 0:
            raise ConflictError("Category has subcategories", code="CATEGORY_HAS_CHILDREN")
        if CategoryRepository.article_count(db, category.id) > 0:
            raise ConflictError("Category has articles", code="CATEGORY_HAS_ARTICLES")
        CategoryRepository.delete(db, category)
        logger.info(f"Category deleted: {category_id}")
