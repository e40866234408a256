from typing import List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.models.tag import Tag
from app.utils.search import LIKE_ESCAPE, contains_pattern


class TagRepository:
    @staticmethod
    def get_by_id(db: Session, tag_id: str) -> Optional[Tag]:
        return db.query(Tag).filter(Tag.id == tag_id).first()

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Tag]:
        return db.query(Tag).filter(Tag.slug == slug).first()

    @staticmethod
    def get_by_ids(db: Session, tag_ids: List[str]) -> List[Tag]:
        if not tag_ids:
            return []
        return db.query(Tag).filter(Tag.id.in_(tag_ids)).all()

    @staticmethod
    def exists_by_slug(db: Session, slug: str) -> bool:
        return db.query(Tag.id).filter(Tag.slug == slug).first() is not None

    @staticmethod
    def name_taken(db: Session, name: str, exclude_id: Optional[str] = None) -> bool:
        query = db.query(Tag.id).filter(func.lower(Tag.name) == name.lower())
        if exclude_id:
            query = query.filter(Tag.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def find_all(db: Session, search: Optional[str], limit: int, offset: int) -> Tuple[List[Tag], int]:
        query = db.query(Tag)
        if search:
            pattern = contains_pattern(search)
            query = query.filter(or_(
                Tag.name.ilike(pattern, escape=LIKE_ESCAPE),
                Tag.description.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        total = query.count()
        tags = query.order_by(Tag.name).offset(offset).limit(limit).all()
        return tags, total

    @staticmethod
    def popular(db: Session, limit: int) -> List[Tag]:
        return (
            db.query(Tag)
            .filter(Tag.usage_count > 0)
            .order_by(Tag.usage_count.desc(), Tag.name)
            .limit(limit)
            .all()
        )

    @staticmethod
    def save(db: Session, tag: Tag) -> Tag:
        db.add(tag)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Tag name already exists", code="TAG_EXISTS")
        db.refresh(tag)
        return tag

    @staticmethod
    def delete(db: Session, tag: Tag):
        db.delete(tag)
        db.commit()
