from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.models.media import Media


class MediaRepository:
    @staticmethod
    def create(db: Session, media: Media) -> Media:
        db.add(media)
        db.commit()
        db.refresh(media)
        return media

    @staticmethod
    def get_by_id(db: Session, media_id: str) -> Optional[Media]:
        return db.query(Media).filter(Media.id == media_id).first()

    @staticmethod
    def find_all(
        db: Session,
        mime_type: Optional[str] = None,
        uploaded_by: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Media], int]:
        query = db.query(Media)
        if mime_type:
            query = query.filter(Media.mime_type == mime_type)
        if uploaded_by:
            query = query.filter(Media.uploaded_by == uploaded_by)
        total = query.count()
        items = query.order_by(Media.created_at.desc()).offset(offset).limit(limit).all()
        return items, total

    @staticmethod
    def delete(db: Session, media: Media):
        db.delete(media)
        db.commit()
