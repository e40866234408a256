#!/usr/bin/env python3
"""
Create the first administrator, or reset an existing one
"""
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.security import get_password_hash
from app.db.database import SessionLocal
from app.models.user import User, UserRole
from app.services.user_service import UserService


def create_new_admin_user():
    db = SessionLocal()

    try:
        existing_admin = db.query(User).filter(User.email == settings.FIRST_SUPERUSER_EMAIL.lower()).first()

        if existing_admin:
            print(f"Admin user '{settings.FIRST_SUPERUSER_EMAIL}' already exists")
            existing_admin.hashed_password = get_password_hash(settings.FIRST_SUPERUSER_PASSWORD)
            existing_admin.role = UserRole.ADMIN.value
            existing_admin.is_active = True
            existing_admin.deleted_at = None
            db.commit()
            print("Password and role of the existing user were reset")
            return

        admin_user = UserService.create_user(
            db,
            username=settings.FIRST_SUPERUSER_USERNAME,
            email=settings.FIRST_SUPERUSER_EMAIL,
            password=settings.FIRST_SUPERUSER_PASSWORD,
            role=UserRole.ADMIN,
            is_verified=True,
        )

        print("Created admin user:")
        print(f"  Email: {admin_user.email}")
        print(f"  Username: {admin_user.username}")
        print(f"  ID: {admin_user.id}")

    except SQLAlchemyError as e:
        print(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    print("=== Create admin user ===")
    create_new_admin_user()
    print("=== Done ===")
