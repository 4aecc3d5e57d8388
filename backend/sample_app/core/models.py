# Модели: пользователь, микропост, подписка

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint

from sample_app.core.database import Base


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(Base):
    """SQLAlchemy модель - структура таблицы в БД"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)  # всегда в нижнем регистре
    password_digest = Column(String(255), nullable=False)
    remember_token = Column(String(255), index=True)
    admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<User id={self.id} email={self.email!r}>"


class Micropost(Base):
    __tablename__ = "microposts"

    id = Column(Integer, primary_key=True)
    content = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True, nullable=False)

    def __repr__(self):
        return f"<Micropost id={self.id} user_id={self.user_id}>"


class Relationship(Base):
    """Направленное ребро подписки: follower -> followed"""
    __tablename__ = "relationships"
    __table_args__ = (UniqueConstraint("follower_id", "followed_id", name="uq_relationships_pair"),)

    id = Column(Integer, primary_key=True)
    follower_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    followed_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
