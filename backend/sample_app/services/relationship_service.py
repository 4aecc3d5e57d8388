# backend/sample_app/services/relationship_service.py
import logging
from typing import List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sample_app.core.database import atomic
from sample_app.core.errors import NotFound, ValidationError
from sample_app.core.models import Relationship, User
from sample_app.core.pagination import page_bounds

logger = logging.getLogger(__name__)


class RelationshipService:
    """Граф подписок: направленные рёбра follower -> followed"""

    def __init__(self, db: Session):
        self.db = db

    def _ensure_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def _edge(self, follower_id: int, followed_id: int) -> Optional[Relationship]:
        return (
            self.db.query(Relationship)
            .filter(Relationship.follower_id == follower_id, Relationship.followed_id == followed_id)
            .first()
        )

    def follow(self, follower_id: int, followed_id: int) -> Relationship:
        """Подписаться. Повторная подписка ничего не меняет."""
        self._ensure_user(follower_id)
        self._ensure_user(followed_id)
        if follower_id == followed_id:
            raise ValidationError({"followed_id": ["can't be the same as follower"]})

        existing = self._edge(follower_id, followed_id)
        if existing is not None:
            return existing

        edge = Relationship(follower_id=follower_id, followed_id=followed_id)
        try:
            with atomic(self.db):
                self.db.add(edge)
        except IntegrityError:
            # Параллельный запрос успел создать то же ребро
            return self._edge(follower_id, followed_id)

        logger.info(f"Пользователь {follower_id} подписался на {followed_id}")
        return edge

    def unfollow(self, follower_id: int, followed_id: int) -> None:
        """Отписаться. Если подписки нет - ничего не делаем."""
        with atomic(self.db):
            deleted = (
                self.db.query(Relationship)
                .filter(Relationship.follower_id == follower_id, Relationship.followed_id == followed_id)
                .delete(synchronize_session=False)
            )
        if deleted:
            logger.info(f"Пользователь {follower_id} отписался от {followed_id}")

    def is_following(self, follower_id: int, followed_id: int) -> bool:
        return self._edge(follower_id, followed_id) is not None

    def following(self, user_id: int) -> Set[int]:
        """ID всех, на кого подписан пользователь"""
        self._ensure_user(user_id)
        rows = self.db.query(Relationship.followed_id).filter(Relationship.follower_id == user_id)
        return {followed_id for (followed_id,) in rows}

    def followers(self, user_id: int) -> Set[int]:
        """ID всех подписчиков пользователя"""
        self._ensure_user(user_id)
        rows = self.db.query(Relationship.follower_id).filter(Relationship.followed_id == user_id)
        return {follower_id for (follower_id,) in rows}

    def count_following(self, user_id: int) -> int:
        self._ensure_user(user_id)
        return self.db.query(Relationship).filter(Relationship.follower_id == user_id).count()

    def count_followers(self, user_id: int) -> int:
        self._ensure_user(user_id)
        return self.db.query(Relationship).filter(Relationship.followed_id == user_id).count()

    def following_users(self, user_id: int, page: int = 1, per_page: Optional[int] = None) -> List[User]:
        self._ensure_user(user_id)
        offset, limit = page_bounds(page, per_page)
        return (
            self.db.query(User)
            .join(Relationship, Relationship.followed_id == User.id)
            .filter(Relationship.follower_id == user_id)
            .order_by(User.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def follower_users(self, user_id: int, page: int = 1, per_page: Optional[int] = None) -> List[User]:
        self._ensure_user(user_id)
        offset, limit = page_bounds(page, per_page)
        return (
            self.db.query(User)
            .join(Relationship, Relationship.follower_id == User.id)
            .filter(Relationship.followed_id == user_id)
            .order_by(User.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def remove_all_for(self, user_id: int) -> int:
        """
        Удаляет рёбра в обе стороны. Не коммитит: вызывается внутри
        транзакции удаления пользователя.
        """
        return (
            self.db.query(Relationship)
            .filter(or_(Relationship.follower_id == user_id, Relationship.followed_id == user_id))
            .delete(synchronize_session=False)
        )
