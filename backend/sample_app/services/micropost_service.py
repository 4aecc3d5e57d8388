# backend/sample_app/services/micropost_service.py
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from sample_app.config import MICROPOST_MAX_LENGTH
from sample_app.core.database import atomic
from sample_app.core.errors import Forbidden, NotFound, ValidationError
from sample_app.core.models import Micropost, User
from sample_app.core.pagination import page_bounds

logger = logging.getLogger(__name__)


def validate_micropost(content: Optional[str]) -> Dict[str, List[str]]:
    """Ошибки полей микропоста (пустой словарь - всё в порядке)"""
    errors: Dict[str, List[str]] = {}
    if content is None or not content.strip():
        errors["content"] = ["can't be blank"]
    elif len(content) > MICROPOST_MAX_LENGTH:
        errors["content"] = [f"is too long (maximum is {MICROPOST_MAX_LENGTH} characters)"]
    return errors


class MicropostService:
    """Хранилище микропостов. Каждый пост принадлежит ровно одному автору."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, author_id: int, content: str, created_at: Optional[datetime] = None) -> Micropost:
        errors = validate_micropost(content)
        if errors:
            raise ValidationError(errors)

        with atomic(self.db):
            if self.db.get(User, author_id) is None:
                raise NotFound("User", author_id)
            post = Micropost(user_id=author_id, content=content)
            if created_at is not None:
                post.created_at = created_at
            self.db.add(post)

        self.db.refresh(post)
        logger.info(f"Микропост {post.id} создан пользователем {author_id}")
        return post

    def find_by_id(self, post_id: int) -> Micropost:
        post = self.db.get(Micropost, post_id)
        if post is None:
            raise NotFound("Micropost", post_id)
        return post

    def posts_by(self, author_id: int, page: int = 1, per_page: Optional[int] = None) -> List[Micropost]:
        """Посты автора, новые первыми"""
        offset, limit = page_bounds(page, per_page)
        return (
            self.db.query(Micropost)
            .filter(Micropost.user_id == author_id)
            .order_by(Micropost.created_at.desc(), Micropost.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_by(self, author_id: int) -> int:
        return self.db.query(Micropost).filter(Micropost.user_id == author_id).count()

    def destroy(self, requesting: Optional[User], post_id: int) -> None:
        """Удалить пост может только его автор"""
        post = self.find_by_id(post_id)
        if requesting is None or requesting.id != post.user_id:
            logger.warning(f"Отказ в удалении микропоста {post_id}")
            raise Forbidden("only the author may delete a micropost")

        with atomic(self.db):
            self.db.delete(post)
        logger.info(f"Микропост {post_id} удалён")

    def destroy_all_by(self, author_id: int) -> int:
        """
        Удаляет все посты автора. Не коммитит: вызывается внутри
        транзакции удаления пользователя.
        """
        return (
            self.db.query(Micropost)
            .filter(Micropost.user_id == author_id)
            .delete(synchronize_session=False)
        )
