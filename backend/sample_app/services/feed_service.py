# backend/sample_app/services/feed_service.py
import logging
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Query, Session

from sample_app.core.errors import NotFound
from sample_app.core.models import Micropost, Relationship, User
from sample_app.core.pagination import page_bounds

logger = logging.getLogger(__name__)


class FeedService:
    """
    Лента пользователя: его собственные посты и посты всех, на кого он
    подписан прямо сейчас.

    Лента всегда считается заново одним запросом к таблице microposts,
    поэтому каждый пост в ней встречается ровно один раз, а после отписки
    посты бывшего автора сразу пропадают. Порядок: новые первыми, при
    равном времени - по убыванию id.
    """

    def __init__(self, db: Session):
        self.db = db

    def _feed_query(self, user_id: int) -> Query:
        if self.db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        followed_ids = select(Relationship.followed_id).where(Relationship.follower_id == user_id)
        return self.db.query(Micropost).filter(
            or_(Micropost.user_id == user_id, Micropost.user_id.in_(followed_ids))
        )

    def feed(self, user_id: int, page: int = 1, per_page: Optional[int] = None) -> List[Micropost]:
        """
        :param user_id: ID пользователя, чью ленту строим
        :type user_id: int
        :param page: Номер страницы, начиная с 1
        :param per_page: Размер страницы
        :return: Посты ленты, новые первыми
        :rtype: List[Micropost]
        """
        offset, limit = page_bounds(page, per_page)
        posts = (
            self._feed_query(user_id)
            .order_by(Micropost.created_at.desc(), Micropost.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        logger.debug(f"Лента user_id={user_id}, страница {page}: {len(posts)} постов")
        return posts

    def feed_count(self, user_id: int) -> int:
        return self._feed_query(user_id).count()
