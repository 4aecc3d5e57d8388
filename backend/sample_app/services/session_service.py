# backend/sample_app/services/session_service.py
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from sample_app.core.database import atomic
from sample_app.core.models import User
from sample_app.core.security import (
    create_session_token,
    decode_session_token,
    generate_remember_token,
    pwd_context,
    tokens_match,
    verify_password,
)

logger = logging.getLogger(__name__)


class SessionService:
    """
    Аутентификация и сессии на remember-токенах.

    Состояние "текущего пользователя" нигде не хранится: вызывающий код
    получает User (или None) из current_identity и передаёт его дальше явно.
    """

    def __init__(self, db: Session):
        self.db = db

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Проверка email и пароля.

        :return: User при успехе, None при любой неудаче (нет такого
            email или неверный пароль - снаружи не различить)
        """
        email = (email or "").strip().lower()
        user = self.db.query(User).filter(func.lower(User.email) == email).first()

        if user is None:
            # Тратим столько же времени, сколько на настоящую проверку
            pwd_context.dummy_verify()
            logger.warning("Неудачная попытка входа")
            return None

        if not verify_password(password, user.password_digest):
            logger.warning(f"Неудачная попытка входа: user_id={user.id}")
            return None

        with atomic(self.db):
            user.remember_token = generate_remember_token()
        self.db.refresh(user)

        logger.info(f"Пользователь вошёл: id={user.id}")
        return user

    def sign_in(self, user: User) -> str:
        """Артефакт сессии (JWT), привязанный к текущему remember-токену"""
        if not user.remember_token:
            with atomic(self.db):
                user.remember_token = generate_remember_token()
            self.db.refresh(user)
        return create_session_token(user.id, user.remember_token)

    def sign_out(self, user: Optional[User]) -> None:
        """Выход. Токен перевыпускается, все выданные артефакты перестают работать."""
        if user is None:
            return
        with atomic(self.db):
            user.remember_token = generate_remember_token()
        logger.info(f"Пользователь вышел: id={user.id}")

    def current_identity(self, artifact: Optional[str]) -> Optional[User]:
        """
        Пользователь по артефакту сессии.

        Любая проблема (подпись, срок, несовпадение токена) - None.
        """
        if not artifact:
            return None

        payload = decode_session_token(artifact)
        if payload is None:
            return None

        try:
            user_id = int(payload["sub"])
        except ValueError:
            return None

        user = self.db.get(User, user_id)
        if user is None or not tokens_match(user.remember_token, payload["rtk"]):
            return None
        return user
