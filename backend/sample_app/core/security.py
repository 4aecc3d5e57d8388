"""
Функции безопасности: хеширование паролей, remember-токены, подпись сессий.
"""
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from sample_app import config

logger = logging.getLogger(__name__)

# Контекст для хеширования паролей. bcrypt сам генерирует соль для каждого хеша.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

REMEMBER_TOKEN_BYTES = 16  # 22 символа в urlsafe base64


def hash_password(password: str) -> str:
    """Хеширует пароль"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """
    Проверяет пароль.

    Битый или пустой хеш - просто False, без исключений.
    """
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Не удалось распознать хеш пароля")
        return False


def generate_remember_token() -> str:
    """Случайный URL-safe токен фиксированной длины"""
    return secrets.token_urlsafe(REMEMBER_TOKEN_BYTES)


def tokens_match(expected: Optional[str], given: Optional[str]) -> bool:
    """Сравнение токенов за постоянное время"""
    if not expected or not given:
        return False
    return hmac.compare_digest(expected.encode(), given.encode())


def create_session_token(user_id: int, remember_token: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Создаёт подписанный артефакт сессии (JWT).

    Args:
        user_id: ID пользователя
        remember_token: Текущий remember-токен пользователя
        expires_delta: Время жизни артефакта
    """
    if expires_delta is None:
        expires_delta = timedelta(days=config.REMEMBER_TOKEN_EXPIRE_DAYS)

    to_encode = {
        "sub": str(user_id),
        "rtk": remember_token,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_session_token(token: str) -> Optional[dict]:
    """Декодирует артефакт сессии. Подделка или истёкший срок - None."""
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload.get("sub"), str) or not isinstance(payload.get("rtk"), str):
        return None
    return payload
