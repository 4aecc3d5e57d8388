# backend/sample_app/services/identity_service.py
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sample_app.config import NAME_MAX_LENGTH, PASSWORD_MIN_LENGTH
from sample_app.core.database import atomic
from sample_app.core.errors import Forbidden, NotFound, ValidationError
from sample_app.core.models import User
from sample_app.core.pagination import page_bounds
from sample_app.core.security import generate_remember_token, hash_password
from sample_app.services.micropost_service import MicropostService
from sample_app.services.relationship_service import RelationshipService

logger = logging.getLogger(__name__)

VALID_EMAIL_REGEX = re.compile(r"[\w+\-.]+@[a-z\d\-.]+\.[a-z]+", re.IGNORECASE | re.ASCII)

# Единственные поля, которые можно менять через create/update.
# admin сюда не входит: см. IdentityService.set_admin
UPDATABLE_FIELDS = frozenset({"name", "email", "password", "password_confirmation"})


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _add(errors: Dict[str, List[str]], field: str, reason: str) -> None:
    errors.setdefault(field, []).append(reason)


def validate_user(
    name: Optional[str],
    email: Optional[str],
    password: Optional[str] = None,
    password_confirmation: Optional[str] = None,
    check_password: bool = True,
) -> Dict[str, List[str]]:
    """
    Проверка полей пользователя без обращения к БД.

    Уникальность email проверяется отдельно в IdentityService.
    :return: {поле: [причины]}; пустой словарь - всё валидно
    """
    errors: Dict[str, List[str]] = {}

    if name is None or not name.strip():
        _add(errors, "name", "can't be blank")
    elif len(name.strip()) > NAME_MAX_LENGTH:
        _add(errors, "name", f"is too long (maximum is {NAME_MAX_LENGTH} characters)")

    if email is None or not email.strip():
        _add(errors, "email", "can't be blank")
    elif not VALID_EMAIL_REGEX.fullmatch(email.strip()):
        _add(errors, "email", "is invalid")

    if check_password:
        if password is None or not password.strip():
            _add(errors, "password", "can't be blank")
        elif len(password) < PASSWORD_MIN_LENGTH:
            _add(errors, "password", f"is too short (minimum is {PASSWORD_MIN_LENGTH} characters)")

        if password_confirmation is None:
            _add(errors, "password_confirmation", "can't be blank")
        elif password and password != password_confirmation:
            _add(errors, "password", "doesn't match confirmation")

    return errors


class IdentityService:
    """Справочник пользователей: регистрация, профиль, удаление"""

    def __init__(self, db: Session):
        self.db = db

    def _email_taken(self, email: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(User.id).filter(func.lower(User.email) == normalize_email(email))
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _lock(self, user_id: int) -> User:
        """Загрузка записи с блокировкой строки (там, где БД это умеет)"""
        user = self.db.query(User).filter(User.id == user_id).with_for_update().first()
        if user is None:
            raise NotFound("User", user_id)
        return user

    def create(self, name: str, email: str, password: str, password_confirmation: Optional[str]) -> User:
        """Регистрация нового пользователя"""
        errors = validate_user(name, email, password, password_confirmation)
        if "email" not in errors and self._email_taken(email):
            _add(errors, "email", "has already been taken")
        if errors:
            logger.warning(f"Регистрация отклонена: {sorted(errors)}")
            raise ValidationError(errors)

        user = User(
            name=name.strip(),
            email=normalize_email(email),
            password_digest=hash_password(password),
            remember_token=generate_remember_token(),
        )
        try:
            with atomic(self.db):
                self.db.add(user)
        except IntegrityError:
            raise ValidationError({"email": ["has already been taken"]})

        self.db.refresh(user)
        logger.info(f"Пользователь зарегистрирован: id={user.id}")
        return user

    def update(self, user_id: int, fields: Mapping[str, Any]) -> User:
        """
        Редактирование профиля.

        Принимает только поля из UPDATABLE_FIELDS. Пароль меняется, только
        если он передан. Remember-токен перевыпускается при каждом
        успешном сохранении, старые сессии становятся недействительными.
        """
        rejected = set(fields) - UPDATABLE_FIELDS
        if rejected:
            raise ValidationError({field: ["is not assignable"] for field in sorted(rejected)})

        with atomic(self.db):
            user = self._lock(user_id)

            name = fields.get("name", user.name)
            email = fields.get("email", user.email)
            change_password = "password" in fields or "password_confirmation" in fields
            errors = validate_user(
                name,
                email,
                fields.get("password"),
                fields.get("password_confirmation"),
                check_password=change_password,
            )
            if "email" not in errors and self._email_taken(email, exclude_id=user.id):
                _add(errors, "email", "has already been taken")
            if errors:
                raise ValidationError(errors)

            user.name = name.strip()
            user.email = normalize_email(email)
            if change_password:
                user.password_digest = hash_password(fields["password"])
            user.remember_token = generate_remember_token()

        self.db.refresh(user)
        logger.info(f"Профиль обновлён: id={user.id}")
        return user

    def find_by_id(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def find_by_email(self, email: str) -> User:
        user = self.db.query(User).filter(func.lower(User.email) == normalize_email(email)).first()
        if user is None:
            raise NotFound("User")
        return user

    def list(self, page: int = 1, per_page: Optional[int] = None) -> Tuple[List[User], int]:
        """Страница пользователей по возрастанию id и общее количество"""
        offset, limit = page_bounds(page, per_page)
        users = self.db.query(User).order_by(User.id).offset(offset).limit(limit).all()
        return users, self.db.query(User).count()

    def destroy(self, requesting: Optional[User], target_id: int) -> None:
        """
        Удаление пользователя администратором.

        Себя удалить нельзя, даже администратору. Посты и подписки
        в обе стороны удаляются в той же транзакции.
        """
        if requesting is None or not requesting.admin:
            logger.warning(f"Удаление {target_id} отклонено: нет прав")
            raise Forbidden("administrator rights required")
        if requesting.id == target_id:
            logger.warning(f"Администратор {requesting.id} пытался удалить себя")
            raise Forbidden("You cannot destroy yourself")

        with atomic(self.db):
            target = self._lock(target_id)
            posts = MicropostService(self.db).destroy_all_by(target.id)
            edges = RelationshipService(self.db).remove_all_for(target.id)
            self.db.delete(target)

        logger.info(f"Пользователь {target_id} удалён ({posts} постов, {edges} подписок)")

    def set_admin(self, user_id: int, admin: bool = True) -> User:
        """Отдельный путь для флага администратора (только из manage.py)"""
        with atomic(self.db):
            user = self._lock(user_id)
            user.admin = admin
        logger.info(f"Флаг admin={admin} для пользователя {user_id}")
        return user
