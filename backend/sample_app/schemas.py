"""
Pydantic модели для endpoint'ов.

Все схемы запросов запрещают лишние поля: admin и прочее через форму не пройдёт.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RequestSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UserRegister(RequestSchema):
    """
    Схема для регистрации пользователя.

    POST /api/v1/users
    {
        "name": "Example User",
        "email": "user@example.com",
        "password": "foobar",
        "password_confirmation": "foobar"
    }
    """
    name: str = Field(..., description="Отображаемое имя")
    email: str = Field(..., description="Email, он же логин")
    password: str = Field(..., description="Пароль")
    password_confirmation: Optional[str] = Field(None, description="Повтор пароля")


class UserUpdate(RequestSchema):
    """Редактирование профиля. Передаются только изменяемые поля."""
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    password_confirmation: Optional[str] = None


class SessionCreate(RequestSchema):
    """Вход: email + пароль"""
    email: str
    password: str


class FollowRequest(RequestSchema):
    followed_id: int


class MicropostCreate(RequestSchema):
    content: str


class UserResponse(BaseModel):
    """
    Данные пользователя наружу.

    НЕ возвращаем ни хеш пароля, ни remember-токен.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    admin: bool
    created_at: datetime


class MicropostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    content: str
    created_at: datetime


class UserPage(BaseModel):
    items: List[UserResponse]
    page: int
    per_page: int
    total: int


class UserProfile(BaseModel):
    """Профиль: пользователь, его посты (страница) и счётчики"""
    user: UserResponse
    microposts: List[MicropostResponse]
    microposts_count: int
    following_count: int
    followers_count: int
    is_following: Optional[bool] = None


class FeedPage(BaseModel):
    items: List[MicropostResponse]
    page: int
    per_page: int
    total: int


class SessionResponse(BaseModel):
    """
    Ответ после входа/регистрации/смены профиля.

    Токен также ставится в cookie remember_token.
    """
    user: UserResponse
    session_token: str
    token_type: str = "bearer"
