"""
Sample App API - главный файл приложения.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from sample_app import config
from sample_app.core.database import Base, engine, get_db
from sample_app.core.errors import AuthFailure, Forbidden, NotFound, StorageUnavailable, ValidationError
from sample_app.core.logging_config import setup_logging
from sample_app.core.models import User
from sample_app.schemas import (
    FeedPage,
    FollowRequest,
    MicropostCreate,
    MicropostResponse,
    SessionCreate,
    SessionResponse,
    UserPage,
    UserProfile,
    UserRegister,
    UserResponse,
    UserUpdate,
)
from sample_app.services.feed_service import FeedService
from sample_app.services.identity_service import IdentityService
from sample_app.services.micropost_service import MicropostService
from sample_app.services.relationship_service import RelationshipService
from sample_app.services.session_service import SessionService

# ===== НАСТРОЙКА ЛОГИРОВАНИЯ =====
setup_logging()
logger = logging.getLogger(__name__)


# ============= LIFESPAN EVENT =============

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Код ДО yield - выполняется при старте (startup).
    Код ПОСЛЕ yield - выполняется при остановке (shutdown).
    """
    logger.info("Sample App API запускается...")

    # Создание таблиц в БД
    Base.metadata.create_all(bind=engine)
    logger.info(f"База данных: {config.DATABASE_URL}")
    logger.info(f"Документация: http://{config.API_HOST}:{config.API_PORT}/docs")

    yield

    logger.info("Приложение остановлено")


# ============= СОЗДАНИЕ ПРИЛОЖЕНИЯ =============

app = FastAPI(
    title="Sample App API",
    description="Users, follows, microposts and the home feed",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============= ОБРАБОТКА ОШИБОК =============

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation failed", "errors": exc.errors},
    )


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(Forbidden)
async def forbidden_handler(request: Request, exc: Forbidden):
    return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"detail": str(exc)})


@app.exception_handler(AuthFailure)
async def auth_failure_handler(request: Request, exc: AuthFailure):
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": "Invalid email/password combination"},
    )


@app.exception_handler(StorageUnavailable)
@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: Exception):
    logger.error("Хранилище недоступно: %s", str(exc), exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage is unavailable"},
    )


# ============= СЕССИЯ =============

def get_session_artifact(request: Request) -> Optional[str]:
    """Артефакт сессии из заголовка Authorization или из cookie"""
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return auth[7:].strip()
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def get_current_user(request: Request, db: Session = Depends(get_db)) -> Optional[User]:
    return SessionService(db).current_identity(get_session_artifact(request))


def require_user(current_user: Optional[User] = Depends(get_current_user)) -> User:
    if current_user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Please sign in")
    return current_user


def require_signed_out(current_user: Optional[User] = Depends(get_current_user)) -> None:
    if current_user is not None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Already signed in")


def start_session(response: Response, db: Session, user: User) -> SessionResponse:
    token = SessionService(db).sign_in(user)
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        token,
        max_age=config.REMEMBER_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="lax",
    )
    return SessionResponse(user=UserResponse.model_validate(user), session_token=token)


# ============= HEALTH CHECK =============

@app.get("/", tags=["Health"])
async def root():
    return {"message": "Sample App API", "status": "healthy", "version": "1.0.0", "docs": "/docs"}


@app.get("/health", tags=["Health"])
def health(db: Session = Depends(get_db)):
    """Проверка, что БД отвечает"""
    db.query(User.id).first()
    return {"status": "ok", "services": {"database": True}}


# ============= USERS =============

@app.post(
    "/api/v1/users",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_signed_out)],
    tags=["Users"],
)
def register(payload: UserRegister, response: Response, db: Session = Depends(get_db)):
    """Регистрация; новый пользователь сразу входит"""
    user = IdentityService(db).create(
        payload.name, payload.email, payload.password, payload.password_confirmation
    )
    return start_session(response, db, user)


@app.get("/api/v1/users", response_model=UserPage, tags=["Users"])
def list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    users, total = IdentityService(db).list(page, per_page)
    return UserPage(
        items=[UserResponse.model_validate(u) for u in users],
        page=page,
        per_page=per_page,
        total=total,
    )


@app.get("/api/v1/users/{user_id}", response_model=UserProfile, tags=["Users"])
def show_user(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    current_user: Optional[User] = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Профиль пользователя с его микропостами"""
    user = IdentityService(db).find_by_id(user_id)
    posts = MicropostService(db)
    graph = RelationshipService(db)

    is_following = None
    if current_user is not None and current_user.id != user.id:
        is_following = graph.is_following(current_user.id, user.id)

    return UserProfile(
        user=UserResponse.model_validate(user),
        microposts=[MicropostResponse.model_validate(p) for p in posts.posts_by(user.id, page, per_page)],
        microposts_count=posts.count_by(user.id),
        following_count=graph.count_following(user.id),
        followers_count=graph.count_followers(user.id),
        is_following=is_following,
    )


@app.patch("/api/v1/users/{user_id}", response_model=SessionResponse, tags=["Users"])
def update_user(
    user_id: int,
    payload: UserUpdate,
    response: Response,
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Редактировать можно только свой профиль. Сессия перевыпускается."""
    if current_user.id != user_id:
        raise Forbidden("You can only edit your own profile")

    user = IdentityService(db).update(user_id, payload.model_dump(exclude_unset=True))
    return start_session(response, db, user)


@app.delete("/api/v1/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Users"])
def destroy_user(user_id: int, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    IdentityService(db).destroy(current_user, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/api/v1/users/{user_id}/following", response_model=UserPage, tags=["Relationships"])
def list_following(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    graph = RelationshipService(db)
    users = graph.following_users(user_id, page, per_page)
    return UserPage(
        items=[UserResponse.model_validate(u) for u in users],
        page=page,
        per_page=per_page,
        total=graph.count_following(user_id),
    )


@app.get("/api/v1/users/{user_id}/followers", response_model=UserPage, tags=["Relationships"])
def list_followers(
    user_id: int,
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    graph = RelationshipService(db)
    users = graph.follower_users(user_id, page, per_page)
    return UserPage(
        items=[UserResponse.model_validate(u) for u in users],
        page=page,
        per_page=per_page,
        total=graph.count_followers(user_id),
    )


# ============= SESSIONS =============

@app.post("/api/v1/sessions", response_model=SessionResponse, tags=["Authentication"])
def sign_in(credentials: SessionCreate, response: Response, db: Session = Depends(get_db)):
    """Вход пользователя"""
    user = SessionService(db).authenticate(credentials.email, credentials.password)
    if not user:
        raise AuthFailure()
    return start_session(response, db, user)


@app.delete("/api/v1/sessions", status_code=status.HTTP_204_NO_CONTENT, tags=["Authentication"])
def sign_out(current_user: Optional[User] = Depends(get_current_user), db: Session = Depends(get_db)):
    SessionService(db).sign_out(current_user)
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return response


@app.get("/api/v1/sessions/me", response_model=UserResponse, tags=["Authentication"])
def read_current_user(current_user: User = Depends(require_user)):
    return current_user


# ============= RELATIONSHIPS =============

@app.post(
    "/api/v1/relationships",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Relationships"],
)
def follow(payload: FollowRequest, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Подписаться; возвращает того, на кого подписались"""
    RelationshipService(db).follow(current_user.id, payload.followed_id)
    return IdentityService(db).find_by_id(payload.followed_id)


@app.delete(
    "/api/v1/relationships/{followed_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Relationships"],
)
def unfollow(followed_id: int, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    RelationshipService(db).unfollow(current_user.id, followed_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============= MICROPOSTS & FEED =============

@app.post(
    "/api/v1/microposts",
    response_model=MicropostResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Microposts"],
)
def create_micropost(
    payload: MicropostCreate, current_user: User = Depends(require_user), db: Session = Depends(get_db)
):
    return MicropostService(db).create(current_user.id, payload.content)


@app.delete("/api/v1/microposts/{post_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Microposts"])
def destroy_micropost(post_id: int, current_user: User = Depends(require_user), db: Session = Depends(get_db)):
    MicropostService(db).destroy(current_user, post_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/api/v1/feed", response_model=FeedPage, tags=["Microposts"])
def feed(
    page: int = Query(1, ge=1),
    per_page: int = Query(config.DEFAULT_PAGE_SIZE, ge=1, le=config.MAX_PAGE_SIZE),
    current_user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    """Домашняя лента: свои посты и посты тех, на кого подписан"""
    service = FeedService(db)
    return FeedPage(
        items=[MicropostResponse.model_validate(p) for p in service.feed(current_user.id, page, per_page)],
        page=page,
        per_page=per_page,
        total=service.feed_count(current_user.id),
    )


if __name__ == "__main__":
    uvicorn.run("sample_app.main:app", host=config.API_HOST, port=config.API_PORT)
