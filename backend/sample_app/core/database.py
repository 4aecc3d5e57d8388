"""
Настройка подключения к базе данных.
"""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from sample_app import config
from sample_app.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

connect_args = {}
if config.DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}  # Только для SQLite
    config.DATA_DIR.mkdir(parents=True, exist_ok=True)

# Создаём движок БД
engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

# Сессия для работы с БД
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Базовый класс для моделей
Base = declarative_base()


def get_db():
    """
    Dependency для получения сессии БД в endpoint'ах.

    Использование:
        @app.post("/users")
        def create_user(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    Транзакция "всё или ничего" вокруг блока записи.

    Любая ошибка откатывает сессию. Ошибки соединения с БД
    превращаются в StorageUnavailable.
    """
    try:
        yield db
        db.commit()
    except (OperationalError, InterfaceError) as e:
        db.rollback()
        logger.error(f"Хранилище недоступно: {e}")
        raise StorageUnavailable("database is unavailable") from e
    except Exception:
        db.rollback()
        raise
