"""
Конфигурация бэкенда.
"""

from pathlib import Path
from dotenv import load_dotenv
import os

load_dotenv()

# Корневая директория проекта и базовые настройки
BASE_DIR = Path(__file__).parent.parent  # backend/
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# ============= DATA =============
DATA_DIR = Path(os.getenv("DATA_DIR", BASE_DIR / "data"))
LOGS_DIR = Path(os.getenv("LOGS_DIR", BASE_DIR / "logs"))

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{str(DATA_DIR / 'app.db')}")


# ============= БЕЗОПАСНОСТЬ =============
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
REMEMBER_TOKEN_EXPIRE_DAYS = int(os.getenv("REMEMBER_TOKEN_EXPIRE_DAYS", "365"))
SESSION_COOKIE_NAME = "remember_token"


# ============= API =============
API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))


# ============= ВАЛИДАЦИЯ =============
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6
MICROPOST_MAX_LENGTH = int(os.getenv("MICROPOST_MAX_LENGTH", "140"))


# ============= ПАГИНАЦИЯ =============
DEFAULT_PAGE_SIZE = 30
MAX_PAGE_SIZE = 100
