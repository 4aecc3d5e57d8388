"""
Доменные ошибки. Сервисы бросают их, HTTP-слой превращает в ответы.
"""
from typing import Dict, List, Optional


class SampleAppError(Exception):
    """Базовая ошибка приложения"""


class ValidationError(SampleAppError):
    """
    Ошибка валидации полей формы.

    errors: {"email": ["has already been taken"], ...}
    """

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        super().__init__(
            "; ".join(f"{field} {reason}" for field, reasons in errors.items() for reason in reasons)
        )


class NotFound(SampleAppError):
    """Запись с таким идентификатором отсутствует"""

    def __init__(self, entity: str, key: Optional[object] = None):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found" if key is None else f"{entity} {key} not found")


class Forbidden(SampleAppError):
    """Нарушено правило авторизации"""


class AuthFailure(SampleAppError):
    """Неверная пара email/пароль"""


class StorageUnavailable(SampleAppError):
    """Хранилище недоступно. Не доменная ошибка, повтор не выполняется."""
