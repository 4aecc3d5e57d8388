from typing import Optional, Tuple

from sample_app.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from sample_app.core.errors import ValidationError


def page_bounds(page: int = 1, per_page: Optional[int] = None) -> Tuple[int, int]:
    """Номер страницы (с 1) и размер -> (offset, limit)"""
    if per_page is None:
        per_page = DEFAULT_PAGE_SIZE
    errors = {}
    if page < 1:
        errors["page"] = ["must be greater than or equal to 1"]
    if not 1 <= per_page <= MAX_PAGE_SIZE:
        errors["per_page"] = [f"must be between 1 and {MAX_PAGE_SIZE}"]
    if errors:
        raise ValidationError(errors)
    return (page - 1) * per_page, per_page
