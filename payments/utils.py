import math

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def positive_int(value, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def page_params(params) -> tuple:
    """Return ``(page, limit)`` from query params, clamped to sane bounds."""
    page = positive_int(params.get("page"), 1)
    limit = min(positive_int(params.get("limit"), DEFAULT_LIMIT), MAX_LIMIT)
    return page, limit


def pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if total else 0,
    }
