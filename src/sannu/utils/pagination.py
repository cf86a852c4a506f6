import math

DEFAULT_PER_PAGE = 15
MAX_PER_PAGE = 100


def clamp_per_page(per_page) -> int:
    try:
        per_page = int(per_page)
    except (TypeError, ValueError):
        return DEFAULT_PER_PAGE
    return max(1, min(per_page, MAX_PER_PAGE))


def paginate(query, page: int = 1, per_page: int = DEFAULT_PER_PAGE) -> dict:
    """
    Slice a SQLAlchemy query into one page.

    Returns a dict with `data` (list of rows) plus the usual page metadata.
    """
    per_page = clamp_per_page(per_page)
    page = max(1, int(page or 1))

    total = query.order_by(None).count()
    items = query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "data": items,
        "total": total,
        "page": page,
        "per_page": per_page,
        "last_page": max(1, math.ceil(total / per_page)),
    }
