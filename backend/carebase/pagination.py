from flask import current_app
from .errors import ValidationFailed

# Largest OFFSET a 64-bit SQL integer holds
MAX_OFFSET = 2 ** 63 - 1


def _positive_int(value, field, default):
    if value is None or str(value).strip() == "":
        return default
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValidationFailed(f"{field} must be an integer.", {field: value})
    # zero and negative values would produce a negative skip
    return max(number, 1)


def page_args(args):
    """Read ``page`` and ``limit`` from query args, clamped to sane bounds."""
    page = _positive_int(args.get("page"), "page", 1)
    limit = _positive_int(args.get("limit"), "limit", current_app.config["DEFAULT_PAGE_SIZE"])
    limit = min(limit, current_app.config["MAX_PAGE_SIZE"])
    if (page - 1) * limit > MAX_OFFSET:
        raise ValidationFailed("page is out of range.", {"page": args.get("page")})
    return page, limit


def paginate(query, page, limit):
    # skip = (page - 1) * limit; total is counted independently of the page
    return query.paginate(page=page, per_page=limit, error_out=False)


def page_response(pagination):
    return {
        "patients": [patient.to_dict() for patient in pagination.items],
        "currentPage": pagination.page,
        "totalPages": pagination.pages,
        "totalPatients": pagination.total,
    }
