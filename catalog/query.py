"""Turn raw list-query parameters into a storage-independent query."""
import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from catalog.config import settings
from catalog.exceptions import InvalidParameter
from catalog.fields import FILTERABLE_FIELDS, MAX_INTEGER, to_external

LIKE_ESCAPE = "\\"


@dataclass
class ProductQuery:
    """Filters plus pagination window for a list operation.

    ``filters`` maps storage columns to substring terms; they are ANDed.
    ``search`` is matched against every column in ``SEARCH_FIELDS`` with OR.
    """

    filters: Dict[str, str] = field(default_factory=dict)
    search: Optional[str] = None
    page: int = 1
    limit: int = 50
    offset: int = 0

    @classmethod
    def from_params(cls, params: Mapping[str, Optional[str]]) -> "ProductQuery":
        """Build a query from request parameters keyed by external names."""
        limit = _parse_int(params, "limit", minimum=1)
        if limit is None:
            limit = settings.default_page_size
        limit = min(limit, settings.max_page_size)

        page = _parse_int(params, "page", minimum=1, maximum=MAX_INTEGER)
        offset = _parse_int(params, "offset", minimum=0, maximum=MAX_INTEGER)
        if offset is not None:
            page = offset // limit + 1
        else:
            page = page or 1
            offset = (page - 1) * limit

        filters = {}
        for column in FILTERABLE_FIELDS:
            term = _clean(params.get(to_external(column)))
            if term:
                filters[column] = term

        return cls(
            filters=filters,
            search=_clean(params.get("search")),
            page=page,
            limit=limit,
            offset=offset,
        )


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(
    params: Mapping[str, Optional[str]], name: str, minimum: int, maximum: Optional[int] = None
) -> Optional[int]:
    raw = _clean(params.get(name))
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise InvalidParameter(f"Parameter '{name}' must be an integer")
    if value < minimum:
        raise InvalidParameter(f"Parameter '{name}' must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise InvalidParameter(f"Parameter '{name}' must be <= {maximum}")
    return value


def like_pattern(term: str) -> str:
    """Wrap a term for a substring ILIKE match, escaping wildcards."""
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def page_count(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
