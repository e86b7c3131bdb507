"""External (JSON, camelCase) <-> internal (storage, snake_case) field names.

Every layer that needs to translate a product field name goes through
``PRODUCT_FIELDS``: the query builder, the pydantic schemas (as their alias
generator) and the storage backends.
"""
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple


@dataclass(frozen=True)
class FieldSpec:
    external: str
    internal: str
    writable: bool = True
    filterable: bool = False


PRODUCT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("id", "id", writable=False),
    FieldSpec("articleNo", "article_no", filterable=True),
    FieldSpec("product", "product", filterable=True),
    FieldSpec("inPrice", "in_price"),
    FieldSpec("price", "price"),
    FieldSpec("unit", "unit"),
    FieldSpec("inStock", "in_stock"),
    FieldSpec("description", "description"),
    FieldSpec("createdAt", "created_at", writable=False),
    FieldSpec("updatedAt", "updated_at", writable=False),
)

EXTERNAL_TO_INTERNAL: Dict[str, str] = {f.external: f.internal for f in PRODUCT_FIELDS}
INTERNAL_TO_EXTERNAL: Dict[str, str] = {f.internal: f.external for f in PRODUCT_FIELDS}

WRITABLE_FIELDS: Tuple[str, ...] = tuple(f.internal for f in PRODUCT_FIELDS if f.writable)
FILTERABLE_FIELDS: Tuple[str, ...] = tuple(f.internal for f in PRODUCT_FIELDS if f.filterable)
COLUMNS: Tuple[str, ...] = tuple(f.internal for f in PRODUCT_FIELDS)

# Columns the free-text ``search`` parameter is matched against.
SEARCH_FIELDS: Tuple[str, ...] = ("article_no", "product")

# Range of the INTEGER columns (``id``, ``in_stock``).
MIN_INTEGER = -(2 ** 31)
MAX_INTEGER = 2 ** 31 - 1

# NUMERIC(10, 2) money columns.
MONEY_DIGITS = 10
MONEY_PLACES = 2


def to_internal(name: str) -> str:
    """Return the storage column for an external field name."""
    return EXTERNAL_TO_INTERNAL[name]


def to_external(name: str) -> str:
    """Return the JSON key for a storage column.

    Names outside the product table (``products``, ``pagination``...) are
    returned unchanged so this can be used as a pydantic alias generator.
    """
    return INTERNAL_TO_EXTERNAL.get(name, name)


def writable_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only writable columns, dropping ``id`` and the timestamps."""
    return {k: v for k, v in values.items() if k in WRITABLE_FIELDS}


def internal_record(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only known columns of a storage row, keyed by internal name."""
    return {column: row[column] for column in COLUMNS if column in row}
