from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, ValidationInfo, field_validator
from typing import Annotated, Any, Dict, List, Optional
from datetime import datetime, timezone
from decimal import Decimal
from catalog.fields import MAX_INTEGER, MONEY_DIGITS, MONEY_PLACES, to_external

# Decimals leave the API as JSON numbers, not strings.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CatalogModel(BaseModel):
    """Python attributes use storage names, JSON uses the external names.

    Keys outside the product table are ignored rather than rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_external,
        str_strip_whitespace=True,
        extra="ignore",
    )


class ProductCreate(CatalogModel):
    article_no: str = Field(..., min_length=1, max_length=50, description="Article number")
    product: str = Field(..., min_length=1, max_length=255, description="Product name")
    in_price: Money = Field(
        Decimal("0"), ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES, description="Purchase price"
    )
    price: Money = Field(
        Decimal("0"), ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES, description="Sales price"
    )
    unit: str = Field("pcs", min_length=1, max_length=50)
    in_stock: int = Field(0, ge=0, le=MAX_INTEGER)
    description: Optional[str] = Field(None, description="Free text description")

    @field_validator("in_price", "price", "unit", "in_stock", mode="before")
    @classmethod
    def null_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_null(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class ProductUpdate(CatalogModel):
    """Partial payload shared by PUT and PATCH; only set fields are applied."""

    article_no: Optional[str] = Field(None, min_length=1, max_length=50)
    product: Optional[str] = Field(None, min_length=1, max_length=255)
    in_price: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=MONEY_DIGITS, decimal_places=MONEY_PLACES)
    unit: Optional[str] = Field(None, min_length=1, max_length=50)
    in_stock: Optional[int] = Field(None, ge=0, le=MAX_INTEGER)
    description: Optional[str] = None

    @field_validator("article_no", "product", "in_price", "price", "unit", "in_stock")
    @classmethod
    def reject_null(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            raise ValueError(f"{to_external(info.field_name)} cannot be null")
        return value

    def changes(self) -> Dict[str, Any]:
        """Fields present in the payload, keyed by storage column."""
        return self.model_dump(exclude_unset=True)


class ProductResponse(CatalogModel):
    id: int
    article_no: str
    product: str
    in_price: Money
    price: Money
    unit: str
    in_stock: int
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Built from ORM rows and storage-keyed dicts.
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        """SQLite hands back naive UTC values; every backend answers in UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    pagination: Pagination


class ProductEnvelope(BaseModel):
    product: ProductResponse
