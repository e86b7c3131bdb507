from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.sql import func
from catalog.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_no = Column(String(50), nullable=False, index=True)
    product = Column(String(255), nullable=False)
    in_price = Column(Numeric(10, 2), nullable=False, default=0, server_default="0")
    price = Column(Numeric(10, 2), nullable=False, default=0, server_default="0")
    unit = Column(String(50), nullable=False, default="pcs", server_default="pcs")
    in_stock = Column(Integer, nullable=False, default=0, server_default="0")
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("in_price >= 0", name="ck_products_in_price_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("in_stock >= 0", name="ck_products_in_stock_non_negative"),
        # Never hand out the id of a deleted row again.
        {"sqlite_autoincrement": True},
    )
