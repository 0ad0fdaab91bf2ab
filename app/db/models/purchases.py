from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Purchase(Base):
    __tablename__ = "purchases"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_purchases_amount_positive"),
        CheckConstraint("credits_used >= 0", name="ck_purchases_credits_used_non_negative"),
        CheckConstraint("credit_amount >= 0", name="ck_purchases_credit_amount_non_negative"),
        CheckConstraint("cash_amount >= 0", name="ck_purchases_cash_amount_non_negative"),
        CheckConstraint(
            "credit_amount + cash_amount = amount",
            name="ck_purchases_split_sums_to_amount",
        ),
        CheckConstraint(
            "credit_amount = credits_used * 10",
            name="ck_purchases_credit_amount_matches_credits",
        ),
        CheckConstraint(
            "NOT referral_credit_awarded OR is_first_purchase",
            name="ck_purchases_award_only_on_first_purchase",
        ),
        Index("idx_purchases_user_created", "user_id", "created_at"),
        Index("idx_purchases_product", "product_id"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    product_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("products.id"), nullable=False)
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    credits_used: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default=text("0")
    )
    cash_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, server_default=text("0")
    )
    is_first_purchase: Mapped[bool] = mapped_column(Boolean, nullable=False)
    referral_credit_awarded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    idempotency_key: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
