from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base

REFERRAL_STATUS_PENDING = "PENDING"
REFERRAL_STATUS_CONVERTED = "CONVERTED"


class Referral(Base):
    __tablename__ = "referrals"
    __table_args__ = (
        CheckConstraint("status IN ('PENDING','CONVERTED')", name="ck_referrals_status"),
        CheckConstraint(
            "referrer_user_id <> referred_user_id", name="ck_referrals_no_self_referral"
        ),
        CheckConstraint(
            "(status = 'CONVERTED') = credits_awarded",
            name="ck_referrals_awarded_iff_converted",
        ),
        CheckConstraint(
            "(status = 'CONVERTED') = (converted_at IS NOT NULL)",
            name="ck_referrals_converted_at_iff_converted",
        ),
        Index("idx_referrals_referrer", "referrer_user_id"),
        Index("idx_referrals_referrer_status", "referrer_user_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    referrer_user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    referred_user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )
    referral_code: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    credits_awarded: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("false")
    )
    converted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
