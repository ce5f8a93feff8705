# File: app/models/coupon.py
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Numeric
from sqlalchemy.sql import func
from app.db.database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, nullable=False, index=True)
    discount = Column(Numeric(5, 2), nullable=False)  # percentage, 0-100
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    used_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class CouponLog(Base):
    __tablename__ = "coupon_logs"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(30), nullable=False)  # create, generate, use, mark_used, mark_unused, delete
    code = Column(String(64), nullable=True, index=True)
    discount = Column(Numeric(5, 2), nullable=True)
    actor = Column(String(255), nullable=True)
    count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
