# File: app/schemas/coupon.py
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class CouponCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=64)
    discount: float = Field(..., ge=0, le=100)


class CouponGenerate(CamelModel):
    count: int = Field(..., ge=1, le=1000)
    discount: float = Field(..., ge=0, le=100)
    length: int = Field(8, ge=4, le=32)
    prefix: str = Field("", max_length=16)


class Coupon(CamelModel):
    id: int
    code: str
    discount: float
    used: bool
    used_at: Optional[datetime] = None
    used_by: Optional[str] = None
    created_at: Optional[datetime] = None


class CouponList(CamelModel):
    success: bool = True
    coupons: List[Coupon]


class CouponLog(CamelModel):
    id: int
    type: str
    code: Optional[str] = None
    discount: Optional[float] = None
    actor: Optional[str] = None
    count: Optional[int] = None
    created_at: Optional[datetime] = None


class CouponValidateRequest(CamelModel):
    code: str
    price: Optional[float] = Field(None, ge=0)
    consume: bool = True
    consumer: Optional[str] = None


class CouponValidateResponse(CamelModel):
    success: bool
    valid: bool
    code: str
    discount: Optional[float] = None
    reduced_price: Optional[float] = None
    reason: Optional[str] = None
