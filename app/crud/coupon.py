# File: app/crud/coupon.py
from typing import List, Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.coupon import Coupon, CouponLog


class CRUDCoupon(CRUDBase):

    def get_by_code(self, db: Session, *, code: str) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.code == code).first()

    def get_by_status(self, db: Session, *, status: str = "all") -> List[Coupon]:
        query = db.query(Coupon)
        if status == "used":
            query = query.filter(Coupon.used.is_(True))
        elif status == "unused":
            query = query.filter(Coupon.used.isnot(True))
        return query.order_by(Coupon.created_at.desc(), Coupon.id.desc()).all()


class CRUDCouponLog(CRUDBase):

    def get_latest(self, db: Session, *, limit: int = 500) -> List[CouponLog]:
        return (
            db.query(CouponLog)
            .order_by(CouponLog.created_at.desc(), CouponLog.id.desc())
            .limit(limit)
            .all()
        )


coupon = CRUDCoupon(Coupon)
coupon_log = CRUDCouponLog(CouponLog)
