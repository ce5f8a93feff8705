# File: app/api/v1/endpoints/coupons.py
from typing import Any, List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app import crud, schemas
from app.core.errors import ValidationError
from app.db.database import get_db
from app.services import coupon_ledger

router = APIRouter()


@router.get("", response_model=schemas.CouponList)
def list_coupons(
    db: Session = Depends(get_db),
    status_filter: str = Query("all", alias="status", pattern="^(all|used|unused)$"),
) -> Any:
    return schemas.CouponList(coupons=crud.coupon.get_by_status(db, status=status_filter))


@router.get("/logs", response_model=List[schemas.CouponLog])
def list_coupon_logs(
    db: Session = Depends(get_db),
    limit: int = Query(500, ge=1, le=500),
) -> Any:
    return crud.coupon_log.get_latest(db, limit=limit)


@router.post("", response_model=schemas.Coupon, status_code=status.HTTP_201_CREATED)
def create_coupon(coupon_in: schemas.CouponCreate, db: Session = Depends(get_db)) -> Any:
    return coupon_ledger.create(db, coupon_in.code, coupon_in.discount, actor="admin")


@router.post("/generate", response_model=schemas.CouponList, status_code=status.HTTP_201_CREATED)
def generate_coupons(body: schemas.CouponGenerate, db: Session = Depends(get_db)) -> Any:
    coupons = coupon_ledger.generate(
        db, body.count, body.discount, length=body.length, prefix=body.prefix, actor="admin"
    )
    return schemas.CouponList(coupons=coupons)


@router.post("/validate", response_model=schemas.CouponValidateResponse, response_model_exclude_none=True)
def validate_coupon(body: schemas.CouponValidateRequest, db: Session = Depends(get_db)) -> Any:
    """Spend the coupon (default) or, with ``consume: false``, only check it.

    An unusable coupon is a normal answer with ``valid: false``.
    """
    if not coupon_ledger.normalize_code(body.code):
        raise ValidationError("Coupon code is required")

    if body.consume:
        check = coupon_ledger.consume(db, body.code, consumer=body.consumer or "user")
    else:
        check = coupon_ledger.validate(db, body.code)

    reduced = None
    if check.valid and body.price is not None:
        reduced = coupon_ledger.reduced_price(body.price, check.discount)

    return schemas.CouponValidateResponse(
        success=check.valid,
        valid=check.valid,
        code=check.code,
        discount=check.discount,
        reduced_price=reduced,
        reason=check.reason,
    )


@router.post("/{coupon_id}/use", response_model=schemas.Coupon)
def mark_coupon_used(coupon_id: int, db: Session = Depends(get_db)) -> Any:
    return coupon_ledger.mark_used(db, coupon_id, actor="admin")


@router.post("/{coupon_id}/unuse", response_model=schemas.Coupon)
def mark_coupon_unused(coupon_id: int, db: Session = Depends(get_db)) -> Any:
    return coupon_ledger.mark_unused(db, coupon_id, actor="admin")


@router.delete("/{coupon_id}", response_model=schemas.MessageResponse)
def delete_coupon(coupon_id: int, db: Session = Depends(get_db)) -> Any:
    coupon_ledger.delete(db, coupon_id, actor="admin")
    return schemas.MessageResponse(message="Coupon deleted")
