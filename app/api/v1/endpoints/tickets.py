# File: app/api/v1/endpoints/tickets.py
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app import crud, schemas
from app.api import deps
from app.core.errors import NotFoundError, ValidationError
from app.db.database import get_db
from app.services.badge_generation import render_badge
from app.services.roles import resolve_role
from app.services.ticket_resolver import Identifier, TicketIdentity, debug_check, extract_identifier, lookup
from app.services.upgrade_service import UpgradeService

logger = logging.getLogger(__name__)

router = APIRouter()


def _extract_or_400(body: schemas.ScanRequest) -> Identifier:
    identifier = extract_identifier(body.incoming())
    if identifier is None:
        raise ValidationError("Invalid ticket")
    return identifier


def _resolve_or_404(db: Session, identifier: Identifier) -> TicketIdentity:
    identity = lookup(db, identifier)
    if identity is None:
        logger.info(f"🔍 Ticket {identifier.value} ({identifier.source}) not found")
        raise NotFoundError("Ticket not found")
    return identity


def _pdf_response(pdf: bytes, filename: str, disposition: str) -> Response:
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"{disposition}; filename={filename}"},
    )


@router.post("/upgrade", response_model=schemas.UpgradeResponse, response_model_exclude_none=True)
async def upgrade_ticket(
    body: schemas.UpgradeRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    service: UpgradeService = Depends(deps.get_upgrade_service),
) -> Any:
    """Change a registrant's ticket category.

    A paid upgrade without ``txId`` only returns a checkout URL; call again
    with the transaction id to apply it.
    """
    outcome = await service.upgrade(
        db,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        new_category=body.new_category,
        amount=body.amount,
        email=body.email,
        tx_id=body.tx_id,
        coupon_code=body.coupon_code,
        schedule=background_tasks.add_task,
    )
    return schemas.UpgradeResponse(
        upgraded=outcome.upgraded,
        category=outcome.category,
        ticket_code=outcome.ticket_code,
        payment_required=outcome.payment_required or None,
        checkout_url=outcome.checkout_url,
        order_id=outcome.order_id,
        amount=outcome.amount,
        discount=outcome.discount,
    )


@router.post("/validate", response_model=schemas.ValidateResponse)
def validate_ticket(body: schemas.ScanRequest, db: Session = Depends(get_db)) -> Any:
    identifier = _extract_or_400(body)
    identity = _resolve_or_404(db, identifier)
    record = identity.record
    return schemas.ValidateResponse(
        ticket=schemas.TicketInfo(
            ticket_code=record.ticket_code,
            entity_type=identity.entity_type,
            entity_id=record.id,
            role=identity.role,
            category=record.ticket_category,
            name=record.display_name,
            email=record.email,
            company=record.display_company,
            matched_by=identity.matched_by,
        )
    )


@router.post("/scan")
def scan_ticket(body: schemas.ScanRequest, db: Session = Depends(get_db)) -> Response:
    """Badge PDF for printing at the entrance."""
    identifier = _extract_or_400(body)
    identity = _resolve_or_404(db, identifier)
    pdf = render_badge(identity.entity_type, identity.record, mode="scan")
    logger.info(f"🖨️ Scan badge for {identity.entity_type} {identity.record.id}")
    return _pdf_response(pdf, f"badge-{identity.record.ticket_code}.pdf", "inline")


@router.get("/download")
def download_ticket(
    entity: str = Query(...),
    id: str = Query(...),
    db: Session = Depends(get_db),
) -> Response:
    info = resolve_role(entity)
    record = crud.for_role(info.role).get(db, id)
    if record is None:
        raise NotFoundError(f"{info.role.capitalize()} not found")
    pdf = render_badge(info.table, record, mode="email")
    return _pdf_response(pdf, f"ticket-{record.ticket_code}.pdf", "attachment")


@router.post("/debug-check")
def debug_check_ticket(body: schemas.ScanRequest, db: Session = Depends(get_db)) -> Any:
    """Per-table match counts for the extracted key, for troubleshooting scans."""
    identifier = _extract_or_400(body)
    return {"success": True, "debug": debug_check(db, identifier)}
