# File: app/api/v1/endpoints/registration_configs.py
from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app import crud, schemas
from app.core.errors import NotFoundError
from app.db.database import get_db
from app.services.roles import resolve_role

router = APIRouter()


@router.get("", response_model=List[schemas.RegistrationConfig])
def list_registration_configs(db: Session = Depends(get_db)) -> Any:
    return crud.registration_config.get_multi(db, limit=100)


@router.get("/{page}", response_model=schemas.RegistrationConfig)
def get_registration_config(page: str, db: Session = Depends(get_db)) -> Any:
    info = resolve_role(page)
    db_obj = crud.registration_config.get_by_page(db, page=info.role)
    if db_obj is None:
        raise NotFoundError(f"No registration config for {info.role}")
    return db_obj


@router.put("/{page}", response_model=schemas.RegistrationConfig)
def put_registration_config(
    page: str,
    config_in: schemas.RegistrationConfigIn,
    db: Session = Depends(get_db),
) -> Any:
    """Replace the form configuration; its field names become the stored-field whitelist."""
    info = resolve_role(page)
    config = {
        **config_in.extra,
        "fields": [field.model_dump(exclude_none=True) for field in config_in.fields],
    }
    return crud.registration_config.upsert(db, page=info.role, config=config)
