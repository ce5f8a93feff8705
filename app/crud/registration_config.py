# File: app/crud/registration_config.py
from typing import List, Optional
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.registration_config import RegistrationConfig


class CRUDRegistrationConfig(CRUDBase):

    def get_by_page(self, db: Session, *, page: str) -> Optional[RegistrationConfig]:
        return db.query(RegistrationConfig).filter(RegistrationConfig.page == page).first()

    def upsert(self, db: Session, *, page: str, config: dict) -> RegistrationConfig:
        db_obj = self.get_by_page(db, page=page)
        if db_obj is None:
            db_obj = RegistrationConfig(page=page, config=config)
            db.add(db_obj)
        else:
            db_obj.config = config
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def get_field_whitelist(self, db: Session, *, page: str) -> Optional[List[str]]:
        """Configured field names for a page, or None when nothing is configured."""
        db_obj = self.get_by_page(db, page=page)
        if db_obj is None:
            return None
        return db_obj.field_names() or None


registration_config = CRUDRegistrationConfig(RegistrationConfig)
