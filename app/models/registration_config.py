# File: app/models/registration_config.py
from sqlalchemy import Column, String, JSON
from app.models.base import BaseModel


class RegistrationConfig(BaseModel):
    __tablename__ = "registration_configs"

    page = Column(String(50), unique=True, nullable=False, index=True)  # singular role
    config = Column(JSON, nullable=False, default=dict)  # {"fields": [{"name": ..., "type": ...}]}

    def field_names(self) -> list:
        fields = (self.config or {}).get("fields") or []
        return [f["name"] for f in fields if isinstance(f, dict) and f.get("name")]
