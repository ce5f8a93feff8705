# File: app/schemas/registration_config.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class FormFieldSpec(CamelModel):
    name: str = Field(..., min_length=1)
    label: Optional[str] = None
    type: str = "text"
    required: bool = False
    options: Optional[List[str]] = None


class RegistrationConfigIn(CamelModel):
    fields: List[FormFieldSpec] = []
    extra: Dict[str, Any] = {}


class RegistrationConfig(CamelModel):
    page: str
    config: Dict[str, Any]
    updated_at: Optional[datetime] = None
