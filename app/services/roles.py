# File: app/services/roles.py
from typing import NamedTuple, Type

from app.core.errors import UnknownRoleError
from app.models.registrant import Visitor, Exhibitor, Partner, Speaker, Awardee


class RoleInfo(NamedTuple):
    role: str
    table: str
    model: Type


# Lookup order used by the resolver and the OTP email check
ROLE_MODELS = (
    RoleInfo("visitor", "visitors", Visitor),
    RoleInfo("exhibitor", "exhibitors", Exhibitor),
    RoleInfo("partner", "partners", Partner),
    RoleInfo("speaker", "speakers", Speaker),
    RoleInfo("awardee", "awardees", Awardee),
)

_BY_NAME = {}
for _info in ROLE_MODELS:
    _BY_NAME[_info.role] = _info
    _BY_NAME[_info.table] = _info


def resolve_role(name) -> RoleInfo:
    """Accept singular or plural role names in any case."""
    key = str(name or "").strip().lower()
    info = _BY_NAME.get(key)
    if info is None:
        raise UnknownRoleError(str(name))
    return info
