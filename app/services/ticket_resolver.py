# File: app/services/ticket_resolver.py
"""Recover a ticket identity from whatever a scanner submits.

Extraction turns the raw payload into an ``Identifier`` and never raises.
Lookup walks the role tables cheapest-first: exact code, numeric
projection, the tickets table, then a capped scan of stored form data.
A role named next to the code puts that table first.
"""
import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import UnknownRoleError
from app.crud.registrant import registrants
from app.crud.ticket import ticket as crud_ticket
from app.models.registrant import RegistrantMixin
from app.services.roles import ROLE_MODELS, RoleInfo, resolve_role
from app.services.ticket_codes import numeric_projection

logger = logging.getLogger(__name__)

TICKET_KEYS = (
    "ticket_code",
    "ticketCode",
    "ticket_id",
    "ticketId",
    "ticket",
    "ticketNo",
    "ticketno",
    "ticketid",
    "code",
    "c",
    "id",
    "tk",
    "t",
)

ROLE_KEYS = ("role", "entityType", "entity_type")

TOKEN_RE = re.compile(r"[A-Za-z0-9._-]{3,64}")
DIGITS_RE = re.compile(r"\d{3,12}")
BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")

MAX_NODES = 2000

KIND_OBJECT = "object"
KIND_TEXT = "text"
KIND_EMPTY = "empty"


@dataclass(frozen=True)
class Identifier:
    """A candidate ticket code and where in the payload it came from."""

    value: str
    source: str  # object, json, base64, token, digits, number
    role: Optional[str] = None  # from a role key next to the code

    @property
    def number(self) -> Optional[int]:
        if len(self.value) <= 18:
            return numeric_projection(self.value)
        return None


@dataclass
class TicketIdentity:
    entity_type: str
    role: str
    record: RegistrantMixin
    matched_by: str


def _number_text(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _classify(raw: Any) -> Tuple[str, Any]:
    if raw is None or isinstance(raw, bool):
        return KIND_EMPTY, None
    if isinstance(raw, (dict, list)):
        return KIND_OBJECT, raw
    if isinstance(raw, (int, float)):
        return KIND_TEXT, _number_text(raw)
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    if isinstance(raw, str):
        text = raw.strip()
        return (KIND_TEXT, text) if text else (KIND_EMPTY, None)
    return KIND_EMPTY, None


def _clean_value(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        value = _number_text(value)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value if TOKEN_RE.fullmatch(value) else None


def _match_keys(node: dict) -> Optional[str]:
    for key in TICKET_KEYS:
        if key in node:
            value = _clean_value(node[key])
            if value:
                return value
    return None


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _decode_base64(text: str) -> Optional[str]:
    compact = re.sub(r"\s+", "", text)
    if len(compact) < 8 or len(compact) % 4 or not BASE64_RE.match(compact):
        return None
    try:
        decoded = base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    decoded = decoded.strip()
    if not decoded or not decoded.isprintable():
        return None
    return decoded


def _role_hint(node: dict) -> Optional[str]:
    for key in ROLE_KEYS:
        if isinstance(node.get(key), str):
            try:
                return resolve_role(node[key]).role
            except UnknownRoleError:
                return None
    return None


def extract_from_object(obj: Any, max_depth: Optional[int] = None) -> Optional[str]:
    """Top-level keys first, then an explicit-stack walk of nested values."""
    found = _locate(obj, max_depth)
    return found[0] if found else None


def _object_identifier(obj: Any, source: str) -> Optional[Identifier]:
    found = _locate(obj)
    if not found:
        return None
    value, node = found
    return Identifier(value, source, _role_hint(node))


def _locate(obj: Any, max_depth: Optional[int] = None) -> Optional[Tuple[str, dict]]:
    """The code and the object that holds it."""
    max_depth = settings.RESOLVER_MAX_DEPTH if max_depth is None else max_depth

    if isinstance(obj, dict):
        found = _match_keys(obj)
        if found:
            return found, obj

    stack: List[Tuple[Any, int]] = [(obj, 0)]
    visited = 0
    while stack and visited < MAX_NODES:
        node, depth = stack.pop()
        visited += 1

        if isinstance(node, str):
            text = node.strip()
            if text[:1] in ("{", "["):
                node = _parse_json(text)
            if not isinstance(node, (dict, list)):
                continue

        if isinstance(node, dict):
            found = _match_keys(node)
            if found:
                return found, node
            children = list(node.values())
        elif isinstance(node, list):
            children = node
        else:
            continue

        if depth >= max_depth:
            continue
        # Reversed so document order is popped first
        for child in reversed(children):
            if isinstance(child, (dict, list, str)):
                stack.append((child, depth + 1))

    return None


def _search_text(text: str) -> Optional[Identifier]:
    """Code-like substring of free text. Words without digits are not codes."""
    for token in TOKEN_RE.findall(text):
        if any(ch.isdigit() for ch in token):
            return Identifier(token, "token")
    digits = DIGITS_RE.search(text)
    if digits:
        return Identifier(digits.group(0), "digits")
    return None


def _extract_from_text(text: str) -> Optional[Identifier]:
    if text[:1] in ("{", "["):
        parsed = _parse_json(text)
        if isinstance(parsed, (dict, list)):
            return _object_identifier(parsed, "json")

    decoded = _decode_base64(text)
    if decoded and decoded[:1] in ("{", "["):
        parsed = _parse_json(decoded)
        if isinstance(parsed, (dict, list)):
            found = _object_identifier(parsed, "base64")
            if found:
                return found

    if TOKEN_RE.fullmatch(text):
        return Identifier(text, "token")

    if decoded:
        if TOKEN_RE.fullmatch(decoded):
            return Identifier(decoded, "base64")
        found = _search_text(decoded)
        if found:
            return Identifier(found.value, "base64")

    return _search_text(text)


def extract_identifier(raw: Any) -> Optional[Identifier]:
    """Best candidate ticket code in ``raw``, or None. Never raises."""
    kind, value = _classify(raw)
    try:
        if kind == KIND_OBJECT:
            return _object_identifier(value, "object")
        if kind == KIND_TEXT:
            return _extract_from_text(value)
    except (RecursionError, ValueError, TypeError) as e:
        logger.warning(f"⚠️ Could not extract ticket identifier: {e}")
    return None


def _data_contains(data: Any, value: str) -> bool:
    """Whether any ticket-like key in ``data`` holds ``value``."""
    stack = [(data, 0)]
    visited = 0
    while stack and visited < MAX_NODES:
        node, depth = stack.pop()
        visited += 1
        if isinstance(node, dict):
            for key in TICKET_KEYS:
                if key in node and _clean_value(node[key]) == value:
                    return True
            children = node.values()
        elif isinstance(node, list):
            children = node
        else:
            continue
        if depth < settings.RESOLVER_MAX_DEPTH:
            stack.extend((child, depth + 1) for child in children if isinstance(child, (dict, list)))
    return False


def _scan_fallback(db: Session, value: str, order: Sequence[RoleInfo]) -> Optional[TicketIdentity]:
    """Each table reads at most RESOLVER_MAX_SCAN rows that carry form data."""
    for info in order:
        rows = registrants[info.role].get_with_data(db, limit=settings.RESOLVER_MAX_SCAN)
        for row in rows:
            if _data_contains(row.data, value):
                return TicketIdentity(info.table, info.role, row, "scan")
    return None


def _table_order(role: Optional[str]) -> Tuple[RoleInfo, ...]:
    """The hinted role's table first, the rest in the usual order."""
    if not role:
        return ROLE_MODELS
    try:
        hinted = resolve_role(role)
    except UnknownRoleError:
        return ROLE_MODELS
    return (hinted,) + tuple(info for info in ROLE_MODELS if info is not hinted)


def lookup(db: Session, identifier: Identifier) -> Optional[TicketIdentity]:
    value = identifier.value
    number = identifier.number
    order = _table_order(identifier.role)

    for info in order:
        record = registrants[info.role].find_by_ticket(db, ticket_code=value, number=number)
        if record is not None:
            matched_by = "ticket_code" if record.ticket_code == value else "ticket_code_num"
            return TicketIdentity(info.table, info.role, record, matched_by)

    db_ticket = crud_ticket.get_by_code(db, ticket_code=value)
    if db_ticket is not None:
        try:
            info = resolve_role(db_ticket.entity_type)
        except UnknownRoleError:
            logger.warning(f"⚠️ Ticket {value} points at unknown entity type {db_ticket.entity_type}")
        else:
            record = db.get(info.model, db_ticket.entity_id)
            if record is not None:
                return TicketIdentity(info.table, info.role, record, "ticket_record")

    return _scan_fallback(db, value, order)


def resolve(db: Session, raw: Any) -> Optional[TicketIdentity]:
    identifier = extract_identifier(raw)
    if identifier is None:
        return None
    return lookup(db, identifier)


def debug_check(db: Session, identifier: Identifier) -> dict:
    checked = []
    for info in ROLE_MODELS:
        crud = registrants[info.role]
        sample = db.query(info.model).first()
        checked.append(
            {
                "coll": info.table,
                "sampleHasTicketCode": bool(sample is not None and sample.ticket_code),
                "matchCount": crud.count_by_ticket_code(db, ticket_code=identifier.value),
            }
        )
    return {"ticketKey": identifier.value, "source": identifier.source, "checkedCollections": checked}
