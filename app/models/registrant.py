# File: app/models/registrant.py
import uuid

from sqlalchemy import Column, String, Boolean, DateTime, BigInteger, JSON, Index
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func

from app.db.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class RegistrantMixin:
    """Columns shared by the five role tables.

    ``email`` and ``ticket_code`` carry nullable unique indexes, so absent
    values never collide while present ones stay unique per table.
    """

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), nullable=True)
    ticket_code = Column(String(64), nullable=True)
    ticket_code_num = Column(BigInteger, nullable=True)
    ticket_category = Column(String(100), nullable=True)
    role = Column(String(50), nullable=False)

    name = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    mobile = Column(String(50), nullable=True)

    added_by_admin = Column(Boolean, nullable=False, default=False)
    tx_id = Column(String(255), nullable=True)
    upgraded_at = Column(DateTime(timezone=True), nullable=True)

    # Review workflow for exhibitors and partners
    status = Column(String(20), nullable=False, default="pending", server_default="pending")
    approved_by = Column(String(255), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by = Column(String(255), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Delivery status written by notification attempts
    email_sent_at = Column(DateTime(timezone=True), nullable=True)
    email_failed = Column(Boolean, nullable=False, default=False)
    email_failed_at = Column(DateTime(timezone=True), nullable=True)

    data = Column(JSON, nullable=True)  # normalized form fields
    raw_form = Column(JSON, nullable=True)  # form exactly as submitted

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @declared_attr
    def __table_args__(cls):
        table = cls.__tablename__
        return (
            Index(f"uq_{table}_ticket_code", "ticket_code", unique=True),
            Index(f"uq_{table}_email", "email", unique=True),
            Index(f"ix_{table}_ticket_code_num", "ticket_code_num"),
        )

    def field(self, key: str):
        """Top-level attribute first, then the stored form data."""
        value = getattr(self, key, None)
        if value in (None, "") and isinstance(self.data, dict):
            value = self.data.get(key)
        return value

    @property
    def display_name(self) -> str:
        return (
            self.name
            or self.field("full_name")
            or self.field("fullname")
            or self.company
            or ""
        )

    @property
    def display_company(self) -> str:
        return self.company or self.field("organization") or ""

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} {self.ticket_code}>"


class Visitor(RegistrantMixin, Base):
    __tablename__ = "visitors"


class Exhibitor(RegistrantMixin, Base):
    __tablename__ = "exhibitors"


class Partner(RegistrantMixin, Base):
    __tablename__ = "partners"


class Speaker(RegistrantMixin, Base):
    __tablename__ = "speakers"


class Awardee(RegistrantMixin, Base):
    __tablename__ = "awardees"
