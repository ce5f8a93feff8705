# File: app/db/indexes.py
import logging
import threading
from typing import Set, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_ensured: Set[str] = set()
_lock = threading.Lock()


def ensure_indexes(db: Session, model: Type) -> None:
    """Create the model's table and unique indexes if missing, once per process.

    Failures are logged and the caller's write goes ahead.
    """
    table = model.__table__
    if table.name in _ensured:
        return

    with _lock:
        if table.name in _ensured:
            return
        try:
            bind = db.get_bind()
            table.create(bind=bind, checkfirst=True)
            for index in table.indexes:
                index.create(bind=bind, checkfirst=True)
            _ensured.add(table.name)
            logger.info(f"🗂️ Indexes ensured for {table.name}")
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ Could not ensure indexes for {table.name}: {e}")
