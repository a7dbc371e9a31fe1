"""
db/repositories/dialects.py

Dialect-specific INSERT ... ON CONFLICT constructs.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(session: Session, model: Any) -> Any:
    """
    Return an ``insert(model)`` construct supporting ``on_conflict_do_update``
    for the dialect bound to ``session``.
    """
    dialect = session.get_bind().dialect.name
    try:
        factory = _INSERT_BY_DIALECT[dialect]
    except KeyError:
        raise RuntimeError(f"Upsert is not supported on dialect '{dialect}'.") from None
    return factory(model)
