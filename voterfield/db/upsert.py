"""Dialect-aware INSERT ... ON CONFLICT constructs."""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


def insert_for(db: Session, model):
    """
    Return the dialect's insert() for model so callers can chain
    on_conflict_do_nothing / on_conflict_do_update.
    """
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert not supported for dialect: {dialect}")
