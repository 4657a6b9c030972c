from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.orm import DeclarativeBase, Session


class Base(DeclarativeBase):
    pass


class AppendOnlyMixin:
    __append_only__ = True


@event.listens_for(Session, "before_flush")
def _reject_append_only_mutations(session: Session, flush_context: Any, instances: Any) -> None:
    del flush_context, instances
    for obj in session.deleted:
        if getattr(obj, "__append_only__", False):
            raise ValueError(f"{obj.__tablename__} is append-only")
    for obj in session.dirty:
        if getattr(obj, "__append_only__", False) and session.is_modified(obj):
            raise ValueError(f"{obj.__tablename__} is append-only")
