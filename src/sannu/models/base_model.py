"""Standard column definitions for consistency."""
from sqlalchemy import Column, ForeignKey, Integer, Numeric
from sqlalchemy.types import DateTime

from sannu.utils.clock import utcnow


def int_pk():
    return Column(Integer, primary_key=True, autoincrement=True)


def int_fk(table: str, nullable: bool = False, ondelete: str = "CASCADE", index: bool = True):
    return Column(
        Integer,
        ForeignKey(f"{table}.id", ondelete=ondelete),
        nullable=nullable,
        index=index
    )


def money(nullable: bool = False, default=None):
    return Column(Numeric(12, 2), nullable=nullable, default=default)


def timestamp_created():
    return Column(DateTime, default=utcnow, nullable=False)


def timestamp_updated():
    return Column(DateTime, default=utcnow, onupdate=utcnow)
