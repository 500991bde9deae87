"""Declarative base for all hunt engine models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
