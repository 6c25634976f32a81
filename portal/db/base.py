from sqlalchemy import Column, Integer
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class OrderedMixin:
    """Insertion-order key, assigned as max(seq) + 1 on create."""

    seq = Column(Integer, nullable=False, unique=True, index=True)
