"""
Base model class for all database models.

Provides common functionality for the entity models:
- Integer primary key
- Utility methods (to_dict, __repr__)
- SQLAlchemy declarative base
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer
from sqlalchemy.orm import declarative_base

# Create the declarative base for all models
Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with an integer primary key.

    Link tables keyed by a composite primary key inherit from Base directly.
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Dictionary of column values, datetimes as ISO strings
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        attrs = []

        if getattr(self, "id", None) is not None:
            attrs.append(f"id={self.id}")
        if getattr(self, "name", None) is not None:
            attrs.append(f"name='{self.name}'")

        return f"{class_name}({', '.join(attrs)})"
