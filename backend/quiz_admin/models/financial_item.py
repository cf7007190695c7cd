"""
FinancialItem model - a quiz question about a financial instrument.

Items are never physically removed; deleting one clears ``is_active``.
"""

import uuid
import json
from sqlalchemy import Column, Text, Integer, Float, DateTime, String, Boolean, Index
from quiz_admin.database import Base, utc_now


def _parse_list(value):
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value) if value else []
    except (json.JSONDecodeError, TypeError):
        return []
    return parsed if isinstance(parsed, list) else []


class FinancialItem(Base):
    """SQLAlchemy model for the financial_items table."""
    __tablename__ = "financial_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    item_id = Column(String(64), nullable=False, unique=True,
                     doc="Business identifier used by the admin UI")
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)
    multi_categories = Column(Text, nullable=False, default="[]",
                              doc="Additional categories as a JSON list")
    explanation = Column(Text, nullable=True)
    level = Column(Integer, nullable=False, default=1)
    difficulty = Column(String(16), nullable=True)
    tags = Column(Text, nullable=False, default="[]",
                  doc="Tags as a JSON list")
    usage_count = Column(Integer, nullable=False, default=0)
    correct_answer_rate = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=True, onupdate=utc_now)

    __table_args__ = (
        Index("ix_financial_items_level", "level"),
    )

    @property
    def multi_categories_list(self):
        return _parse_list(self.multi_categories)

    @property
    def tags_list(self):
        return _parse_list(self.tags)

    def to_dict(self):
        return {
            "id": self.item_id,
            "name": self.name,
            "category": self.category,
            "multiCategories": self.multi_categories_list,
            "explanation": self.explanation,
            "level": self.level,
            "difficulty": self.difficulty,
            "tags": self.tags_list,
            "usageCount": self.usage_count,
            "correctAnswerRate": self.correct_answer_rate,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<FinancialItem(item_id={self.item_id}, name='{self.name}', level={self.level})>"
