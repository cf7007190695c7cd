"""
Question maintenance routes - create, update and soft-delete FinancialItems.

Items are never physically removed: deleting one clears is_active, which
hides it from question statistics and the dashboard count.
"""

import json
import uuid
from typing import List, Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from quiz_admin.database import get_db
from quiz_admin.errors import NotFoundError, StoreError, ValidationError
from quiz_admin.logging_config import get_logger, log_with_context
from quiz_admin.models.financial_item import FinancialItem
from quiz_admin.services.record_store import RecordStore

router = APIRouter(prefix="/api/admin")
logger = get_logger("db")


# ── Pydantic schemas ─────────────────────────────────────────

class ItemCreate(BaseModel):
    """Schema for a new financial item."""
    id: str = Field(..., min_length=1, max_length=64, description="Business identifier")
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    multiCategories: List[str] = Field(default_factory=list)
    explanation: Optional[str] = None
    level: int = Field(..., ge=1)
    difficulty: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class ItemUpdate(BaseModel):
    """Schema for a partial item update; only supplied fields change."""
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    multiCategories: Optional[List[str]] = None
    explanation: Optional[str] = None
    level: Optional[int] = Field(None, ge=1)
    difficulty: Optional[str] = None
    tags: Optional[List[str]] = None
    isActive: Optional[bool] = None


# Payload field -> (model attribute, stored-value converter)
UPDATE_FIELDS = {
    "name": ("name", None),
    "category": ("category", None),
    "multiCategories": ("multi_categories", json.dumps),
    "explanation": ("explanation", None),
    "level": ("level", None),
    "difficulty": ("difficulty", None),
    "tags": ("tags", json.dumps),
    "isActive": ("is_active", None),
}

# Columns that cannot be cleared; an explicit null leaves them unchanged
REQUIRED_FIELDS = {"name", "multiCategories", "level", "tags", "isActive"}


def _find_item(db: Session, item_id: str) -> FinancialItem:
    item = RecordStore(db).find_one("items", item_id)
    if not item:
        raise NotFoundError("Financial item not found", detail="item_id={}".format(item_id))
    return item


def _commit(db: Session, operation: str, item_id: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to {} item: {}".format(operation, str(e)),
                        context={"item_id": item_id})
        raise StoreError("Failed to {} financial item".format(operation), detail=str(e)) from e


@router.post("/questions", status_code=201)
def add_item(payload: ItemCreate, db: Session = Depends(get_db)):
    """Create a financial item with a unique business id."""
    existing = RecordStore(db).find_one("items", payload.id)
    if existing:
        raise ValidationError("Financial item with this ID already exists",
                              detail="item_id={}".format(payload.id))

    item = FinancialItem(
        id=str(uuid.uuid4()),
        item_id=payload.id,
        name=payload.name,
        category=payload.category,
        multi_categories=json.dumps(payload.multiCategories),
        explanation=payload.explanation,
        level=payload.level,
        difficulty=payload.difficulty,
        tags=json.dumps(payload.tags),
    )
    db.add(item)
    _commit(db, "add", payload.id)
    db.refresh(item)

    log_with_context(logger, "INFO", "Financial item added: {}".format(item.name),
                    context={"item_id": item.item_id})

    return {
        "success": True,
        "message": "Financial item added successfully",
        "data": {"item": item.to_dict()},
    }


@router.put("/questions/{item_id}")
def update_item(item_id: str, payload: ItemUpdate, db: Session = Depends(get_db)):
    """Apply a partial update to an item, active or not."""
    item = _find_item(db, item_id)

    changes = payload.model_dump(exclude_unset=True)
    for name, value in changes.items():
        attribute, convert = UPDATE_FIELDS[name]
        if value is None and name in REQUIRED_FIELDS:
            continue
        setattr(item, attribute, convert(value) if convert else value)

    _commit(db, "update", item_id)
    db.refresh(item)

    log_with_context(logger, "INFO", "Financial item updated",
                    context={"item_id": item_id}, extra_data={"fields": sorted(changes)})

    return {
        "success": True,
        "message": "Financial item updated successfully",
        "data": {"item": item.to_dict()},
    }


@router.delete("/questions/{item_id}")
def delete_item(item_id: str, db: Session = Depends(get_db)):
    """Soft delete: the item stays in storage with is_active cleared."""
    item = _find_item(db, item_id)
    item.is_active = False
    _commit(db, "delete", item_id)

    log_with_context(logger, "INFO", "Financial item soft-deleted", context={"item_id": item_id})

    return {"success": True, "message": "Financial item deleted successfully"}
