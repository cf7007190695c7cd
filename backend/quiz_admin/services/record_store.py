"""
Record Store - the read interface the reporting components query through.

Wraps a SQLAlchemy session and exposes four operations:
- find_many(entity, query): filtered, sorted, paginated records
- count_matching(entity, conditions, search): number of matching records
- aggregate_group(entity, conditions, group_key, reducers): grouped summaries
- find_one(entity, record_id): a single record or None

Field names used in conditions, sorts and reducers are resolved through
a closed per-entity mapping onto ORM columns. Any database failure is
logged on the db channel and re-raised as StoreError; nothing is retried.
"""

import time
from contextlib import contextmanager
from decimal import Decimal

from fastapi import Depends
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, joinedload

from quiz_admin.database import get_db
from quiz_admin.errors import StoreError
from quiz_admin.logging_config import get_logger, log_with_context
from quiz_admin.models.financial_item import FinancialItem
from quiz_admin.models.game_session import GameSession
from quiz_admin.models.user import User
from quiz_admin.services.query_builder import Range, StoreQuery

logger = get_logger("db")

ENTITY_MODELS = {
    "sessions": GameSession,
    "users": User,
    "items": FinancialItem,
}

ENTITY_FIELDS = {
    "sessions": {
        "id": GameSession.id,
        "userId": GameSession.user_id,
        "level": GameSession.level,
        "score": GameSession.score,
        "totalQuestions": GameSession.total_questions,
        "percentage": GameSession.percentage,
        "timeTakenSeconds": GameSession.time_taken_seconds,
        "status": GameSession.status,
        "createdAt": GameSession.created_at,
        # Owning user's identity fields, available through the join
        "studentName": User.student_name,
        "studentIdentifier": User.student_id,
        "mobileNumber": User.mobile_number,
        "email": User.external_auth_email,
    },
    "users": {
        "id": User.id,
        "role": User.role,
        "isActive": User.is_active,
        "studentName": User.student_name,
        "studentId": User.student_id,
        "mobileNumber": User.mobile_number,
        "email": User.external_auth_email,
        "createdAt": User.created_at,
        "lastLoginAt": User.last_login_at,
    },
    "items": {
        "id": FinancialItem.item_id,
        "name": FinancialItem.name,
        "level": FinancialItem.level,
        "isActive": FinancialItem.is_active,
        "usageCount": FinancialItem.usage_count,
        "correctAnswerRate": FinancialItem.correct_answer_rate,
        "createdAt": FinancialItem.created_at,
    },
}

REDUCERS = {
    "count": lambda column: func.count(),
    "sum": func.sum,
    "avg": func.avg,
    "max": func.max,
    "min": func.min,
}


def _number(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


def _filter_shape(conditions, search=None):
    """Describe a filter without its values, for diagnostics."""
    shape = {name: type(value).__name__ for name, value in (conditions or {}).items()}
    if search is not None:
        shape["search"] = list(search.fields)
    return shape


class RecordStore:
    """Read-only query interface over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    # ── field resolution ──────────────────────────────────────

    def _column(self, entity, name):
        try:
            return ENTITY_FIELDS[entity][name]
        except KeyError:
            raise ValueError("Unknown field '{}' for entity '{}'".format(name, entity))

    def _clauses(self, entity, conditions, search=None):
        clauses = []
        for name, value in (conditions or {}).items():
            column = self._column(entity, name)
            if isinstance(value, Range):
                if value.gte is not None:
                    clauses.append(column >= value.gte)
                if value.lte is not None:
                    clauses.append(column <= value.lte)
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        if search is not None:
            clauses.append(or_(*[
                self._column(entity, name).icontains(search.term, autoescape=True)
                for name in search.fields
            ]))
        return clauses

    def _joined(self, entity, query):
        # Sessions are always read together with their owning user
        if entity == "sessions":
            return query.outerjoin(User, GameSession.user_id == User.id)
        return query

    @contextmanager
    def _operation(self, operation, entity, conditions=None, search=None):
        start_time = time.time()
        try:
            yield
        except SQLAlchemyError as e:
            log_with_context(logger, "ERROR",
                "Record store {} on {} failed: {}".format(operation, entity, str(e)),
                extra_data={"operation": operation, "entity": entity,
                            "filter": _filter_shape(conditions, search)})
            raise StoreError("Record store query failed", detail=str(e)) from e
        duration_ms = (time.time() - start_time) * 1000
        log_with_context(logger, "DEBUG",
            "Record store {} on {}".format(operation, entity),
            extra_data={"duration_ms": round(duration_ms, 2),
                        "filter": _filter_shape(conditions, search)})

    # ── operations ────────────────────────────────────────────

    def find_many(self, entity: str, query: StoreQuery) -> list:
        """Matching records in sort order, honouring skip/limit."""
        model = ENTITY_MODELS[entity]
        with self._operation("find_many", entity, query.conditions, query.search):
            q = self._joined(entity, self.db.query(model))
            if entity == "sessions":
                q = q.options(contains_eager(GameSession.user))
            q = q.filter(*self._clauses(entity, query.conditions, query.search))

            order_by = []
            for name, direction in query.sort:
                column = self._column(entity, name)
                order_by.append(column.asc() if direction == 1 else column.desc())
            # Stable tiebreak so equal sort keys page deterministically
            order_by.append(model.id.asc())
            q = q.order_by(*order_by)

            if query.skip:
                q = q.offset(query.skip)
            if query.limit is not None:
                q = q.limit(query.limit)
            return q.all()

    def count_matching(self, entity: str, conditions: dict, search=None) -> int:
        model = ENTITY_MODELS[entity]
        with self._operation("count_matching", entity, conditions, search):
            q = self._joined(entity, self.db.query(func.count(model.id)).select_from(model))
            return q.filter(*self._clauses(entity, conditions, search)).scalar() or 0

    def aggregate_group(self, entity: str, conditions: dict, group_key, reducers: dict) -> list:
        """
        Group matching records and reduce each group.

        reducers maps an output name to (op, field) where op is one of
        count/sum/avg/max/min (field is ignored for count). Groups are
        emitted in ascending group-key order, each as a dict holding the
        group key under its own name plus one entry per reducer. With
        group_key=None the whole match set forms one group, and no group
        is returned when nothing matches.
        """
        model = ENTITY_MODELS[entity]
        with self._operation("aggregate_group", entity, conditions):
            columns = []
            if group_key is not None:
                key_column = self._column(entity, group_key)
                columns.append(key_column.label(group_key))
            columns.append(func.count(model.id).label("__matched"))
            for name, (op, field_name) in reducers.items():
                column = self._column(entity, field_name) if field_name else None
                columns.append(REDUCERS[op](column).label(name))

            q = self._joined(entity, self.db.query(*columns).select_from(model))
            q = q.filter(*self._clauses(entity, conditions))
            if group_key is not None:
                q = q.group_by(key_column).order_by(key_column.asc())
            rows = q.all()

        groups = []
        for row in rows:
            values = row._asdict()
            if not values.pop("__matched"):
                continue
            groups.append({name: _number(value) for name, value in values.items()})
        return groups

    def find_one(self, entity: str, record_id: str):
        """A single record by its public id, or None."""
        model = ENTITY_MODELS[entity]
        with self._operation("find_one", entity, {"id": record_id}):
            q = self.db.query(model)
            if entity == "sessions":
                q = q.options(joinedload(GameSession.user))
            return q.filter(self._column(entity, "id") == record_id).first()


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    """FastAPI dependency providing a request-scoped record store."""
    return RecordStore(db)
