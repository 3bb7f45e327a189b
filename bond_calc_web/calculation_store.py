"""Persistence layer for calculation results.

Every calculation run through the web API is recorded against the anonymous
user token kept in the Flask session. The store defaults to SQLite for local
development, but accepts any SQLAlchemy-compatible URL (e.g. PostgreSQL).
Rows hold the raw inputs and the serialised result as JSON text so a stored
result can be shown again without recomputing it.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///calculation_results.sqlite3"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CalculationResultModel(Base):
    __tablename__ = "calculation_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), index=True, nullable=False)
    calculation_type = Column(String(32), nullable=False)
    input_data = Column(Text, nullable=False)
    result_data = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class CalculationStore:
    """Database-backed store of calculation results, scoped per user."""

    def __init__(self, url: str, *, max_per_user: int = 50) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def save(self, user_id: str, calculation_type: str, input_data: dict, result_data: dict) -> int:
        """Store a result and return its id."""
        row = CalculationResultModel(
            user_id=user_id,
            calculation_type=calculation_type,
            input_data=json.dumps(input_data),
            result_data=json.dumps(result_data),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            row_id = row.id
        logger.debug("Saved %s result %s for user %s", calculation_type, row_id, user_id)
        self._trim_user(user_id)
        return row_id

    def list_for_user(self, user_id: str, calculation_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Results for ``user_id``, newest first."""
        if not user_id:
            return []
        query = select(CalculationResultModel).where(CalculationResultModel.user_id == user_id)
        if calculation_type:
            query = query.where(CalculationResultModel.calculation_type == calculation_type)
        query = query.order_by(CalculationResultModel.created_at.desc(), CalculationResultModel.id.desc())
        with self._session_factory() as session:
            return [self._to_dict(row) for row in session.execute(query).scalars()]

    def get(self, user_id: str, result_id: int) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(CalculationResultModel, result_id)
            if row is None or row.user_id != user_id:
                return None
            return self._to_dict(row)

    def delete(self, user_id: str, result_id: int) -> bool:
        """Delete one of the user's results; False when it does not exist."""
        with self._session_factory() as session:
            row = session.get(CalculationResultModel, result_id)
            if row is None or row.user_id != user_id:
                return False
            session.delete(row)
            session.commit()
        return True

    def clear_for_user(self, user_id: str) -> int:
        if not user_id:
            return 0
        with self._session_factory() as session:
            result = session.execute(
                CalculationResultModel.__table__.delete().where(CalculationResultModel.user_id == user_id)
            )
            session.commit()
        return result.rowcount or 0

    def _trim_user(self, user_id: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        with self._session_factory() as session:
            rows = (
                session.execute(
                    select(CalculationResultModel)
                    .where(CalculationResultModel.user_id == user_id)
                    .order_by(CalculationResultModel.created_at.desc(), CalculationResultModel.id.desc())
                )
                .scalars()
                .all()
            )
            if len(rows) <= self._max_per_user:
                return
            for row in rows[self._max_per_user :]:
                session.delete(row)
            session.commit()

    @staticmethod
    def _to_dict(row: CalculationResultModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "calculation_type": row.calculation_type,
            "input_data": json.loads(row.input_data),
            "result_data": json.loads(row.result_data),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: Optional[str], max_per_user: int = 50) -> CalculationStore:
    return CalculationStore(url or DEFAULT_DATABASE_URL, max_per_user=max_per_user)
