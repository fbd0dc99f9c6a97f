"""Best-effort audit logging of model executions.

The ``ai_prompt_executions`` table has gained columns over time and deployed
databases do not all carry the same set. Rows are therefore built from the
columns actually present, read once per process from the database catalog.
The cached column set is never refreshed automatically; long-lived processes
that migrate the table underneath themselves can call
``EXECUTION_LOG_COLUMNS.invalidate()``.
"""

from __future__ import annotations

import json
import logging
from threading import Lock
from typing import Any

from sqlalchemy import column, inspect, table
from sqlalchemy.orm import Session

from squad_builder.models.prompt import AIPromptExecution

logger = logging.getLogger(__name__)

EXECUTION_LOG_CANDIDATE_FIELDS: tuple[str, ...] = (
    "prompt_version_id",
    "proposal_id",
    "workspace_id",
    "related_entity_type",
    "related_entity_id",
    "input_snapshot",
    "output_snapshot",
    "input_tokens",
    "output_tokens",
    "total_tokens",
    "execution_time_ms",
    "success",
    "error_message",
    "executed_by_user_id",
)
EXECUTION_LOG_REQUIRED_FIELD = "prompt_version_id"


class SchemaColumnCache:
    """Column names of one table, loaded on first use and kept for the process lifetime."""

    def __init__(self, table_name: str, schema: str | None = None) -> None:
        self.table_name = table_name
        self.schema = schema
        self._columns: frozenset[str] | None = None
        self._lock = Lock()

    def get(self, db: Session) -> frozenset[str]:
        """Return the cached column set, reading the catalog on first use."""

        cached = self._columns
        if cached is not None:
            return cached
        with self._lock:
            if self._columns is not None:
                return self._columns
            columns = self._load(db)
            # An empty set means the table is missing; retry on the next call.
            if columns:
                self._columns = columns
            return columns

    def invalidate(self) -> None:
        """Forget the cached column set so the next call re-reads the catalog."""

        with self._lock:
            self._columns = None

    def _load(self, db: Session) -> frozenset[str]:
        try:
            inspector = inspect(db.connection())
            if not inspector.has_table(self.table_name, schema=self.schema):
                logger.warning("prompts.execution_log_table_missing table=%s", self.table_name)
                return frozenset()
            columns = frozenset(
                entry["name"] for entry in inspector.get_columns(self.table_name, schema=self.schema)
            )
        except Exception:
            logger.exception("prompts.execution_log_catalog_failed table=%s", self.table_name)
            # A failed catalog query aborts the transaction on PostgreSQL.
            db.rollback()
            return frozenset()
        logger.info(
            "prompts.execution_log_columns_cached table=%s columns=%s",
            self.table_name,
            ",".join(sorted(columns)),
        )
        return columns


EXECUTION_LOG_COLUMNS = SchemaColumnCache(AIPromptExecution.__tablename__)


def log_prompt_execution(
    db: Session,
    *,
    prompt_version_id: int | None,
    proposal_id: int | None = None,
    workspace_id: int | None = None,
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
    input_snapshot: dict[str, Any] | None = None,
    output_snapshot: dict[str, Any] | None = None,
    input_tokens: int = 0,
    output_tokens: int = 0,
    total_tokens: int = 0,
    execution_time_ms: int = 0,
    success: bool = True,
    error_message: str | None = None,
    user_id: str | None = None,
    column_cache: SchemaColumnCache | None = None,
) -> None:
    """Insert one execution audit row. Never raises.

    The caller must have committed its own work: the row is committed here and
    a failed insert rolls the session back.
    """

    candidate_values: dict[str, Any] = {
        "prompt_version_id": prompt_version_id,
        "proposal_id": proposal_id,
        "workspace_id": workspace_id,
        "related_entity_type": related_entity_type,
        "related_entity_id": related_entity_id,
        "input_snapshot": input_snapshot,
        "output_snapshot": output_snapshot,
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "total_tokens": total_tokens,
        "execution_time_ms": execution_time_ms,
        "success": success,
        "error_message": error_message,
        "executed_by_user_id": user_id,
    }

    try:
        available = (column_cache or EXECUTION_LOG_COLUMNS).get(db)
        if not available:
            logger.warning("prompts.execution_log_skipped reason=schema_not_found")
            return

        row = {
            name: _encode(candidate_values[name])
            for name in EXECUTION_LOG_CANDIDATE_FIELDS
            if name in available
        }
        if EXECUTION_LOG_REQUIRED_FIELD not in row or row[EXECUTION_LOG_REQUIRED_FIELD] is None:
            logger.warning(
                "prompts.execution_log_skipped reason=missing_required_field field=%s",
                EXECUTION_LOG_REQUIRED_FIELD,
            )
            return

        omitted = [name for name in EXECUTION_LOG_CANDIDATE_FIELDS if name not in available]
        if omitted:
            logger.debug("prompts.execution_log_columns_omitted columns=%s", ",".join(omitted))

        target = table(
            (column_cache or EXECUTION_LOG_COLUMNS).table_name,
            *(column(name) for name in row),
            schema=(column_cache or EXECUTION_LOG_COLUMNS).schema,
        )
        db.execute(target.insert().values(**row))
        db.commit()
        logger.info(
            "prompts.execution_logged prompt_version_id=%s proposal_id=%s success=%s",
            prompt_version_id,
            proposal_id,
            success,
        )
    except Exception:
        logger.exception("prompts.execution_log_failed prompt_version_id=%s", prompt_version_id)
        try:
            db.rollback()
        except Exception:
            logger.exception("prompts.execution_log_rollback_failed")


def _encode(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return value
