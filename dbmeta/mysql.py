"""Metadata reader configured for MySQL's information_schema."""

from __future__ import annotations

from typing import Any

from dbmeta import informationschema as infos
from dbmeta.infoschema_sql import ClauseName
from dbmeta.models import Filter

SYSTEM_SCHEMAS = ["mysql", "information_schema", "performance_schema", "sys"]

_factory = infos.new(
    infos.with_placeholder(lambda _n: "?"),
    infos.with_sequences(False),
    infos.with_check_constraints(False),
    infos.with_custom_clauses({
        ClauseName.COLUMNS_DATA_TYPE: "column_type",
        ClauseName.COLUMNS_NUMERIC_PREC_RADIX: "10",
        ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX: "10",
        ClauseName.CONSTRAINT_IS_DEFERRABLE: "''",
        ClauseName.CONSTRAINT_INITIALLY_DEFERRED: "''",
        ClauseName.PRIVILEGES_GRANTOR: "''",
        ClauseName.CONSTRAINT_JOIN_COND: "AND r.referenced_table_name = f.table_name",
    }),
    infos.with_system_schemas(SYSTEM_SCHEMAS),
    infos.with_current_schema("COALESCE(DATABASE(), '%')"),
    infos.with_usage_privileges(False),
)


def new_reader(db: Any, *args: Any) -> infos.InformationSchema:
    """Build a MySQL metadata reader on a DB-API connection."""
    return _factory(db, *args)


def schema_names(reader: Any) -> list[str]:
    """Names of all schemas, system ones included; empty when listing fails."""
    try:
        return [s.schema for s in reader.schemas(Filter(with_system=True))]
    except Exception:
        return []