"""SQL building blocks for querying the standard information_schema views."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from dbmeta.models import Filter, NotSupportedError

Placeholder = Callable[[int], str]


class ClauseName(str, Enum):
    """Names of the column expressions a database may override."""

    COLUMNS_DATA_TYPE = "columns.data_type"
    COLUMNS_COLUMN_SIZE = "columns.column_size"
    COLUMNS_NUMERIC_SCALE = "columns.numeric_scale"
    COLUMNS_NUMERIC_PREC_RADIX = "columns.numeric_precision_radix"
    COLUMNS_CHAR_OCTET_LENGTH = "columns.character_octet_length"

    FUNCTION_COLUMNS_COLUMN_SIZE = "function_columns.column_size"
    FUNCTION_COLUMNS_NUMERIC_SCALE = "function_columns.numeric_scale"
    FUNCTION_COLUMNS_NUMERIC_PREC_RADIX = "function_columns.numeric_precision_radix"
    FUNCTION_COLUMNS_CHAR_OCTET_LENGTH = "function_columns.character_octet_length"

    FUNCTIONS_SECURITY_TYPE = "functions.security_type"

    CONSTRAINT_IS_DEFERRABLE = "constraint_columns.is_deferrable"
    CONSTRAINT_INITIALLY_DEFERRED = "constraint_columns.initially_deferred"
    CONSTRAINT_JOIN_COND = "constraint_join.fk"

    SEQUENCE_COLUMNS_INCREMENT = "sequence_columns.increment"

    PRIVILEGES_GRANTOR = "privileges.grantor"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Formats:
    """Condition templates per filter field; each holds one ``%s``."""

    catalog: str = ""
    schema: str = ""
    not_schemas: str = ""
    parent: str = ""
    reference: str = ""
    name: str = ""
    types: str = ""


def default_clauses() -> dict[ClauseName, str]:
    """Return a fresh mapping of the standard column expressions."""
    return {
        ClauseName.COLUMNS_DATA_TYPE: "data_type",
        ClauseName.COLUMNS_COLUMN_SIZE: "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)",
        ClauseName.COLUMNS_NUMERIC_SCALE: "COALESCE(numeric_scale, 0)",
        ClauseName.COLUMNS_NUMERIC_PREC_RADIX: "COALESCE(numeric_precision_radix, 10)",
        ClauseName.COLUMNS_CHAR_OCTET_LENGTH: "COALESCE(character_octet_length, 0)",
        ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE: "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)",
        ClauseName.FUNCTION_COLUMNS_NUMERIC_SCALE: "COALESCE(numeric_scale, 0)",
        ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX: "COALESCE(numeric_precision_radix, 10)",
        ClauseName.FUNCTION_COLUMNS_CHAR_OCTET_LENGTH: "COALESCE(character_octet_length, 0)",
        ClauseName.FUNCTIONS_SECURITY_TYPE: "security_type",
        ClauseName.CONSTRAINT_IS_DEFERRABLE: "t.is_deferrable",
        ClauseName.CONSTRAINT_INITIALLY_DEFERRED: "t.initially_deferred",
        ClauseName.SEQUENCE_COLUMNS_INCREMENT: "increment",
        ClauseName.PRIVILEGES_GRANTOR: "grantor",
    }


def dollar_placeholder(n: int) -> str:
    """Numbered placeholder in the ``$n`` style."""
    return f"${n}"


def build_conditions(
    placeholder: Placeholder,
    base_param: int,
    filter: Filter,
    formats: Formats,
    system_schemas: Iterable[str],
    current_schema: str,
) -> tuple[list[str], list[Any]]:
    """Turn a filter into WHERE conditions and their bound values.

    Placeholders are numbered from ``base_param`` in the order values appear.
    """
    conds: list[str] = []
    vals: list[Any] = []
    param = base_param

    def bind(template: str, value: Any) -> None:
        nonlocal param
        vals.append(value)
        conds.append(template % placeholder(param))
        param += 1

    if filter.catalog and formats.catalog:
        bind(formats.catalog, filter.catalog)
    if filter.schema and formats.schema:
        bind(formats.schema, filter.schema)

    system = list(system_schemas)
    if not filter.with_system and formats.not_schemas and system:
        holders = []
        for schema in system:
            if schema == filter.schema:
                continue
            vals.append(schema)
            holders.append(placeholder(param))
            param += 1
        if holders:
            conds.append(formats.not_schemas % ", ".join(holders))

    if filter.only_visible and formats.schema and current_schema:
        conds.append(formats.schema % current_schema)
    if filter.parent and formats.parent:
        bind(formats.parent, filter.parent)
    if filter.reference and formats.reference:
        bind(formats.reference, filter.reference)
    if filter.name and formats.name:
        bind(formats.name, filter.name)

    if filter.types and formats.types:
        holders = []
        for type_name in filter.types:
            vals.append(type_name)
            holders.append(placeholder(param))
            param += 1
        conds.append(formats.types % ", ".join(holders))

    return conds, vals


def finish_query(sql: str, conditions: Iterable[str], order: str, limit: int) -> str:
    """Append WHERE, ORDER BY and LIMIT clauses to ``sql``."""
    conds = list(conditions)
    if conds:
        sql += "\nWHERE " + " AND ".join(conds)
    if order:
        sql += "\nORDER BY " + order
    if limit:
        sql += f"\nLIMIT {limit}"
    return sql


def _clause(clauses: Mapping[ClauseName, str], name: ClauseName) -> str:
    return clauses.get(name, "")


def _select(columns: Iterable[str], source: str) -> str:
    return "SELECT\n  " + ",\n  ".join(columns) + f" FROM {source}\n"


def columns_select(clauses: Mapping[ClauseName, str]) -> str:
    """SELECT over information_schema.columns, without conditions."""
    return _select(
        [
            "table_catalog",
            "table_schema",
            "table_name",
            "column_name",
            "ordinal_position",
            _clause(clauses, ClauseName.COLUMNS_DATA_TYPE),
            "COALESCE(column_default, '')",
            "COALESCE(is_nullable, '') AS is_nullable",
            _clause(clauses, ClauseName.COLUMNS_COLUMN_SIZE),
            _clause(clauses, ClauseName.COLUMNS_NUMERIC_SCALE),
            _clause(clauses, ClauseName.COLUMNS_NUMERIC_PREC_RADIX),
            _clause(clauses, ClauseName.COLUMNS_CHAR_OCTET_LENGTH),
        ],
        "information_schema.columns",
    )


def functions_select(clauses: Mapping[ClauseName, str]) -> str:
    """SELECT over information_schema.routines, without conditions."""
    return _select(
        [
            "specific_name",
            "routine_catalog",
            "routine_schema",
            "routine_name",
            "COALESCE(routine_type, '')",
            "COALESCE(data_type, '')",
            "routine_definition",
            "COALESCE(external_language, routine_body) AS language",
            "is_deterministic",
            _clause(clauses, ClauseName.FUNCTIONS_SECURITY_TYPE),
        ],
        "information_schema.routines",
    )


def function_columns_select(clauses: Mapping[ClauseName, str]) -> str:
    """SELECT over information_schema.parameters, without conditions."""
    return _select(
        [
            "specific_catalog",
            "specific_schema",
            "specific_name",
            "COALESCE(parameter_name, '')",
            "ordinal_position",
            "COALESCE(parameter_mode, '')",
            "COALESCE(data_type, '')",
            _clause(clauses, ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE),
            _clause(clauses, ClauseName.FUNCTION_COLUMNS_NUMERIC_SCALE),
            _clause(clauses, ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX),
            _clause(clauses, ClauseName.FUNCTION_COLUMNS_CHAR_OCTET_LENGTH),
        ],
        "information_schema.parameters",
    )


def constraints_select(clauses: Mapping[ClauseName, str]) -> str:
    """SELECT joining table, referential and check constraints."""
    columns = [
        "t.constraint_catalog",
        "t.table_schema",
        "t.table_name",
        "t.constraint_name",
        "t.constraint_type",
        _clause(clauses, ClauseName.CONSTRAINT_IS_DEFERRABLE),
        _clause(clauses, ClauseName.CONSTRAINT_INITIALLY_DEFERRED),
        "COALESCE(r.unique_constraint_catalog, '') AS foreign_catalog",
        "COALESCE(r.unique_constraint_schema, '') AS foreign_schema",
        "COALESCE(f.table_name, '') AS foreign_table",
        "COALESCE(r.unique_constraint_name, '') AS foreign_constraint",
        "COALESCE(r.match_option, '') AS match_options",
        "COALESCE(r.update_rule, '') AS update_rule",
        "COALESCE(r.delete_rule, '') AS delete_rule",
        "COALESCE(c.check_clause, '') AS check_clause",
    ]
    return (
        "SELECT\n  " + ",\n  ".join(columns) + """
FROM information_schema.table_constraints t
LEFT JOIN information_schema.referential_constraints r ON t.constraint_catalog = r.constraint_catalog
  AND t.constraint_schema = r.constraint_schema
  AND t.constraint_name = r.constraint_name
  AND t.constraint_type = 'FOREIGN KEY'
LEFT JOIN information_schema.table_constraints f ON r.unique_constraint_catalog = f.constraint_catalog
  AND r.unique_constraint_schema = f.constraint_schema
  AND r.unique_constraint_name = f.constraint_name
  """ + _clause(clauses, ClauseName.CONSTRAINT_JOIN_COND) + """
LEFT JOIN information_schema.check_constraints c ON t.constraint_catalog = c.constraint_catalog
  AND t.constraint_schema = c.constraint_schema
  AND t.constraint_name = c.constraint_name
"""
    )


def sequences_select(clauses: Mapping[ClauseName, str]) -> str:
    """SELECT over information_schema.sequences, without conditions."""
    return _select(
        [
            "sequence_catalog",
            "sequence_schema",
            "sequence_name",
            "data_type",
            "start_value",
            "minimum_value",
            "maximum_value",
            _clause(clauses, ClauseName.SEQUENCE_COLUMNS_INCREMENT),
            "cycle_option",
        ],
        "information_schema.sequences",
    )


def privileges_select(
    clauses: Mapping[ClauseName, str],
    tables: bool,
    columns: bool,
    usage: bool,
) -> str:
    """Union of table, column and usage privileges as one subquery.

    Table-level rows carry an empty ``column_name``. Raises
    NotSupportedError when no privilege view is available.
    """
    if not (tables or columns or usage):
        raise NotSupportedError()
    grantor = _clause(clauses, ClauseName.PRIVILEGES_GRANTOR)
    parts: list[str] = []

    if tables:
        cols = [
            "t.table_catalog AS object_catalog",
            "t.table_schema AS object_schema",
            "t.table_name AS object_name",
            "t.table_type AS object_type",
            "'' AS column_name",
            "COALESCE(grantee, '') AS grantee",
            "COALESCE(" + grantor + ", '') AS grantor",
            "COALESCE(privilege_type, '') AS privilege_type",
            "CASE WHEN is_grantable='YES' THEN 1 ELSE 0 END AS is_grantable",
        ]
        # tables on the left so that objects without any grants are listed too
        parts.append(
            "SELECT\n"
            "  " + ", ".join(cols) + "\n"
            "FROM information_schema.tables t\n"
            "LEFT JOIN information_schema.table_privileges tp\n"
            "  ON t.table_catalog = tp.table_catalog AND t.table_schema = tp.table_schema"
            " AND t.table_name = tp.table_name"
        )

    if columns:
        cols = [
            "t.table_catalog AS object_catalog",
            "t.table_schema AS object_schema",
            "t.table_name AS object_name",
            "t.table_type AS object_type",
            "column_name",
            "grantee",
            grantor + " AS grantor",
            "privilege_type",
            "CASE WHEN is_grantable='YES' THEN 1 ELSE 0 END AS is_grantable",
        ]
        parts.append(
            "SELECT\n"
            "  " + ", ".join(cols) + "\n"
            "FROM information_schema.column_privileges cp\n"
            "LEFT JOIN information_schema.tables t\n"
            "  ON t.table_catalog = cp.table_catalog AND t.table_schema = cp.table_schema"
            " AND t.table_name = cp.table_name"
        )

    if usage:
        cols = [
            "object_catalog",
            "object_schema",
            "object_name",
            "object_type",
            "'' AS column_name",
            "grantee",
            grantor + " AS grantor",
            "privilege_type",
            "CASE WHEN is_grantable='YES' THEN 1 ELSE 0 END AS is_grantable",
        ]
        parts.append(
            "SELECT\n"
            "  " + ", ".join(cols) + "\n"
            "FROM information_schema.usage_privileges"
        )

    return "SELECT * FROM (\n" + "\nUNION ALL\n".join(parts) + "\n) AS subquery"