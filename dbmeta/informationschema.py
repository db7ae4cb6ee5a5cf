"""Metadata reader querying the standard information_schema views.

It aims to be database agnostic; options say which views exist and which
column expressions a particular database needs.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Sequence as Seq

from dbmeta.infoschema_sql import (
    ClauseName,
    Formats,
    build_conditions,
    columns_select,
    constraints_select,
    default_clauses,
    dollar_placeholder,
    finish_query,
    function_columns_select,
    functions_select,
    privileges_select,
    sequences_select,
)
from dbmeta.models import (
    ColumnPrivilege,
    ColumnPrivileges,
    Column,
    Constraint,
    ConstraintColumn,
    Filter,
    Function,
    FunctionColumn,
    Index,
    IndexColumn,
    NotSupportedError,
    ObjectPrivilege,
    ObjectPrivileges,
    PrivilegeSummary,
    ResultSet,
    Schema,
    Sequence,
    Table,
)
from dbmeta.readers import LoggingReader, NoRowsError

ReaderOption = Callable[[Any], None]


def _records(record_type: type, fields: Seq[str], rows: Iterable[tuple]) -> list:
    return [record_type(**dict(zip(fields, row, strict=True))) for row in rows]


class InformationSchema(LoggingReader):
    """Reads schemas, tables, columns, functions, indexes, constraints,
    sequences and privileges from information_schema."""

    def __init__(self, db: Any, *args: ReaderOption) -> None:
        self.placeholder: Callable[[int], str] = dollar_placeholder
        self.has_functions = True
        self.has_sequences = True
        self.has_indexes = True
        self.has_constraints = True
        self.has_check_constraints = True
        self.has_table_privileges = True
        self.has_column_privileges = True
        self.has_usage_privileges = True
        self.clauses: dict[ClauseName, str] = default_clauses()
        self.limit = 0
        self.system_schemas: list[str] = ["information_schema"]
        self.current_schema = ""
        self.data_type_formatter: Callable[[Column], str] = lambda col: col.data_type
        super().__init__(db, *args)

    def set_limit(self, limit: int) -> None:
        self.limit = limit

    # helpers

    def _conditions(self, base: int, f: Filter, formats: Formats) -> tuple[list[str], list[Any]]:
        return build_conditions(
            self.placeholder, base, f, formats, self.system_schemas, self.current_schema
        )

    def _rows(self, sql: str, conds: Iterable[str], order: str, vals: Seq[Any]) -> list[tuple]:
        try:
            return self.query(finish_query(sql, conds, order, self.limit), *vals)
        except NoRowsError:
            return []

    # readers

    def columns(self, filter: Filter) -> ResultSet:
        """Columns matching catalog, schema and table (parent) patterns."""
        conds, vals = self._conditions(1, filter, Formats(
            catalog="table_catalog LIKE %s",
            schema="table_schema LIKE %s",
            not_schemas="table_schema NOT IN (%s)",
            parent="table_name LIKE %s",
        ))
        rows = self._rows(
            columns_select(self.clauses), conds,
            "table_catalog, table_schema, table_name, ordinal_position", vals,
        )
        fields = [
            "catalog", "schema", "table", "name", "ordinal_position", "data_type",
            "default", "is_nullable", "column_size", "decimal_digits",
            "num_prec_radix", "char_octet_length",
        ]
        records = _records(Column, fields, rows)
        for rec in records:
            rec.data_type = self.data_type_formatter(rec)
        return ResultSet.for_records(Column, records)

    def tables(self, filter: Filter) -> ResultSet:
        """Tables matching catalog, schema, name and type; sequences when asked for."""
        sql = """SELECT
  table_catalog,
  table_schema,
  table_name,
  table_type
FROM information_schema.tables
"""
        conds, vals = self._conditions(1, filter, Formats(
            catalog="table_catalog LIKE %s",
            schema="table_schema LIKE %s",
            not_schemas="table_schema NOT IN (%s)",
            name="table_name LIKE %s",
            types="table_type IN (%s)",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        if self.has_sequences and "SEQUENCE" in filter.types:
            sql += """
UNION ALL
SELECT
  sequence_catalog AS table_catalog,
  sequence_schema AS table_schema,
  sequence_name AS table_name,
  'SEQUENCE' AS table_type
FROM information_schema.sequences
"""
            seq_conds, seq_vals = self._conditions(len(vals) + 1, filter, Formats(
                catalog="sequence_catalog LIKE %s",
                schema="sequence_schema LIKE %s",
                not_schemas="sequence_schema NOT IN (%s)",
                name="sequence_name LIKE %s",
            ))
            vals.extend(seq_vals)
            if seq_conds:
                sql += " WHERE " + " AND ".join(seq_conds)
        rows = self._rows(sql, [], "table_catalog, table_schema, table_type, table_name", vals)
        return ResultSet.for_records(Table, _records(Table, ["catalog", "schema", "name", "type"], rows))

    def schemas(self, filter: Filter) -> ResultSet:
        """Schemas matching catalog and name patterns."""
        sql = """SELECT
  schema_name,
  catalog_name
FROM information_schema.schemata
"""
        conds, vals = self._conditions(1, filter, Formats(
            catalog="catalog_name LIKE %s",
            name="schema_name LIKE %s",
            not_schemas="schema_name NOT IN (%s)",
        ))
        rows = self._rows(sql, conds, "catalog_name, schema_name", vals)
        return ResultSet.for_records(Schema, _records(Schema, ["schema", "catalog"], rows))

    def functions(self, filter: Filter) -> ResultSet:
        """Routines matching catalog, schema, name and type."""
        if not self.has_functions:
            raise NotSupportedError()
        conds, vals = self._conditions(1, filter, Formats(
            catalog="routine_catalog LIKE %s",
            schema="routine_schema LIKE %s",
            not_schemas="routine_schema NOT IN (%s)",
            name="routine_name LIKE %s",
            types="routine_type IN (%s)",
        ))
        rows = self._rows(
            functions_select(self.clauses), conds,
            "routine_catalog, routine_schema, routine_name, COALESCE(routine_type, '')", vals,
        )
        fields = [
            "specific_name", "catalog", "schema", "name", "type", "result_type",
            "source", "language", "volatility", "security",
        ]
        return ResultSet.for_records(Function, _records(Function, fields, rows))

    def function_columns(self, filter: Filter) -> ResultSet:
        """Routine parameters matching catalog, schema and function (parent)."""
        if not self.has_functions:
            raise NotSupportedError()
        conds, vals = self._conditions(1, filter, Formats(
            catalog="specific_catalog LIKE %s",
            schema="specific_schema LIKE %s",
            not_schemas="specific_schema NOT IN (%s)",
            parent="specific_name LIKE %s",
        ))
        rows = self._rows(
            function_columns_select(self.clauses), conds,
            "specific_catalog, specific_schema, specific_name, ordinal_position, "
            "COALESCE(parameter_name, '')",
            vals,
        )
        fields = [
            "catalog", "schema", "function_name", "name", "ordinal_position", "type",
            "data_type", "column_size", "decimal_digits", "num_prec_radix",
            "char_octet_length",
        ]
        return ResultSet.for_records(FunctionColumn, _records(FunctionColumn, fields, rows))

    def indexes(self, filter: Filter) -> ResultSet:
        """Indexes from the statistics view."""
        if not self.has_indexes:
            raise NotSupportedError()
        sql = """SELECT
  table_catalog,
  index_schema,
  table_name,
  index_name,
  CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END AS is_unique,
  CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END AS is_primary,
  index_type
FROM information_schema.statistics
"""
        conds, vals = self._conditions(1, filter, Formats(
            catalog="table_catalog LIKE %s",
            schema="index_schema LIKE %s",
            not_schemas="index_schema NOT IN (%s)",
            parent="table_name LIKE %s",
            name="index_name LIKE %s",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        sql += """
GROUP BY table_catalog, index_schema, table_name, index_name,
  CASE WHEN non_unique = 0 THEN 'YES' ELSE 'NO' END,
  CASE WHEN index_name = 'PRIMARY' THEN 'YES' ELSE 'NO' END,
  index_type"""
        rows = self._rows(sql, [], "table_catalog, index_schema, table_name, index_name", vals)
        fields = ["catalog", "schema", "table", "name", "is_unique", "is_primary", "type"]
        return ResultSet.for_records(Index, _records(Index, fields, rows))

    def index_columns(self, filter: Filter) -> ResultSet:
        """Index columns joined with their data types."""
        if not self.has_indexes:
            raise NotSupportedError()
        sql = """SELECT
  i.table_catalog,
  i.table_schema,
  i.table_name,
  i.index_name,
  i.column_name,
  c.data_type,
  i.seq_in_index

FROM information_schema.statistics i
JOIN information_schema.columns c ON
  i.table_catalog = c.table_catalog AND
  i.table_schema = c.table_schema AND
  i.table_name = c.table_name AND
  i.column_name = c.column_name
"""
        conds, vals = self._conditions(1, filter, Formats(
            catalog="i.table_catalog LIKE %s",
            schema="index_schema LIKE %s",
            not_schemas="index_schema NOT IN (%s)",
            parent="i.table_name LIKE %s",
            name="index_name LIKE %s",
        ))
        rows = self._rows(
            sql, conds, "i.table_catalog, index_schema, table_name, index_name, seq_in_index", vals
        )
        fields = ["catalog", "schema", "table", "index_name", "name", "data_type", "ordinal_position"]
        return ResultSet.for_records(IndexColumn, _records(IndexColumn, fields, rows))

    def constraints(self, filter: Filter) -> ResultSet:
        """Table constraints with their foreign and check details."""
        if not self.has_constraints:
            raise NotSupportedError()
        sql = constraints_select(self.clauses)
        conds, vals = self._conditions(1, filter, Formats(
            catalog="t.constraint_catalog LIKE %s",
            schema="t.table_schema LIKE %s",
            not_schemas="t.table_schema NOT IN (%s)",
            parent="t.table_name LIKE %s",
            reference="f.table_name LIKE %s",
            name="t.constraint_name LIKE %s",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        rows = self._rows(
            sql, [], "t.constraint_catalog, t.table_schema, t.table_name, t.constraint_name", vals
        )
        fields = [
            "catalog", "schema", "table", "name", "type", "is_deferrable",
            "is_initially_deferred", "foreign_catalog", "foreign_schema",
            "foreign_table", "foreign_name", "match_type", "update_rule",
            "delete_rule", "check_clause",
        ]
        return ResultSet.for_records(Constraint, _records(Constraint, fields, rows))

    def constraint_columns(self, filter: Filter) -> ResultSet:
        """Columns of check and key constraints with their referenced columns."""
        if not self.has_constraints:
            raise NotSupportedError()
        vals: list[Any] = []
        sql = ""
        if self.has_check_constraints:
            sql = """SELECT
	  c.constraint_catalog,
	  c.table_schema,
	  c.table_name,
	  c.constraint_name,
	  c.column_name,
	  1 AS ordinal_position,
	  '' AS foreign_catalog,
	  '' AS foreign_schema,
	  '' AS foreign_table,
	  '' AS foreign_name
	FROM information_schema.constraint_column_usage c
	"""
            conds, check_vals = self._conditions(len(vals) + 1, filter, Formats(
                catalog="c.constraint_catalog LIKE %s",
                schema="c.table_schema LIKE %s",
                not_schemas="c.table_schema NOT IN (%s)",
                parent="c.table_name LIKE %s",
                name="c.constraint_name LIKE %s",
            ))
            if conds:
                sql += " WHERE " + " AND ".join(conds)
                vals.extend(check_vals)
            sql += "\nUNION ALL\n"
        sql += """SELECT
  c.constraint_catalog,
  c.table_schema,
  c.table_name,
  c.constraint_name,
  c.column_name,
  c.ordinal_position,
  COALESCE(f.constraint_catalog, '') AS foreign_catalog,
  COALESCE(f.table_schema, '') AS foreign_schema,
  COALESCE(f.table_name, '') AS foreign_table,
  COALESCE(f.column_name, '') AS foreign_name
FROM information_schema.key_column_usage c
LEFT JOIN information_schema.referential_constraints r ON c.constraint_catalog = r.constraint_catalog
  AND c.constraint_schema = r.constraint_schema
  AND c.constraint_name = r.constraint_name
LEFT JOIN information_schema.key_column_usage f ON r.unique_constraint_catalog = f.constraint_catalog
  AND r.unique_constraint_schema = f.constraint_schema
  AND r.unique_constraint_name = f.constraint_name
  """ + self.clauses.get(ClauseName.CONSTRAINT_JOIN_COND, "") + """
  AND c.position_in_unique_constraint = f.ordinal_position
"""
        conds, key_vals = self._conditions(len(vals) + 1, filter, Formats(
            catalog="c.constraint_catalog LIKE %s",
            schema="c.table_schema LIKE %s",
            not_schemas="c.table_schema NOT IN (%s)",
            parent="c.table_name LIKE %s",
            reference="f.table_name LIKE %s",
            name="c.constraint_name LIKE %s",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
            vals.extend(key_vals)
        rows = self._rows(
            sql, [],
            "constraint_catalog, table_schema, table_name, constraint_name, ordinal_position, column_name",
            vals,
        )
        fields = [
            "catalog", "schema", "table", "constraint", "name", "ordinal_position",
            "foreign_catalog", "foreign_schema", "foreign_table", "foreign_name",
        ]
        return ResultSet.for_records(ConstraintColumn, _records(ConstraintColumn, fields, rows))

    def sequences(self, filter: Filter) -> ResultSet:
        """Sequences matching catalog, schema and name."""
        if not self.has_sequences:
            raise NotSupportedError()
        conds, vals = self._conditions(1, filter, Formats(
            catalog="sequence_catalog LIKE %s",
            schema="sequence_schema LIKE %s",
            not_schemas="sequence_schema NOT IN (%s)",
            name="sequence_name LIKE %s",
        ))
        rows = self._rows(
            sequences_select(self.clauses), conds,
            "sequence_catalog, sequence_schema, sequence_name", vals,
        )
        fields = [
            "catalog", "schema", "name", "data_type", "start", "min", "max",
            "increment", "cycles",
        ]
        return ResultSet.for_records(Sequence, _records(Sequence, fields, rows))

    def privilege_summaries(self, filter: Filter) -> ResultSet:
        """One summary per object with its table and column privileges."""
        sql = privileges_select(
            self.clauses,
            self.has_table_privileges,
            self.has_column_privileges,
            self.has_usage_privileges,
        )
        conds, vals = self._conditions(1, filter, Formats(
            catalog="object_catalog LIKE %s",
            schema="object_schema LIKE %s",
            not_schemas="object_schema NOT IN (%s)",
            name="object_name LIKE %s",
            types="object_type IN (%s)",
        ))
        rows = self._rows(
            sql, conds,
            "object_catalog, object_schema, object_type, object_name, column_name, "
            "grantee, grantor, privilege_type",
            vals,
        )
        # rows arrive ordered by object, so consecutive rows belong together
        results: list[PrivilegeSummary] = []
        current: PrivilegeSummary | None = None
        for (catalog, schema, name, object_type, column, grantee, grantor,
             privilege_type, is_grantable) in rows:
            if current is None or (current.catalog, current.schema, current.name) != (catalog, schema, name):
                current = PrivilegeSummary(
                    catalog=catalog,
                    schema=schema,
                    name=name,
                    object_type=object_type,
                    object_privileges=ObjectPrivileges(),
                    column_privileges=ColumnPrivileges(),
                )
                results.append(current)
            if not privilege_type:
                continue
            if not column:
                current.object_privileges.append(ObjectPrivilege(
                    grantee=grantee, grantor=grantor,
                    privilege_type=privilege_type, is_grantable=bool(is_grantable),
                ))
            else:
                current.column_privileges.append(ColumnPrivilege(
                    column=column, grantee=grantee, grantor=grantor,
                    privilege_type=privilege_type, is_grantable=bool(is_grantable),
                ))
        return ResultSet.for_records(PrivilegeSummary, results)


def new(*args: ReaderOption) -> Callable[..., InformationSchema]:
    """Return a factory building readers with ``args`` applied before its own options."""
    base = tuple(args)

    def build(db: Any, *opts: ReaderOption) -> InformationSchema:
        return InformationSchema(db, *base, *opts)

    return build


def with_placeholder(func: Callable[[int], str]) -> ReaderOption:
    """Placeholder generator, usually returning ``?`` or ``$n``."""

    def apply(reader: Any) -> None:
        reader.placeholder = func

    return apply


def with_custom_clauses(clauses: Mapping[ClauseName, str]) -> ReaderOption:
    """Use different expressions for some columns."""
    overrides = dict(clauses)

    def apply(reader: Any) -> None:
        reader.clauses.update(overrides)

    return apply


def _flag(attribute: str, enabled: bool) -> ReaderOption:
    def apply(reader: Any) -> None:
        setattr(reader, attribute, enabled)

    return apply


def with_functions(enabled: bool) -> ReaderOption:
    """Whether the routines and parameters views exist."""
    return _flag("has_functions", enabled)


def with_indexes(enabled: bool) -> ReaderOption:
    """Whether the statistics view exists."""
    return _flag("has_indexes", enabled)


def with_constraints(enabled: bool) -> ReaderOption:
    """Whether the constraint views exist."""
    return _flag("has_constraints", enabled)


def with_check_constraints(enabled: bool) -> ReaderOption:
    """Whether the constraint_column_usage view exists."""
    return _flag("has_check_constraints", enabled)


def with_sequences(enabled: bool) -> ReaderOption:
    """Whether the sequences view exists."""
    return _flag("has_sequences", enabled)


def with_table_privileges(enabled: bool) -> ReaderOption:
    """Whether the table_privileges view exists."""
    return _flag("has_table_privileges", enabled)


def with_column_privileges(enabled: bool) -> ReaderOption:
    """Whether the column_privileges view exists."""
    return _flag("has_column_privileges", enabled)


def with_usage_privileges(enabled: bool) -> ReaderOption:
    """Whether the usage_privileges view exists."""
    return _flag("has_usage_privileges", enabled)


def with_system_schemas(schemas: Iterable[str]) -> ReaderOption:
    """Schemas excluded unless the filter asks for system objects."""
    names = list(schemas)

    def apply(reader: Any) -> None:
        reader.system_schemas = list(names)

    return apply


def with_current_schema(expr: str) -> ReaderOption:
    """Expression for the current schema, used when only visible objects are wanted."""

    def apply(reader: Any) -> None:
        reader.current_schema = expr

    return apply


def with_data_type_formatter(func: Callable[[Column], str]) -> ReaderOption:
    """Function building the displayed data type from a column record."""

    def apply(reader: Any) -> None:
        reader.data_type_formatter = func

    return apply