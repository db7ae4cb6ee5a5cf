"""Metadata reader for PostgreSQL, combining pg_catalog queries with information_schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence as Seq

from dbmeta import informationschema as infos
from dbmeta.infoschema_sql import ClauseName
from dbmeta.models import (
    Catalog,
    Column,
    ColumnStat,
    Filter,
    Index,
    IndexColumn,
    ResultSet,
    Table,
    Trigger,
)
from dbmeta.readers import LoggingReader, NoRowsError, PluginReader

ReaderOption = Callable[[Any], None]

SYSTEM_SCHEMAS = ["pg_catalog", "pg_toast", "information_schema"]

CATALOG_COLUMNS = ["Catalog", "Owner", "Encoding", "Collate", "Ctype", "Access privileges"]

_TABLE_KINDS = {
    "TABLE": ["r", "p", "s", "f"],
    "VIEW": ["v"],
    "MATERIALIZED VIEW": ["m"],
    "SEQUENCE": ["S"],
}

_SIZE_EXPR = (
    "COALESCE(character_maximum_length, numeric_precision, datetime_precision, "
    "interval_precision, 0)"
)


def data_type_formatter(column: Column) -> str:
    """Display a column's data type with its length or precision, as psql does."""
    kind = column.data_type
    size = column.column_size
    if kind in ("bit", "character"):
        return f"{kind}({size})"
    if kind in ("bit varying", "character varying"):
        return f"{kind}({size})" if size != 0 else kind
    if kind == "numeric":
        return f"numeric({size},{column.decimal_digits})" if size != 0 else kind
    if kind == "time without time zone":
        return f"time({size}) without time zone"
    if kind == "time with time zone":
        return f"time({size}) with time zone"
    if kind == "timestamp without time zone":
        return f"timestamp({size}) without time zone"
    if kind == "timestamp with time zone":
        return f"timestamp({size}) with time zone"
    return kind


@dataclass
class PostgresCatalog:
    """A database with its owner, encoding, collation and access privileges."""

    catalog: str = ""
    owner: str = ""
    encoding: str = ""
    collate: str = ""
    ctype: str = ""
    access_privileges: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog, self.owner, self.encoding, self.collate,
            self.ctype, self.access_privileges,
        ]

    def get_catalog(self) -> Catalog:
        return Catalog(catalog=self.catalog)


def _text_list(value: Optional[Iterable[Any]]) -> list[str]:
    if value is None:
        return []
    return [str(v) for v in value]


def _float_list(value: Optional[Iterable[Any]]) -> list[float]:
    if value is None:
        return []
    return [float(v) for v in value]


class PostgresReader(LoggingReader):
    """Reads catalogs, tables, column statistics, indexes and triggers from pg_catalog."""

    def __init__(self, db: Any, *args: ReaderOption) -> None:
        self.limit = 0
        super().__init__(db, *args)

    def set_limit(self, limit: int) -> None:
        self.limit = limit

    def _run(self, sql: str, conds: Seq[str], order: str, vals: Seq[Any]) -> list[tuple]:
        if conds:
            sql += "\nWHERE " + " AND ".join(conds)
        if order:
            sql += "\nORDER BY " + order
        if self.limit:
            sql += f"\nLIMIT {self.limit}"
        return self.query(sql, *vals)

    def catalogs(self, filter: Filter) -> ResultSet:
        """All databases of the cluster."""
        sql = r"""SELECT d.datname as "Name",
       pg_catalog.pg_get_userbyid(d.datdba) as "Owner",
       pg_catalog.pg_encoding_to_char(d.encoding) as "Encoding",
       d.datcollate as "Collate",
       d.datctype as "Ctype",
       COALESCE(pg_catalog.array_to_string(d.datacl, E'\n'),'') AS "Access privileges"
FROM pg_catalog.pg_database d"""
        rows = self._run(sql, [], "1", [])
        results = [
            PostgresCatalog(
                catalog=name, owner=owner, encoding=encoding,
                collate=collate, ctype=ctype, access_privileges=acl,
            )
            for name, owner, encoding, collate, ctype, acl in rows
        ]
        return ResultSet(results, list(CATALOG_COLUMNS))

    def tables(self, filter: Filter) -> ResultSet:
        """Relations matching schema, name and type, with estimated rows and size."""
        sql = """SELECT n.nspname as "Schema",
  c.relname as "Name",
  CASE c.relkind WHEN 'r' THEN 'table' WHEN 'v' THEN 'view' WHEN 'm' THEN 'materialized view' WHEN 'i' THEN 'index' WHEN 'S' THEN 'sequence' WHEN 's' THEN 'special' WHEN 'f' THEN 'foreign table' WHEN 'p' THEN 'partitioned table' WHEN 'I' THEN 'partitioned index' ELSE 'unknown' END as "Type",
  COALESCE((c.reltuples / NULLIF(c.relpages, 0)) * (pg_catalog.pg_relation_size(c.oid) / current_setting('block_size')::int), 0)::bigint as "Rows",
  pg_catalog.pg_size_pretty(pg_catalog.pg_table_size(c.oid)) as "Size",
  COALESCE(pg_catalog.obj_description(c.oid, 'pg_class'), '') as "Description"
FROM pg_catalog.pg_class c
     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
"""
        conds = ["n.nspname !~ '^pg_toast' AND c.relkind != 'c'"]
        vals: list[Any] = []
        if filter.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        if not filter.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'information_schema')")
        if filter.schema:
            vals.append(filter.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if filter.name:
            vals.append(filter.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if filter.types:
            holders = ["''"]
            for type_name in filter.types:
                for kind in _TABLE_KINDS.get(type_name, []):
                    vals.append(kind)
                    holders.append(f"${len(vals)}")
            conds.append(f"c.relkind IN ({', '.join(holders)})")
        try:
            rows = self._run(sql, conds, "1, 3, 2", vals)
        except NoRowsError:
            rows = []
        results = [
            Table(schema=schema, name=name, type=kind, rows=int(count), size=size, comment=comment)
            for schema, name, kind, count, size, comment in rows
        ]
        return ResultSet.for_records(Table, results)

    def column_stats(self, filter: Filter) -> ResultSet:
        """Planner statistics of the columns of the table named by ``filter.parent``."""
        tables = self.tables(Filter(schema=filter.schema, name=filter.parent, with_system=True))
        first = next(iter(tables), None)
        row_count = first.rows if first is not None else 0

        sql = """
SELECT
  n.nspname,
  c.relname,
  a.attname,
  COALESCE(s.avg_width, 0),
  COALESCE(s.null_frac, 0.0),
  COALESCE(CASE WHEN n_distinct >= 0 THEN n_distinct ELSE (-n_distinct * $1) END::bigint, 0) AS n_distinct,
  COALESCE((histogram_bounds::text::text[])[1], ''),
  COALESCE((histogram_bounds::text::text[])[array_length(histogram_bounds::text::text[], 1)], ''),
  most_common_vals::text::text[],
  most_common_freqs::text::text[]
FROM pg_catalog.pg_namespace n
JOIN pg_catalog.pg_class c ON c.relnamespace = n.oid
JOIN pg_catalog.pg_attribute a ON a.attrelid = c.oid AND a.attnum > 0
LEFT JOIN pg_catalog.pg_stats s ON n.nspname = s.schemaname AND c.relname = s.tablename AND a.attname = s.attname
"""
        conds: list[str] = []
        vals: list[Any] = [row_count]
        if filter.schema:
            vals.append(filter.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if filter.parent:
            vals.append(filter.parent)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if filter.name:
            vals.append(filter.name)
            conds.append(f"a.attname LIKE ${len(vals)}")
        rows = self._run(sql, conds, "a.attnum", vals)
        results = [
            ColumnStat(
                schema=schema, table=table, name=name,
                avg_width=int(avg_width), null_frac=float(null_frac),
                num_distinct=int(num_distinct), min=low, max=high,
                top_n=_text_list(top_n), top_n_freqs=_float_list(freqs),
            )
            for schema, table, name, avg_width, null_frac, num_distinct, low, high, top_n, freqs in rows
        ]
        return ResultSet.for_records(ColumnStat, results)

    def indexes(self, filter: Filter) -> ResultSet:
        """Indexes matching schema, table (parent) and name."""
        sql = """
SELECT
  'postgres' as "Catalog",
  n.nspname as "Schema",
  c2.relname as "Table",
  c.relname as "Name",
  CASE i.indisprimary WHEN TRUE THEN 'YES' ELSE 'NO' END,
  CASE i.indisunique WHEN TRUE THEN 'YES' ELSE 'NO' END,
  COALESCE(am.amname,
  	CASE c.relkind
		WHEN 'i' THEN 'index'
		WHEN 'I' THEN 'partitioned index'
	END
   ) as "Type"
FROM pg_catalog.pg_class c
     LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
     LEFT JOIN pg_catalog.pg_index i ON i.indexrelid = c.oid
     LEFT JOIN pg_catalog.pg_class c2 ON i.indrelid = c2.oid
     LEFT JOIN pg_am am ON am.oid=c.relam"""
        conds = ["c.relkind IN ('i','I','')", "n.nspname !~ '^pg_toast'"]
        if filter.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        vals: list[Any] = []
        if not filter.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'information_schema')")
        if filter.schema:
            vals.append(filter.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if filter.parent:
            vals.append(filter.parent)
            conds.append(f"c2.relname LIKE ${len(vals)}")
        if filter.name:
            vals.append(filter.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        rows = self._run(sql, conds, "1, 2, 4", vals)
        # the query lists the primary flag first, the scan order swaps them as the source does
        results = [
            Index(
                catalog=catalog, schema=schema, table=table, name=name,
                is_unique=first_flag, is_primary=second_flag, type=kind,
            )
            for catalog, schema, table, name, first_flag, second_flag, kind in rows
        ]
        return ResultSet.for_records(Index, results)

    def index_columns(self, filter: Filter) -> ResultSet:
        """Columns of indexes matching schema, table (parent) and index name."""
        sql = """
SELECT
  'postgres' as "Catalog",
  n.nspname as "Schema",
  c2.relname as "Table",
  c.relname as "IndexName",
  a.attname AS "Name",
  pg_catalog.format_type(a.atttypid, a.atttypmod) AS "DataType",
  a.attnum AS "OrdinalPosition"
FROM pg_catalog.pg_class c
     JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace
     JOIN pg_catalog.pg_index i ON i.indexrelid = c.oid
     JOIN pg_catalog.pg_class c2 ON i.indrelid = c2.oid
     JOIN pg_catalog.pg_attribute a ON c.oid = a.attrelid
"""
        conds = [
            "c.relkind IN ('i','I','')",
            "n.nspname <> 'pg_catalog'",
            "n.nspname <> 'information_schema'",
            "n.nspname !~ '^pg_toast'",
            "a.attnum > 0",
            "NOT a.attisdropped",
        ]
        if filter.only_visible:
            conds.append("pg_catalog.pg_table_is_visible(c.oid)")
        vals: list[Any] = []
        if not filter.with_system:
            conds.append("n.nspname NOT IN ('pg_catalog', 'pg_toast', 'information_schema')")
        if filter.schema:
            vals.append(filter.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if filter.parent:
            vals.append(filter.parent)
            conds.append(f"c2.relname LIKE ${len(vals)}")
        if filter.name:
            vals.append(filter.name)
            conds.append(f"c.relname LIKE ${len(vals)}")
        rows = self._run(sql, conds, "1, 2, 3, 4, 7", vals)
        results = [
            IndexColumn(
                catalog=catalog, schema=schema, table=table, index_name=index_name,
                name=name, data_type=data_type, ordinal_position=int(position),
            )
            for catalog, schema, table, index_name, name, data_type, position in rows
        ]
        return ResultSet.for_records(IndexColumn, results)

    def triggers(self, filter: Filter) -> ResultSet:
        """Triggers on tables matching schema, table (parent) and name."""
        sql = """SELECT
	n.nspname,
	c.relname,
    t.tgname,
    pg_catalog.pg_get_triggerdef(t.oid, true)
FROM
    pg_catalog.pg_trigger t
    JOIN pg_catalog.pg_class c ON c.oid = t.tgrelid
	LEFT JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace"""
        conds = ["""(
	NOT t.tgisinternal OR (t.tgisinternal AND t.tgenabled = 'D')
			OR
				EXISTS (SELECT 1 FROM pg_catalog.pg_depend WHERE objid = t.oid
			AND
				refclassid = 'pg_catalog.pg_trigger'::pg_catalog.regclass)
	)"""]
        vals: list[Any] = []
        if filter.schema:
            vals.append(filter.schema)
            conds.append(f"n.nspname LIKE ${len(vals)}")
        if filter.parent:
            vals.append(filter.parent)
            conds.append(f"c.relname LIKE ${len(vals)}")
        if filter.name:
            vals.append(filter.name)
            conds.append(f"t.tgname LIKE ${len(vals)}")
        rows = self._run(sql, conds, "t.tgname", vals)
        results = [
            Trigger(schema=schema, table=table, name=name, definition=definition)
            for schema, table, name, definition in rows
        ]
        return ResultSet.for_records(Trigger, results)


_information_schema = infos.new(
    infos.with_indexes(False),
    infos.with_custom_clauses({
        ClauseName.COLUMNS_COLUMN_SIZE: _SIZE_EXPR,
        ClauseName.FUNCTION_COLUMNS_COLUMN_SIZE: _SIZE_EXPR,
    }),
    infos.with_system_schemas(SYSTEM_SCHEMAS),
    infos.with_current_schema("CURRENT_SCHEMA"),
    infos.with_data_type_formatter(data_type_formatter),
)


def new_reader(db: Any, *args: ReaderOption) -> PluginReader:
    """Build a PostgreSQL metadata reader; pg_catalog queries take precedence."""
    return PluginReader(_information_schema(db, *args), PostgresReader(db, *args))