"""Metadata reader for Oracle databases using the data dictionary views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable

from dbmeta.models import (
    Catalog,
    Column,
    Filter,
    Function,
    FunctionColumn,
    Index,
    IndexColumn,
    ResultSet,
    Schema,
    Table,
)
from dbmeta.readers import LoggingReader, NoRowsError

SYSTEM_SCHEMAS = "'CTXSYS', 'FLOWS_FILES', 'MDSYS', 'OUTLN', 'SYS', 'SYSTEM', 'XDB', 'XS$NULL'"


@dataclass(frozen=True)
class _Formats:
    schema: str = ""
    not_schemas: str = ""
    parent: str = ""
    name: str = ""
    types: str = ""


def _records(record_type: type, fields: Iterable[str], rows: Iterable[tuple]) -> list:
    names = tuple(fields)
    return [record_type(**dict(zip(names, row, strict=True))) for row in rows]


class OracleReader(LoggingReader):
    """Reads catalogs, schemas, tables, columns, functions and indexes."""

    def __init__(self, db: Any, *args: Any) -> None:
        super().__init__(db, *args)
        self.system_schemas = SYSTEM_SCHEMAS

    def _fetch(self, record_type: type, fields: Iterable[str], sql: str, vals: list) -> ResultSet:
        try:
            rows = self.query(sql, *vals)
        except NoRowsError:
            rows = []
        return ResultSet.for_records(record_type, _records(record_type, fields, rows))

    def _conditions(self, f: Filter, formats: _Formats) -> tuple[list[str], list[Any]]:
        param = 1
        conds: list[str] = []
        vals: list[Any] = []
        if f.schema and formats.schema:
            vals.append(f.schema.upper())
            conds.append(formats.schema % f":{param}")
            param += 1
        if not f.with_system and formats.not_schemas:
            conds.append(formats.not_schemas % self.system_schemas)
        if f.only_visible and formats.schema:
            conds.append(formats.schema % "user")
        if f.parent and formats.parent:
            vals.append(f.parent.upper())
            conds.append(formats.parent % param)
            param += 1
        if f.name and formats.name:
            vals.append(f.name.upper())
            conds.append(formats.name % param)
            param += 1
        if f.types and formats.types:
            holders = []
            for t in f.types:
                vals.append(t.upper())
                holders.append(f":{param}")
                param += 1
            conds.append(formats.types % ", ".join(holders))
        return conds, vals

    def catalogs(self, filter: Filter) -> ResultSet:
        sql = """SELECT
  UPPER(Value) AS catalog
FROM v$parameter o
WHERE name = 'db_name'
UNION ALL
SELECT
  db_link AS catalog
FROM dba_db_links
ORDER BY catalog
"""
        return self._fetch(Catalog, ["catalog"], sql, [])

    def schemas(self, filter: Filter) -> ResultSet:
        sql = """SELECT
  username
FROM all_users
"""
        conds, vals = self._conditions(filter, _Formats(
            name="username LIKE :%d",
            not_schemas="username NOT IN (%s)",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        sql += "\nORDER BY username"
        return self._fetch(Schema, ["schema"], sql, vals)

    def tables(self, filter: Filter) -> ResultSet:
        sql = """SELECT
o.owner AS table_schem,
o.object_name AS table_name,
o.object_type AS table_type
FROM all_objects o
"""
        conds, vals = self._conditions(filter, _Formats(
            schema="o.owner LIKE %s",
            not_schemas="o.owner NOT IN (%s)",
            name="o.object_name LIKE :%d",
            types="o.object_type IN (%s)",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        if "SYNONYM" in filter.types:
            sql += """
UNION ALL
SELECT
  s.owner AS table_schem,
  s.synonym_name AS table_name,
  'SYNONYM' AS table_type
FROM all_synonyms s
"""
            syn_conds, syn_vals = self._conditions(filter, _Formats(
                schema="s.owner LIKE %s",
                not_schemas="s.owner NOT IN (%s)",
                name="s.synonym_name LIKE :%d",
            ))
            vals.extend(syn_vals)
            if syn_conds:
                sql += " WHERE " + " AND ".join(syn_conds)
        sql += "\nORDER BY table_schem, table_name, table_type"
        return self._fetch(Table, ["schema", "name", "type"], sql, vals)

    def columns(self, filter: Filter) -> ResultSet:
        sql = """SELECT
  c.owner,
  c.table_name,
  c.column_name,
  c.column_id AS ordinal_position,
  c.data_type,
  CASE c.nullable
    WHEN 'Y' THEN 'YES'
    ELSE  'NO'  END AS nullable,
  COALESCE(c.data_length, c.data_precision, 0),
  COALESCE(c.data_scale, 0),
  CASE c.data_type
           WHEN 'FLOAT'  THEN  2
           WHEN 'NUMBER' THEN 10
  ELSE  0  END AS num_prec_radix,
  COALESCE(c.char_col_decl_length, 0) as char_octet_length
FROM all_tab_columns c
"""
        conds, vals = self._conditions(filter, _Formats(
            schema="c.owner LIKE %s",
            not_schemas="c.owner NOT IN (%s)",
            parent="c.table_name LIKE :%d",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        sql += "\nORDER BY c.owner, c.table_name, c.column_id"
        fields = [
            "schema", "table", "name", "ordinal_position", "data_type",
            "is_nullable", "column_size", "decimal_digits", "num_prec_radix",
            "char_octet_length",
        ]
        return self._fetch(Column, fields, sql, vals)

    def functions(self, filter: Filter) -> ResultSet:
        sql = """SELECT
  decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'), a.object_name)
         ,b.object_name) as specific_name,
  b.owner   as procedure_schem,
  decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'), a.object_name)
         ,b.object_name) as procedure_name,
  decode (b.object_type,'PACKAGE',decode(a.position,0,2,1,1,0),
          decode(b.object_type,'PROCEDURE',1,'FUNCTION',2,0)) as procedure_type
FROM all_arguments a
JOIN all_objects b ON b.object_id = a.object_id AND a.sequence  = 1
"""
        conds, vals = self._conditions(filter, _Formats(
            schema="b.owner LIKE %s",
            not_schemas="b.owner NOT IN (%s)",
            name="b.object_name LIKE :%d",
            types="b.object_type IN (%s)",
        ))
        conds.append(
            "(b.object_type = 'PROCEDURE' OR b.object_type = 'FUNCTION' OR b.object_type = 'PACKAGE')"
        )
        sql += " WHERE " + " AND ".join(conds)
        sql += "\nORDER BY procedure_schem, procedure_name, procedure_type"
        return self._fetch(Function, ["specific_name", "schema", "name", "type"], sql, vals)

    def function_columns(self, filter: Filter) -> ResultSet:
        sql = """SELECT
     a.owner   as procedure_schem,
     decode (b.object_type,'PACKAGE',CONCAT(CONCAT(b.object_name,'.'),a.object_name),
             b.object_name) as procedure_name,
     decode(a.position,0,'RETURN_VALUE',a.argument_name) as column_name,
     a.position       as ordinal_position,
     decode(a.position,0,5,decode(a.in_out,'IN',1,'IN/OUT',2,'OUT',4)) as column_type,
     a.data_type      as type_name,
     COALESCE(a.data_length, a.data_precision, 0) as column_size,
     COALESCE(a.data_scale, 0) as decimal_digits,
     COALESCE(a.radix, 0) as num_prec_radix
FROM all_objects b
JOIN all_arguments a ON b.object_id = a.object_id AND a.data_level = 0
"""
        conds, vals = self._conditions(filter, _Formats(
            schema="a.owner LIKE %s",
            not_schemas="a.owner NOT IN (%s)",
            parent="b.object_name LIKE :%d",
        ))
        conds.append("b.object_type = 'PROCEDURE' OR b.object_type = 'FUNCTION'")
        sql += " WHERE " + " AND ".join(conds)
        sql += "\nORDER BY procedure_schem, procedure_name, ordinal_position"
        fields = [
            "schema", "function_name", "name", "ordinal_position", "type",
            "data_type", "column_size", "decimal_digits", "num_prec_radix",
        ]
        return self._fetch(FunctionColumn, fields, sql, vals)

    def indexes(self, filter: Filter) -> ResultSet:
        sql = """SELECT
  o.owner,
  o.table_name,
  o.index_name,
  decode(o.uniqueness,'UNIQUE','NO','YES')
FROM all_indexes o
"""
        conds, vals = self._conditions(filter, _Formats(
            schema="o.owner LIKE %s",
            not_schemas="o.owner NOT IN (%s)",
            parent="o.table_name LIKE :%d",
            name="o.index_name LIKE :%d",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        sql += "\nORDER BY o.owner, o.table_name, o.index_name"
        return self._fetch(Index, ["schema", "table", "name", "is_unique"], sql, vals)

    def index_columns(self, filter: Filter) -> ResultSet:
        sql = """SELECT
  o.owner,
  o.table_name,
  o.index_name,
  b.column_name,
  b.column_position
FROM all_indexes o
JOIN all_ind_columns b ON o.owner = b.index_owner AND o.index_name = b.index_name
"""
        conds, vals = self._conditions(filter, _Formats(
            schema="o.owner LIKE %s",
            not_schemas="o.owner NOT IN (%s)",
            parent="o.table_name LIKE :%d",
            name="o.index_name LIKE :%d",
        ))
        if conds:
            sql += " WHERE " + " AND ".join(conds)
        sql += "\nORDER BY o.owner, o.table_name, o.index_name, b.column_position"
        fields = ["schema", "table", "index_name", "name", "ordinal_position"]
        return self._fetch(IndexColumn, fields, sql, vals)


def new_reader() -> Callable[..., OracleReader]:
    """Return a factory building an OracleReader from a connection and options."""

    def build(db: Any, *args: Any) -> OracleReader:
        return OracleReader(db, *args)

    return build