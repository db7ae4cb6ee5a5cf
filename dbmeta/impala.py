"""Metadata reader backed by a client-side Impala metadata API."""

from __future__ import annotations

from typing import Any

from dbmeta.models import Column, Filter, ResultSet, Schema, Table


class ImpalaReader:
    """Reads schemas, tables and columns through an Impala metadata object.

    ``meta`` must provide ``get_schemas(pattern)``, ``get_tables(schema, pattern)``
    and ``get_columns(schema, table, pattern)``.
    """

    def __init__(self, meta: Any) -> None:
        self.meta = meta

    def columns(self, filter: Filter) -> ResultSet:
        ids = self.meta.get_columns(filter.schema, filter.parent, filter.name)
        return ResultSet.for_records(
            Column,
            (
                Column(schema=c.schema, table=c.table_name, name=c.column_name)
                for c in ids
            ),
        )

    def schemas(self, filter: Filter) -> ResultSet:
        names = self.meta.get_schemas(filter.name)
        return ResultSet.for_records(Schema, (Schema(schema=name) for name in names))

    def tables(self, filter: Filter) -> ResultSet:
        ids = self.meta.get_tables(filter.schema, filter.name)
        return ResultSet.for_records(
            Table,
            (Table(schema=t.schema, name=t.name, type=t.type) for t in ids),
        )