"""Human-readable listings and descriptions of database metadata."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterable, Optional, TextIO, Union

from dbmeta.models import (
    ColumnPrivileges,
    Constraint,
    Filter,
    Index,
    NotSupportedError,
    ObjectPrivileges,
    ResultSet,
    Sequence,
)

NOT_SUPPORTED_BY_DRIVER = "{command} not supported by {driver} driver"
RELATION_NOT_FOUND = 'Did not find any relation named "{pattern}".'

WriterOption = Callable[["DefaultWriter"], None]
Summary = Callable[[TextIO, int], None]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value)
    if isinstance(value, (ObjectPrivileges, ColumnPrivileges)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(_format_value(v) for v in value)
    return str(value)


def _join_cells(cells: Iterable[str]) -> str:
    return (" " + " | ".join(cells)).rstrip()


def render_table(
    out: TextIO,
    result_set: ResultSet,
    title: str = "",
    footer: Union[bool, Summary] = True,
) -> None:
    """Write an aligned table of ``result_set`` to ``out``.

    ``footer`` is True for a row count, False for none, or a callable that
    writes a custom summary given the output stream and the row count.
    """
    columns = result_set.columns()
    rows = [
        [(_format_value(v).split("\n"), _is_number(v)) for v in values]
        for values in result_set.rows()
    ]
    widths = [len(name) for name in columns]
    for row in rows:
        widths = [
            max(width, *(len(line) for line in cell_lines))
            for width, (cell_lines, _) in zip(widths, row)
        ]
    total = sum(widths) + 3 * len(widths) - 1 if widths else 0

    lines: list[str] = []
    if title.strip("\n"):
        lines.extend(t.center(total).rstrip() for t in title.strip("\n").split("\n"))
    lines.append(_join_cells(name.center(width) for name, width in zip(columns, widths)))
    lines.append("+".join("-" * (width + 2) for width in widths))
    for row in rows:
        height = max((len(cell_lines) for cell_lines, _ in row), default=1)
        for line_no in range(height):
            cells = []
            for (cell_lines, numeric), width in zip(row, widths):
                text = cell_lines[line_no] if line_no < len(cell_lines) else ""
                cells.append(text.rjust(width) if numeric else text.ljust(width))
            lines.append(_join_cells(cells))
    out.write("\n".join(lines) + "\n")

    count = len(rows)
    if callable(footer):
        footer(out, count)
    elif footer:
        out.write(f"({count} {'row' if count == 1 else 'rows'})\n")
    out.write("\n")


def parse_pattern(pattern: str) -> tuple[str, str]:
    """Split ``schema.name`` into LIKE patterns, turning ``*`` into ``%``."""
    if "." in pattern:
        schema, name = pattern.split(".", 1)
        return schema.replace("*", "%"), name.replace("*", "%")
    return "", pattern.replace("*", "%")


def qualified_identifier(schema: str, name: str) -> str:
    if not schema:
        return f'"{name}"'
    return f'"{schema}.{name}"'


def _expand_types(mapping: dict[str, list[str]], letters: str) -> list[str]:
    return [t for key, names in mapping.items() if key in letters for t in names]


class DefaultWriter:
    """Writes metadata listings using whatever capabilities the reader has."""

    def __init__(self, reader: Any, out: TextIO, *args: WriterOption) -> None:
        self.reader = reader
        self.out = out
        self.table_types: dict[str, list[str]] = {
            "t": ["TABLE", "BASE TABLE", "SYSTEM TABLE", "SYNONYM", "LOCAL TEMPORARY", "GLOBAL TEMPORARY"],
            "v": ["VIEW", "SYSTEM VIEW"],
            "m": ["MATERIALIZED VIEW"],
            "s": ["SEQUENCE"],
        }
        self.func_types: dict[str, list[str]] = {
            "a": ["AGGREGATE"],
            "n": ["FUNCTION"],
            "p": ["PROCEDURE", "PACKAGE"],
            "t": ["TRIGGER"],
            "w": ["WINDOW"],
        }
        self.system_schemas: set[str] = {"information_schema"}
        self._list_all_dbs: Optional[Callable[[str, bool], Any]] = None
        for option in args:
            option(self)

    # capability helpers

    def _has(self, capability: str) -> bool:
        supports = getattr(self.reader, "supports", None)
        if callable(supports):
            return bool(supports(capability))
        return callable(getattr(self.reader, capability, None))

    def _require(self, capability: str, command: str, driver: str) -> None:
        if not self._has(capability):
            raise NotSupportedError(NOT_SUPPORTED_BY_DRIVER.format(command=command, driver=driver))

    def _optional(self, capability: str, filter: Filter) -> Optional[ResultSet]:
        if not self._has(capability):
            return None
        try:
            return getattr(self.reader, capability)(filter)
        except NotSupportedError:
            return None

    def _hide_system(self, res: ResultSet, show_system: bool) -> None:
        # in case the reader ignores Filter.with_system
        if not show_system:
            res.set_filter(lambda r: r.schema not in self.system_schemas)

    def _not_found(self, pattern: str) -> None:
        self.out.write(RELATION_NOT_FOUND.format(pattern=pattern) + "\n")

    # functions

    def describe_functions(self, driver: str, func_types: str, pattern: str, verbose: bool, show_system: bool) -> None:
        self._require("functions", r"\df", driver)
        types = _expand_types(self.func_types, func_types)
        schema, name = parse_pattern(pattern)
        res = self.reader.functions(Filter(schema=schema, name=name, types=types, with_system=show_system))
        self._hide_system(res, show_system)

        if self._has("function_columns"):
            for f in res:
                f.arg_types = self._function_arguments(f.catalog, f.schema, f.specific_name)

        columns = ["Schema", "Name", "Result data type", "Argument data types", "Type"]
        if verbose:
            columns += ["Volatility", "Security", "Language", "Source code"]
        res.set_columns(columns)

        def scan(f: Any) -> list[Any]:
            values = [f.schema, f.name, f.result_type, f.arg_types, f.type]
            if verbose:
                values += [f.volatility, f.security, f.language, f.source]
            return values

        res.set_scan_values(scan)
        render_table(self.out, res, "List of functions")

    def _function_arguments(self, catalog: str, schema: str, function: str) -> str:
        cols = self.reader.function_columns(Filter(catalog=catalog, schema=schema, parent=function))
        args = []
        for c in cols:
            if c.ordinal_position == 0:
                continue  # result parameter
            mode = f"{c.type} " if c.type not in ("IN", "") else ""
            name = f"{c.name} " if c.name else ""
            args.append(f"{mode}{name}{c.data_type}")
        return ", ".join(args)

    # tables, sequences and indexes in detail

    def describe_table_details(self, driver: str, pattern: str, verbose: bool, show_system: bool) -> None:
        schema, name = parse_pattern(pattern)
        found = 0

        if self._has("tables") and self._has("columns"):
            res = self.reader.tables(Filter(schema=schema, name=name, with_system=show_system))
            self._hide_system(res, show_system)
            for t in res:
                self._describe_table(t.type, t.schema, t.name, verbose, show_system)
                found += 1

        if self._has("sequences"):
            found += self._describe_sequences(schema, name, show_system)

        if self._has("indexes") and self._has("index_columns"):
            res = self._optional("indexes", Filter(schema=schema, name=name, with_system=show_system))
            if res is not None:
                self._hide_system(res, show_system)
                for index in res:
                    self._describe_index(index)
                    found += 1

        if found == 0:
            self._not_found(pattern)

    def _describe_table(self, kind: str, schema: str, table: str, verbose: bool, show_system: bool) -> None:
        res = self.reader.columns(Filter(schema=schema, parent=table, with_system=show_system))
        columns = ["Name", "Type", "Nullable", "Default"]
        if verbose:
            columns += ["Size", "Decimal Digits", "Radix", "Octet Length"]
        res.set_columns(columns)

        def scan(c: Any) -> list[Any]:
            values = [c.name, c.data_type, c.is_nullable, c.default]
            if verbose:
                values += [c.column_size, c.decimal_digits, c.num_prec_radix, c.char_octet_length]
            return values

        res.set_scan_values(scan)
        render_table(
            self.out, res, f"{kind} {qualified_identifier(schema, table)}",
            footer=self._table_details_summary(schema, table),
        )

    def _table_details_summary(self, schema: str, table: str) -> Summary:
        def check_printer(out: TextIO, c: Constraint) -> None:
            out.write(f'  "{c.name}" {c.type} ({c.check_clause})\n')

        def foreign_key_printer(out: TextIO, c: Constraint) -> None:
            columns, foreign = self._constraint_columns(c.catalog, c.schema, c.table, c.name)
            out.write(
                f'  "{c.name}" {c.type} ({columns}) REFERENCES {c.foreign_table}({foreign})'
                f" ON UPDATE {c.update_rule} ON DELETE {c.delete_rule}\n"
            )

        def referenced_printer(out: TextIO, c: Constraint) -> None:
            columns, foreign = self._constraint_columns(c.catalog, c.schema, c.table, c.name)
            out.write(
                f'  TABLE "{c.table}" CONSTRAINT "{c.name}" {c.type} ({columns})'
                f" REFERENCES {c.foreign_table}({foreign})"
                f" ON UPDATE {c.update_rule} ON DELETE {c.delete_rule}\n"
            )

        def is_check(c: Constraint) -> bool:
            return c.type == "CHECK" and c.check_clause != "" and not c.check_clause.endswith(" IS NOT NULL")

        def is_foreign_key(c: Constraint) -> bool:
            return c.type == "FOREIGN KEY"

        def summary(out: TextIO, _count: int) -> None:
            self._describe_table_indexes(out, schema, table)
            self._describe_constraints(
                out, Filter(schema=schema, parent=table), is_check, "Check constraints:", check_printer)
            self._describe_constraints(
                out, Filter(schema=schema, parent=table), is_foreign_key,
                "Foreign-key constraints:", foreign_key_printer)
            self._describe_constraints(
                out, Filter(schema=schema, reference=table), is_foreign_key, "Referenced by:", referenced_printer)
            self._describe_table_triggers(out, schema, table)

        return summary

    def _describe_table_triggers(self, out: TextIO, schema: str, table: str) -> None:
        res = self._optional("triggers", Filter(schema=schema, parent=table))
        if res is None or len(res) == 0:
            return
        out.write("Triggers:\n")
        for t in res:
            out.write(f'  "{t.name}" {t.definition}\n')

    def _describe_table_indexes(self, out: TextIO, schema: str, table: str) -> None:
        res = self._optional("indexes", Filter(schema=schema, parent=table))
        if res is None or len(res) == 0:
            return
        out.write("Indexes:\n")
        for i in res:
            primary = "PRIMARY_KEY, " if i.is_primary == "YES" else ""
            unique = "UNIQUE, " if i.is_unique == "YES" else ""
            i.columns = self._index_columns(i.catalog, i.schema, i.table, i.name)
            out.write(f'  "{i.name}" {primary}{unique}{i.type} ({i.columns})\n')

    def _index_columns(self, catalog: str, schema: str, table: str, index: str) -> str:
        if not self._has("index_columns"):
            return ""
        cols = self.reader.index_columns(Filter(catalog=catalog, schema=schema, parent=table, name=index))
        return ", ".join(c.name for c in cols)

    def _describe_constraints(
        self,
        out: TextIO,
        filter: Filter,
        predicate: Callable[[Constraint], bool],
        label: str,
        printer: Callable[[TextIO, Constraint], None],
    ) -> None:
        res = self._optional("constraints", filter)
        if res is None:
            return
        res.set_filter(predicate)
        if len(res) == 0:
            return
        out.write(label + "\n")
        for c in res:
            printer(out, c)

    def _constraint_columns(self, catalog: str, schema: str, table: str, name: str) -> tuple[str, str]:
        if not self._has("constraint_columns"):
            return "", ""
        cols = list(self.reader.constraint_columns(
            Filter(catalog=catalog, schema=schema, parent=table, name=name)))
        return ", ".join(c.name for c in cols), ", ".join(c.foreign_name for c in cols)

    def _describe_sequences(self, schema: str, name: str, show_system: bool) -> int:
        res = self._optional("sequences", Filter(schema=schema, name=name, with_system=show_system))
        if res is None:
            return 0
        found = 0
        for s in res:
            rows = ResultSet.for_records(Sequence, [s])
            render_table(self.out, rows, f'Sequence "{s.schema}.{s.name}"', footer=False)
            found += 1
        return found

    def _describe_index(self, index: Index) -> None:
        res = self.reader.index_columns(Filter(schema=index.schema, parent=index.table, name=index.name))
        if len(res) == 0:
            return
        res.set_columns(["Name", "Type"])
        res.set_scan_values(lambda c: [c.name, c.data_type])

        def summary(out: TextIO, _count: int) -> None:
            primary = "primary key, " if index.is_primary == "YES" else ""
            out.write(f"{primary}{index.type}, for table {index.table}")

        render_table(
            self.out, res, f"Index {qualified_identifier(index.schema, index.name)}", footer=summary)

    # listings

    def list_all_dbs(self, driver: str, pattern: str, verbose: bool) -> Any:
        if self._list_all_dbs is not None:
            return self._list_all_dbs(pattern, verbose)
        self._require("catalogs", r"\l", driver)
        res = self.reader.catalogs(Filter(name=pattern))
        render_table(self.out, res, "List of databases")
        return None

    def list_tables(self, driver: str, table_types: str, pattern: str, verbose: bool, show_system: bool) -> None:
        self._require("tables", r"\dt", driver)
        types = _expand_types(self.table_types, table_types)
        schema, name = parse_pattern(pattern)
        res = self.reader.tables(Filter(schema=schema, name=name, types=types, with_system=show_system))
        self._hide_system(res, show_system)
        if len(res) == 0:
            self._not_found(pattern)
            return
        columns = ["Schema", "Name", "Type"]
        if verbose:
            columns += ["Rows", "Size", "Comment"]
        res.set_columns(columns)

        def scan(t: Any) -> list[Any]:
            values = [t.schema, t.name, t.type]
            if verbose:
                values += [t.rows, t.size, t.comment]
            return values

        res.set_scan_values(scan)
        render_table(self.out, res, "List of relations")

    def list_schemas(self, driver: str, pattern: str, verbose: bool, show_system: bool) -> None:
        self._require("schemas", r"\d", driver)
        res = self.reader.schemas(Filter(name=pattern, with_system=show_system))
        self._hide_system(res, show_system)
        render_table(self.out, res, "List of schemas")

    def list_indexes(self, driver: str, pattern: str, verbose: bool, show_system: bool) -> None:
        self._require("indexes", r"\di", driver)
        schema, name = parse_pattern(pattern)
        res = self.reader.indexes(Filter(schema=schema, name=name, with_system=show_system))
        self._hide_system(res, show_system)
        if len(res) == 0:
            self._not_found(pattern)
            return
        columns = ["Schema", "Name", "Type", "Table"]
        if verbose:
            columns += ["Primary?", "Unique?"]
        res.set_columns(columns)

        def scan(i: Any) -> list[Any]:
            values = [i.schema, i.name, i.type, i.table]
            if verbose:
                values += [i.is_primary, i.is_unique]
            return values

        res.set_scan_values(scan)
        render_table(self.out, res, "List of indexes")

    def show_stats(self, driver: str, stat_types: str, pattern: str, verbose: bool, k: int) -> None:
        self._require("column_stats", r"\ss", driver)
        schema, name = parse_pattern(pattern)

        rows = 0
        if self._has("tables"):
            first = next(iter(self.reader.tables(Filter(schema=schema, name=name))), None)
            if first is not None:
                rows = first.rows

        types = ["basic", "extended"] if verbose else ["basic"]
        res = self.reader.column_stats(Filter(schema=schema, parent=name, types=types))
        if len(res) == 0:
            self._not_found(pattern)
            return
        columns = ["Schema", "Table", "Name", "Average width", "Nulls fraction", "Distinct values", "Dist. fraction"]
        if verbose:
            columns += ["Minimum value", "Maximum value", "Mean value", "Top N common values", "Top N values freqs"]
        res.set_columns(columns)

        def scan(s: Any) -> list[Any]:
            freqs = [f"{freq:.4f}" for freq in s.top_n_freqs]
            n = max(0, min(k, len(freqs)))
            dist_frac = 1.0
            if rows != 0 and s.num_distinct != rows:
                dist_frac = s.num_distinct / rows
            values = [
                s.schema, s.table, s.name, s.avg_width, s.null_frac,
                s.num_distinct, f"{dist_frac:.4f}",
            ]
            if verbose:
                values += [s.min, s.max, s.mean, ", ".join(s.top_n[:n]), ", ".join(freqs[:n])]
            return values

        res.set_scan_values(scan)
        render_table(self.out, res, "Column stats")

    def list_privilege_summaries(self, driver: str, pattern: str, show_system: bool) -> None:
        self._require("privilege_summaries", r"\dp", driver)
        schema, name = parse_pattern(pattern)
        types = _expand_types(self.table_types, "tvms")
        res = self.reader.privilege_summaries(
            Filter(schema=schema, name=name, with_system=show_system, types=types))
        self._hide_system(res, show_system)
        res.set_scan_values(lambda p: [
            p.schema, p.name, p.object_type, p.object_privileges, p.column_privileges,
        ])
        render_table(self.out, res, "Access privileges")


def with_system_schemas(schemas: Iterable[str]) -> WriterOption:
    """Schemas hidden from listings unless system objects are requested."""
    names = set(schemas)

    def apply(writer: DefaultWriter) -> None:
        writer.system_schemas = set(names)

    return apply


def with_list_all_dbs(func: Callable[[str, bool], Any]) -> WriterOption:
    """Replace the catalog listing with ``func(pattern, verbose)``."""

    def apply(writer: DefaultWriter) -> None:
        writer._list_all_dbs = func

    return apply