"""Database metadata records, filters and the result sets that hold them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import groupby
from typing import Any, Callable, ClassVar, Iterable, Iterator, Optional, Sequence as Seq


class NotSupportedError(Exception):
    """Raised when a reader or driver does not support an operation."""

    def __init__(self, message: str = "not supported") -> None:
        super().__init__(message)


class WrongNumberOfArgumentsError(Exception):
    """Raised when a row's values do not match the number of columns."""

    def __init__(self, message: str = "wrong number of arguments") -> None:
        super().__init__(message)


class YesNo(str, Enum):
    """Tri-state flag as reported by information schemas."""

    UNKNOWN = ""
    YES = "YES"
    NO = "NO"

    def __str__(self) -> str:
        return self.value


@dataclass
class Filter:
    """Restricts which objects a reader returns.

    Every name field is a LIKE pattern; an empty string means no restriction.
    """

    catalog: str = ""
    schema: str = ""
    parent: str = ""
    reference: str = ""
    name: str = ""
    types: list[str] = field(default_factory=list)
    with_system: bool = False
    only_visible: bool = False


@dataclass
class Catalog:
    COLUMNS: ClassVar[list[str]] = ["Catalog"]

    catalog: str = ""

    def values(self) -> list[Any]:
        return [self.catalog]

    def get_catalog(self) -> "Catalog":
        return self


@dataclass
class Schema:
    COLUMNS: ClassVar[list[str]] = ["Schema", "Catalog"]

    schema: str = ""
    catalog: str = ""

    def values(self) -> list[Any]:
        return [self.schema, self.catalog]


@dataclass
class Table:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Name", "Type", "Rows", "Size", "Comment",
    ]

    catalog: str = ""
    schema: str = ""
    name: str = ""
    type: str = ""
    rows: int = 0
    size: str = ""
    comment: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.name, self.type,
            self.rows, self.size, self.comment,
        ]


@dataclass
class Column:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Table", "Name", "Type", "Nullable", "Default",
        "Size", "Decimal Digits", "Precision Radix", "Octet Length",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    ordinal_position: int = 0
    data_type: str = ""
    default: str = ""
    column_size: int = 0
    decimal_digits: int = 0
    num_prec_radix: int = 0
    char_octet_length: int = 0
    is_nullable: str = YesNo.UNKNOWN

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.table, self.name, self.data_type,
            self.is_nullable, self.default, self.column_size,
            self.decimal_digits, self.num_prec_radix, self.char_octet_length,
        ]


@dataclass
class ColumnStat:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Table", "Name", "Average width",
        "Nulls fraction", "Distinct values", "Minimum value", "Maximum value",
        "Mean value", "Top N common values", "Top N values freqs",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    avg_width: int = 0
    null_frac: float = 0.0
    num_distinct: int = 0
    min: str = ""
    max: str = ""
    mean: str = ""
    top_n: list[str] = field(default_factory=list)
    top_n_freqs: list[float] = field(default_factory=list)

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.table, self.name, self.avg_width,
            self.null_frac, self.num_distinct, self.min, self.max, self.mean,
            self.top_n, self.top_n_freqs,
        ]


@dataclass
class Index:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Name", "Table", "Is primary", "Is unique", "Type",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    is_primary: str = YesNo.UNKNOWN
    is_unique: str = YesNo.UNKNOWN
    type: str = ""
    columns: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.name, self.table,
            self.is_primary, self.is_unique, self.type,
        ]


@dataclass
class IndexColumn:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Table", "Index name", "Name", "Data type",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    index_name: str = ""
    name: str = ""
    data_type: str = ""
    ordinal_position: int = 0

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.table, self.index_name,
            self.name, self.data_type,
        ]


@dataclass
class Constraint:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Table", "Name", "Type", "Is deferrable",
        "Initially deferred", "Foreign catalog", "Foreign schema",
        "Foreign table", "Foreign name", "Match type", "Update rule",
        "Delete rule", "Check Clause",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    type: str = ""
    is_deferrable: str = YesNo.UNKNOWN
    is_initially_deferred: str = YesNo.UNKNOWN
    foreign_catalog: str = ""
    foreign_schema: str = ""
    foreign_table: str = ""
    foreign_name: str = ""
    match_type: str = ""
    update_rule: str = ""
    delete_rule: str = ""
    check_clause: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.table, self.name, self.type,
            self.is_deferrable, self.is_initially_deferred,
            self.foreign_catalog, self.foreign_schema, self.foreign_table,
            self.foreign_name, self.match_type, self.update_rule,
            self.delete_rule,
        ]


@dataclass
class ConstraintColumn:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Table", "Constraint", "Name", "Foreign Catalog",
        "Foreign Schema", "Foreign Table", "Foreign Constraint", "Foreign Name",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    constraint: str = ""
    name: str = ""
    ordinal_position: int = 0
    foreign_catalog: str = ""
    foreign_schema: str = ""
    foreign_table: str = ""
    foreign_constraint: str = ""
    foreign_name: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.table, self.constraint, self.name,
            self.foreign_catalog, self.foreign_schema, self.foreign_table,
            self.foreign_constraint, self.foreign_name,
        ]


@dataclass
class Function:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Name", "Result data type", "Argument data types",
        "Type", "Volatility", "Security", "Language", "Source code",
    ]

    catalog: str = ""
    schema: str = ""
    name: str = ""
    result_type: str = ""
    arg_types: str = ""
    type: str = ""
    volatility: str = ""
    security: str = ""
    language: str = ""
    source: str = ""
    specific_name: str = ""

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.name, self.result_type,
            self.arg_types, self.type, self.volatility, self.security,
            self.language, self.source,
        ]


@dataclass
class FunctionColumn:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Function name", "Name", "Type", "Data type",
        "Size", "Decimal Digits", "Precision Radix", "Octet Length",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    function_name: str = ""
    ordinal_position: int = 0
    type: str = ""
    data_type: str = ""
    column_size: int = 0
    decimal_digits: int = 0
    num_prec_radix: int = 0
    char_octet_length: int = 0

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.function_name, self.name,
            self.type, self.data_type, self.column_size, self.decimal_digits,
            self.num_prec_radix, self.char_octet_length,
        ]


@dataclass
class Sequence:
    COLUMNS: ClassVar[list[str]] = [
        "Type", "Start", "Min", "Max", "Increment", "Cycles?",
    ]

    catalog: str = ""
    schema: str = ""
    name: str = ""
    data_type: str = ""
    start: str = ""
    min: str = ""
    max: str = ""
    increment: str = ""
    cycles: str = YesNo.UNKNOWN

    def values(self) -> list[Any]:
        return [
            self.data_type, self.start, self.min, self.max,
            self.increment, self.cycles,
        ]


@dataclass
class Trigger:
    COLUMNS: ClassVar[list[str]] = [
        "Catalog", "Schema", "Table", "Name", "Definition",
    ]

    catalog: str = ""
    schema: str = ""
    table: str = ""
    name: str = ""
    definition: str = ""

    def values(self) -> list[Any]:
        return [self.catalog, self.schema, self.table, self.name, self.definition]


def _type_str(privilege: str, grantable: bool) -> str:
    return privilege + "*" if grantable else privilege


def _line_str(grantee: str, grantor: str, types: Iterable[str]) -> str:
    line = grantee + "=" + ",".join(types)
    if grantor:
        line += "/" + grantor
    return line


@dataclass
class ObjectPrivilege:
    """A privilege granted on a database object."""

    grantee: str = ""
    grantor: str = ""
    privilege_type: str = ""
    is_grantable: bool = False

    def _key(self) -> tuple[str, str, str]:
        return (self.grantee, self.grantor, self.privilege_type)

    def __lt__(self, other: "ObjectPrivilege") -> bool:
        return self._key() < other._key()


@dataclass
class ColumnPrivilege:
    """A privilege granted on a column."""

    column: str = ""
    grantee: str = ""
    grantor: str = ""
    privilege_type: str = ""
    is_grantable: bool = False

    def _key(self) -> tuple[str, str, str, str]:
        return (self.column, self.grantee, self.grantor, self.privilege_type)

    def __lt__(self, other: "ColumnPrivilege") -> bool:
        return self._key() < other._key()


class ObjectPrivileges(list):
    """Privileges on an object; rendering assumes the list is sorted."""

    def __str__(self) -> str:
        lines = []
        for (grantee, grantor), group in groupby(self, key=lambda p: (p.grantee, p.grantor)):
            types = [_type_str(p.privilege_type, p.is_grantable) for p in group]
            lines.append(_line_str(grantee, grantor, types))
        return "\n".join(lines)


class ColumnPrivileges(list):
    """Privileges on columns; rendering assumes the list is sorted."""

    def __str__(self) -> str:
        blocks = []
        for column, col_group in groupby(self, key=lambda p: p.column):
            lines = []
            for (grantee, grantor), group in groupby(col_group, key=lambda p: (p.grantee, p.grantor)):
                types = [_type_str(p.privilege_type, p.is_grantable) for p in group]
                lines.append("  " + _line_str(grantee, grantor, types))
            blocks.append(column + ":\n" + "\n".join(lines))
        return "\n".join(blocks)


@dataclass
class PrivilegeSummary:
    """Privileges granted on a table, view or sequence."""

    COLUMNS: ClassVar[list[str]] = [
        "Schema", "Name", "Type", "Access privileges", "Column privileges",
    ]

    catalog: str = ""
    schema: str = ""
    name: str = ""
    object_type: str = ""
    object_privileges: ObjectPrivileges = field(default_factory=ObjectPrivileges)
    column_privileges: ColumnPrivileges = field(default_factory=ColumnPrivileges)

    def values(self) -> list[Any]:
        return [
            self.catalog, self.schema, self.name, self.object_type,
            self.object_privileges, self.column_privileges,
        ]


class ResultSet:
    """A cursor over metadata records with optional filtering and projection."""

    def __init__(self, results: Iterable[Any], columns: Seq[str]) -> None:
        self._results = list(results)
        self._columns = list(columns)
        self._current = 0
        self._filter: Optional[Callable[[Any], bool]] = None
        self._scan_values: Optional[Callable[[Any], list[Any]]] = None

    @classmethod
    def for_records(cls, record_type: type, records: Iterable[Any]) -> "ResultSet":
        """Build a set using the default columns of ``record_type``."""
        return cls(records, record_type.COLUMNS)

    def set_filter(self, predicate: Optional[Callable[[Any], bool]]) -> None:
        self._filter = predicate

    def set_columns(self, columns: Seq[str]) -> None:
        self._columns = list(columns)

    def set_scan_values(self, scan_values: Optional[Callable[[Any], list[Any]]]) -> None:
        self._scan_values = scan_values

    def _accepts(self, record: Any) -> bool:
        return self._filter is None or bool(self._filter(record))

    def __len__(self) -> int:
        return sum(1 for record in self._results if self._accepts(record))

    def __iter__(self) -> Iterator[Any]:
        return (record for record in self._results if self._accepts(record))

    def reset(self) -> None:
        self._current = 0

    def next(self) -> bool:
        """Advance to the next accepted record; False when exhausted."""
        self._current += 1
        while self._current <= len(self._results) and not self._accepts(self._results[self._current - 1]):
            self._current += 1
        return self._current <= len(self._results)

    def get(self) -> Any:
        """Return the record under the cursor."""
        if not 1 <= self._current <= len(self._results):
            raise IndexError("no current record")
        return self._results[self._current - 1]

    def columns(self) -> list[str]:
        return list(self._columns)

    def _values_of(self, record: Any) -> list[Any]:
        values = self._scan_values(record) if self._scan_values else record.values()
        if len(values) != len(self._columns):
            raise WrongNumberOfArgumentsError()
        return list(values)

    def scan(self) -> list[Any]:
        """Return the values of the current record, one per column."""
        return self._values_of(self.get())

    def rows(self) -> Iterator[list[Any]]:
        """Yield the values of every accepted record, one per column."""
        for record in self:
            yield self._values_of(record)