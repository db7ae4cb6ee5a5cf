"""Composable metadata readers and a query runner with logging, dry runs and timeouts."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from dbmeta.models import Filter, NotSupportedError

ReaderOption = Callable[[Any], None]

CAPABILITIES = (
    "catalogs",
    "schemas",
    "tables",
    "columns",
    "column_stats",
    "indexes",
    "index_columns",
    "triggers",
    "constraints",
    "constraint_columns",
    "functions",
    "function_columns",
    "sequences",
    "privilege_summaries",
)


class NoRowsError(Exception):
    """Raised when a query produced no rows because it was never run."""

    def __init__(self, message: str = "no rows in result set") -> None:
        super().__init__(message)


class PluginReader:
    """A reader assembled from the capabilities of other readers.

    For every capability the last reader that provides it wins; capabilities
    that no reader provides raise NotSupportedError.
    """

    def __init__(self, *args: Any) -> None:
        self._methods: dict[str, Callable[[Filter], Any]] = {}
        for reader in args:
            for name in CAPABILITIES:
                method = getattr(reader, name, None)
                if callable(method):
                    self._methods[name] = method

    def supports(self, capability: str) -> bool:
        return capability in self._methods

    def _call(self, capability: str, filter: Filter) -> Any:
        method = self._methods.get(capability)
        if method is None:
            raise NotSupportedError()
        return method(filter)

    def catalogs(self, filter):
        return self._call("catalogs", filter)

    def schemas(self, filter):
        return self._call("schemas", filter)

    def tables(self, filter):
        return self._call("tables", filter)

    def columns(self, filter):
        return self._call("columns", filter)

    def column_stats(self, filter):
        return self._call("column_stats", filter)

    def indexes(self, filter):
        return self._call("indexes", filter)

    def index_columns(self, filter):
        return self._call("index_columns", filter)

    def triggers(self, filter):
        return self._call("triggers", filter)

    def constraints(self, filter):
        return self._call("constraints", filter)

    def constraint_columns(self, filter):
        return self._call("constraint_columns", filter)

    def functions(self, filter):
        return self._call("functions", filter)

    def function_columns(self, filter):
        return self._call("function_columns", filter)

    def sequences(self, filter):
        return self._call("sequences", filter)

    def privilege_summaries(self, filter):
        return self._call("privilege_summaries", filter)


def _interrupt(db: Any, cursor: Any) -> None:
    """Ask the driver to abort the running statement, if it knows how."""
    for target, name in ((db, "interrupt"), (cursor, "cancel"), (db, "cancel")):
        method = getattr(target, name, None)
        if callable(method):
            method()
            return


class LoggingReader:
    """Runs metadata queries against a DB-API connection.

    Queries may be logged, skipped entirely (dry run) or bounded by a timeout
    in seconds. Options are callables applied to the reader on creation.
    """

    def __init__(self, db: Any, *args: ReaderOption) -> None:
        self.db = db
        self.logger: Optional[Callable[[str], Any]] = None
        self.dry_run = False
        self.timeout: float = 0
        for option in args:
            option(self)

    def query(self, sql: str, *args: Any) -> list[tuple]:
        """Execute ``sql`` with positional parameters and return all rows."""
        if self.logger is not None:
            self.logger(sql)
            self.logger(str(list(args)))
        if self.dry_run:
            raise NoRowsError()
        cursor = self.db.cursor()
        try:
            if not self.timeout:
                cursor.execute(sql, args)
                return list(cursor.fetchall())
            expired = threading.Event()

            def cancel() -> None:
                expired.set()
                _interrupt(self.db, cursor)

            timer = threading.Timer(self.timeout, cancel)
            timer.start()
            try:
                cursor.execute(sql, args)
                return list(cursor.fetchall())
            except Exception as exc:
                if expired.is_set():
                    raise TimeoutError(f"query exceeded {self.timeout} seconds") from exc
                raise
            finally:
                timer.cancel()
        finally:
            cursor.close()


def with_logger(logger: Callable[[str], Any]) -> ReaderOption:
    """Log every query and its arguments before executing it."""

    def apply(reader: Any) -> None:
        reader.logger = logger

    return apply


def with_dry_run(dry_run: bool) -> ReaderOption:
    """Never run queries; readers then return empty results."""

    def apply(reader: Any) -> None:
        reader.dry_run = dry_run

    return apply


def with_timeout(seconds: float) -> ReaderOption:
    """Bound a single query to ``seconds``."""

    def apply(reader: Any) -> None:
        reader.timeout = seconds

    return apply


def with_limit(limit: int) -> ReaderOption:
    """Limit the rows of a single query, if the reader supports it."""

    def apply(reader: Any) -> None:
        set_limit = getattr(reader, "set_limit", None)
        if callable(set_limit):
            set_limit(limit)

    return apply