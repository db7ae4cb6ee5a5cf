# dbmeta

Read database metadata into plain Python records and print it as psql-style
listings. The metadata covers catalogs, schemas, tables, columns, column
statistics, indexes, constraints, functions, sequences, triggers and
privileges.

The package has no dependencies outside the standard library.

## Install

```
pip install dbmeta
pip install "dbmeta[test]"   # adds pytest
```

## Records and result sets

`dbmeta.models` holds one dataclass per kind of object (`Catalog`, `Schema`,
`Table`, `Column`, `ColumnStat`, `Index`, `IndexColumn`, `Constraint`,
`ConstraintColumn`, `Function`, `FunctionColumn`, `Sequence`, `Trigger`,
`PrivilegeSummary`). Each has a `values()` method that gives its default
display columns.

A `Filter` says what to return. Its name fields (`catalog`, `schema`,
`parent`, `reference`, `name`) are SQL `LIKE` patterns, and an empty string
means no restriction. Its other fields are `types`, `with_system` and
`only_visible`.

Readers return a `ResultSet`. It supports `len()` and iteration, which both
respect an optional predicate set with `set_filter`. It also has a cursor
interface: `next()`, `get()`, `scan()` and `reset()`. Use `set_columns` and
`set_scan_values` to project the records, and `rows()` to get the projected
values.

`ObjectPrivileges` and `ColumnPrivileges` render sorted privileges in the
`grantee=TYPE,TYPE*/grantor` form. A trailing `*` marks a grantable
privilege.

## Readers

A reader takes a DB-API style connection. It runs queries with
`conn.cursor().execute(sql, params)`, so the driver must accept the
placeholder style that the reader emits.

```python
from dbmeta.models import Filter
from dbmeta import postgres

reader = postgres.new_reader(conn)
for table in reader.tables(Filter(schema="public", types=["TABLE"])):
    print(table.schema, table.name, table.rows)
```

| Reader | What it queries | Placeholder style |
| --- | --- | --- |
| `dbmeta.informationschema.InformationSchema` | The standard `information_schema` views. | `$n` by default |
| `dbmeta.postgres.new_reader(db, *options)` | Combines an information_schema reader with `PostgresReader`. `PostgresReader` queries `pg_catalog` for catalogs, tables, column statistics, indexes, index columns and triggers, and takes precedence where both readers answer. | `$n` |
| `dbmeta.mysql.new_reader(db, *options)` | An information_schema reader tuned for MySQL: no sequences, no check constraints, no usage privileges. | `?` |
| `dbmeta.oracle.OracleReader` | Oracle's `all_*` dictionary views. `dbmeta.oracle.new_reader()` returns a factory `build(db, *options)`. | `:n` |
| `dbmeta.impala.ImpalaReader(meta)` | Wraps an object with `get_schemas`, `get_tables` and `get_columns`. Gives schemas, tables and columns. | — |

### Tuning the information_schema reader

`dbmeta.informationschema.new(*options)` returns a factory
`build(db, *more_options)`. The options are:

- `with_placeholder` and `with_custom_clauses`, which take `ClauseName`
  keys.
- `with_system_schemas`, `with_current_schema` and
  `with_data_type_formatter`.
- Feature switches: `with_functions`, `with_indexes`, `with_constraints`,
  `with_check_constraints`, `with_sequences`, `with_table_privileges`,
  `with_column_privileges` and `with_usage_privileges`.

The SQL pieces these readers use are public in `dbmeta.infoschema_sql`:
`build_conditions`, `finish_query` and the `*_select` builders.

`dbmeta.mysql.schema_names(reader)` lists every schema name. It returns an
empty list if listing fails.

### Composing readers and running queries

`dbmeta.readers.PluginReader(*readers)` takes each capability from the last
reader that provides it. `supports(name)` reports whether a capability is
present. Calling a capability that no reader provides raises
`NotSupportedError`.

`LoggingReader` runs the queries and accepts these options:

- `with_logger(func)` logs each SQL statement and its arguments.
- `with_dry_run(True)` runs nothing. It raises `NoRowsError`, which most
  listings turn into an empty result.
- `with_timeout(seconds)` interrupts a slow statement and raises
  `TimeoutError`.
- `with_limit(n)` appends `LIMIT n` on readers that have `set_limit`.

## Describe output

`dbmeta.writer.DefaultWriter(reader, out, *options)` writes listings to any
text stream. It uses only the capabilities that the reader has. If a
required capability is missing, it raises `NotSupportedError` with a message
naming the command and the driver name you pass in.

```python
import sys
from dbmeta.writer import DefaultWriter

writer = DefaultWriter(reader, sys.stdout)
writer.list_tables("postgres", "tv", "public.*", False, False)
writer.describe_table_details("postgres", "public.users", True, False)
```

Available methods:

- `list_tables`
- `list_schemas`
- `list_indexes`
- `list_all_dbs`
- `list_privilege_summaries`
- `describe_functions`
- `describe_table_details`, which shows columns, indexes, check and
  foreign-key constraints, referencing tables and triggers, then sequences
  and indexes that match the pattern.
- `show_stats`

Patterns use `*` as a wildcard and may be qualified as `schema.name` (see
`parse_pattern`). Schemas in the writer's system set are hidden unless
`show_system` is true. Change that set with `with_system_schemas`, or
replace the database listing with `with_list_all_dbs(func)`.

`render_table(out, result_set, title, footer)` is the plain-text table
formatter behind all listings.

## What this package does not do

There is no command-line program or interactive shell. The package does not
open database connections, register drivers or provide query completion.
You supply a connection, or an Impala metadata object, and call the readers
and the writer from your own code.