import io

import pytest

from dbmeta.models import (
    Catalog,
    Column,
    ColumnStat,
    Constraint,
    ConstraintColumn,
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
    Table,
    Trigger,
    YesNo,
)
from dbmeta.writer import (
    NOT_SUPPORTED_BY_DRIVER,
    RELATION_NOT_FOUND,
    DefaultWriter,
    parse_pattern,
    qualified_identifier,
    render_table,
    with_list_all_dbs,
    with_system_schemas,
)

RECORD_TYPES = {
    "catalogs": Catalog,
    "schemas": Schema,
    "tables": Table,
    "columns": Column,
    "column_stats": ColumnStat,
    "indexes": Index,
    "index_columns": IndexColumn,
    "triggers": Trigger,
    "constraints": Constraint,
    "constraint_columns": ConstraintColumn,
    "functions": Function,
    "function_columns": FunctionColumn,
    "privilege_summaries": PrivilegeSummary,
}


class FakeReader:
    def __init__(self, **data):
        self.data = data
        self.filters = []

    def supports(self, capability):
        return capability in self.data

    def _get(self, capability, f):
        self.filters.append((capability, f))
        if capability not in self.data:
            raise NotSupportedError()
        value = self.data[capability]
        records = value(f) if callable(value) else value
        return ResultSet.for_records(RECORD_TYPES[capability], list(records))

    def catalogs(self, f):
        return self._get("catalogs", f)

    def schemas(self, f):
        return self._get("schemas", f)

    def tables(self, f):
        return self._get("tables", f)

    def columns(self, f):
        return self._get("columns", f)

    def column_stats(self, f):
        return self._get("column_stats", f)

    def indexes(self, f):
        return self._get("indexes", f)

    def index_columns(self, f):
        return self._get("index_columns", f)

    def triggers(self, f):
        return self._get("triggers", f)

    def constraints(self, f):
        return self._get("constraints", f)

    def constraint_columns(self, f):
        return self._get("constraint_columns", f)

    def functions(self, f):
        return self._get("functions", f)

    def function_columns(self, f):
        return self._get("function_columns", f)

    def privilege_summaries(self, f):
        return self._get("privilege_summaries", f)

    def filters_for(self, capability):
        return [f for cap, f in self.filters if cap == capability]


@pytest.mark.parametrize(
    "pattern, expected",
    [
        ("public.foo*", ("public", "foo%")),
        ("foo", ("", "foo")),
        ("a.b.c", ("a", "b.c")),
        ("*", ("", "%")),
    ],
)
def test_parse_pattern(pattern, expected):
    assert parse_pattern(pattern) == expected


def test_qualified_identifier():
    assert qualified_identifier("", "users") == '"users"'
    assert qualified_identifier("public", "users") == '"public.users"'


def test_render_table_alignment_and_footer():
    out = io.StringIO()
    res = ResultSet.for_records(Schema, [Schema("public", "db"), Schema("a_much_longer_schema", "db")])
    render_table(out, res, "List of schemas")
    lines = out.getvalue().splitlines()
    assert lines[0].strip() == "List of schemas"
    header, separator = lines[1], lines[2]
    assert [i for i, ch in enumerate(header) if ch == "|"] == [
        i for i, ch in enumerate(separator) if ch == "+"
    ]
    assert "a_much_longer_schema" in lines[4]
    assert "(2 rows)" in lines


def test_render_table_without_footer_and_with_summary():
    out = io.StringIO()
    res = ResultSet.for_records(Schema, [Schema("s", "c")])
    render_table(out, res, "", footer=False)
    assert "row" not in out.getvalue()

    out = io.StringIO()
    counts = []
    render_table(out, res, "T", footer=lambda o, n: (counts.append(n), o.write("summary!\n")))
    assert counts == [1]
    assert "summary!" in out.getvalue()


def test_list_tables_hides_system_and_passes_types():
    reader = FakeReader(tables=[
        Table(schema="public", name="users", type="BASE TABLE"),
        Table(schema="information_schema", name="tables", type="VIEW"),
    ])
    out = io.StringIO()
    DefaultWriter(reader, out).list_tables("pg", "tv", "", False, False)
    text = out.getvalue()
    assert "users" in text
    assert "information_schema" not in text
    f = reader.filters_for("tables")[0]
    assert f.types == ["TABLE", "BASE TABLE", "SYSTEM TABLE", "SYNONYM",
                       "LOCAL TEMPORARY", "GLOBAL TEMPORARY", "VIEW", "SYSTEM VIEW"]
    assert f.with_system is False


def test_list_tables_verbose_columns():
    reader = FakeReader(tables=[Table(schema="public", name="users", type="table", rows=5, comment="people")])
    out = io.StringIO()
    DefaultWriter(reader, out).list_tables("pg", "t", "public.us*", True, True)
    header = out.getvalue().splitlines()[1]
    for name in ("Schema", "Name", "Type", "Rows", "Size", "Comment"):
        assert name in header
    assert "people" in out.getvalue()
    f = reader.filters_for("tables")[0]
    assert (f.schema, f.name) == ("public", "us%")


def test_list_tables_not_found():
    out = io.StringIO()
    DefaultWriter(FakeReader(tables=[]), out).list_tables("pg", "t", "nothing", False, False)
    assert out.getvalue() == RELATION_NOT_FOUND.format(pattern="nothing") + "\n"


def test_list_tables_not_supported():
    with pytest.raises(NotSupportedError) as info:
        DefaultWriter(FakeReader(), io.StringIO()).list_tables("sqlite3", "t", "", False, False)
    assert str(info.value) == NOT_SUPPORTED_BY_DRIVER.format(command=r"\dt", driver="sqlite3")


def test_with_system_schemas_changes_hidden_schemas():
    reader = FakeReader(schemas=[Schema("hidden", ""), Schema("information_schema", "")])
    out = io.StringIO()
    DefaultWriter(reader, out, with_system_schemas(["hidden"])).list_schemas("pg", "", False, False)
    text = out.getvalue()
    assert "information_schema" in text
    assert "hidden" not in text


def test_with_list_all_dbs_overrides_catalog_listing():
    calls = []
    writer = DefaultWriter(FakeReader(), io.StringIO(), with_list_all_dbs(lambda p, v: calls.append((p, v))))
    writer.list_all_dbs("pg", "db*", True)
    assert calls == [("db*", True)]


def test_list_all_dbs_renders_catalogs():
    out = io.StringIO()
    DefaultWriter(FakeReader(catalogs=[Catalog("maindb")]), out).list_all_dbs("pg", "", False)
    text = out.getvalue()
    assert "List of databases" in text
    assert "maindb" in text


def test_describe_functions_builds_argument_types():
    reader = FakeReader(
        functions=[Function(schema="public", name="add", specific_name="add_1",
                            result_type="integer", type="FUNCTION")],
        function_columns=[
            FunctionColumn(name="", ordinal_position=0, type="OUT", data_type="integer"),
            FunctionColumn(name="a", ordinal_position=1, type="IN", data_type="integer"),
            FunctionColumn(name="b", ordinal_position=2, type="INOUT", data_type="text"),
        ],
    )
    out = io.StringIO()
    DefaultWriter(reader, out).describe_functions("pg", "an", "", False, False)
    assert "a integer, INOUT b text" in out.getvalue()
    assert reader.filters_for("functions")[0].types == ["AGGREGATE", "FUNCTION"]
    assert reader.filters_for("function_columns")[0].parent == "add_1"


def test_describe_table_details():
    constraints = [
        Constraint(table="users", name="c1", type="CHECK", check_clause="age > 0"),
        Constraint(table="users", name="c2", type="CHECK", check_clause="id IS NOT NULL"),
        Constraint(table="users", name="fk1", type="FOREIGN KEY", foreign_table="teams",
                   update_rule="CASCADE", delete_rule="RESTRICT"),
    ]
    reader = FakeReader(
        tables=[Table(schema="public", name="users", type="table")],
        columns=[Column(name="id", data_type="integer", is_nullable=YesNo.NO)],
        indexes=[Index(schema="public", table="users", name="users_pkey",
                       is_primary=YesNo.YES, is_unique=YesNo.YES, type="btree")],
        index_columns=[IndexColumn(name="id", data_type="integer")],
        constraints=lambda f: [] if f.reference else constraints,
        constraint_columns=[ConstraintColumn(name="team_id", foreign_name="id")],
        triggers=[Trigger(name="trg", definition="BEFORE INSERT")],
    )
    out = io.StringIO()
    DefaultWriter(reader, out).describe_table_details("pg", "public.users", False, False)
    text = out.getvalue()
    assert 'table "public.users"' in text
    assert '  "users_pkey" PRIMARY_KEY, UNIQUE, btree (id)' in text
    assert '  "c1" CHECK (age > 0)' in text
    assert "IS NOT NULL" not in text
    assert ('  "fk1" FOREIGN KEY (team_id) REFERENCES teams(id) ON UPDATE CASCADE ON DELETE RESTRICT'
            in text)
    assert "Referenced by:" not in text
    assert '  "trg" BEFORE INSERT' in text
    assert 'Index "public.users_pkey"' in text
    assert "primary key, btree, for table users" in text


def test_describe_table_details_not_found():
    out = io.StringIO()
    reader = FakeReader(tables=[], columns=[])
    DefaultWriter(reader, out).describe_table_details("pg", "ghost", False, False)
    assert out.getvalue() == RELATION_NOT_FOUND.format(pattern="ghost") + "\n"


def test_list_indexes_verbose():
    reader = FakeReader(indexes=[Index(schema="public", table="users", name="users_pkey",
                                       is_primary=YesNo.YES, is_unique=YesNo.NO, type="btree")])
    out = io.StringIO()
    DefaultWriter(reader, out).list_indexes("pg", "", True, False)
    text = out.getvalue()
    assert "Primary?" in text and "Unique?" in text
    assert "users_pkey" in text


def test_show_stats_distinct_fraction():
    reader = FakeReader(
        tables=[Table(schema="public", name="users", rows=200)],
        column_stats=[ColumnStat(schema="public", table="users", name="id", num_distinct=100,
                                 top_n=["x", "y"], top_n_freqs=[0.25, 0.75])],
    )
    out = io.StringIO()
    DefaultWriter(reader, out).show_stats("pg", "", "public.users", True, 1)
    text = out.getvalue()
    assert "0.5000" in text
    assert "Top N values freqs" in text
    assert reader.filters_for("column_stats")[0].types == ["basic", "extended"]


def test_list_privilege_summaries():
    privileges = ObjectPrivileges([ObjectPrivilege("alice", "bob", "SELECT", True)])
    reader = FakeReader(privilege_summaries=[
        PrivilegeSummary(schema="public", name="users", object_type="TABLE", object_privileges=privileges),
    ])
    out = io.StringIO()
    DefaultWriter(reader, out).list_privilege_summaries("pg", "", False)
    assert str(privileges) in out.getvalue()
    assert "Access privileges" in out.getvalue()
    assert "SEQUENCE" in reader.filters_for("privilege_summaries")[0].types