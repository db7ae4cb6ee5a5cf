import pytest

from dbmeta.models import (
    Catalog,
    Column,
    ColumnPrivilege,
    ColumnPrivileges,
    Constraint,
    Filter,
    Function,
    Index,
    NotSupportedError,
    ObjectPrivilege,
    ObjectPrivileges,
    PrivilegeSummary,
    ResultSet,
    Schema,
    Sequence,
    Table,
    Trigger,
    WrongNumberOfArgumentsError,
    YesNo,
)


def _tables():
    return [
        Table(schema="public", name="a", type="TABLE"),
        Table(schema="information_schema", name="b", type="VIEW"),
        Table(schema="public", name="c", type="TABLE"),
    ]


def test_filter_defaults():
    f = Filter()
    assert (f.catalog, f.schema, f.name, f.types, f.with_system) == ("", "", "", [], False)


def test_yesno_compares_with_strings():
    assert YesNo("YES") is YesNo.YES
    assert str(YesNo("NO")) == "NO"
    idx = Index(is_primary=YesNo("YES"), is_unique=YesNo(""))
    assert idx.values()[4] == "YES"
    assert idx.values()[5] == ""


def test_catalog_values_and_get_catalog():
    c = Catalog(catalog="db1")
    assert c.values() == ["db1"]
    assert c.get_catalog() is c


def test_schema_values_order():
    assert Schema(schema="s", catalog="c").values() == ["s", "c"]


def test_column_values_order():
    col = Column(catalog="c", schema="s", table="t", name="n", data_type="int",
                 is_nullable=YesNo.YES, default="0", column_size=4,
                 decimal_digits=1, num_prec_radix=10, char_octet_length=8)
    assert col.values() == ["c", "s", "t", "n", "int", YesNo.YES, "0", 4, 1, 10, 8]


def test_index_values_put_name_before_table():
    idx = Index(schema="s", table="t", name="i", type="btree")
    assert idx.values()[2:4] == ["i", "t"]


def test_function_values_skip_specific_name():
    fn = Function(name="f", specific_name="f_1")
    assert "f_1" not in fn.values()
    assert len(fn.values()) == len(Function.COLUMNS)


def test_sequence_values_match_columns():
    seq = Sequence(data_type="bigint", start="1", min="1", max="9", increment="1", cycles=YesNo.NO)
    assert seq.values() == ["bigint", "1", "1", "9", "1", YesNo.NO]


def test_trigger_values():
    t = Trigger(schema="s", table="t", name="tr", definition="def")
    assert t.values() == ["", "s", "t", "tr", "def"]


def test_privilege_summary_values_include_privileges():
    obj = ObjectPrivileges([ObjectPrivilege("alice", "", "SELECT", False)])
    summary = PrivilegeSummary(schema="s", name="t", object_type="TABLE", object_privileges=obj)
    assert summary.values()[4] is obj
    assert len(summary.values()) == 6


def test_object_privileges_str():
    privs = ObjectPrivileges([
        ObjectPrivilege("alice", "bob", "SELECT", True),
        ObjectPrivilege("alice", "bob", "UPDATE", False),
        ObjectPrivilege("carol", "", "INSERT", False),
    ])
    assert str(privs) == "alice=SELECT*,UPDATE/bob\ncarol=INSERT"


def test_column_privileges_str():
    privs = ColumnPrivileges([
        ColumnPrivilege("id", "alice", "bob", "SELECT", False),
        ColumnPrivilege("id", "carol", "", "UPDATE", True),
        ColumnPrivilege("name", "alice", "bob", "INSERT", False),
    ])
    assert str(privs) == "id:\n  alice=SELECT/bob\n  carol=UPDATE*\nname:\n  alice=INSERT/bob"


def test_empty_privileges_render_empty():
    assert str(ObjectPrivileges()) == ""
    assert str(ColumnPrivileges()) == ""


def test_privilege_sorting_ignores_grantable():
    privs = [
        ObjectPrivilege("b", "x", "SELECT"),
        ObjectPrivilege("a", "y", "UPDATE"),
        ObjectPrivilege("a", "x", "UPDATE", True),
        ObjectPrivilege("a", "x", "DELETE"),
    ]
    ordered = sorted(privs)
    assert [(p.grantee, p.grantor, p.privilege_type) for p in ordered] == [
        ("a", "x", "DELETE"), ("a", "x", "UPDATE"), ("a", "y", "UPDATE"), ("b", "x", "SELECT"),
    ]


def test_column_privilege_sorting_by_column_first():
    privs = [ColumnPrivilege("z", "a"), ColumnPrivilege("a", "z")]
    assert [p.column for p in sorted(privs)] == ["a", "z"]


def test_for_records_uses_default_columns():
    rs = ResultSet.for_records(Table, _tables())
    assert rs.columns() == ["Catalog", "Schema", "Name", "Type", "Rows", "Size", "Comment"]


def test_cursor_walks_all_records():
    rs = ResultSet.for_records(Table, _tables())
    names = []
    while rs.next():
        names.append(rs.get().name)
    assert names == ["a", "b", "c"]
    assert rs.next() is False


def test_filter_affects_len_iteration_and_cursor():
    rs = ResultSet.for_records(Table, _tables())
    rs.set_filter(lambda t: t.schema != "information_schema")
    assert len(rs) == 2
    assert [t.name for t in rs] == ["a", "c"]
    seen = []
    while rs.next():
        seen.append(rs.get().name)
    assert seen == ["a", "c"]


def test_reset_restarts_cursor():
    rs = ResultSet.for_records(Table, _tables())
    rs.next()
    rs.next()
    rs.reset()
    assert rs.next()
    assert rs.get().name == "a"


def test_get_without_cursor_raises():
    rs = ResultSet.for_records(Table, _tables())
    with pytest.raises(IndexError):
        rs.get()


def test_records_are_shared_and_mutable():
    rs = ResultSet.for_records(Function, [Function(name="f")])
    rs.next()
    rs.get().arg_types = "int"
    rs.reset()
    rs.next()
    assert rs.get().arg_types == "int"


def test_scan_with_projection():
    rs = ResultSet.for_records(Table, _tables())
    rs.set_columns(["Schema", "Name"])
    rs.set_scan_values(lambda t: [t.schema, t.name])
    rs.next()
    assert rs.scan() == ["public", "a"]
    assert list(rs.rows()) == [["public", "a"], ["information_schema", "b"], ["public", "c"]]


def test_scan_default_values():
    rs = ResultSet.for_records(Schema, [Schema("s", "c")])
    assert rs.next()
    assert rs.scan() == ["s", "c"]


def test_scan_wrong_number_raises():
    rs = ResultSet.for_records(Table, _tables())
    rs.set_scan_values(lambda t: [t.name])
    rs.next()
    with pytest.raises(WrongNumberOfArgumentsError):
        rs.scan()


def test_constraint_default_values_do_not_match_columns():
    rs = ResultSet.for_records(Constraint, [Constraint(name="c")])
    with pytest.raises(WrongNumberOfArgumentsError):
        list(rs.rows())


def test_not_supported_error_message():
    err = NotSupportedError()
    assert isinstance(err, Exception)
    assert "not supported" in str(err)


def test_empty_result_set():
    rs = ResultSet.for_records(Catalog, [])
    assert len(rs) == 0
    assert rs.next() is False
    assert list(rs.rows()) == []