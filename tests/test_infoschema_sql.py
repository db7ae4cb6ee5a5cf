import pytest

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
from dbmeta.models import Filter, NotSupportedError

TABLE_FORMATS = Formats(
    catalog="table_catalog LIKE %s",
    schema="table_schema LIKE %s",
    not_schemas="table_schema NOT IN (%s)",
    parent="table_name LIKE %s",
    name="table_name LIKE %s",
    types="table_type IN (%s)",
)


def question(_n):
    return "?"


def test_dollar_placeholder():
    assert dollar_placeholder(3) == "$3"


def test_default_clauses_values_and_freshness():
    clauses = default_clauses()
    assert clauses[ClauseName.COLUMNS_DATA_TYPE] == "data_type"
    assert clauses[ClauseName.PRIVILEGES_GRANTOR] == "grantor"
    assert ClauseName.CONSTRAINT_JOIN_COND not in clauses
    clauses[ClauseName.COLUMNS_DATA_TYPE] = "column_type"
    assert default_clauses()[ClauseName.COLUMNS_DATA_TYPE] == "data_type"


def test_clause_name_value():
    name = ClauseName("columns.column_size")
    assert name is ClauseName.COLUMNS_COLUMN_SIZE
    assert default_clauses()[name] == (
        "COALESCE(character_maximum_length, numeric_precision, datetime_precision, 0)"
    )


def test_empty_filter_gives_no_conditions():
    conds, vals = build_conditions(dollar_placeholder, 1, Filter(), TABLE_FORMATS, [], "")
    assert conds == []
    assert vals == []


def test_catalog_and_schema_conditions():
    conds, vals = build_conditions(
        dollar_placeholder, 1, Filter(catalog="cat", schema="sch", with_system=True), TABLE_FORMATS, [], ""
    )
    assert vals == ["cat", "sch"]
    assert conds[0] == "table_catalog LIKE $1"
    assert len(conds) == 2


def test_system_schemas_skip_requested_schema():
    conds, vals = build_conditions(
        question,
        1,
        Filter(schema="pg_catalog"),
        TABLE_FORMATS,
        ["information_schema", "pg_catalog"],
        "",
    )
    assert vals == ["pg_catalog", "information_schema"]
    assert len(conds) == 2
    assert "NOT IN" in conds[1]


def test_with_system_omits_exclusion():
    conds, vals = build_conditions(
        question, 1, Filter(with_system=True), TABLE_FORMATS, ["information_schema"], ""
    )
    assert not any("NOT IN" in c for c in conds)
    assert vals == []


def test_only_visible_uses_current_schema_without_binding():
    conds, vals = build_conditions(
        question, 1, Filter(only_visible=True, with_system=True), TABLE_FORMATS, [], "CURRENT_SCHEMA"
    )
    assert vals == []
    assert len(conds) == 1
    assert "CURRENT_SCHEMA" in conds[0]


def test_types_bind_each_value():
    types = ["BASE TABLE", "VIEW", "SYSTEM VIEW"]
    conds, vals = build_conditions(
        question, 1, Filter(types=types, with_system=True), TABLE_FORMATS, [], ""
    )
    assert vals == types
    assert conds[0].count("?") == len(types)


def test_base_param_offsets_numbering():
    conds, vals = build_conditions(
        dollar_placeholder, 5, Filter(name="x", with_system=True), TABLE_FORMATS, [], ""
    )
    assert vals == ["x"]
    assert conds[-1].endswith(dollar_placeholder(5))


def test_missing_format_ignores_field():
    conds, vals = build_conditions(
        question, 1, Filter(reference="other", with_system=True), TABLE_FORMATS, [], ""
    )
    assert conds == []
    assert vals == []


def test_finish_query_without_extras_is_unchanged():
    assert finish_query("SELECT 1", [], "", 0) == "SELECT 1"


def test_finish_query_with_all_parts():
    sql = finish_query("SELECT 1", ["a", "b"], "x", 10)
    assert sql == "SELECT 1\nWHERE a AND b\nORDER BY x\nLIMIT 10"


def test_columns_select_uses_clauses():
    clauses = default_clauses()
    clauses[ClauseName.COLUMNS_DATA_TYPE] = "column_type"
    sql = columns_select(clauses)
    assert sql.startswith("SELECT\n  table_catalog")
    assert sql.endswith(" FROM information_schema.columns\n")
    assert "column_type" in sql
    assert clauses[ClauseName.COLUMNS_CHAR_OCTET_LENGTH] in sql


def test_functions_select_contains_security_clause():
    clauses = default_clauses()
    sql = functions_select(clauses)
    assert "information_schema.routines" in sql
    assert clauses[ClauseName.FUNCTIONS_SECURITY_TYPE] in sql


def test_function_columns_select_source():
    clauses = default_clauses()
    clauses[ClauseName.FUNCTION_COLUMNS_NUMERIC_PREC_RADIX] = "10"
    sql = function_columns_select(clauses)
    assert sql.endswith(" FROM information_schema.parameters\n")
    assert "\n  10,\n" in sql


def test_constraints_select_join_condition():
    clauses = default_clauses()
    without = constraints_select(clauses)
    assert "None" not in without
    assert "information_schema.check_constraints" in without
    clauses[ClauseName.CONSTRAINT_JOIN_COND] = "AND r.referenced_table_name = f.table_name"
    with_cond = constraints_select(clauses)
    assert "AND r.referenced_table_name = f.table_name" in with_cond
    assert "AND r.referenced_table_name = f.table_name" not in without


def test_sequences_select_increment_override():
    clauses = default_clauses()
    clauses[ClauseName.SEQUENCE_COLUMNS_INCREMENT] = "increment_by"
    sql = sequences_select(clauses)
    assert "increment_by" in sql
    assert sql.endswith(" FROM information_schema.sequences\n")


def test_privileges_select_unions_enabled_views():
    clauses = default_clauses()
    sql = privileges_select(clauses, True, True, True)
    assert sql.startswith("SELECT * FROM (\n")
    assert sql.endswith("\n) AS subquery")
    assert sql.count("UNION ALL") == 2
    assert "information_schema.usage_privileges" in sql


def test_privileges_select_single_view():
    sql = privileges_select(default_clauses(), True, False, False)
    assert "UNION ALL" not in sql
    assert "information_schema.column_privileges" not in sql
    assert "information_schema.table_privileges" in sql


def test_privileges_select_grantor_override():
    clauses = default_clauses()
    clauses[ClauseName.PRIVILEGES_GRANTOR] = "''"
    sql = privileges_select(clauses, False, True, False)
    assert clauses[ClauseName.PRIVILEGES_GRANTOR] + " AS grantor" in sql


def test_privileges_select_none_enabled_raises():
    with pytest.raises(NotSupportedError):
        privileges_select(default_clauses(), False, False, False)