import pytest

from dbmeta import mysql
from dbmeta.models import Filter, NotSupportedError


class FakeCursor:
    def __init__(self, db):
        self.db = db

    def execute(self, sql, params):
        self.db.executed.append((sql, tuple(params)))

    def fetchall(self):
        return self.db.responses.pop(0) if self.db.responses else []

    def close(self):
        pass


class FakeDB:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.executed = []

    def cursor(self):
        return FakeCursor(self)


def test_reader_uses_question_mark_placeholders_and_system_schemas():
    db = FakeDB([])
    mysql.new_reader(db).columns(Filter(schema="app"))
    sql, params = db.executed[0]
    assert "$" not in sql
    assert "table_schema LIKE ?" in sql
    assert params == ("app", "mysql", "information_schema", "performance_schema", "sys")


def test_columns_use_column_type():
    db = FakeDB([])
    mysql.new_reader(db).columns(Filter())
    assert "column_type" in db.executed[0][0]


def test_sequences_not_supported():
    with pytest.raises(NotSupportedError):
        mysql.new_reader(FakeDB()).sequences(Filter())


def test_constraint_columns_skip_check_constraints():
    db = FakeDB([])
    mysql.new_reader(db).constraint_columns(Filter())
    sql = db.executed[0][0]
    assert "constraint_column_usage" not in sql
    assert "AND r.referenced_table_name = f.table_name" in sql


def test_privileges_exclude_usage_view():
    db = FakeDB([])
    mysql.new_reader(db).privilege_summaries(Filter(with_system=True))
    sql = db.executed[0][0]
    assert "usage_privileges" not in sql
    assert "table_privileges" in sql


def test_schema_names_lists_all_schemas():
    db = FakeDB([("app", "def"), ("mysql", "def")])
    assert mysql.schema_names(mysql.new_reader(db)) == ["app", "mysql"]
    _, params = db.executed[0]
    assert params == ()


def test_schema_names_empty_on_failure():
    class Broken:
        def schemas(self, filter):
            raise NotSupportedError()

    assert mysql.schema_names(Broken()) == []


def test_readers_are_independent():
    first = mysql.new_reader(FakeDB())
    second = mysql.new_reader(FakeDB())
    first.set_limit(3)
    assert second.limit == 0
    assert first.limit == 3