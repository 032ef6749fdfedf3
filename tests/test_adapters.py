import logging

import pytest
from sqlalchemy import column
from sqlalchemy.dialects import postgresql, sqlite

from entityql.adapters import PostgresAdapter, SQLiteAdapter, get_adapter
from tests.schema import build_model


@pytest.mark.parametrize("dialect,cls", [
    ("sqlite", SQLiteAdapter),
    ("postgresql", PostgresAdapter),
])
def test_get_adapter_matrix(dialect, cls):
    assert isinstance(get_adapter(dialect), cls)


def test_unknown_dialect_falls_back_to_sqlite(caplog):
    with caplog.at_level(logging.WARNING, logger='entityql.adapters'):
        adapter = get_adapter('oracle')
    assert isinstance(adapter, SQLiteAdapter)
    assert 'oracle' in caplog.text
    [record] = [r for r in caplog.records if r.name == 'entityql.adapters']
    assert record.args == ('oracle',)


def test_json_functions_per_dialect():
    pg = PostgresAdapter()
    sql = str(pg.json_array_coalesce(pg.json_array_agg(column('x'))).compile(dialect=postgresql.dialect()))
    assert sql == "coalesce(json_agg(x), '[]'::json)"

    lite = SQLiteAdapter()
    sql = str(lite.json_array_coalesce(lite.json_array_agg(column('x'))).compile(dialect=sqlite.dialect()))
    assert sql.startswith('coalesce(json_group_array(x), ')


@pytest.mark.parametrize("adapter,dialect", [
    (PostgresAdapter(), postgresql.dialect()),
    (SQLiteAdapter(), sqlite.dialect()),
])
def test_insert_ignore_skips_conflicts(adapter, dialect):
    table = build_model().metadata.tables['book_author']
    stmt = adapter.insert_ignore(table).values([{'author': 1, 'book': 2}])
    sql = str(stmt.compile(dialect=dialect))
    assert sql.startswith('INSERT INTO book_author')
    assert 'ON CONFLICT DO NOTHING' in sql
