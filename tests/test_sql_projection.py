import pytest
from sqlalchemy.dialects import postgresql, sqlite

from entityql import UnknownNameError
from entityql.adapters import PostgresAdapter, SQLiteAdapter
from tests.schema import build_model


def _compile(stmt, dialect):
    compiled = stmt.compile(dialect=dialect)
    return str(compiled), compiled.params


def test_book_projection_on_postgres():
    model = build_model()
    context, stmt = model.entity('book').build_select(PostgresAdapter(), {'title': 'Dom Casmurro'})
    sql, params = _compile(stmt, postgresql.dialect())

    assert 'json_build_object(' in sql
    assert 'json_agg(' in sql
    assert "'[]'::json" in sql
    assert 'LEFT OUTER JOIN publisher AS publisher_1' in sql
    assert sql.rstrip().endswith('ORDER BY book.id ASC')
    for label in ('authors', 'publisher', 'tags'):
        assert f'AS {label}' in sql, label
    # Filter values are bound, never inlined
    assert 'Dom Casmurro' not in sql
    assert 'Dom Casmurro' in params.values()
    assert set(context.loaders) == {'data_criacao', 'authors', 'publisher', 'tags'}


def test_book_projection_on_sqlite():
    model = build_model()
    _, stmt = model.entity('book').build_select(SQLiteAdapter(), {'price:ne': '1.5'})
    sql, params = _compile(stmt, sqlite.dialect())

    assert 'json_object(' in sql
    assert 'json_group_array(' in sql
    assert 'coalesce(' in sql
    assert 'book.price != ?' in sql
    assert 'json_build_object' not in sql


def test_unlabeled_target_is_left_out_of_projection():
    model = build_model()
    _, stmt = model.entity('book').build_select(SQLiteAdapter())
    sql, _ = _compile(stmt, sqlite.dialect())
    assert 'review' not in sql.lower()


def test_reference_to_labeled_target_projects_value_and_label():
    model = build_model()
    _, stmt = model.entity('review').build_select(PostgresAdapter())
    sql, _ = _compile(stmt, postgresql.dialect())
    assert 'LEFT OUTER JOIN book AS book_1 ON book_1.id = review.book' in sql
    assert 'book_1.title' in sql
    assert 'json_agg' not in sql


def test_through_projection_joins_the_link_table():
    model = build_model()
    _, stmt = model.entity('author').build_select(PostgresAdapter())
    sql, _ = _compile(stmt, postgresql.dialect())
    assert 'JOIN book_author AS book_author_1' in sql
    assert 'book_author_1.author = author.id' in sql


def test_filter_on_null_renders_is_null():
    model = build_model()
    _, stmt = model.entity('book').build_select(SQLiteAdapter(), {'price': None, 'publisher:ne': None})
    sql, _ = _compile(stmt, sqlite.dialect())
    assert 'book.price IS NULL' in sql
    assert 'book.publisher IS NOT NULL' in sql


@pytest.mark.parametrize("params", [
    {'nope': '1'},
    {'title:like': 'Dom%'},
    {'authors': '1'},
])
def test_bad_filters_fail_before_building(params):
    model = build_model()
    with pytest.raises(UnknownNameError):
        model.entity('book').build_select(SQLiteAdapter(), params)
