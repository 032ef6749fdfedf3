"""Test configuration and fixtures for EntityQL."""

import os
from typing import Any, Dict, List

import pytest
from dotenv import load_dotenv
from sqlalchemy import event, insert

from entityql import Database, Settings, create_engine
from tests.schema import build_model

# Try to load environment variables from .env file
load_dotenv()


def _test_database_url() -> str:
    return os.getenv('ENTITYQL_TEST_DATABASE_URL') or 'sqlite+aiosqlite:///:memory:'


@pytest.fixture(scope="function")
async def engine():
    """Create a test database engine for each test function."""
    engine = create_engine(Settings(database_url=_test_database_url()))
    yield engine
    await engine.dispose()


@pytest.fixture(scope="function")
def model():
    return build_model()


@pytest.fixture(scope="function")
async def database(engine, model):
    """A Database with a clean set of tables for ``model``."""
    async with engine.begin() as conn:
        await model.drop_all(conn)
        await model.create_all(conn)
    yield Database(engine)
    async with engine.begin() as conn:
        await model.drop_all(conn)


@pytest.fixture(scope="function")
def statements(engine) -> List[str]:
    """Every SQL statement sent to the driver while the test runs."""
    captured: List[str] = []

    def _capture(conn, cursor, statement, parameters, context, executemany):  # noqa: ANN001
        captured.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", _capture)
    yield captured
    event.remove(engine.sync_engine, "before_cursor_execute", _capture)


async def seed_catalogue(model, database) -> Dict[str, Any]:
    """Insert a small catalogue through the public writers and return the ids."""
    engine = database.engine
    run = database.transaction
    book = model.entity('book')
    author = model.entity('author')
    publisher = model.entity('publisher')
    review = model.entity('review')
    tag = model.entity('tag')

    garnier = await run(publisher.insert(engine, {'name': 'Garnier'}))
    atica = await run(publisher.insert(engine, {'name': 'Atica'}))
    dom = await run(book.insert(engine, {
        'title': 'Dom Casmurro',
        'data_criacao': '1899-01-01T00:00:00',
        'price': '10.50',
        'publisher': garnier,
    }))
    quincas = await run(book.insert(engine, {
        'title': 'Quincas Borba',
        'data_criacao': '1891-06-15T12:00:00Z',
        'publisher': garnier,
    }))
    iracema = await run(book.insert(engine, {
        'title': 'Iracema',
        'data_criacao': '1865-05-01T00:00:00',
        'price': 7,
    }))
    machado = await run(author.insert(engine, {
        'name': 'Machado de Assis',
        'born': '1839-06-21',
        'books': [dom, quincas],
    }))
    alencar = await run(author.insert(engine, {'name': 'Jose de Alencar', 'books': [iracema]}))
    classic_review = await run(review.insert(engine, {'body': 'A classic', 'posted_at': '09:30:00', 'book': dom}))
    loose_review = await run(review.insert(engine, {'body': 'No book yet'}))
    classic = await run(tag.insert(engine, {'name': 'classic'}))
    romance = await run(tag.insert(engine, {'name': 'romance'}))
    # tag <-> book is read-only on both sides; link rows directly
    book_tag = model.metadata.tables['book_tag']
    async with engine.begin() as conn:
        await conn.execute(insert(book_tag).values([
            {'tag': classic, 'book': dom},
            {'tag': classic, 'book': iracema},
        ]))
    return {
        'garnier': garnier,
        'atica': atica,
        'dom': dom,
        'quincas': quincas,
        'iracema': iracema,
        'machado': machado,
        'alencar': alencar,
        'classic_review': classic_review,
        'loose_review': loose_review,
        'classic': classic,
        'romance': romance,
    }


@pytest.fixture(scope="function")
async def seeded(model, database) -> Dict[str, Any]:
    return await seed_catalogue(model, database)
