"""FastAPI app serving a small book/author catalogue through EntityQL.

Run this file to start a local server, then try
http://127.0.0.1:8000/api/book and http://127.0.0.1:8000/api/author/1/books

Environment variables:
  ENTITYQL_DATABASE_URL  SQLAlchemy async URL, defaults to in-memory SQLite
  ENTITYQL_SQL_ECHO      set to '1' to log SQL
  DEMO_SEED              set to '0' to skip demo data seeding (default '1')
"""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from entityql import Database, DateTime, Int, Model, Settings, String, create_engine
from entityql.http import create_app

logger = logging.getLogger(__name__)


def build_model() -> Model:
    model = Model()
    book = model.define("book", {
        "id": Int.computed(),
        "title": String,
        "data_criacao": DateTime,
    }, label="title")
    author = model.define("author", {
        "id": Int.computed(),
        "name": String,
    }, label="name")
    author.has_many_through("books", book, "authors", "book_author")
    return model.freeze()


async def seed(model: Model, database: Database) -> None:
    book = model.entity("book")
    author = model.entity("author")
    engine = database.engine
    first = await database.transaction(book.insert(engine, {"title": "Dom Casmurro", "data_criacao": "1899-01-01T00:00:00"}))
    second = await database.transaction(book.insert(engine, {"title": "Quincas Borba", "data_criacao": "1891-01-01T00:00:00"}))
    await database.transaction(author.insert(engine, {"name": "Machado de Assis", "books": [first, second]}))
    logger.info("Seeded demo data")


settings = Settings.from_env()
model = build_model()
database = Database(create_engine(settings))


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with database.engine.begin() as connection:
        await model.create_all(connection)
    if os.getenv("DEMO_SEED", "1") != "0":
        await seed(model, database)
    yield
    await database.dispose()


app = create_app(model, database, settings, lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="127.0.0.1", port=int(os.getenv("PORT", "8000")))
