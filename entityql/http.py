"""FastAPI surface over a frozen :class:`~entityql.registry.Model`.

Routes (under ``settings.api_prefix``):
  GET    /{entity}                 search, query string as filters
  GET    /{entity}/{id}            find
  GET    /{entity}/{id}/{relation} relation search
  POST   /{entity}                 insert, returns ``{"id": ...}``
  POST   /{entity}/{id}            update, returns ``{"id": ...}``
  DELETE /{entity}/{id}            delete, returns ``{"id": ...}``
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .config import Settings
from .core.entity import Entity
from .core.relations import Relation
from .db import Database
from .errors import EntityQLError, ParseError
from .registry import Model

logger = logging.getLogger(__name__)


def _entity_or_404(model: Model, name: str) -> Entity:
    entity = model.get(name)
    if entity is None:
        raise HTTPException(status_code=404, detail=f"Unknown entity: {name}")
    return entity


def _key_or_404(entity: Entity, key: str) -> Any:
    """An id that cannot be parsed names no row."""
    try:
        return entity.parse_key(key)
    except ParseError:
        raise HTTPException(status_code=404, detail=f"{entity.name} {key} not found") from None


def _found(result: Any, what: str) -> Any:
    if result is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return result


def create_router(model: Model, database: Database, prefix: str = "/api") -> APIRouter:
    router = APIRouter(prefix=prefix)

    @router.get("/{entity_name}")
    async def search(entity_name: str, request: Request):
        entity = _entity_or_404(model, entity_name)
        params = dict(request.query_params)
        async with database.connect() as connection:
            return await entity.search(connection, params)

    @router.get("/{entity_name}/{key}")
    async def find(entity_name: str, key: str):
        entity = _entity_or_404(model, entity_name)
        async with database.connect() as connection:
            row = await entity.find(connection, _key_or_404(entity, key))
        return _found(row, f"{entity_name} {key}")

    @router.get("/{entity_name}/{key}/{relation_name}")
    async def relation_search(entity_name: str, key: str, relation_name: str, request: Request):
        entity = _entity_or_404(model, entity_name)
        relation = entity.fields.get(relation_name)
        if not isinstance(relation, Relation):
            raise HTTPException(status_code=404, detail=f"Unknown relation: {entity_name}.{relation_name}")
        params = dict(request.query_params)
        async with database.connect() as connection:
            result = await relation.search(connection, _key_or_404(entity, key), params)
        return _found(result, f"{entity_name} {key} {relation_name}")

    @router.post("/{entity_name}", status_code=201)
    async def insert(entity_name: str, payload: Any = Body(...)) -> Dict[str, Any]:
        entity = _entity_or_404(model, entity_name)
        writer = entity.insert(database.engine, payload)
        new_id = await database.transaction(writer)
        return {"id": new_id}

    @router.post("/{entity_name}/{key}")
    async def update(entity_name: str, key: str, delta: Any = Body(...)) -> Dict[str, Any]:
        entity = _entity_or_404(model, entity_name)
        writer = entity.update(database.engine, _key_or_404(entity, key), delta)
        result = await database.transaction(writer)
        return {"id": _found(result, f"{entity_name} {key}")}

    @router.delete("/{entity_name}/{key}")
    async def delete(entity_name: str, key: str) -> Dict[str, Any]:
        entity = _entity_or_404(model, entity_name)
        writer = entity.delete(database.engine, _key_or_404(entity, key))
        result = await database.transaction(writer)
        return {"id": _found(result, f"{entity_name} {key}")}

    return router


async def _entityql_error_handler(request: Request, exc: EntityQLError) -> JSONResponse:
    logger.debug("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app(
    model: Model,
    database: Database,
    settings: Optional[Settings] = None,
    lifespan: Any = None,
) -> FastAPI:
    """Build a FastAPI app serving ``model``. The model is frozen here."""
    settings = settings or Settings.from_env()
    model.freeze()
    app = FastAPI(title="EntityQL", lifespan=lifespan)
    app.state.model = model
    app.state.database = database
    app.add_exception_handler(EntityQLError, _entityql_error_handler)
    app.include_router(create_router(model, database, settings.api_prefix))
    return app
