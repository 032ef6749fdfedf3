from __future__ import annotations

from sqlalchemy import func, literal_column
from sqlalchemy.dialects.postgresql import insert as pg_insert

from .base import BaseAdapter


class PostgresAdapter(BaseAdapter):
    name = 'postgres'

    def json_object(self, *args):
        return func.json_build_object(*args)

    def json_array_agg(self, expr):
        return func.json_agg(expr)

    def json_array_coalesce(self, expr):
        return func.coalesce(expr, literal_column("'[]'::json"))

    def insert_ignore(self, table):
        return pg_insert(table).on_conflict_do_nothing()
