from __future__ import annotations

from sqlalchemy import func, literal
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .base import BaseAdapter


class SQLiteAdapter(BaseAdapter):
    name = 'sqlite'

    def json_object(self, *args):
        return func.json_object(*args)

    def json_array_agg(self, expr):
        return func.json_group_array(expr)

    def json_array_coalesce(self, expr):
        # Bound literal avoids implicit string coercion warnings
        return func.coalesce(expr, literal('[]'))

    def insert_ignore(self, table):
        return sqlite_insert(table).on_conflict_do_nothing()
