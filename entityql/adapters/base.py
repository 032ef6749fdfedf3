from __future__ import annotations


class BaseAdapter:
    """Dialect-specific pieces of statement construction.

    Keys passed to :meth:`json_object` are SQL string literals and values are
    column expressions, alternating.
    """

    name = 'base'

    def json_object(self, *args):
        raise NotImplementedError

    def json_array_agg(self, expr):
        raise NotImplementedError

    def json_array_coalesce(self, expr):
        raise NotImplementedError

    def insert_ignore(self, table):
        """INSERT that silently skips rows violating a unique/primary key."""
        raise NotImplementedError
