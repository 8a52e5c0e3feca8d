"""Transactional access to the relational datastore."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Connection, Engine


class Datastore:
    """Hands out pooled connections wrapped in a single transaction.

    ``transaction()`` checks one connection out of the engine's pool, opens a
    transaction, commits when the block exits normally and rolls back when it
    raises. The connection goes back to the pool exactly once on every path.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        with self.engine.connect() as conn:
            with conn.begin():
                yield conn

    def checked_out(self) -> int:
        """Number of pooled connections currently in use."""
        return self.engine.pool.checkedout()
