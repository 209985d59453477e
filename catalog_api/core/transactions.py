# catalog_api/core/transactions.py
from contextlib import contextmanager
from typing import Iterator

from sqlmodel import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator[None]:
    """
    Context manager that begins a transaction on the given Session.
    If a transaction is already active, start a nested SAVEPOINT (begin_nested).
    Otherwise start a normal transaction (begin).

    Commit happens on a clean exit, rollback on any exception (which is
    re-raised).

    Usage:
        with smart_transaction(session):
            ... DB work ...
    """
    if session.in_transaction():
        cm = session.begin_nested()
    else:
        cm = session.begin()
    with cm:
        yield
