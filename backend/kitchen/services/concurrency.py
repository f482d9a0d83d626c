# Overview: Service-layer helpers for concurrency-safe stock mutation.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run a multi-step mutation as one unit of work.

    Commits on success; on any exception the session is rolled back before
    the exception propagates, so no partial state is visible to later reads.
    No retry: the caller resubmits.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
