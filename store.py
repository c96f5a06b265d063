"""Transactional persistence used by the scheduling and booking services.

Every correctness-critical read-check-write runs through ``atomic``, which
wraps the work in one database transaction (the engine runs at SERIALIZABLE
isolation), commits it, and translates storage-level failures:

* constraint violations become the caller's conflict error,
* transient serialization/lock failures are retried a few times and then
  reported as the caller's conflict error (or as ``InternalError`` when
  the operation has no conflict kind, like cancel and delete),
* anything else becomes an opaque ``InternalError``.
"""

import time

from flask import current_app
from loguru import logger
from sqlalchemy import delete as sql_delete
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from errors import DomainError, InternalError
from models import MAX_INTEGER, db

TRANSIENT_SQLSTATES = {"40001", "40P01"}


def is_transient(exc: DBAPIError) -> bool:
    """True for serialization failures, deadlocks and SQLite lock contention."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in TRANSIENT_SQLSTATES:
        return True
    return "database is locked" in str(orig)


class TransactionalStore:

    def __init__(self, session=None, max_attempts=3, retry_backoff=0.05):
        self.session = session if session is not None else db.session
        self.max_attempts = max(1, int(max_attempts))
        self.retry_backoff = retry_backoff

    @classmethod
    def from_app(cls):
        return cls(
            db.session,
            max_attempts=current_app.config.get("TX_MAX_ATTEMPTS", 3),
            retry_backoff=current_app.config.get("TX_RETRY_BACKOFF", 0.05),
        )

    def atomic(self, work, conflict, message, on_integrity_error=None):
        """Run ``work(self)`` in a single transaction and commit it.

        ``conflict`` is the ErrorKind reported when the storage layer refuses
        the write or when a transient failure persists past the retry budget.
        Pass None for operations where neither outcome says anything about
        the data (cancel, delete): both then surface as ``InternalError``.
        ``on_integrity_error`` may map a specific IntegrityError to a different
        DomainError (return None to fall back to ``conflict``).
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = work(self)
                self.session.commit()
                return result
            except DomainError:
                self.session.rollback()
                raise
            except IntegrityError as exc:
                self.session.rollback()
                error = on_integrity_error(exc) if on_integrity_error else None
                if error is None and conflict is None:
                    logger.error(f"Unexpected constraint violation: {exc.orig}")
                    raise InternalError("storage failure") from exc
                if error is None:
                    error = DomainError(conflict, message)
                logger.info(f"Storage constraint rejected write: {error.kind.value} ({exc.orig})")
                raise error from exc
            except DBAPIError as exc:
                self.session.rollback()
                if not is_transient(exc):
                    logger.error(f"Unexpected storage failure: {exc}")
                    raise InternalError("storage failure") from exc
                logger.warning(f"Transient storage conflict, attempt {attempt}/{self.max_attempts}: {exc.orig}")
                if attempt < self.max_attempts:
                    time.sleep(self.retry_backoff * attempt)
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error(f"Unexpected storage failure: {exc}")
                raise InternalError("storage failure") from exc
            except Exception:
                self.session.rollback()
                raise

        if conflict is None:
            logger.error(f"Storage still contended after {self.max_attempts} attempts")
            raise InternalError("storage contention")
        # Could not prove there is no conflict: report one.
        raise DomainError(conflict, message)

    # Primitives. Call these from inside ``atomic``.

    def insert_if_no_conflict(self, record, conflict_query=None):
        """Add ``record`` unless ``conflict_query`` matches a row.

        Returns the flushed record, or None when a conflicting row was found.
        A constraint violation during the flush propagates to ``atomic``.
        """
        if conflict_query is not None and self.exists(conflict_query):
            return None
        self.session.add(record)
        self.session.flush()
        return record

    def exists(self, query) -> bool:
        with self.session.no_autoflush:
            return bool(self.session.execute(select(query.exists())).scalar())

    def find_by_id(self, model, ident):
        # Integer keys outside the column range cannot exist and overflow the driver
        if isinstance(ident, int) and not 0 < ident <= MAX_INTEGER:
            return None
        return self.session.get(model, ident)

    def find_by_composite_key(self, model, **key):
        return self.session.execute(select(model).filter_by(**key)).scalars().first()

    def list_where(self, model, *criteria, order_by=()):
        stmt = select(model).where(*criteria).order_by(*order_by)
        return list(self.session.execute(stmt).scalars())

    def delete(self, record):
        self.session.delete(record)
        self.session.flush()

    def delete_where(self, model, *criteria) -> int:
        result = self.session.execute(
            sql_delete(model).where(*criteria).execution_options(synchronize_session=False)
        )
        return result.rowcount
