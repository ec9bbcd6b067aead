"""
Persistence Gateway
Tenant-scoped queries, row locks and transaction boundaries over a session
"""
from typing import Any, Callable, Iterable, List, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from bizops.core.exceptions import BizOpsException, InternalError, NotFoundError
from bizops.core.logging import get_logger

logger = get_logger("database")

T = TypeVar("T")

# SQLSTATE codes that mean "try the whole transaction again"
RETRYABLE_SQLSTATES = {"40001", "40P01"}


def is_serialization_failure(exc: BaseException) -> bool:
    """True when the driver reports a serialization failure or deadlock"""
    if not isinstance(exc, DBAPIError):
        return False
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    return code in RETRYABLE_SQLSTATES


class PersistenceGateway:
    """
    Single entry point the engines use to reach the database.

    Every read goes through ``scoped`` so that rows of another organization
    are never visible. Writes are grouped by ``within_transaction``.
    """

    def __init__(self, db: Session):
        self.db = db

    def scoped(self, model, organization_id: str):
        """Query over ``model`` restricted to one organization, hiding soft-deleted rows"""
        query = self.db.query(model).filter(model.organization_id == organization_id)
        if hasattr(model, "deleted_at"):
            query = query.filter(model.deleted_at.is_(None))
        return query

    def get_scoped(self, model, organization_id: str, id: Optional[str], lock: bool = False):
        if not id:
            return None
        query = self.scoped(model, organization_id).filter(model.id == id)
        if lock:
            query = query.with_for_update()
        return query.first()

    def require_scoped(self, model, organization_id: str, id: Optional[str],
                       label: Optional[str] = None, lock: bool = False):
        """Like ``get_scoped`` but raises NotFoundError when the row is absent"""
        row = self.get_scoped(model, organization_id, id, lock=lock)
        if row is None:
            raise NotFoundError(f"{label or model.__name__} not found")
        return row

    def lock_rows(self, model, organization_id: str, ids: Iterable[str]) -> dict:
        """
        Lock several rows FOR UPDATE in ascending id order.

        A fixed lock order keeps two transactions touching the same rows
        from deadlocking each other.

        Returns:
            Mapping of id to locked row (missing ids are absent)
        """
        wanted = sorted(set(i for i in ids if i))
        if not wanted:
            return {}
        rows = (
            self.scoped(model, organization_id)
            .filter(model.id.in_(wanted))
            .order_by(model.id)
            .with_for_update()
            .all()
        )
        return {row.id: row for row in rows}

    def add(self, obj):
        self.db.add(obj)
        return obj

    def add_all(self, objs: List[Any]):
        self.db.add_all(objs)

    def flush(self):
        self.db.flush()

    def next_sequence(self, organization_id: str, name: str) -> int:
        """Return the next value of a per-organization document counter"""
        from bizops.models.organization import DocumentSequence

        seq = (
            self.db.query(DocumentSequence)
            .filter(
                DocumentSequence.organization_id == organization_id,
                DocumentSequence.name == name,
            )
            .with_for_update()
            .first()
        )
        if seq is None:
            seq = DocumentSequence(organization_id=organization_id, name=name, next_value=1)
            self.db.add(seq)
        value = seq.next_value
        seq.next_value = value + 1
        self.db.flush()
        return value

    def within_transaction(self, fn: Callable[[], T], retries: int = 1) -> T:
        """
        Run ``fn`` in a transaction, committing on success.

        Any failure rolls the whole unit back. Serialization failures and
        deadlocks are retried up to ``retries`` attempts in total. Domain
        exceptions propagate unchanged; other database errors surface as
        InternalError.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                result = fn()
                self.db.commit()
                return result
            except BizOpsException:
                self.db.rollback()
                raise
            except SQLAlchemyError as e:
                self.db.rollback()
                if is_serialization_failure(e) and attempt < retries:
                    logger.warning(f"Serialization failure, retrying ({attempt}/{retries})")
                    continue
                logger.error(f"Transaction failed: {e}", exc_info=True)
                raise InternalError("Database error") from e
            except Exception:
                self.db.rollback()
                raise
