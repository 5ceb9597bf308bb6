"""
Per-user blob stores.

A blob store keeps one serialized document per namespace for a single user
(`prompt_history`, `search_history`). The SQL store persists to `user_blobs`;
the memory store backs anonymous sessions and tests.
"""

from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from promptlib.core.database import user_blobs


class BlobStoreError(Exception):
    """Raised when a blob cannot be read or written."""
    pass


class BlobStore(Protocol):
    def read(self, namespace: str) -> Optional[str]:
        """Return the stored payload or None if nothing was written yet."""
        ...

    def write(self, namespace: str, payload: str) -> None:
        """
        Replace the payload for `namespace`.

        Raises:
            BlobStoreError: if the write did not persist
        """
        ...


class MemoryBlobStore:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.blobs: Dict[str, str] = dict(initial or {})

    def read(self, namespace: str) -> Optional[str]:
        return self.blobs.get(namespace)

    def write(self, namespace: str, payload: str) -> None:
        self.blobs[namespace] = payload


class SqlBlobStore:
    """Blob store over the `user_blobs` table for one user."""

    def __init__(self, session: Session, user_id: str):
        self.session = session
        self.user_id = user_id

    def _where(self, namespace: str):
        return (user_blobs.c.user_id == self.user_id) & (user_blobs.c.namespace == namespace)

    def read(self, namespace: str) -> Optional[str]:
        try:
            row = self.session.execute(
                select(user_blobs.c.payload).where(self._where(namespace))
            ).first()
        except SQLAlchemyError as e:
            raise BlobStoreError(f"read {namespace} failed: {e}") from e
        return row[0] if row else None

    def write(self, namespace: str, payload: str) -> None:
        now = datetime.now(timezone.utc)
        try:
            exists = self.session.execute(
                select(user_blobs.c.id).where(self._where(namespace))
            ).first()
            if exists:
                self.session.execute(
                    update(user_blobs).where(self._where(namespace)).values(payload=payload, updated_at=now)
                )
            else:
                self.session.execute(
                    insert(user_blobs).values(
                        user_id=self.user_id, namespace=namespace, payload=payload, updated_at=now
                    )
                )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise BlobStoreError(f"write {namespace} failed: {e}") from e
