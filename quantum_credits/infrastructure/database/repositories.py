"""SQL-backed key/value store"""

from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from quantum_credits.domain.store import KeyValueStore
from quantum_credits.infrastructure.database.models import StoreEntry


class SqlKeyValueStore(KeyValueStore):
    """
    Store entries as rows keyed by (namespace, key).

    Every call runs in its own short transaction. compare_and_set is a
    conditional UPDATE, so two processes sharing the database cannot both
    win against the same expected value.
    """

    def __init__(self, session_factory: sessionmaker, namespace: str = "default"):
        self.session_factory = session_factory
        self.namespace = namespace

    def get(self, key: str) -> Optional[str]:
        with self.session_factory() as db:
            entry = db.get(StoreEntry, (self.namespace, key))
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            db.merge(StoreEntry(namespace=self.namespace, key=key, value=value))
            db.commit()

    def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        with self.session_factory() as db:
            if expected is None:
                db.add(StoreEntry(namespace=self.namespace, key=key, value=value))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    return False
                return True

            result = db.execute(
                update(StoreEntry)
                .where(
                    StoreEntry.namespace == self.namespace,
                    StoreEntry.key == key,
                    StoreEntry.value == expected,
                )
                .values(value=value)
            )
            db.commit()
            return result.rowcount == 1
