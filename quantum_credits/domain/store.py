"""Key/value surface the ledger persists through"""

from abc import ABC, abstractmethod
from typing import Dict, Optional


class KeyValueStore(ABC):
    """Named string blobs; no multi-key atomicity is assumed"""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        """
        Write value only if the key currently holds expected.

        expected=None means the key must be absent. Returns False when another
        writer got there first.
        """


class InMemoryStore(KeyValueStore):
    """Process-local store for tests and scripts"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def compare_and_set(self, key: str, expected: Optional[str], value: str) -> bool:
        if self.data.get(key) != expected:
            return False
        self.data[key] = value
        return True
