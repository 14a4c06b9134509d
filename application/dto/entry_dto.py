# application/dto/entry_dto.py
# The immutable record kept by a blob store.

from dataclasses import dataclass


@dataclass(frozen=True)
class Entry:
    """One stored paste.

    Entries are never mutated once built, which is what lets readers
    fetch them from the store without taking the mutation lock.
    """
    id: str
    payload: bytes
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at
