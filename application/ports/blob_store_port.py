# application/ports/blob_store_port.py
from abc import ABC, abstractmethod
from typing import Optional

from application.dto.entry_dto import Entry


class IBlobStore(ABC):
    @abstractmethod
    def insert(self, payload: bytes) -> str:
        """Store *payload* under a freshly minted id and return the id.

        Raises InvalidInput for rejected payloads and ExhaustedIDSpace when
        no free id could be found."""
        pass

    @abstractmethod
    def get(self, blob_id: str) -> Optional[bytes]:
        """Return the payload for *blob_id*, or None if missing / expired."""
        pass

    @abstractmethod
    def get_entry(self, blob_id: str) -> Optional[Entry]:
        """Like get(), but returns the whole Entry."""
        pass

    @abstractmethod
    def delete(self, blob_id: str) -> bool:
        """Remove *blob_id*. Returns True only if a live entry existed."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass
