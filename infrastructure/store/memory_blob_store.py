# infrastructure/store/memory_blob_store.py
# Thread-safe in-memory blob store with expiry and a background sweeper.

import logging
import threading
import time
from threading import Lock
from typing import Callable, Dict, Optional

from application.dto.entry_dto import Entry
from application.errors import ExhaustedIDSpace, InvalidInput
from application.ports.blob_store_port import IBlobStore
from infrastructure.store.id_generator import DEFAULT_ID_LENGTH, generate_id

logger = logging.getLogger("pastebin.store")

DEFAULT_MAX_RETRIES: int = 32


class MemoryBlobStore(IBlobStore):
    """Expiring id -> bytes map.

    Mutations (insert, delete, each sweep step) hold ``self._lock``.
    Reads do a single ``dict.get`` and never mutate, so they do not block
    each other; an expired entry that has not been swept yet is simply
    reported as missing.
    """

    def __init__(
        self,
        ttl: float,
        id_length: int = DEFAULT_ID_LENGTH,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sweep_interval: Optional[float] = None,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        id_generator: Callable[[int], str] = generate_id,
    ) -> None:
        if ttl <= 0:
            raise ValueError(f"ttl must be positive. Got: {ttl}.")
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1. Got: {max_retries}.")
        if sweep_interval is not None and sweep_interval <= 0:
            raise ValueError(f"sweep_interval must be positive. Got: {sweep_interval}.")

        self.ttl: float = ttl
        self.id_length: int = id_length
        self.max_retries: int = max_retries
        self.sweep_interval: float = sweep_interval or ttl
        self.max_size: Optional[int] = max_size

        self._clock = clock
        self._generate_id = id_generator
        self._store: Dict[str, Entry] = {}
        self._lock: Lock = Lock()

        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # ── Store API ────────────────────────────────────────────

    def insert(self, payload: bytes) -> str:
        """Store *payload* and return its new id."""
        self._validate_payload(payload)
        payload = bytes(payload)

        for _ in range(self.max_retries):
            blob_id = self._generate_id(self.id_length)
            with self._lock:
                now = self._clock()
                existing = self._store.get(blob_id)
                if existing is not None and not existing.is_expired(now):
                    continue
                self._store[blob_id] = Entry(
                    id=blob_id,
                    payload=payload,
                    created_at=now,
                    expires_at=now + self.ttl,
                )
            logger.debug("stored id=%s size=%dB", blob_id[:4], len(payload))
            return blob_id

        logger.error(
            "id space exhausted after %d attempts (length=%d, entries=%d)",
            self.max_retries, self.id_length, len(self._store),
        )
        raise ExhaustedIDSpace(self.max_retries)

    def get(self, blob_id: str) -> Optional[bytes]:
        entry = self.get_entry(blob_id)
        if entry is None:
            return None
        return entry.payload

    def get_entry(self, blob_id: str) -> Optional[Entry]:
        entry = self._store.get(blob_id)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    def delete(self, blob_id: str) -> bool:
        with self._lock:
            entry = self._store.pop(blob_id, None)
            if entry is None:
                return False
            return not entry.is_expired(self._clock())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, blob_id: str) -> bool:
        return self.get_entry(blob_id) is not None

    # ── Expiry ───────────────────────────────────────────────

    def sweep(self) -> int:
        """Remove every expired entry. Returns how many were removed.

        The lock is held for the snapshot copy and then once per removed
        entry, so concurrent callers never wait behind the expiry scan.
        """
        now = self._clock()
        with self._lock:
            snapshot = list(self._store.items())
        candidates = [
            blob_id for blob_id, entry in snapshot
            if entry.is_expired(now)
        ]
        removed = 0
        for blob_id in candidates:
            with self._lock:
                # The id may have been recycled since the snapshot.
                entry = self._store.get(blob_id)
                if entry is not None and entry.is_expired(now):
                    del self._store[blob_id]
                    removed += 1
        if removed:
            logger.debug("sweep removed=%d remaining=%d", removed, len(self._store))
        return removed

    def start(self) -> "MemoryBlobStore":
        """Start the background sweeper (no-op if already running)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return self
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name="blob-store-sweeper",
            daemon=True,
        )
        self._sweeper.start()
        logger.info("sweeper started interval=%.1fs ttl=%.1fs", self.sweep_interval, self.ttl)
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the background sweeper and wait for it to exit."""
        self._stop_event.set()
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join(timeout)
            logger.info("sweeper stopped")

    @property
    def running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def __enter__(self) -> "MemoryBlobStore":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # ── Private ──────────────────────────────────────────────

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                logger.error("sweep failed: %s", e, exc_info=True)

    def _validate_payload(self, payload: bytes) -> None:
        if not isinstance(payload, (bytes, bytearray, memoryview)):
            raise InvalidInput(
                f"Payload must be bytes. Got: {type(payload).__name__}."
            )
        size = len(payload)
        if size == 0:
            raise InvalidInput("Payload is empty.")
        if self.max_size is not None and size > self.max_size:
            raise InvalidInput(
                f"Payload is {size} bytes; the limit is {self.max_size} bytes."
            )
