"""In-memory collaborators shared by advertisement authority tests."""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path
from typing import Sequence

from resources.substrates.ledger import (
    LedgerDependencyError,
    LedgerHealthStatus,
    LedgerOutput,
    LedgerRelayError,
    LedgerTransaction,
    SpendConflictError,
)
from resources.substrates.object_store import (
    ObjectNotFoundError,
    ObjectStoreHealthStatus,
    StoredObjectMetadata,
)

HOST_KEY = "02" + "11" * 32
NOW = 1_900_000_000


class FakeClock:
    """Settable wall clock."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class FakeLedger:
    """Label-indexed outputs with single-spend enforcement."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counter = 0
        self.outputs: dict[str, LedgerOutput] = {}
        self.descriptions: list[str] = []
        self.relayed: list[str] = []
        self.query_calls = 0
        self.fail_queries = False
        self.fail_relay = False
        self.fail_identity = False
        self.query_barrier: threading.Barrier | None = None

    def identity_key(self) -> str:
        if self.fail_identity:
            raise LedgerDependencyError("wallet offline")
        return HOST_KEY

    def query_outputs(
        self,
        *,
        collection: str,
        labels: Sequence[str],
        match_all: bool = True,
        include_labels: bool = True,
        include_fields: bool = False,
        limit: int,
        offset: int,
    ) -> list[LedgerOutput]:
        if self.fail_queries:
            raise LedgerDependencyError("overlay lookup failed")
        with self._lock:
            self.query_calls += 1
            wanted = set(labels)
            matches = [
                output
                for output in self.outputs.values()
                if wanted <= set(output.labels)
            ][offset : offset + limit]
        if self.query_barrier is not None:
            self.query_barrier.wait(timeout=5)
        if include_fields:
            return matches
        return [output.model_copy(update={"fields": None}) for output in matches]

    def create_output(
        self,
        *,
        collection: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        with self._lock:
            return self._add(fields, labels, satoshis, description)

    def spend_and_create(
        self,
        *,
        collection: str,
        outpoint: str,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        with self._lock:
            if outpoint not in self.outputs:
                raise SpendConflictError(f"{outpoint} is already spent")
            del self.outputs[outpoint]
            return self._add(fields, labels, satoshis, description)

    def relay(self, *, transaction: LedgerTransaction, topics: Sequence[str]) -> None:
        if self.fail_relay:
            raise LedgerRelayError("no overlay host accepted the transaction")
        self.relayed.append(transaction.txid)

    def health(self) -> LedgerHealthStatus:
        return LedgerHealthStatus(ready=True, detail="ok")

    def seed(
        self,
        *,
        outpoint: str,
        labels: Sequence[str],
        fields: Sequence[bytes] | None = None,
    ) -> None:
        """Insert an output directly, as if another host had issued it."""
        self.outputs[outpoint] = LedgerOutput(
            outpoint=outpoint,
            satoshis=1,
            labels=tuple(labels),
            fields=None if fields is None else tuple(fields),
        )

    def _add(
        self,
        fields: Sequence[bytes],
        labels: Sequence[str],
        satoshis: int,
        description: str,
    ) -> LedgerTransaction:
        self._counter += 1
        txid = f"{self._counter:064x}"
        self.outputs[f"{txid}.0"] = LedgerOutput(
            outpoint=f"{txid}.0",
            satoshis=satoshis,
            labels=tuple(labels),
            fields=tuple(fields),
        )
        self.descriptions.append(description)
        return LedgerTransaction(txid=txid, raw=b"raw")


class FakeObjectStore:
    """Dictionary-backed object store rooted at a fake directory."""

    def __init__(self, root: Path = Path("/srv/uhrp")) -> None:
        self._root = root
        self.objects: dict[str, bytes] = {}
        self.metadata: dict[str, StoredObjectMetadata] = {}
        self.custom_times: dict[str, datetime] = {}
        self.fail_custom_time = False
        self.head_reads = 0

    def add(self, object_path: str, content: bytes, content_type: str) -> None:
        self.objects[object_path] = content
        self.metadata[object_path] = StoredObjectMetadata(
            name=object_path, size=len(content), content_type=content_type
        )

    def health(self) -> ObjectStoreHealthStatus:
        return ObjectStoreHealthStatus(ready=True, detail="ok")

    def exists(self, *, object_path: str) -> bool:
        return object_path in self.objects

    def resolve_path(self, *, object_path: str) -> Path:
        return self._root / object_path

    def public_url(self, *, object_path: str) -> str:
        return f"https://storage.example.com/{object_path}"

    def get_metadata(self, *, object_path: str) -> StoredObjectMetadata:
        if object_path not in self.metadata:
            raise ObjectNotFoundError(object_path)
        return self.metadata[object_path]

    def set_custom_time(self, *, object_path: str, custom_time: datetime) -> None:
        if self.fail_custom_time:
            raise OSError("metadata write failed")
        self.custom_times[object_path] = custom_time

    def read_head(self, *, object_path: str, length: int) -> bytes:
        if object_path not in self.objects:
            raise ObjectNotFoundError(object_path)
        self.head_reads += 1
        return self.objects[object_path][:length]


class FakePricing:
    """Deterministic price: one satoshi per byte-minute, scaled down."""

    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []

    def price(self, *, size_bytes: int, retention_minutes: int) -> int:
        self.calls.append((size_bytes, retention_minutes))
        return max(size_bytes * retention_minutes // 1000, 1)
