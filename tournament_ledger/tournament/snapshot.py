"""
Registry Snapshot Manager.

Persists the whole registry (owner, counter, every record) to Redis so a
restarted process comes back with the same ledger. Payloads are signed
with HMAC-SHA256; a snapshot that fails verification is never loaded.
"""

import asyncio
import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis.asyncio as redis

from ..logging_config import get_logger
from ..utils.json_utils import json_dumps, json_loads
from .registry import TournamentRegistry

logger = get_logger(__name__)


class SnapshotIntegrityError(Exception):
    """Stored snapshot is corrupt, tampered with, or violates an invariant."""

    pass


@dataclass
class SnapshotMetadata:
    owner: str = ""
    counter: int = 0
    revision: int = 0
    size_bytes: int = 0
    checksum: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "counter": self.counter,
            "revision": self.revision,
            "size_bytes": self.size_bytes,
            "checksum": self.checksum,
            "created_at": self.created_at.isoformat(),
        }


class SnapshotManager:
    """Registry snapshot store."""

    LATEST_KEY = "tournament:snapshot:registry:latest"

    def __init__(self, redis_client: redis.Redis, hmac_key: str):
        self.redis = redis_client
        self._hmac_key = hmac_key.encode()

        # serializes compare-and-save so an older revision never wins
        self._save_lock = asyncio.Lock()
        self._saved_revision = -1

    def _compute_checksum(self, payload: str) -> str:
        return hmac.new(self._hmac_key, payload.encode(), hashlib.sha256).hexdigest()

    async def save(self, registry: TournamentRegistry) -> Optional[SnapshotMetadata]:
        """
        Save the registry unless a same-or-newer revision is already stored.

        Returns:
            Metadata of the written snapshot, or None if skipped
        """
        async with self._save_lock:
            state = registry.to_dict()
            if state["revision"] <= self._saved_revision:
                return None

            payload = json_dumps(state, sort_keys=True)
            checksum = self._compute_checksum(payload)
            envelope = json_dumps({"checksum": checksum, "payload": payload})

            await self.redis.set(self.LATEST_KEY, envelope)
            self._saved_revision = state["revision"]

            return SnapshotMetadata(
                owner=state["owner"],
                counter=state["counter"],
                revision=state["revision"],
                size_bytes=len(envelope),
                checksum=checksum,
            )

    async def load_latest(self, expected_owner: Optional[str] = None) -> Optional[TournamentRegistry]:
        """
        Load the stored registry.

        Raises:
            SnapshotIntegrityError: bad checksum, unreadable payload, owner
                mismatch, or a record that breaks a registry invariant
        """
        raw = await self.redis.get(self.LATEST_KEY)
        if not raw:
            self._saved_revision = -1
            return None

        try:
            envelope = json_loads(raw)
            payload = envelope["payload"]
            checksum = envelope["checksum"]
            if not isinstance(payload, str) or not isinstance(checksum, str):
                raise TypeError("checksum and payload must be strings")
        except (ValueError, KeyError, TypeError) as e:
            raise SnapshotIntegrityError(f"unreadable snapshot envelope: {e}") from e

        if not hmac.compare_digest(checksum.encode(), self._compute_checksum(payload).encode()):
            raise SnapshotIntegrityError("snapshot checksum mismatch")

        try:
            registry = TournamentRegistry.from_dict(json_loads(payload))
        except (ValueError, KeyError, TypeError) as e:
            raise SnapshotIntegrityError(f"invalid registry snapshot: {e}") from e

        if expected_owner is not None and registry.owner != expected_owner:
            raise SnapshotIntegrityError(
                f"snapshot owner {registry.owner!r} does not match configured owner"
            )

        self._saved_revision = registry.revision
        logger.debug(
            "snapshot_loaded",
            counter=registry.counter,
            revision=registry.revision,
        )
        return registry

    async def delete(self) -> None:
        await self.redis.delete(self.LATEST_KEY)
        self._saved_revision = -1
