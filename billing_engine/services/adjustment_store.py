"""Persistence for billing adjustments.

Adjustments are unique on ``(user_id, project_id, billing_period_start,
billing_period_end)``. ``upsert`` finds and writes a record inside one
critical section, so concurrent adjustments for the same key cannot lose
each other's update. The JSON store extends that section across processes
with a file lock. Records are never hard-deleted; ``soft_delete`` only
marks them.

Two implementations are provided:
- InMemoryAdjustmentStore: lock-protected dictionary keyed by AdjustmentKey
- JsonFileAdjustmentStore: same semantics, persisted to a JSON file that is
  re-read under a file lock and rewritten atomically (temp file + rename)
  after every change
"""

import datetime as dt
import json
import logging
import os
import tempfile
import threading
from collections import OrderedDict
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from filelock import FileLock, Timeout
from pydantic import ValidationError

from billing_engine.exceptions import InvalidAdjustmentError, PersistenceError
from billing_engine.models.adjustment import AdjustmentKey, BillingAdjustment

logger = logging.getLogger(__name__)

# Fields callers may not set through upsert
_PROTECTED_FIELDS = {
    "id",
    "user_id",
    "project_id",
    "billing_period_start",
    "billing_period_end",
    "created_at",
    "updated_at",
}


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class InMemoryAdjustmentStore:
    """
    Lock-protected in-memory adjustment store.

    Features:
    - Atomic conditional upsert keyed by AdjustmentKey
    - Override lookup by containing period
    - Soft delete that keeps records stored
    - Rollback of in-memory state when a subclass fails to persist

    Example:
        >>> store = InMemoryAdjustmentStore()
        >>> key = AdjustmentKey("u-1", "p-1", dt.date(2024, 6, 1), dt.date(2024, 6, 30))
        >>> record, created = store.upsert(key, {"adjusted_billable_hours": 30, "adjusted_by": "mgr"})
        >>> store.get("u-1", "p-1", dt.date(2024, 6, 3), dt.date(2024, 6, 9))
        Decimal('30')
    """

    def __init__(self):
        self._records: "OrderedDict[AdjustmentKey, BillingAdjustment]" = OrderedDict()
        self._lock = threading.RLock()

    def get(
        self,
        user_id: str,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> Optional[Decimal]:
        """
        Resolve the billable-hours override for a user/project/range.

        Only a live record whose period fully contains the range matches;
        partial overlap never does. When several records match, the one
        with the narrowest period wins, then the most recently updated.

        Args:
            user_id: Resource identifier
            project_id: Project identifier
            start_date: First day of the queried range
            end_date: Last day of the queried range

        Returns:
            adjusted_billable_hours of the matching record, or None
        """
        record = self.find_containing(user_id, project_id, start_date, end_date)
        return record.adjusted_billable_hours if record else None

    def find_containing(
        self,
        user_id: str,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
    ) -> Optional[BillingAdjustment]:
        with self._lock:
            matches = [
                r
                for key, r in self._records.items()
                if not r.is_deleted
                and key.user_id == user_id
                and key.project_id == project_id
                and key.contains(start_date, end_date)
            ]
        if not matches:
            return None
        # Narrowest period first, then latest update
        matches.sort(key=lambda r: r.updated_at, reverse=True)
        matches.sort(key=lambda r: r.key.span_days())
        return matches[0].model_copy()

    def find(self, key: AdjustmentKey) -> Optional[BillingAdjustment]:
        """Return the record stored under ``key`` (deleted or not)."""
        with self._lock:
            record = self._records.get(key)
            return record.model_copy() if record else None

    def list_adjustments(
        self,
        user_id: Optional[str] = None,
        project_id: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[BillingAdjustment]:
        """List stored records, optionally filtered by user and/or project."""
        with self._lock:
            return [
                r.model_copy()
                for r in self._records.values()
                if (user_id is None or r.user_id == user_id)
                and (project_id is None or r.project_id == project_id)
                and (include_deleted or not r.is_deleted)
            ]

    def upsert(
        self, key: AdjustmentKey, fields: Mapping[str, Any]
    ) -> Tuple[BillingAdjustment, bool]:
        """
        Create or update the record for ``key`` atomically.

        Existing records keep their id and created_at; updated_at is
        refreshed. A soft-deleted record is revived by an upsert.

        Args:
            key: Composite identity of the adjustment
            fields: Field values to write

        Returns:
            Tuple of (stored record, True if it was created)

        Raises:
            InvalidAdjustmentError: If fields are unknown, protected or invalid
            PersistenceError: If the change cannot be persisted
        """
        protected = _PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise InvalidAdjustmentError(
                f"Cannot set protected adjustment fields: {sorted(protected)}"
            )

        with self._lock:
            previous = self._records.get(key)
            now = _utcnow()

            try:
                if previous is not None:
                    data = previous.model_dump()
                    data.update(fields)
                    data.update({"updated_at": now, "deleted_at": None, "deleted_by": None})
                    record = BillingAdjustment.model_validate(data)
                else:
                    record = BillingAdjustment.model_validate(
                        {
                            **fields,
                            "user_id": key.user_id,
                            "project_id": key.project_id,
                            "billing_period_start": key.billing_period_start,
                            "billing_period_end": key.billing_period_end,
                            "created_at": now,
                            "updated_at": now,
                        }
                    )
            except ValidationError as e:
                raise InvalidAdjustmentError(f"Invalid billing adjustment: {e}") from e

            self._records[key] = record
            try:
                self._commit()
            except PersistenceError:
                self._rollback(key, previous)
                raise

            created = previous is None
            logger.debug(
                f"{'Created' if created else 'Updated'} billing adjustment {record.id} "
                f"for user {key.user_id} on project {key.project_id} "
                f"({key.billing_period_start} to {key.billing_period_end})"
            )
            return record.model_copy(), created

    def soft_delete(
        self, key: AdjustmentKey, deleted_by: str
    ) -> Optional[BillingAdjustment]:
        """
        Mark the record for ``key`` as deleted.

        Returns:
            The updated record, or None if no record exists for the key
        """
        with self._lock:
            previous = self._records.get(key)
            if previous is None:
                return None
            record = previous.model_copy(
                update={"deleted_at": _utcnow(), "deleted_by": deleted_by}
            )
            self._records[key] = record
            try:
                self._commit()
            except PersistenceError:
                self._rollback(key, previous)
                raise
            logger.info(f"Soft-deleted billing adjustment {record.id}")
            return record.model_copy()

    def _rollback(self, key: AdjustmentKey, previous: Optional[BillingAdjustment]) -> None:
        if previous is None:
            self._records.pop(key, None)
        else:
            self._records[key] = previous

    def _commit(self) -> None:
        """Persist the current state. The in-memory store has nothing to do."""

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonFileAdjustmentStore(InMemoryAdjustmentStore):
    """
    Adjustment store persisted to a JSON file.

    Every change is made under an exclusive lock on a ``.lock`` sibling of
    the file: the file is re-read, the change is applied to the fresh
    records and the whole set is rewritten atomically (temp file + rename).
    Several processes can therefore share one file without erasing each
    other's records. Reads use the records seen at the last load or write;
    call ``refresh`` to pick up changes made elsewhere.

    File structure:
        {"version": "1.0", "last_updated": "...", "adjustments": [...]}
    """

    FILE_VERSION = "1.0"

    def __init__(self, file_path: Union[str, Path], lock_timeout: float = 10.0):
        """
        Initialize the store and load existing records.

        Args:
            file_path: Location of the JSON file
            lock_timeout: Seconds to wait for the file lock before failing

        Raises:
            PersistenceError: If an existing file cannot be read or parsed
        """
        super().__init__()
        self.file_path = Path(file_path)
        self.lock_path = self.file_path.with_name(self.file_path.name + ".lock")
        self._file_lock = FileLock(str(self.lock_path), timeout=lock_timeout)
        self._records = self._read_records()
        if self._records:
            logger.info(f"Loaded {len(self._records)} billing adjustments from {self.file_path}")

    def refresh(self) -> None:
        """Reload the records from the file."""
        with self._lock:
            self._records = self._read_records()

    def upsert(
        self, key: AdjustmentKey, fields: Mapping[str, Any]
    ) -> Tuple[BillingAdjustment, bool]:
        with self._exclusive():
            return super().upsert(key, fields)

    def soft_delete(
        self, key: AdjustmentKey, deleted_by: str
    ) -> Optional[BillingAdjustment]:
        with self._exclusive():
            return super().soft_delete(key, deleted_by)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the file lock with the records freshly read from disk."""
        with self._lock:
            try:
                self.file_path.parent.mkdir(parents=True, exist_ok=True)
                self._file_lock.acquire()
            except Timeout as e:
                raise PersistenceError(
                    f"Timed out waiting for lock on {self.file_path}",
                    recovery_hint="Another process is writing adjustments; retry shortly",
                ) from e
            except OSError as e:
                raise PersistenceError(f"Cannot lock adjustment file {self.file_path}: {e}") from e

            try:
                self._records = self._read_records()
                yield
            finally:
                self._file_lock.release()

    def _read_records(self) -> "OrderedDict[AdjustmentKey, BillingAdjustment]":
        records: "OrderedDict[AdjustmentKey, BillingAdjustment]" = OrderedDict()
        if not self.file_path.exists():
            logger.debug(f"Adjustment file not found, starting empty: {self.file_path}")
            return records

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(
                f"Adjustment file {self.file_path} is corrupted: {e}",
                recovery_hint="Restore the file from a backup or remove it",
            ) from e
        except OSError as e:
            raise PersistenceError(f"Cannot read adjustment file {self.file_path}: {e}") from e

        if not isinstance(payload, dict):
            raise PersistenceError(
                f"Adjustment file {self.file_path} is corrupted: "
                f"expected an object, got {type(payload).__name__}",
                recovery_hint="Restore the file from a backup or remove it",
            )

        version = payload.get("version", "unknown")
        if version != self.FILE_VERSION:
            raise PersistenceError(
                f"Unsupported adjustment file version {version} "
                f"(expected {self.FILE_VERSION})"
            )

        adjustments = payload.get("adjustments", [])
        if not isinstance(adjustments, list):
            raise PersistenceError(
                f"Adjustment file {self.file_path} is corrupted: adjustments must be a list"
            )

        try:
            for raw in adjustments:
                record = BillingAdjustment.model_validate(raw)
                records[record.key] = record
        except ValidationError as e:
            raise PersistenceError(f"Invalid adjustment record in {self.file_path}: {e}") from e

        return records

    def _commit(self) -> None:
        payload: Dict[str, Any] = {
            "version": self.FILE_VERSION,
            "last_updated": _utcnow().isoformat(),
            "adjustments": [r.model_dump(mode="json") for r in self._records.values()],
        }

        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            temp_fd, temp_path = tempfile.mkstemp(dir=self.file_path.parent, suffix=".tmp")
        except OSError as e:
            raise PersistenceError(f"Cannot write adjustment file {self.file_path}: {e}") from e

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            # Atomic rename (overwrites existing file)
            os.replace(temp_path, self.file_path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                # Temp file may already be gone
                pass
            raise PersistenceError(f"Cannot write adjustment file {self.file_path}: {e}") from e

        logger.debug(f"Saved {len(self._records)} billing adjustments to {self.file_path}")
