"""
Table-scoped data access used by the placement procedures.

Procedures never touch the ORM directly: they receive a gateway and speak in
table names, plain dict rows and Django field lookups. ``DjangoGateway`` is
the production implementation; tests can pass any object with the same
surface.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, IntegrityError, transaction

from placement.exceptions import ConflictError, StorageError
from placement.models import (
    Applicant,
    AttendanceRecord,
    Campaign,
    Cycle,
    RosterUpload,
    Test,
    Venue,
)

logger = logging.getLogger(__name__)

TABLES = {
    "campaigns": Campaign,
    "cycles": Cycle,
    "tests": Test,
    "venues": Venue,
    "applicants": Applicant,
    "attendance": AttendanceRecord,
    "roster_uploads": RosterUpload,
}

LOCK_PREFIX = "placement-lock:"


class DjangoGateway:
    def __init__(self, user=None):
        self.user = user

    def _model(self, table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StorageError(f"Unknown table '{table}'.") from None

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Sequence[str]] = None,
        fields: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        try:
            qs = model.objects.filter(**(filters or {}))
            if order:
                qs = qs.order_by(*order)
            return list(qs.values(*(fields or ())))
        except DatabaseError as exc:
            logger.warning("Select on %s failed: %s", table, exc)
            raise StorageError(f"Could not read {table}.") from exc

    def insert(self, table: str, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        model = self._model(table)
        created = []
        try:
            with transaction.atomic():
                for row in rows:
                    obj = model.objects.create(**row)
                    created.append({**row, "id": obj.pk})
        except IntegrityError as exc:
            logger.info("Insert into %s hit a uniqueness conflict: %s", table, exc)
            raise ConflictError(f"A matching {table} record already exists.") from exc
        except DatabaseError as exc:
            logger.warning("Insert into %s failed: %s", table, exc)
            raise StorageError(f"Could not write {table}.") from exc
        return created

    def upsert(
        self,
        table: str,
        rows: Sequence[Dict[str, Any]],
        conflict_keys: Sequence[str],
        update_fields: Sequence[str],
    ) -> Dict[str, int]:
        """
        Insert ``rows`` or refresh ``update_fields`` on rows whose
        ``conflict_keys`` already exist, in a single batched statement.

        Returns how many keys were new and how many already existed.
        """
        model = self._model(table)
        if not rows:
            return {"created": 0, "updated": 0}

        lookup = {
            f"{key}__in": sorted({row[key] for row in rows}, key=str)
            for key in conflict_keys
        }
        try:
            with transaction.atomic():
                existing = set(model.objects.filter(**lookup).values_list(*conflict_keys))
                model.objects.bulk_create(
                    [model(**row) for row in rows],
                    update_conflicts=True,
                    unique_fields=list(conflict_keys),
                    update_fields=list(update_fields),
                )
        except IntegrityError as exc:
            logger.warning("Upsert into %s conflicted: %s", table, exc)
            raise ConflictError(f"Could not upsert {table}: conflicting records.") from exc
        except DatabaseError as exc:
            logger.warning("Upsert into %s failed: %s", table, exc)
            raise StorageError(f"Could not write {table}.") from exc

        updated = sum(1 for row in rows if tuple(row[key] for key in conflict_keys) in existing)
        return {"created": len(rows) - updated, "updated": updated}

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> int:
        model = self._model(table)
        try:
            return model.objects.filter(**filters).update(**values)
        except DatabaseError as exc:
            logger.warning("Update on %s failed: %s", table, exc)
            raise StorageError(f"Could not update {table}.") from exc

    def current_user(self) -> Optional[int]:
        if self.user is not None and getattr(self.user, "is_authenticated", False):
            return self.user.pk
        return None

    @contextmanager
    def advisory_lock(self, key: str, timeout: Optional[int] = None) -> Iterator[bool]:
        """
        Yield True when the lock named ``key`` was acquired, False when another
        holder has it. The lock expires after ``timeout`` seconds so a crashed
        holder cannot block the key forever.
        """
        if timeout is None:
            timeout = settings.PLACEMENT_SEATING_LOCK_TIMEOUT
        cache_key = f"{LOCK_PREFIX}{key}"
        token = uuid.uuid4().hex
        acquired = cache.add(cache_key, token, timeout)
        try:
            yield acquired
        finally:
            if acquired and cache.get(cache_key) == token:
                cache.delete(cache_key)
