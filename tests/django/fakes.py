from collections import defaultdict
from contextlib import contextmanager
from itertools import count

from placement.exceptions import ConflictError


UNIQUE_KEYS = {
    "applicants": ("test_id", "roll_number"),
    "attendance": ("applicant_id", "test_id"),
}

RELATIONS = {
    "venue": "venues",
    "applicant": "applicants",
    "test": "tests",
}


class InMemoryGateway:
    """Dict-backed stand-in for DjangoGateway that records every call."""

    def __init__(self, user_id=None):
        self.tables = defaultdict(list)
        self.calls = []
        self.user_id = user_id
        self.held_locks = set()
        self._ids = count(1)

    def add(self, table, **row):
        row.setdefault("id", next(self._ids))
        self.tables[table].append(row)
        return row

    def rows(self, table):
        return list(self.tables[table])

    def _resolve(self, row, field):
        if "__" not in field:
            return row.get(field)
        relation, attr = field.split("__", 1)
        related_id = row.get(f"{relation}_id")
        for related in self.tables[RELATIONS[relation]]:
            if related["id"] == related_id:
                return self._resolve(related, attr)
        return None

    def _matches(self, row, filters):
        for key, value in (filters or {}).items():
            if key.endswith("__isnull"):
                if (self._resolve(row, key[: -len("__isnull")]) is None) != value:
                    return False
            elif self._resolve(row, key) != value:
                return False
        return True

    def _key(self, table, row):
        return tuple(row.get(part) for part in UNIQUE_KEYS[table])

    def select(self, table, filters=None, order=None, fields=None):
        self.calls.append(("select", table))
        found = [row for row in self.tables[table] if self._matches(row, filters)]
        for field in reversed(order or []):
            found.sort(key=lambda row, f=field: self._resolve(row, f))
        if fields:
            return [{field: self._resolve(row, field) for field in fields} for row in found]
        return [dict(row) for row in found]

    def insert(self, table, rows):
        self.calls.append(("insert", table))
        created = []
        for row in rows:
            if table in UNIQUE_KEYS:
                key = self._key(table, row)
                if any(self._key(table, existing) == key for existing in self.tables[table]):
                    raise ConflictError(f"A matching {table} record already exists.")
            created.append(dict(self.add(table, **dict(row))))
        return created

    def upsert(self, table, rows, conflict_keys, update_fields):
        self.calls.append(("upsert", table))
        created = updated = 0
        for row in rows:
            key = tuple(row[part] for part in conflict_keys)
            match = next(
                (
                    existing
                    for existing in self.tables[table]
                    if tuple(existing.get(part) for part in conflict_keys) == key
                ),
                None,
            )
            if match is None:
                self.add(table, **dict(row))
                created += 1
            else:
                match.update({field: row.get(field) for field in update_fields})
                updated += 1
        return {"created": created, "updated": updated}

    def update(self, table, values, filters):
        self.calls.append(("update", table))
        matched = [row for row in self.tables[table] if self._matches(row, filters)]
        for row in matched:
            row.update(values)
        return len(matched)

    def current_user(self):
        return self.user_id

    @contextmanager
    def advisory_lock(self, key, timeout=None):
        if key in self.held_locks:
            yield False
            return
        self.held_locks.add(key)
        try:
            yield True
        finally:
            self.held_locks.discard(key)

    def tables_touched(self, method):
        return [table for called, table in self.calls if called == method]
