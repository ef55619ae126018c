"""
Record store for the hospital records manager.

The store owns the four in-memory collections (patients, doctors,
appointments, inventory) and mediates identifier assignment and snapshot
persistence. Each collection is saved to, and loaded from, its own SQLite
file as a whole; there is no incremental persistence and no cross-file
consistency.
"""

import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field, fields
from typing import Dict, List

from sqlalchemy import create_engine, insert, select

from models import ROW_MODELS, db, from_row, to_row
from records import INVENTORY, KINDS, MAX_INTEGER, MIN_INTEGER, RECORD_TYPES

logger = logging.getLogger(__name__)


@dataclass
class PersistenceResult:
    """Outcome of a load or save; failures maps kind -> error message."""
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


class RecordStore:
    """In-memory collections plus whole-collection persistence"""

    def __init__(self, app=None):
        self.app = None
        self._collections: Dict[str, list] = {kind: [] for kind in KINDS}
        # Flask may serve requests on several threads; one writer at a time
        self._lock = threading.RLock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.app = app
        app.extensions['record_store'] = self

    # ---------------- PERSISTENCE ----------------
    def location(self, kind: str) -> str:
        """Path of the SQLite file holding the `kind` snapshot."""
        with self.app.app_context():
            return db.engines[kind].url.database

    def load(self) -> PersistenceResult:
        """Replace every collection with its persisted snapshot.

        A missing file gives an empty collection. A file that cannot be read
        also gives an empty collection; the error is logged and reported in
        the result, never raised.
        """
        result = PersistenceResult()
        with self._lock, self.app.app_context():
            for kind in KINDS:
                try:
                    self._collections[kind] = self._read(kind)
                except Exception as e:
                    logger.warning("[DB] Could not load %s, starting empty: %s", kind, e)
                    self._collections[kind] = []
                    result.failures[kind] = str(e)
        return result

    def save(self) -> PersistenceResult:
        """Write every collection over its previous snapshot.

        Each file is replaced as a whole. A failure on one collection is
        logged and does not stop the others.
        """
        result = PersistenceResult()
        with self._lock, self.app.app_context():
            for kind in KINDS:
                try:
                    self._write(kind, self._collections[kind])
                except Exception as e:
                    logger.error("[DB] Could not save %s: %s", kind, e)
                    result.failures[kind] = str(e)
        return result

    def _read(self, kind):
        path = db.engines[kind].url.database
        if not path or not os.path.exists(path):
            logger.info("[DB] No %s snapshot at %s, starting empty", kind, path)
            return []
        table = ROW_MODELS[kind].__table__
        with db.engines[kind].connect() as conn:
            rows = conn.execute(select(table).order_by(table.c.id)).mappings().all()
        records = [from_row(kind, row) for row in rows]
        logger.debug("[DB] Loaded %d %s from %s", len(records), kind, path)
        return records

    def _write(self, kind, records):
        # Build the snapshot in a sibling file and swap it in, so a corrupt
        # or half-written old file never blocks the save.
        engine = db.engines[kind]
        path = os.path.abspath(engine.url.database)
        directory = os.path.dirname(path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f'.{kind}-', suffix='.db', dir=directory)
        os.close(fd)
        snapshot = create_engine(engine.url.set(database=tmp_path))
        table = ROW_MODELS[kind].__table__
        try:
            with snapshot.begin() as conn:
                table.create(conn)
                if records:
                    conn.execute(insert(table), [to_row(r) for r in records])
            snapshot.dispose()
            os.replace(tmp_path, path)
        except Exception:
            snapshot.dispose()
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        # pooled connections still point at the replaced file
        engine.dispose()
        logger.debug("[DB] Saved %d %s to %s", len(records), kind, path)

    # ---------------- IDENTIFIERS ----------------
    def next_id(self, kind: str) -> int:
        """Identifier for the next record of `kind`.

        max(collection size, highest existing id) + 1, recomputed on every
        call. After the highest record is deleted this hands its id out
        again (delete id 3 of 1..3, the next add gets 3 once more); ids are
        unique among live records but not across a session.
        """
        with self._lock:
            records = self._collections[kind]
            highest = max((r.id for r in records), default=0)
            return max(len(records), highest) + 1

    # ---------------- ACCESS ----------------
    def all(self, kind: str) -> List:
        with self._lock:
            return list(self._collections[kind])

    def get(self, kind: str, record_id: int):
        with self._lock:
            return next((r for r in self._collections[kind] if r.id == record_id), None)

    def create(self, kind: str, **values):
        """Append a new record of `kind` under a freshly assigned id."""
        with self._lock:
            record = RECORD_TYPES[kind](id=self.next_id(kind), **values)
            self._collections[kind].append(record)
            return record

    def update(self, kind: str, record_id: int, **values) -> bool:
        """Overwrite fields of an existing record; False if the id is absent."""
        editable = {f.name for f in fields(RECORD_TYPES[kind])} - {'id'}
        unknown = set(values) - editable
        if unknown:
            raise TypeError(f"unknown {kind} fields: {', '.join(sorted(unknown))}")
        with self._lock:
            record = self.get(kind, record_id)
            if record is None:
                return False
            for name, value in values.items():
                setattr(record, name, value)
            return True

    def remove(self, kind: str, record_id: int) -> bool:
        """Delete a record. References to it from other collections are left alone."""
        with self._lock:
            records = self._collections[kind]
            for index, record in enumerate(records):
                if record.id == record_id:
                    del records[index]
                    return True
            return False

    def restock(self, item_id: int, delta: int):
        """Add delta to an item's quantity; no floor, so it may go negative.

        Raises OverflowError when the result would not fit a stored integer.
        """
        with self._lock:
            item = self.get(INVENTORY, item_id)
            if item is None:
                return None
            quantity = item.quantity + delta
            if not MIN_INTEGER <= quantity <= MAX_INTEGER:
                raise OverflowError(f"quantity {quantity} out of range")
            item.quantity = quantity
            return item
