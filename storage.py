"""
Namespaced key/value persistence for field records.

Every record is stored whole under ``<namespace>:<key>`` in the ``records``
table. A save replaces the previous snapshot; there is no diffing, no
versioning and no multi-key transaction, so two writers to the same key
are last-write-wins.
"""

import json
import logging
from typing import Optional

from sqlalchemy.orm import Session

import models
from schemas import BoreholeSummary, SampleSummary

log = logging.getLogger(__name__)

SAMPLE = "sample"
OUTCROP = "outcrop"
BOREHOLE = "borehole"


class RecordStore:
    """Full-snapshot key/value store scoped to one namespace."""

    def __init__(self, db: Session, namespace: str):
        self.db = db
        self.namespace = namespace

    def _full_key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def save(self, key: str, payload: dict) -> None:
        full_key = self._full_key(key)
        body = json.dumps(payload, ensure_ascii=False)
        row = self.db.get(models.Record, full_key)
        if row is None:
            row = models.Record(key=full_key, namespace=self.namespace, payload=body)
            self.db.add(row)
        else:
            row.payload = body
        self.db.commit()
        log.debug("Saved %s (%d bytes)", full_key, len(body))

    def load(self, key: str) -> Optional[dict]:
        row = self.db.get(models.Record, self._full_key(key))
        if row is None:
            return None
        return json.loads(row.payload)

    def delete(self, key: str) -> bool:
        row = self.db.get(models.Record, self._full_key(key))
        if row is None:
            return False
        self.db.delete(row)
        self.db.commit()
        log.info("Deleted %s", row.key)
        return True

    def rename(self, old_key: str, new_key: str) -> bool:
        """Move the record at ``old_key`` to ``new_key``, replacing whatever is there."""
        if not old_key or old_key == new_key:
            return False
        row = self.db.get(models.Record, self._full_key(old_key))
        if row is None:
            return False
        payload = row.payload
        target = self.db.get(models.Record, self._full_key(new_key))
        if target is None:
            self.db.add(models.Record(key=self._full_key(new_key), namespace=self.namespace, payload=payload))
        else:
            target.payload = payload
        self.db.delete(row)
        self.db.commit()
        log.info("Moved %s:%s -> %s", self.namespace, old_key, new_key)
        return True

    def keys(self) -> list[str]:
        prefix = f"{self.namespace}:"
        rows = (
            self.db.query(models.Record.key)
            .filter(models.Record.namespace == self.namespace)
            .order_by(models.Record.key)
            .all()
        )
        return [k[len(prefix):] for (k,) in rows if k.startswith(prefix)]

    def summarize(self, key: str, payload: dict):
        return {"id": key}

    def list(self) -> list:
        # One load per key; there is no secondary index.
        out = []
        for key in self.keys():
            payload = self.load(key)
            if payload is None:
                continue
            out.append(self.summarize(key, payload))
        return out


class SampleStore(RecordStore):
    """Store for sample and outcrop snapshots keyed by ``form.sampleId``."""

    def __init__(self, db: Session, namespace: str = SAMPLE):
        super().__init__(db, namespace)

    def save_record(self, payload: dict) -> str:
        key = payload["form"]["sampleId"]
        self.save(key, payload)
        return key

    def summarize(self, key: str, payload: dict) -> SampleSummary:
        form = payload.get("form") or {}
        return SampleSummary(
            id=key,
            project=form.get("project") or "—",
            date=form.get("date") or "",
            has_photos=len(payload.get("photos") or []) > 0,
        )


class BoreholeStore(RecordStore):
    """Store for borehole snapshots keyed by ``collar.holeId``."""

    def __init__(self, db: Session):
        super().__init__(db, BOREHOLE)

    def save_record(self, payload: dict) -> str:
        key = payload["collar"]["holeId"]
        self.save(key, payload)
        return key

    def summarize(self, key: str, payload: dict) -> BoreholeSummary:
        collar = payload.get("collar") or {}
        return BoreholeSummary(
            id=key,
            project=collar.get("project") or "—",
            date=collar.get("date") or "",
            intervals=len(payload.get("intervals") or []),
        )
