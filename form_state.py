"""
Observation state containers.

A ``FormState`` owns everything one open sample form holds (fields, photo
list, pXRF import, creation time). All changes go through ``dispatch``;
after each successful mutation every subscriber receives the complete
snapshot in its persisted shape. ``Autosave`` is the subscriber that
writes those snapshots to the record store.
"""

import logging
import uuid
from typing import Callable, Optional, Union

import photos as photo_ops
import pxrf
from photos import PhotoList
from schemas import (
    SET_FIELDS,
    BoreholeAction,
    BoreholeCollar,
    BoreholeRecord,
    FormAction,
    Interval,
    IntervalIn,
    PxrfData,
    SampleForm,
    SampleRecord,
    now_iso,
)
from storage import BoreholeStore, RecordStore, SampleStore

log = logging.getLogger(__name__)

Subscriber = Callable[..., None]


def _resolve_field(model_cls, name: Optional[str]) -> str:
    """Accept either the attribute name or its camelCase alias."""
    if not name:
        raise ValueError("action needs a field")
    fields = model_cls.model_fields
    if name in fields:
        return name
    for attr, info in fields.items():
        if info.alias == name:
            return attr
    raise ValueError(f"unknown field: {name}")


def _unique(items) -> list:
    out = []
    for item in items or []:
        if item not in out:
            out.append(item)
    return out


class StateContainer:
    """Subscriber bookkeeping shared by the form containers."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, fn: Subscriber) -> Callable[[], None]:
        self._subscribers.append(fn)

        def unsubscribe():
            if fn in self._subscribers:
                self._subscribers.remove(fn)
        return unsubscribe

    @property
    def key(self) -> str:
        raise NotImplementedError

    def snapshot(self) -> dict:
        raise NotImplementedError

    def _notify(self, renamed_from: Optional[str]) -> dict:
        snap = self.snapshot()
        for fn in list(self._subscribers):
            fn(snap, renamed_from=renamed_from)
        return snap


class FormState(StateContainer):
    """Mutable sample/outcrop observation with a single mutation entry point."""

    def __init__(self, record: Optional[dict] = None):
        super().__init__()
        rec = SampleRecord.model_validate(record or {})
        self.form: SampleForm = rec.form
        self.photos = PhotoList(rec.photos, rec.active_photo)
        self.pxrf: PxrfData = rec.pxrf
        self.created_at = rec.created_at
        self.errors: list[str] = []

    @property
    def key(self) -> str:
        return self.form.sample_id

    def snapshot(self) -> dict:
        return SampleRecord(
            form=self.form,
            photos=list(self.photos.photos),
            active_photo=self.photos.active,
            pxrf=self.pxrf,
            created_at=self.created_at,
        ).to_dict()

    def dispatch(self, action: Union[FormAction, dict]) -> dict:
        if not isinstance(action, FormAction):
            action = FormAction.model_validate(action)
        handler = getattr(self, f"_do_{action.type}", None)
        if handler is None:
            raise ValueError(f"unknown action: {action.type}")

        before = self.key
        self.errors = []
        handler(action)
        renamed_from = before if action.type == "set" and self.key != before else None
        return self._notify(renamed_from)

    # --- handlers ---

    def _replace_form(self, **changes) -> None:
        data = self.form.model_dump()
        data.update(changes)
        self.form = SampleForm.model_validate(data)

    def _do_set(self, action: FormAction) -> None:
        attr = _resolve_field(SampleForm, action.field)
        value = action.value
        if attr in SET_FIELDS:
            if isinstance(value, str):
                value = [value] if value else []
            value = _unique(value)
        elif value is None:
            value = ""
        self._replace_form(**{attr: value})

    def _do_toggle(self, action: FormAction) -> None:
        attr = _resolve_field(SampleForm, action.field)
        if attr not in SET_FIELDS:
            raise ValueError(f"{action.field} is not a set-valued field")
        current = list(getattr(self.form, attr))
        item = action.value
        if item in current:
            current.remove(item)
        else:
            current.append(item)
        self._replace_form(**{attr: current})

    def _do_add_photos(self, action: FormAction) -> None:
        added = []
        for result in photo_ops.capture(action.images):
            if result.ok:
                added.append(result.data_url)
            else:
                self.errors.append(f"photo {result.source}: {result.error}")
        self.photos.add(added)

    def _photo_index(self, action: FormAction) -> int:
        if action.index is not None:
            return action.index
        if self.photos.active is None:
            raise IndexError("no photos")
        return self.photos.active

    def _do_select_photo(self, action: FormAction) -> None:
        self.photos.select(self._photo_index(action))

    def _do_make_primary(self, action: FormAction) -> None:
        self.photos.make_primary(self._photo_index(action))

    def _do_delete_photo(self, action: FormAction) -> None:
        self.photos.remove(self._photo_index(action))

    def _do_import_pxrf(self, action: FormAction) -> None:
        self.pxrf = pxrf.import_csv(action.csv or "")

    def _do_reset(self, action: FormAction) -> None:
        """Start a new observation, keeping the project name."""
        sample_id = action.value if isinstance(action.value, str) and action.value else "MDO"
        self.form = SampleForm(sample_id=sample_id, project=self.form.project)
        self.photos.clear()
        self.pxrf = PxrfData()
        self.created_at = now_iso()


class BoreholeState(StateContainer):
    """Collar plus ordered depth intervals, mutated through ``dispatch``."""

    def __init__(self, record: Optional[dict] = None):
        super().__init__()
        rec = BoreholeRecord.model_validate(record or {})
        self.collar: BoreholeCollar = rec.collar
        self.intervals: list[Interval] = list(rec.intervals)
        self.created_at = rec.created_at

    @property
    def key(self) -> str:
        return self.collar.hole_id

    def snapshot(self) -> dict:
        return BoreholeRecord(
            collar=self.collar,
            intervals=self.intervals,
            created_at=self.created_at,
        ).to_dict()

    def dispatch(self, action: Union[BoreholeAction, dict]) -> dict:
        if not isinstance(action, BoreholeAction):
            action = BoreholeAction.model_validate(action)
        before = self.key
        handler = getattr(self, f"_do_{action.type}")
        handler(action)
        renamed_from = before if action.type == "set" and self.key != before else None
        return self._notify(renamed_from)

    def _find(self, interval_id: Optional[str]) -> int:
        for pos, iv in enumerate(self.intervals):
            if iv.id == interval_id:
                return pos
        raise KeyError(f"no interval with id {interval_id!r}")

    def _do_set(self, action: BoreholeAction) -> None:
        attr = _resolve_field(BoreholeCollar, action.field)
        data = self.collar.model_dump()
        data[attr] = action.value
        self.collar = BoreholeCollar.model_validate(data)

    def _do_add_interval(self, action: BoreholeAction) -> None:
        body = IntervalIn.model_validate(action.value or {})
        interval = Interval(id=action.id or uuid.uuid4().hex[:8], **body.model_dump())
        self.intervals.append(interval)

    def _do_update_interval(self, action: BoreholeAction) -> None:
        pos = self._find(action.id)
        data = self.intervals[pos].to_dict()
        data.update(action.value or {})
        data["id"] = action.id
        self.intervals[pos] = Interval.model_validate(data)

    def _do_delete_interval(self, action: BoreholeAction) -> None:
        del self.intervals[self._find(action.id)]

    def _do_reset(self, action: BoreholeAction) -> None:
        hole_id = action.value if isinstance(action.value, str) and action.value else "DDH"
        self.collar = BoreholeCollar(hole_id=hole_id, project=self.collar.project)
        self.intervals = []
        self.created_at = now_iso()


class Autosave:
    """Persist every snapshot, migrating the record when its identifier is edited."""

    def __init__(self, store: RecordStore, key_of: Callable[[dict], str]):
        self.store = store
        self.key_of = key_of
        self.saves = 0
        # Stored key left behind while the identifier is blank mid-edit.
        self.pending: Optional[str] = None

    def __call__(self, snapshot: dict, renamed_from: Optional[str] = None) -> None:
        key = self.key_of(snapshot)
        if not key:
            self.pending = self.pending or renamed_from or None
            log.warning("Not saving %s record with an empty identifier", self.store.namespace)
            return
        # renamed_from is None for anything but an identifier edit; a reset
        # leaves the earlier record where it is.
        old = None if renamed_from is None else (self.pending or renamed_from)
        self.pending = None
        if old and old != key:
            self.store.rename(old, key)
            log.info("Identifier changed %s -> %s", old, key)
        self.store.save(key, snapshot)
        self.saves += 1

    @classmethod
    def for_samples(cls, store: SampleStore) -> "Autosave":
        return cls(store, lambda snap: snap["form"]["sampleId"])

    @classmethod
    def for_boreholes(cls, store: BoreholeStore) -> "Autosave":
        return cls(store, lambda snap: snap["collar"]["holeId"])
