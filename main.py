from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from enum import Enum
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import List
import json
import logging
import os

import settings
import schemas
import database
import models
import storage
import exports
import colour
import validation
from describe import Describer, DescribeError
from form_state import Autosave, BoreholeState, FormState

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

# 1. Creating table in the database (optional in serverless mode)
if database.DATABASE_ENABLED and database.engine is not None:
    models.Base.metadata.create_all(bind=database.engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.openai_api_key():
        log.warning("OPENAI_API_KEY is not set; /api/describe will answer 500")
    log.info("GeoDescribe ready (models: %s)", ", ".join(settings.openai_models()))
    yield

app = FastAPI(title="GeoDescribe", lifespan=lifespan)

# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RecordKind(str, Enum):
    samples = "samples"
    outcrops = "outcrops"


NAMESPACES = {
    RecordKind.samples: storage.SAMPLE,
    RecordKind.outcrops: storage.OUTCROP,
}


# --- Dependencies ---

def get_describer() -> Describer:
    return Describer.from_env()


def require_db(db: Session = Depends(database.get_db)) -> Session:
    if db is None:
        raise HTTPException(status_code=503, detail="Record storage is disabled (ENABLE_DB=0).")
    return db


def _sample_store(kind: RecordKind, db: Session) -> storage.SampleStore:
    return storage.SampleStore(db, NAMESPACES[kind])


def _require_key(key: str, field: str) -> None:
    if not key.strip():
        raise HTTPException(status_code=400, detail=f"{field} must not be empty.")


def _load_or_404(store: storage.RecordStore, key: str) -> dict:
    record = store.load(key)
    if record is None:
        raise HTTPException(status_code=404, detail=f"No {store.namespace} record '{key}'.")
    return record


def _open_form(store: storage.SampleStore, sample_id: str) -> FormState:
    """Form state for ``sample_id`` with autosave attached; new when absent."""
    record = store.load(sample_id)
    state = FormState(record if record is not None else {"form": {"sampleId": sample_id}})
    state.subscribe(Autosave.for_samples(store))
    return state


def _open_borehole(store: storage.BoreholeStore, hole_id: str) -> BoreholeState:
    record = store.load(hole_id)
    state = BoreholeState(record if record is not None else {"collar": {"holeId": hole_id}})
    state.subscribe(Autosave.for_boreholes(store))
    return state


def _primary_colour(record: dict):
    images = record.get("photos") or []
    if not images:
        return None
    try:
        return colour.summarize(images[0])
    except (ValueError, OSError) as e:
        log.warning("Primary photo could not be analysed: %s", e)
        return None


# --- API Endpoints ---

@app.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    return "ok"


@app.post("/api/describe")
async def describe_endpoint(request: Request, describer: Describer = Depends(get_describer)):
    """Form + active photo + pXRF summary in, plain-text field description out."""
    try:
        length = int(request.headers.get("content-length") or 0)
    except ValueError:
        return JSONResponse({"error": "Invalid Content-Length header"}, status_code=400)
    if length > settings.MAX_BODY_MB * 1024 * 1024:
        return JSONResponse({"error": f"Request body exceeds {settings.MAX_BODY_MB:g} MB"}, status_code=413)

    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else {}
        body = schemas.DescribeRequest.model_validate(payload)
    except (ValueError, ValidationError) as e:
        return JSONResponse({"error": "Invalid JSON body", "details": str(e)}, status_code=400)

    try:
        result = await run_in_threadpool(
            describer.describe, body.form, body.photo_url, body.pxrf_summary
        )
    except DescribeError as e:
        log.error("API /describe error: %s", e)
        return JSONResponse({"error": str(e)}, status_code=500)
    except Exception as e:
        log.exception("API /describe error")
        return JSONResponse({"error": str(e)}, status_code=500)

    return schemas.DescribeResponse(description=result.description, model=result.model)


@app.post("/api/colour", response_model=schemas.ColourSummaryOut)
async def colour_endpoint(request: schemas.ColourRequest):
    """Average colour and iron-oxide flag for one image."""
    try:
        summary = colour.summarize(request.photo_url)
    except (ValueError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"Could not decode image: {e}")
    return summary.to_dict()


# --- Boreholes ---

@app.get("/api/boreholes", response_model=List[schemas.BoreholeSummary])
def list_boreholes(db: Session = Depends(require_db)):
    return storage.BoreholeStore(db).list()


@app.get("/api/boreholes/{hole_id}")
def get_borehole(hole_id: str, db: Session = Depends(require_db)):
    return _load_or_404(storage.BoreholeStore(db), hole_id)


@app.put("/api/boreholes/{hole_id}")
def put_borehole(hole_id: str, record: schemas.BoreholeRecord, db: Session = Depends(require_db)):
    """Replace the snapshot; a changed holeId moves the record."""
    store = storage.BoreholeStore(db)
    payload = record.to_dict()
    _require_key(payload["collar"]["holeId"], "holeId")
    store.rename(hole_id, payload["collar"]["holeId"])
    store.save_record(payload)
    return payload


@app.patch("/api/boreholes/{hole_id}")
def patch_borehole(hole_id: str, request: schemas.BoreholePatchRequest, db: Session = Depends(require_db)):
    state = _open_borehole(storage.BoreholeStore(db), hole_id)
    try:
        for action in request.actions:
            state.dispatch(action)
    except (ValueError, KeyError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return state.snapshot()


@app.delete("/api/boreholes/{hole_id}", status_code=204)
def delete_borehole(hole_id: str, db: Session = Depends(require_db)):
    if not storage.BoreholeStore(db).delete(hole_id):
        raise HTTPException(status_code=404, detail=f"No borehole record '{hole_id}'.")
    return Response(status_code=204)


@app.post("/api/boreholes/{hole_id}/intervals", status_code=201)
def add_interval(hole_id: str, interval: schemas.IntervalIn, db: Session = Depends(require_db)):
    store = storage.BoreholeStore(db)
    _load_or_404(store, hole_id)
    state = _open_borehole(store, hole_id)
    snap = state.dispatch({"type": "add_interval", "value": interval.to_dict()})
    return snap["intervals"][-1]


@app.delete("/api/boreholes/{hole_id}/intervals/{interval_id}", status_code=204)
def delete_interval(hole_id: str, interval_id: str, db: Session = Depends(require_db)):
    store = storage.BoreholeStore(db)
    _load_or_404(store, hole_id)
    state = _open_borehole(store, hole_id)
    try:
        state.dispatch({"type": "delete_interval", "id": interval_id})
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No interval '{interval_id}' in '{hole_id}'.")
    return Response(status_code=204)


@app.get("/api/boreholes/{hole_id}/validate", response_model=List[schemas.IssueOut])
def validate_borehole(hole_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(storage.BoreholeStore(db), hole_id)
    return [vars(i) for i in validation.check_borehole(record).issues]


@app.get("/api/boreholes/{hole_id}/export.csv")
def export_borehole_csv(hole_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(storage.BoreholeStore(db), hole_id)
    return Response(
        exports.borehole_to_csv(record),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{hole_id}.csv"'},
    )


# --- Samples & outcrops ---

@app.get("/api/{kind}", response_model=List[schemas.SampleSummary])
def list_records(kind: RecordKind, db: Session = Depends(require_db)):
    return _sample_store(kind, db).list()


@app.get("/api/{kind}/{sample_id}")
def get_record(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    return _load_or_404(_sample_store(kind, db), sample_id)


@app.put("/api/{kind}/{sample_id}")
def put_record(kind: RecordKind, sample_id: str, record: schemas.SampleRecord,
               db: Session = Depends(require_db)):
    """Replace the snapshot; a changed sampleId moves the record."""
    store = _sample_store(kind, db)
    payload = record.to_dict()
    _require_key(payload["form"]["sampleId"], "sampleId")
    store.rename(sample_id, payload["form"]["sampleId"])
    store.save_record(payload)
    return payload


@app.patch("/api/{kind}/{sample_id}")
def patch_record(kind: RecordKind, sample_id: str, request: schemas.PatchRequest,
                 db: Session = Depends(require_db)):
    """Apply form actions in order; each one is autosaved."""
    state = _open_form(_sample_store(kind, db), sample_id)
    errors = []
    try:
        for action in request.actions:
            state.dispatch(action)
            errors += state.errors
    except (ValueError, IndexError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"record": state.snapshot(), "active": state.photos.active, "errors": errors}


@app.delete("/api/{kind}/{sample_id}", status_code=204)
def delete_record(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    if not _sample_store(kind, db).delete(sample_id):
        raise HTTPException(status_code=404, detail=f"No record '{sample_id}'.")
    return Response(status_code=204)


@app.post("/api/{kind}/{sample_id}/photos", response_model=schemas.PhotoUploadResponse)
def upload_photos(kind: RecordKind, sample_id: str, upload: schemas.PhotoUpload,
                  db: Session = Depends(require_db)):
    """Downscale the submitted images and append them in order."""
    state = _open_form(_sample_store(kind, db), sample_id)
    before = len(state.photos)
    state.dispatch({"type": "add_photos", "images": upload.images})
    return {"added": len(state.photos) - before, "failed": state.errors, "photos": len(state.photos)}


@app.post("/api/{kind}/{sample_id}/pxrf", response_model=schemas.PxrfData)
def import_pxrf(kind: RecordKind, sample_id: str, upload: schemas.PxrfImport,
                db: Session = Depends(require_db)):
    state = _open_form(_sample_store(kind, db), sample_id)
    state.dispatch({"type": "import_pxrf", "csv": upload.csv})
    return state.pxrf


@app.get("/api/{kind}/{sample_id}/draft", response_model=schemas.DraftResponse)
def quick_draft(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(_sample_store(kind, db), sample_id)
    summary = _primary_colour(record)
    return {
        "draft": exports.quick_draft(record.get("form") or {}, summary),
        "colour": summary.to_dict() if summary else None,
    }


@app.get("/api/{kind}/{sample_id}/validate", response_model=List[schemas.IssueOut])
def validate_record(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(_sample_store(kind, db), sample_id)
    return [vars(i) for i in validation.check_sample(record.get("form") or {}).issues]


@app.get("/api/{kind}/{sample_id}/export.md")
def export_markdown(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(_sample_store(kind, db), sample_id)
    text = exports.to_markdown(
        record.get("form") or {},
        _primary_colour(record),
        len(record.get("photos") or []),
        (record.get("pxrf") or {}).get("summary"),
    )
    return PlainTextResponse(text, media_type="text/markdown")


@app.get("/api/{kind}/{sample_id}/export.json")
def export_json(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(_sample_store(kind, db), sample_id)
    return Response(exports.to_json(record), media_type="application/json")


@app.get("/api/{kind}/{sample_id}/export.geojson")
def export_geojson(kind: RecordKind, sample_id: str, db: Session = Depends(require_db)):
    record = _load_or_404(_sample_store(kind, db), sample_id)
    return JSONResponse(exports.to_geojson(record), media_type="application/geo+json")


# --- Static Files & Frontend Route ---

app.mount("/static", StaticFiles(directory=settings.STATIC_DIR, check_dir=False), name="static")


@app.get("/{full_path:path}", include_in_schema=False)
async def read_index(full_path: str):
    if full_path.startswith("api/"):
        raise HTTPException(status_code=404, detail="Not Found")
    index_path = os.path.join(settings.STATIC_DIR, "index.html")
    if not os.path.exists(index_path):
        return JSONResponse({"error": "index.html not found in the static folder"}, status_code=404)
    return FileResponse(index_path)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
