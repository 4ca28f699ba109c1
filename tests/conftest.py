"""
Shared fixtures: a throwaway SQLite database per test and a TestClient
with the database and describer dependencies overridden.
"""

import base64
import io
import os

# Keep the app from creating ./geodescribe.db when main is imported.
os.environ["ENABLE_DB"] = "0"
os.environ.pop("OPENAI_API_KEY", None)

import pytest
from PIL import Image
from sqlalchemy.orm import sessionmaker

import database
import models  # noqa: F401  (registers the records table)


def make_image(size=(64, 48), color=(200, 40, 30), fmt="JPEG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_data_url(size=(64, 48), color=(200, 40, 30)) -> str:
    return "data:image/jpeg;base64," + base64.b64encode(make_image(size, color)).decode("ascii")


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


@pytest.fixture
def db_session(tmp_path):
    engine = database.make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    database.Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def sample_record():
    return {
        "form": {
            "sampleId": "MDO-001",
            "project": "Red Hill",
            "date": "2026-10-18T09:30",
            "lat": "-31.95",
            "lon": "115.86",
            "elevation": "212",
            "category": "Gossan / Iron-oxide",
            "lustre": "Earthy",
            "grainSize": "Sand",
            "minerals": ["Hematite", "Goethite"],
            "alteration": ["Hematization"],
            "notes": "Boxwork texture after sulfides",
        },
        "photos": [],
        "pxrf": {"rows": [], "summary": {}},
        "createdAt": "2026-10-18T01:30:00+00:00",
    }


@pytest.fixture
def fake_describer():
    class FakeDescriber:
        def __init__(self):
            self.calls = []

        def describe(self, form, photo_url=None, pxrf_summary=None):
            from describe import DescribeResult

            self.calls.append((form, photo_url, pxrf_summary))
            return DescribeResult(description="Red-brown earthy ironstone.", model="gpt-test")

    return FakeDescriber()


@pytest.fixture
def client(db_session, fake_describer):
    from fastapi.testclient import TestClient

    import main

    main.app.dependency_overrides[database.get_db] = lambda: db_session
    main.app.dependency_overrides[main.get_describer] = lambda: fake_describer
    with TestClient(main.app) as c:
        yield c
    main.app.dependency_overrides.clear()
