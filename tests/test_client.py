"""
Tests for the description-request client.
"""

import pytest
import requests

from client import DescriptionClient
from tests.conftest import FakeResponse


class FakeSession:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append({"url": url, "json": json, "timeout": timeout})
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestDescriptionClient:
    """Tests for request packaging and failure handling."""

    def test_success(self):
        session = FakeSession(FakeResponse(200, {"description": "Fine-grained basalt.", "model": "gpt-4o-mini"}))
        c = DescriptionClient("http://geo.local/", session=session)
        text = c.request({"lustre": "Dull"}, "data:image/jpeg;base64,AAAA", {"Fe": {"n": 1}})
        assert text == "Fine-grained basalt."
        assert c.text == text
        assert c.model == "gpt-4o-mini"
        assert c.error is None
        call = session.calls[0]
        assert call["url"] == "http://geo.local/api/describe"
        assert call["timeout"] == 25
        assert call["json"] == {"form": {"lustre": "Dull"}, "photoUrl": "data:image/jpeg;base64,AAAA",
                                "pxrfSummary": {"Fe": {"n": 1}}}

    def test_missing_photo_sent_as_null(self):
        session = FakeSession(FakeResponse(200, {"description": "x"}))
        DescriptionClient(session=session).request({})
        assert session.calls[0]["json"] == {"form": {}, "photoUrl": None, "pxrfSummary": None}

    @pytest.mark.parametrize("failure,expected", [
        (requests.Timeout("slow"), "timed out after 25s"),
        (requests.ConnectionError("refused"), "Network error"),
        (FakeResponse(500, {"error": "Missing OPENAI_API_KEY"}), "Missing OPENAI_API_KEY"),
        (FakeResponse(502, text="Bad gateway"), "Bad gateway"),
    ])
    def test_failure_keeps_previous_text(self, failure, expected):
        c = DescriptionClient(session=FakeSession(FakeResponse(200, {"description": "first"})))
        c.request({})
        c.session = FakeSession(failure)
        assert c.request({}) is None
        assert c.text == "first"
        assert expected in c.error

    def test_no_retry(self):
        session = FakeSession(requests.ConnectionError("down"))
        DescriptionClient(session=session).request({})
        assert len(session.calls) == 1

    def test_empty_description_placeholder(self):
        c = DescriptionClient(session=FakeSession(FakeResponse(200, {})))
        assert c.request({}) == "(no description returned)"
