"""
Client for the ``POST /api/describe`` endpoint.

Mirrors what the browser form does: send the current form, the active
photo and the pXRF summary, wait at most 25 seconds, and keep showing the
previous description if anything goes wrong. There is no retry here; the
server already walks its list of candidate models.
"""

import logging
from typing import Optional

import requests

log = logging.getLogger(__name__)

TIMEOUT = 25  # seconds
DESCRIBE_PATH = "/api/describe"


class DescriptionClient:
    def __init__(self, base_url: str = "http://localhost:3000", timeout: float = TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.text = ""
        self.model: Optional[str] = None
        self.error: Optional[str] = None

    def request(self, form: dict, photo_url: Optional[str] = None,
                pxrf_summary: Optional[dict] = None) -> Optional[str]:
        """Ask for a description; returns it, or None after recording ``error``."""
        self.error = None
        body = {"form": form or {}, "photoUrl": photo_url or None, "pxrfSummary": pxrf_summary or None}
        try:
            resp = self.session.post(self.base_url + DESCRIBE_PATH, json=body, timeout=self.timeout)
        except requests.Timeout:
            self.error = f"Request timed out after {self.timeout:g}s"
            log.warning("Describe request timed out")
            return None
        except requests.RequestException as exc:
            self.error = f"Network error: {exc}"
            log.warning("Describe request failed: %s", exc)
            return None

        if not resp.ok:
            self.error = _error_message(resp)
            log.warning("Describe request returned %s", resp.status_code)
            return None

        try:
            data = resp.json()
        except ValueError:
            self.error = "Invalid JSON in response"
            return None

        self.text = data.get("description") or data.get("text") or "(no description returned)"
        self.model = data.get("model")
        return self.text


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        return str(data.get("error") or data.get("detail") or f"HTTP {resp.status_code}")
    return f"HTTP {resp.status_code}"
