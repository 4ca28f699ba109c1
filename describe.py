"""
AI field descriptions via the OpenAI Chat Completions API.

A ``Describer`` combines one ``PromptTemplate`` with an ordered list of
candidate models. Each request goes to the first model; when the upstream
answers with a status that means "this model is not usable right now"
(no access, unknown model, rate limit, server error) the next candidate is
tried. A 401 stops immediately since no other model will accept the key.

API docs: https://platform.openai.com/docs/api-reference/chat/create
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import requests

import settings

log = logging.getLogger(__name__)

TIMEOUT = 60  # seconds, per upstream attempt

FALLBACK_STATUSES = {400, 403, 404, 408, 409, 429, 500, 502, 503, 504}

STATUS_HINTS = {
    401: "API key rejected or missing the model scope",
    403: "API key lacks access to this model",
    404: "model unavailable for this key",
    429: "rate limited or out of quota",
}


class DescribeError(Exception):
    """Base for failures the HTTP layer reports as a 500."""


class MissingKeyError(DescribeError):
    def __init__(self):
        super().__init__("Missing OPENAI_API_KEY")


class UpstreamError(DescribeError):
    """Non-success answer from the model provider."""

    def __init__(self, status: int, body: str, model: str = ""):
        self.status = status
        self.body = body
        self.model = model
        self.hint = STATUS_HINTS.get(status)
        message = f"Upstream {status}: {body}"
        if self.hint:
            message += f" ({self.hint})"
        super().__init__(message)


# -------------------------------------------------------------------------
#  Prompt
# -------------------------------------------------------------------------

STYLE = (
    "STYLE:\n"
    "- Two short paragraphs. No headings, bullets, or JSON.\n"
    "- Para 1: observational description ONLY (colour, lustre, texture/fabric, "
    "grain-size class if inferable, visible or likely minerals, alteration such as "
    "Fe-oxides). Base it on the photo; use the form only as context. Do not mention "
    "magnetism or HCl unless present in FORM.\n"
    "- Para 2: concise interpretation grounded in the observations (process/setting).\n"
    "- Finish with exactly one line:  Suggested rock name: <single best-fit lithologic term>"
)

DECISION_RULES = (
    "DECISION RULES:\n"
    "- Do not call it a breccia unless there are distinct clasts with clear "
    "clast-matrix boundaries or vein fills; conchoidal fracture is not clasts.\n"
    "- Homogeneous fine or cryptocrystalline silica with conchoidal fracture and "
    "waxy to dull lustre is most likely chert (flint if dark, jasper if red/Fe-rich).\n"
    "- Use cautious wording only when supported by visible cues."
)

MASTER_TERMS = (
    "aphanitic, phaneritic, porphyritic, clastic, crystalline, vesicular, glassy, "
    "foliated, massive, brecciated; felsic, mafic, ultramafic, siliceous, calcareous, "
    "ferruginous; basalt, andesite, rhyolite, tuff, granite, diorite, gabbro, pegmatite; "
    "sandstone, conglomerate, breccia, limestone, dolostone, chert, jasper, gossan, "
    "ironstone; slate, phyllite, schist, gneiss, quartzite, marble, serpentinite; "
    "silicification, sericitization, chloritization, hematization, epidotization; "
    "magmatic, sedimentary, metamorphic, hydrothermal, supergene."
)


@dataclass
class PromptTemplate:
    """System message plus the instruction text that precedes the context."""

    system: str = "You are a no-fluff exploration geologist."
    instructions: str = (
        "You are a precise field geologist. Produce a tight observation and "
        "interpretation, then pick ONE rock name.\n\n"
        + STYLE + "\n\n" + DECISION_RULES + "\n\n"
        + "Vocabulary guidance:\n" + MASTER_TERMS
    )
    image_detail: str = "high"

    def user_text(self, form: dict, pxrf_summary: Optional[dict]) -> str:
        # Compact JSON keeps the token count down.
        text = self.instructions + "\n\n" + f"FORM (context): {json.dumps(form or {}, separators=(',', ':'))}\n"
        if pxrf_summary:
            text += f"PXRF: {json.dumps(pxrf_summary, separators=(',', ':'))}\n"
        return text

    def messages(self, form: dict, photo_url: Optional[str], pxrf_summary: Optional[dict]) -> list[dict]:
        content = [{"type": "text", "text": self.user_text(form, pxrf_summary)}]
        if photo_url:
            content.append({"type": "image_url", "image_url": {"url": photo_url, "detail": self.image_detail}})
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": content},
        ]


_HEADING = re.compile(r"^\s*#+\s*", re.MULTILINE)
_BULLET = re.compile(r"^\s*[-*]\s+", re.MULTILINE)


def clean_description(text: str) -> str:
    """Strip Markdown headings and bullets the model sometimes emits."""
    return _BULLET.sub("", _HEADING.sub("", (text or "").strip()))


# -------------------------------------------------------------------------
#  Describer
# -------------------------------------------------------------------------

@dataclass
class DescribeResult:
    description: str
    model: str
    attempts: list[str] = field(default_factory=list)


class Describer:
    """Prompt + ordered model candidates against one upstream API."""

    def __init__(
        self,
        prompt: Optional[PromptTemplate] = None,
        models: Optional[list[str]] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ):
        self.prompt = prompt or PromptTemplate()
        self.models = models or settings.openai_models()
        self.temperature = settings.openai_temperature() if temperature is None else temperature
        self.api_key = api_key if api_key is not None else settings.openai_api_key()
        self.base_url = (base_url or settings.openai_base_url()).rstrip("/")

    @classmethod
    def from_env(cls) -> "Describer":
        return cls()

    def _post(self, model: str, messages: list[dict]) -> requests.Response:
        url = f"{self.base_url}/chat/completions"
        body = {"model": model, "temperature": self.temperature, "messages": messages}
        log.info("OpenAI describe → %s model=%s", url, model)
        return requests.post(
            url,
            headers={"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
            json=body,
            timeout=TIMEOUT,
        )

    def describe(self, form: dict, photo_url: Optional[str] = None, pxrf_summary: Optional[dict] = None) -> DescribeResult:
        if not self.api_key:
            raise MissingKeyError()

        messages = self.prompt.messages(form, photo_url, pxrf_summary)
        attempts = []
        last_error = None
        for model in self.models:
            attempts.append(model)
            resp = self._post(model, messages)
            if resp.ok:
                data = resp.json()
                try:
                    content = data["choices"][0]["message"]["content"] or ""
                except (KeyError, IndexError, TypeError):
                    content = ""
                log.info("OpenAI describe ← %s, %d chars", model, len(content))
                return DescribeResult(description=clean_description(content), model=model, attempts=attempts)

            last_error = UpstreamError(resp.status_code, resp.text, model)
            log.warning("OpenAI model %s failed with %s", model, resp.status_code)
            log.debug("OpenAI error body: %s", resp.text[:500])
            if resp.status_code not in FALLBACK_STATUSES:
                break

        raise last_error
