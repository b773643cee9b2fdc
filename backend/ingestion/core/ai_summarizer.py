"""Summary and keyword generation through a plain-text generation endpoint.

The endpoint takes `{"prompt": ...}` and answers with the generated text,
either as a raw body or as a JSON string.
"""

from __future__ import annotations

import logging
from typing import List

import httpx


logger = logging.getLogger("subsidy.ingestion.ai_summarizer")

DEFAULT_TEXT_GENERATION_URL = "http://localhost:5000/generate"

SUMMARY_MAX_CHARS = 30
KEYWORD_COUNT = 15


def build_summary_prompt(content: str) -> str:
    return f"Summarize the following content in {SUMMARY_MAX_CHARS} characters or less: {content}"


def build_keywords_prompt(content: str) -> str:
    return f"Extract {KEYWORD_COUNT} key keywords from the following content: {content}"


def parse_keywords(raw: str) -> List[str]:
    """Comma-separated model output -> trimmed, non-empty terms in order."""
    return [k.strip() for k in raw.split(",") if k.strip()]


class TextGenerationClient:
    def __init__(self, http: httpx.AsyncClient, url: str = DEFAULT_TEXT_GENERATION_URL):
        self._http = http
        self._url = url

    async def generate(self, prompt: str) -> str:
        response = await self._http.post(
            self._url,
            json={"prompt": prompt},
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()

        if "application/json" in response.headers.get("content-type", ""):
            body = response.json()
            if isinstance(body, str):
                return body
            # Some local servers wrap the text: {"response": "..."} / {"text": "..."}
            if isinstance(body, dict):
                for key in ("response", "text", "result"):
                    if isinstance(body.get(key), str):
                        return body[key]
            raise ValueError(f"Unexpected text generation payload: {type(body).__name__}")
        return response.text
