"""
Gemini REST client: model catalog + generateContent.

Endpoints (v1beta):
    GET  {base}/models?key=...&pageSize=100
    POST {base}/models/{model}:generateContent?key=...

One request per call, no retries. Google Search grounding is attached only
for model families known to support it (substring match on the model id).
"""
from __future__ import annotations

import logging
from typing import Any

import requests
from requests.exceptions import RequestException

from kabu_ai.config import DEFAULT_API_BASE, DEFAULT_MODEL, Settings
from kabu_ai.errors import NETWORK_ERROR_MESSAGE, AuthError, RemoteError
from kabu_ai.models import Credentials, GenerationResult, ModelDescriptor, SourceCitation, is_web_url

logger = logging.getLogger(__name__)

# Model families that accept the google_search tool.
SEARCH_CAPABLE_KEYWORDS = ("gemini-2.0", "gemini-1.5", "gemini-2.5")

GENERATE_METHOD = "generateContent"
MODEL_NAME_PREFIX = "models/"

GENERATION_CONFIG = {
    "temperature": 0.1,
    "maxOutputTokens": 8192,
}


def supports_search(model_id: str) -> bool:
    return any(k in (model_id or "") for k in SEARCH_CAPABLE_KEYWORDS)


def _json_or_empty(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {}


def extract_text(data: Any) -> str:
    """candidates[0].content.parts[0].text, or "" when any hop is missing."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


def extract_citations(data: Any) -> list[SourceCitation]:
    """Grounding chunks with an http(s) web.uri, in service order."""
    try:
        meta = data["candidates"][0].get("groundingMetadata") or {}
    except (KeyError, IndexError, TypeError, AttributeError):
        return []
    chunks = meta.get("groundingChunks") if isinstance(meta, dict) else None
    out: list[SourceCitation] = []
    for chunk in chunks or []:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if not isinstance(web, dict):
            continue
        uri = str(web.get("uri") or "").strip()
        if not is_web_url(uri):
            continue
        out.append(SourceCitation(title=str(web.get("title") or "").strip(), url=uri))
    return out


def to_model_descriptor(raw: dict[str, Any]) -> ModelDescriptor:
    name = str(raw.get("name") or "")
    model_id = name.replace(MODEL_NAME_PREFIX, "", 1) if name.startswith(MODEL_NAME_PREFIX) else name
    return ModelDescriptor(
        id=model_id,
        display_name=str(raw.get("displayName") or "") or model_id,
        description=str(raw.get("description") or ""),
        supports_search=supports_search(name),
    )


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout: float = 120.0,
    ):
        self.api_key = (api_key or "").strip()
        self.model = (model or "").strip() or DEFAULT_MODEL
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_credentials(cls, credentials: Credentials, settings: Settings) -> "GeminiClient":
        return cls(
            credentials.api_key,
            credentials.selected_model,
            base_url=settings.gemini_api_base,
            timeout=settings.gemini_timeout,
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def list_models(self, api_key_override: str | None = None) -> list[ModelDescriptor]:
        """
        Models that support generateContent, newest-looking ids first.

        The sort is plain reverse-lexicographic on the id, which happens to
        put gemini-2.5 above gemini-2.0 above gemini-1.5.
        """
        key = (api_key_override or "").strip() or self.api_key
        if not key:
            raise AuthError()

        url = f"{self.base_url}/models"
        try:
            resp = requests.get(url, params={"key": key, "pageSize": 100}, timeout=self.timeout)
        except RequestException as exc:
            logger.warning("Model catalog request failed: %s", exc)
            raise RemoteError(None, NETWORK_ERROR_MESSAGE) from exc

        if not resp.ok:
            raise RemoteError.from_response(resp.status_code, _json_or_empty(resp))

        data = _json_or_empty(resp)
        rows = data.get("models") if isinstance(data, dict) else None
        models = [
            to_model_descriptor(m)
            for m in (rows or [])
            if isinstance(m, dict) and GENERATE_METHOD in (m.get("supportedGenerationMethods") or [])
        ]
        models.sort(key=lambda m: m.id, reverse=True)
        logger.info("Fetched %d generateContent-capable models", len(models))
        return models

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def build_request_body(self, prompt: str, use_search: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": dict(GENERATION_CONFIG),
        }
        if use_search:
            body["tools"] = [{"google_search": {}}]
        return body

    def generate(self, prompt: str, allow_search: bool = True) -> GenerationResult:
        if not self.api_key:
            raise AuthError()

        use_search = allow_search and supports_search(self.model)
        url = f"{self.base_url}/models/{self.model}:{GENERATE_METHOD}"
        body = self.build_request_body(prompt, use_search)

        logger.info("generateContent model=%s grounding=%s prompt_chars=%d", self.model, use_search, len(prompt))
        try:
            resp = requests.post(
                url,
                params={"key": self.api_key},
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as exc:
            logger.warning("generateContent request failed: %s", exc)
            raise RemoteError(None, NETWORK_ERROR_MESSAGE) from exc

        if not resp.ok:
            err = RemoteError.from_response(resp.status_code, _json_or_empty(resp))
            logger.warning("generateContent HTTP %s: %s", resp.status_code, err.message)
            raise err

        data = _json_or_empty(resp)
        return GenerationResult(
            text=extract_text(data),
            citations=extract_citations(data),
            model_used=self.model,
            grounding_used=use_search,
        )
