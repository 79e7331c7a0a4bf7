from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from google import genai
from google.genai import types
from google.oauth2 import service_account

from aipreview.config import DEFAULT_MODEL_ID, PRO_MODEL_ID, Settings
from aipreview.models import ModelProfile, Usage


log = logging.getLogger(__name__)

VERTEX_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

MODEL_PROFILES: Dict[str, ModelProfile] = {
    DEFAULT_MODEL_ID: ModelProfile(model_id=DEFAULT_MODEL_ID, max_output_tokens=8192),
    PRO_MODEL_ID: ModelProfile(model_id=PRO_MODEL_ID, max_output_tokens=16384),
}

_RATE_LIMIT_MARKERS = ("429", "Too Many Requests", "RESOURCE_EXHAUSTED")

AUTH_ERROR = "auth"
NOT_FOUND_ERROR = "not_found"
QUOTA_ERROR = "quota"

_INIT_HINTS = {
    AUTH_ERROR: (
        "Authentication/permission problem: point GOOGLE_APPLICATION_CREDENTIALS at a service-account "
        "JSON file (or run `gcloud auth application-default login`) and grant it the Vertex AI User role."
    ),
    NOT_FOUND_ERROR: (
        "API or model not found: enable aiplatform.googleapis.com for the project and check that the "
        "model is available in the configured location."
    ),
    QUOTA_ERROR: "Quota or limit exceeded: check the Vertex AI quotas for the project.",
}


class GatewayError(RuntimeError):
    pass


class ResponseShapeError(GatewayError):
    """The model response carried no text in any known shape."""


class RateLimitedError(GatewayError):
    """The provider refused the call with HTTP 429 / RESOURCE_EXHAUSTED."""


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _has_rate_limit_code(obj: Any) -> bool:
    for name in ("code", "status", "status_code"):
        value = _field(obj, name)
        if value == 429 or value == "429" or value == "RESOURCE_EXHAUSTED":
            return True
    return False


def is_rate_limited(exc: BaseException) -> bool:
    message = str(exc) or ""
    if any(marker in message for marker in _RATE_LIMIT_MARKERS):
        return True
    if _has_rate_limit_code(exc):
        return True
    inner = _field(exc, "error")
    if inner is not None:
        if _has_rate_limit_code(inner):
            return True
        inner_message = _field(inner, "message")
        if isinstance(inner_message, str) and any(m in inner_message for m in _RATE_LIMIT_MARKERS):
            return True
    return False


def classify_init_error(exc: BaseException) -> Optional[str]:
    message = str(exc) or ""
    lower = message.lower()
    code = _field(exc, "code")
    if (
        "authentication" in lower
        or "permission" in lower
        or "unable to authenticate" in lower
        or code == 403
    ):
        return AUTH_ERROR
    if "not found" in lower or "404" in message or code == 404:
        return NOT_FOUND_ERROR
    if "quota" in lower or "limit" in lower or code == 429:
        return QUOTA_ERROR
    return None


def _text_of(obj: Any) -> Optional[str]:
    text = _field(obj, "text")
    if callable(text):
        try:
            text = text()
        except Exception as e:
            log.debug("text() accessor failed: %r", e)
            return None
    return text if isinstance(text, str) else None


def _first_candidate_text(obj: Any) -> Optional[str]:
    candidates = _field(obj, "candidates")
    if not candidates:
        return None
    parts = _field(_field(candidates[0], "content"), "parts")
    if not parts:
        return None
    text = _field(parts[0], "text")
    return text if isinstance(text, str) else None


def extract_text(response: Any) -> str:
    """Pull the generated text out of whichever response shape the SDK returned."""
    text = _text_of(response)
    if text is not None:
        return text
    inner = _field(response, "response")
    if inner is not None:
        text = _text_of(inner)
        if text is not None:
            return text
        text = _first_candidate_text(inner)
        if text is not None:
            return text
    text = _first_candidate_text(response)
    if text is not None:
        return text
    raise ResponseShapeError(f"no text in model response of type {type(response).__name__}")


def _count(meta: Any, snake: str, camel: str) -> Optional[int]:
    value = _field(meta, snake)
    if value is None:
        value = _field(meta, camel)
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def extract_usage(response: Any) -> Optional[Usage]:
    meta = None
    for source in (response, _field(response, "response")):
        meta = _field(source, "usage_metadata") or _field(source, "usageMetadata")
        if meta is not None:
            break
    if meta is None:
        return None
    prompt = _count(meta, "prompt_token_count", "promptTokenCount") or 0
    candidates = _count(meta, "candidates_token_count", "candidatesTokenCount") or 0
    total = _count(meta, "total_token_count", "totalTokenCount")
    return Usage(
        prompt_token_count=prompt,
        candidates_token_count=candidates,
        total_token_count=total if total is not None else prompt + candidates,
    )


class VertexModelHandle:
    """A google-genai client bound to one model profile."""

    def __init__(self, client: Any, profile: ModelProfile):
        self.client = client
        self.profile = profile

    async def generate_content(self, text: str) -> Any:
        return await self.client.aio.models.generate_content(
            model=self.profile.model_id,
            contents=text,
            config=types.GenerateContentConfig(
                max_output_tokens=self.profile.max_output_tokens,
                temperature=self.profile.temperature,
                top_p=self.profile.top_p,
            ),
        )


def build_vertex_client(settings: Settings) -> Any:
    credentials = None
    if settings.credentials_path:
        path = Path(settings.credentials_path)
        if path.is_file():
            credentials = service_account.Credentials.from_service_account_file(str(path), scopes=VERTEX_SCOPES)
        else:
            log.warning("Service account file %s not found; using application default credentials", path)
    return genai.Client(
        vertexai=True,
        project=settings.project_id,
        location=settings.location,
        credentials=credentials,
    )


ClientFactory = Callable[[Settings], Any]
HandleFactory = Callable[[Any, ModelProfile], Any]


class ModelGateway:
    """Owns the provider client and hands out one memoized handle per model."""

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
        handle_factory: Optional[HandleFactory] = None,
    ):
        self.settings = settings
        self._client_factory = client_factory or build_vertex_client
        self._handle_factory = handle_factory or VertexModelHandle
        self._client: Any = None
        self._handles: Dict[str, Any] = {}
        self._ready = False

    @property
    def ready(self) -> bool:
        return self._ready

    def initialize(self) -> bool:
        """Build the provider client. Never raises; returns whether the gateway is usable."""
        self._ready = False
        self._handles.clear()
        if not self.settings.project_id:
            log.warning("GCP_PROJECT_ID not set; AI generation disabled, serving offline fallbacks")
            return False
        log.info(
            "Initializing Vertex AI project=%s location=%s model=%s",
            self.settings.project_id,
            self.settings.location,
            self.settings.default_model,
        )
        try:
            self._client = self._client_factory(self.settings)
        except Exception as e:
            category = classify_init_error(e)
            log.error("Vertex AI initialization failed (%s): %s", category or "unknown", e)
            if category:
                log.error(_INIT_HINTS[category])
            log.warning("AI features disabled; previews will use offline fallbacks")
            self._client = None
            return False
        self._ready = True
        log.info("Vertex AI ready with %s", self.settings.default_model)
        return True

    def profile_for(self, model_id: Optional[str] = None) -> ModelProfile:
        requested = (model_id or "").strip() or self.settings.default_model
        profile = MODEL_PROFILES.get(requested)
        if profile is None:
            log.warning("Unknown model id %r; using %s", requested, DEFAULT_MODEL_ID)
            profile = MODEL_PROFILES[DEFAULT_MODEL_ID]
        return profile

    def resolve(self, model_id: Optional[str] = None) -> Optional[Any]:
        """Return the handle for model_id, or None while the gateway is not ready."""
        if not self._ready:
            return None
        profile = self.profile_for(model_id)
        handle = self._handles.get(profile.model_id)
        if handle is None:
            handle = self._handle_factory(self._client, profile)
            self._handles[profile.model_id] = handle
        return handle

    async def invoke(self, handle: Any, prompt: str) -> Tuple[str, Optional[Usage]]:
        try:
            response = await handle.generate_content(prompt)
        except Exception as e:
            if is_rate_limited(e):
                raise RateLimitedError(str(e)) from e
            raise
        return extract_text(response), extract_usage(response)
