"""Entry points that tie prompts, the model gateway, parsing, fallbacks and the cache together.

Every public coroutine returns a GenerationResult; provider failures turn into
fallback results flagged ``is_mock`` and are never raised to the caller.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from aipreview.cache import COMBINED_PREFIX, PROJECT_PREFIX, WEBSITE_PREFIX, TTLCache
from aipreview.config import Settings, configure_logging
from aipreview.fallbacks import mock_analysis, mock_combined, mock_website
from aipreview.llm_client import ModelGateway, RateLimitedError, ResponseShapeError
from aipreview.llm_parsing import extract_code, parse_analysis_response, parse_combined_response
from aipreview.llm_prompts import (
    build_analysis_prompt,
    build_combined_prompt,
    build_regenerate_prompt,
    build_website_prompt,
)
from aipreview.models import GenerationRequest, GenerationResult, Usage
from aipreview.redis_cache import RedisCache
from aipreview.validators import collect_errors


log = logging.getLogger(__name__)

Cache = Union[TTLCache, RedisCache]


def build_cache(settings: Settings) -> Cache:
    if settings.cache_backend == "redis":
        log.info("Using Redis cache at %s", settings.redis_url)
        return RedisCache(settings.redis_url, settings.cache_ttl_seconds)
    return TTLCache(settings.cache_ttl_seconds)


def _cache_key(namespace: str, prompt: str, inputs: Mapping[str, Any], model_id: str = "") -> str:
    request = GenerationRequest(raw_prompt=prompt or "", structured_inputs=dict(inputs), model_id=model_id)
    return request.cache_key(namespace)


class PreviewService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        gateway: Optional[ModelGateway] = None,
        cache: Optional[Cache] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.gateway = gateway or ModelGateway(self.settings)
        self.cache = cache if cache is not None else build_cache(self.settings)
        self._sweeper: Optional[asyncio.Task] = None

    async def init(self) -> bool:
        """Initialize the gateway and start the cache sweeper. Returns readiness."""
        configure_logging(self.settings.log_level)
        ready = self.gateway.initialize()
        if self._sweeper is None and self.settings.cache_check_period_seconds > 0:
            self._sweeper = asyncio.create_task(self._sweep_periodically())
        return ready

    async def shutdown(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.settings.cache_check_period_seconds)
            try:
                self.cache.sweep()
            except Exception:
                log.exception("Cache sweep failed")

    def status(self) -> Dict[str, Any]:
        stats = self.cache.stats()
        return {
            "initialized": self.gateway.ready,
            "cacheKeys": stats["keys"],
            "cacheHits": stats["hits"],
            "cacheMisses": stats["misses"],
        }

    async def _call_model(self, handle: Any, prompt: str) -> Tuple[str, Optional[Usage]]:
        """Invoke the model, retrying exactly once after a fixed pause when rate limited."""
        try:
            text, usage = await self.gateway.invoke(handle, prompt)
        except RateLimitedError as e:
            delay = self.settings.retry_delay_seconds
            log.warning("Rate limited (%s); retrying once in %.1fs", e, delay)
            await asyncio.sleep(delay)
            text, usage = await self.gateway.invoke(handle, prompt)
        if not text or not text.strip():
            raise ResponseShapeError("model returned empty text")
        return text, usage

    # -- analyze ---------------------------------------------------------------

    def _fallback_analysis(self, prompt: str, inputs: Mapping[str, Any], key: str) -> GenerationResult:
        result = json.dumps(mock_analysis(prompt, inputs), indent=2, ensure_ascii=False)
        self.cache.set(key, result, is_mock=True)
        return GenerationResult(result=result, is_mock=True)

    async def analyze(self, prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> GenerationResult:
        inputs = dict(inputs or {})
        key = _cache_key(PROJECT_PREFIX, prompt, inputs)
        handle = self.gateway.resolve()
        if handle is None:
            log.warning("Model gateway not ready; serving fallback analysis")
            return self._fallback_analysis(prompt, inputs, key)

        cached = self.cache.get(key)
        if cached is not None:
            log.info("Cache hit for %s", key)
            return GenerationResult(result=cached.value, from_cache=True, is_mock=cached.is_mock)

        try:
            text, usage = await self._call_model(handle, build_analysis_prompt(prompt, inputs))
            parsed, result = parse_analysis_response(text)
        except Exception as e:
            log.warning("Analysis generation failed (%r); serving fallback", e)
            return self._fallback_analysis(prompt, inputs, key)

        if parsed is not None:
            issues = collect_errors(parsed)
            if issues:
                log.warning("Analysis has %d schema issue(s): %s", len(issues), issues[:5])
        else:
            log.warning("Analysis response was not JSON; returning raw text")
        self.cache.set(key, result)
        return GenerationResult(result=result, usage=usage)

    # -- website ---------------------------------------------------------------

    async def generate_website(self, prompt: str, inputs: Optional[Mapping[str, Any]] = None) -> GenerationResult:
        inputs = dict(inputs or {})
        handle = self.gateway.resolve()
        if handle is None:
            log.warning("Model gateway not ready; serving fallback website")
            return GenerationResult(html_code=mock_website(prompt, inputs), is_mock=True)

        key = _cache_key(WEBSITE_PREFIX, prompt, inputs)
        cached = self.cache.get(key)
        if cached is not None:
            log.info("Cache hit for %s", key)
            return GenerationResult(html_code=cached.value, from_cache=True, is_mock=cached.is_mock)

        try:
            text, usage = await self._call_model(handle, build_website_prompt(prompt, inputs))
            code = extract_code(text)
        except Exception as e:
            log.warning("Website generation failed (%r); serving fallback", e)
            return GenerationResult(html_code=mock_website(prompt, inputs), is_mock=True)

        self.cache.set(key, code)
        return GenerationResult(html_code=code, usage=usage)

    # -- combined --------------------------------------------------------------

    def _fallback_combined(self, prompt: str, inputs: Mapping[str, Any]) -> GenerationResult:
        result = mock_combined(prompt, inputs)
        analysis = json.dumps(result["analysis"], indent=2, ensure_ascii=False)
        self.cache.set(_cache_key(PROJECT_PREFIX, prompt, inputs), analysis, is_mock=True)
        return GenerationResult(result=result, is_mock=True)

    async def generate_combined(
        self,
        prompt: str,
        inputs: Optional[Mapping[str, Any]] = None,
        model_id: Optional[str] = None,
    ) -> GenerationResult:
        inputs = dict(inputs or {})
        handle = self.gateway.resolve(model_id)
        if handle is None:
            log.warning("Model gateway not ready; serving fallback preview")
            return self._fallback_combined(prompt, inputs)

        model_key = model_id or self.settings.default_model
        key = _cache_key(f"{COMBINED_PREFIX}{model_key}_", prompt, inputs, model_key)
        cached = self.cache.get(key)
        if cached is not None:
            log.info("Cache hit for %s", key)
            return GenerationResult(result=cached.value, from_cache=True, is_mock=cached.is_mock)

        try:
            text, usage = await self._call_model(handle, build_combined_prompt(prompt, inputs))
            result = parse_combined_response(text)
        except Exception as e:
            log.warning("Combined generation failed (%r); serving fallback", e)
            return self._fallback_combined(prompt, inputs)

        self.cache.set(key, result)
        return GenerationResult(result=result, usage=usage)

    # -- regenerate ------------------------------------------------------------

    async def regenerate(
        self,
        existing_code: str,
        modifications: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> GenerationResult:
        """Restyle existing code. Never cached; on any failure the input code comes back unchanged."""
        handle = self.gateway.resolve(model_id)
        if handle is None:
            log.warning("Model gateway not ready; returning existing code unchanged")
            return GenerationResult(html_code=existing_code, is_mock=True)
        try:
            text, usage = await self._call_model(handle, build_regenerate_prompt(existing_code, modifications))
            code = extract_code(text)
        except Exception as e:
            log.warning("Regeneration failed (%r); returning existing code unchanged", e)
            return GenerationResult(html_code=existing_code, is_mock=True)
        return GenerationResult(html_code=code, usage=usage)
