import json
import logging
import time
from typing import Protocol, TypeVar

from openai import APIConnectionError, APIError, AuthenticationError, OpenAI, RateLimitError
from pydantic import BaseModel, ValidationError

from callsight.core.config import get_openai_keys
from callsight.services.errors import InsightGenerationError

logger = logging.getLogger(__name__)

OPENAI_TIMEOUT = 60.0
OPENAI_RETRY_WAIT = 1.5
OPENAI_RETRY_ONCE = (RateLimitError, APIConnectionError)
# A key that is rejected or rate limited hands over to the next configured key
OPENAI_FALLBACK_EXCEPTIONS = (AuthenticationError, RateLimitError)
DEFAULT_MAX_TOKENS = 2000

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class InsightClient(Protocol):
    def generate(self, prompt: str, schema: type[SchemaT], temperature: float = 0.5) -> SchemaT: ...


def _openai_safe_call(create_fn):
    """One retry after OPENAI_RETRY_WAIT seconds on RateLimitError/APIConnectionError."""
    try:
        return create_fn()
    except OPENAI_RETRY_ONCE as e:
        logger.warning("OpenAI retry after %s: %s", type(e).__name__, e)
        time.sleep(OPENAI_RETRY_WAIT)
        return create_fn()


def _insight_error(exc: Exception) -> InsightGenerationError:
    """Provider errors as stored on the job; the raw exception only goes to the log."""
    if isinstance(exc, AuthenticationError):
        return InsightGenerationError("AI provider rejected the API key.")
    if isinstance(exc, RateLimitError):
        return InsightGenerationError("AI provider rate limited the request.", retryable=True)
    if isinstance(exc, APIConnectionError):
        return InsightGenerationError("AI provider unreachable.", retryable=True)
    if isinstance(exc, APIError):
        return InsightGenerationError(f"AI provider error: {exc}"[:500])
    return InsightGenerationError(str(exc)[:500] or type(exc).__name__)


class OpenAIInsightClient:
    """Structured output over chat completions with a JSON schema response format."""

    def __init__(self, keys: list[str] | None = None, model: str = "gpt-4o-mini", max_tokens: int = DEFAULT_MAX_TOKENS):
        self._keys = keys
        self.model = model
        self.max_tokens = max_tokens
        self._clients: dict[str, OpenAI] = {}

    def _get_client_for_key(self, key: str) -> OpenAI:
        if key not in self._clients:
            self._clients[key] = OpenAI(api_key=key, timeout=OPENAI_TIMEOUT)
        return self._clients[key]

    def _create_with_fallback(self, create_fn):
        """
        Calls create_fn(client) per key; on AuthenticationError or RateLimitError the
        next key is tried. When every key fails the last error is raised.
        """
        keys = self._keys if self._keys is not None else get_openai_keys()
        if not keys:
            raise InsightGenerationError("OPENAI_API_KEY is missing or invalid. Set OPENAI_API_KEY=sk-... or OPENAI_API_KEYS=sk-1,sk-2.")
        last_exc: Exception | None = None
        for key in keys:
            try:
                return create_fn(self._get_client_for_key(key))
            except OPENAI_FALLBACK_EXCEPTIONS as e:
                last_exc = e
                logger.warning("OpenAI key skipped (%s), trying next: %s", key[:12] + "...", e)
        raise _insight_error(last_exc) from last_exc

    def generate(self, prompt: str, schema: type[SchemaT], temperature: float = 0.5) -> SchemaT:
        response_format = {
            "type": "json_schema",
            "json_schema": {"name": schema.__name__, "schema": schema.model_json_schema(by_alias=True)},
        }

        def _create(client: OpenAI):
            return _openai_safe_call(lambda: client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format=response_format,
                temperature=temperature,
                max_tokens=self.max_tokens,
            ))

        try:
            response = self._create_with_fallback(_create)
        except InsightGenerationError:
            raise
        except (APIConnectionError, APIError) as e:
            logger.exception("OpenAI API error generating %s: %s", schema.__name__, e)
            raise _insight_error(e) from e

        content = response.choices[0].message.content or ""
        if getattr(response, "usage", None):
            u = response.usage
            logger.info(
                "OpenAI %s usage: prompt_tokens=%s completion_tokens=%s",
                schema.__name__,
                getattr(u, "prompt_tokens", 0) or 0,
                getattr(u, "completion_tokens", 0) or 0,
            )
        try:
            return schema.model_validate(json.loads(content))
        except (ValueError, ValidationError) as e:
            logger.warning("OpenAI returned output that does not match %s: %s", schema.__name__, e)
            raise InsightGenerationError(f"AI response did not match the {schema.__name__} schema.") from e

    def ping(self) -> tuple[bool, float, str | None]:
        """Minimal one-token call per key; returns (ok, latency_ms, error)."""
        t0 = time.perf_counter()
        last_err: str | None = None
        for key in self._keys if self._keys is not None else get_openai_keys():
            try:
                self._get_client_for_key(key).chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": "Hi"}],
                    max_tokens=1,
                )
                return (True, round((time.perf_counter() - t0) * 1000, 2), None)
            except OPENAI_FALLBACK_EXCEPTIONS as e:
                last_err = str(e).strip()[:500] or type(e).__name__
            except APIError as e:
                return (False, round((time.perf_counter() - t0) * 1000, 2), str(e).strip()[:500] or type(e).__name__)
        return (False, round((time.perf_counter() - t0) * 1000, 2), last_err or "No usable OpenAI key.")
