"""
HTTP client for the conversation intelligence API.

Uploads a recording, then polls the transcript endpoint until the job reaches
COMPLETE or FAILED. Each poll is what advances the job on the server.
"""
import logging
import mimetypes
import time
from pathlib import Path
from typing import Any, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
TERMINAL_STATUSES = frozenset({"COMPLETE", "FAILED"})
# Gateway errors from a proxy in front of the API
RETRYABLE_POLL_STATUS_CODES = frozenset({502, 503, 504})

_AUDIO_TYPES = {".mp3": "audio/mpeg", ".wav": "audio/wav", ".m4a": "audio/x-m4a"}


class PollingError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PollingTimeout(PollingError):
    """The job was still not terminal when the timeout ran out."""


def _is_retryable(response: httpx.Response) -> bool:
    if response.status_code in RETRYABLE_POLL_STATUS_CODES:
        return True
    # The server marks provider hiccups with retryable=true; the job is unchanged
    try:
        body = response.json()
    except ValueError:
        return False
    return isinstance(body, dict) and body.get("retryable") is True


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


class AnalysisPoller:
    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 60.0,
        http_client: httpx.Client | None = None,
    ):
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
        )
        self._headers = {"Authorization": f"Bearer {token}"}

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def upload(self, path: str | Path, description: str | None = None) -> str:
        """Returns the analysis id. Raises PollingError when the server refuses the upload."""
        path = Path(path)
        content_type = _AUDIO_TYPES.get(path.suffix.lower()) or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        data = {"description": description} if description else None
        with path.open("rb") as fh:
            response = self._client.post(
                "/conversation-intelligence/upload",
                headers=self._headers,
                files={"audioFile": (path.name, fh, content_type)},
                data=data,
            )
        if response.status_code != 201:
            raise PollingError(f"Upload failed ({response.status_code}): {_error_message(response)}", response.status_code)
        analysis_id = response.json()["analysisId"]
        logger.info("Uploaded %s as analysis %s", path.name, analysis_id)
        return analysis_id

    def poll_once(self, analysis_id: str) -> dict[str, Any]:
        """One poll. {"status": "PROCESSING"} while in flight, the full record once terminal."""
        response = self._client.get(f"/conversation-intelligence/{analysis_id}/transcript", headers=self._headers)
        if response.status_code != 200 and _is_retryable(response):
            logger.warning("Poll of %s returned %s, retrying later", analysis_id, response.status_code)
            return {"status": "PROCESSING"}
        if response.status_code != 200:
            raise PollingError(f"Poll failed ({response.status_code}): {_error_message(response)}", response.status_code)
        return response.json()

    def wait_for_result(
        self,
        analysis_id: str,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> dict[str, Any]:
        """Polls every `interval` seconds until COMPLETE or FAILED; PollingTimeout after `timeout` seconds."""
        started = time.monotonic()
        waited = 0.0
        while True:
            record = self.poll_once(analysis_id)
            status = record.get("status")
            if status in TERMINAL_STATUSES:
                logger.info("Analysis %s finished with %s", analysis_id, status)
                return record
            elapsed = max(time.monotonic() - started, waited)
            if timeout is not None and elapsed + interval > timeout:
                raise PollingTimeout(f"Analysis {analysis_id} still {status} after {timeout:.0f}s")
            sleep(interval)
            waited += interval
