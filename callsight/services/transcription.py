"""
Speech-to-text adapter (AssemblyAI REST v2).

submit() starts an asynchronous diarized transcription of a public audio URL;
get_status() is called on every poll and never blocks on the provider's work.
"""
import logging
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from callsight.schemas.conversation import Transcript, Utterance
from callsight.services.errors import TranscriptionError

logger = logging.getLogger(__name__)

QUEUED = "queued"
PROCESSING = "processing"
COMPLETED = "completed"
ERROR = "error"
IN_FLIGHT_STATUSES = frozenset({QUEUED, PROCESSING})


class TranscriptionStatus(BaseModel):
    id: str
    status: str
    text: str | None = None
    utterances: list[Any] | None = None
    error: str | None = None

    def to_transcript(self) -> Transcript:
        """Keeps speaker, text, time range and confidence; word level detail is dropped."""
        utterances = [
            Utterance(
                speaker=str(u.get("speaker") or "unknown"),
                text=u.get("text") or "",
                start=int(u.get("start") or 0),
                end=int(u.get("end") or 0),
                confidence=u.get("confidence"),
            )
            for u in (self.utterances or [])
        ]
        return Transcript(full_text=self.text or "", utterances=utterances)


class TranscriptionClient(Protocol):
    def submit(self, audio_url: str, speaker_labels: bool = True) -> str: ...

    def get_status(self, external_ref: str) -> TranscriptionStatus: ...


class AssemblyAIClient:
    PROVIDER_NAME = "assemblyai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.assemblyai.com/v2",
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(
            base_url=self.base_url,
            headers={"authorization": api_key},
            timeout=httpx.Timeout(timeout, connect=10.0),
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error("AssemblyAI %s %s failed with status %s: %s", method, path, e.response.status_code, detail)
            raise TranscriptionError(
                f"Transcription provider returned {e.response.status_code}: {detail}",
                provider=self.PROVIDER_NAME,
                status_code=e.response.status_code,
            ) from e
        except httpx.TimeoutException as e:
            logger.error("AssemblyAI %s %s timed out", method, path)
            raise TranscriptionError("Transcription provider timed out.", provider=self.PROVIDER_NAME) from e
        except httpx.HTTPError as e:
            logger.error("AssemblyAI %s %s connection error: %s", method, path, e)
            raise TranscriptionError(
                f"Transcription provider unreachable: {e}", provider=self.PROVIDER_NAME
            ) from e
        try:
            return response.json()
        except ValueError as e:
            raise TranscriptionError(
                "Transcription provider returned invalid JSON.",
                provider=self.PROVIDER_NAME,
                status_code=response.status_code,
            ) from e

    def submit(self, audio_url: str, speaker_labels: bool = True) -> str:
        data = self._request("POST", "/transcript", json={"audio_url": audio_url, "speaker_labels": speaker_labels})
        transcript_id = data.get("id")
        if not transcript_id:
            raise TranscriptionError("Transcription provider did not return a transcript id.", provider=self.PROVIDER_NAME)
        logger.info("AssemblyAI transcript submitted: id=%s speaker_labels=%s", transcript_id, speaker_labels)
        return transcript_id

    def get_status(self, external_ref: str) -> TranscriptionStatus:
        data = self._request("GET", f"/transcript/{external_ref}")
        return TranscriptionStatus(
            id=data.get("id") or external_ref,
            status=str(data.get("status") or ""),
            text=data.get("text"),
            utterances=data.get("utterances"),
            error=data.get("error"),
        )


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "").strip()[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])[:200]
    return response.reason_phrase
