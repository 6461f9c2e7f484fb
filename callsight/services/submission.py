"""Upload -> PENDING job -> provider submission -> PROCESSING (or FAILED)."""
import logging
from dataclasses import dataclass

from sqlmodel import Session

from callsight.models import ConversationAnalysis
from callsight.services import analysis_store
from callsight.services.errors import (
    StorageError,
    SubmissionError,
    UploadValidationError,
)
from callsight.services.storage import ArtifactStorage, build_artifact_key
from callsight.services.transcription import TranscriptionClient

logger = logging.getLogger(__name__)

ACCEPTED_AUDIO_MIME_TYPES = frozenset({
    "audio/mpeg",
    "audio/wav",
    "audio/x-m4a",
    "audio/m4a",
})
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


@dataclass
class AudioUpload:
    filename: str | None
    content_type: str | None
    content: bytes
    description: str | None = None


class SubmissionService:
    def __init__(
        self,
        storage: ArtifactStorage,
        transcriber: TranscriptionClient,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        self.storage = storage
        self.transcriber = transcriber
        self.max_upload_bytes = max_upload_bytes

    def validate(self, upload: AudioUpload) -> None:
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if content_type not in ACCEPTED_AUDIO_MIME_TYPES:
            raise UploadValidationError("Invalid file type. Upload an MP3, WAV or M4A recording.")
        if not upload.content:
            raise UploadValidationError("The uploaded file is empty.")
        self.check_size(len(upload.content))

    def check_size(self, size: int | None) -> None:
        """Rejects an upload over the limit; None (size unknown) passes."""
        if size is not None and size > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise UploadValidationError(f"File size exceeds the {limit_mb} MB limit.")

    def submit(self, db: Session, user_id: int, upload: AudioUpload) -> ConversationAnalysis:
        """
        Returns the PROCESSING job. A storage failure raises StorageError before any
        row exists; a provider failure leaves the row FAILED and raises SubmissionError.
        """
        self.validate(upload)
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        logger.info(
            "Upload received: filename=%s size=%s type=%s user=%s",
            upload.filename, len(upload.content), content_type, user_id,
        )

        key = build_artifact_key(user_id, upload.filename)
        stored = self.storage.save(key, upload.content, content_type)
        if not stored.url:
            raise StorageError("Storage did not return a locator for the uploaded file.")

        description = (upload.description or "").strip() or None
        job = analysis_store.create_job(
            db,
            user_id=user_id,
            storage_path=stored.url,
            original_filename=upload.filename,
            content_type=content_type,
            description=description,
        )

        try:
            external_ref = self.transcriber.submit(stored.url, speaker_labels=True)
        except Exception as e:
            logger.error("Transcription submission failed for analysis %s: %s", job.id, e)
            analysis_store.mark_failed(db, job, str(e) or "Transcription submission failed.")
            raise SubmissionError("Failed to submit audio for transcription.", analysis_id=job.id) from e

        return analysis_store.mark_processing(db, job, external_ref)
