"""Upload validation and submission: PENDING job, provider call, PROCESSING or FAILED."""
import pytest
from sqlmodel import select

from callsight.models import AnalysisStatus, ConversationAnalysis
from callsight.services.errors import StorageError, SubmissionError, TranscriptionError, UploadValidationError
from callsight.services.submission import AudioUpload, SubmissionService
from fakes import FakeStorage, FakeTranscriber


def _upload(content=b"ID3 fake mp3 bytes", content_type="audio/mpeg", filename="call.mp3", description=None):
    return AudioUpload(filename=filename, content_type=content_type, content=content, description=description)


def _jobs_for(db, user_id):
    return list(db.exec(select(ConversationAnalysis).where(ConversationAnalysis.user_id == user_id)).all())


def test_submit_moves_job_to_processing(db, make_user):
    user = make_user()
    storage, transcriber = FakeStorage(), FakeTranscriber(next_ref="tx-123")
    service = SubmissionService(storage, transcriber)

    job = service.submit(db, user.id, _upload(description="  Renewal call  "))

    assert job.status == AnalysisStatus.PROCESSING
    assert job.external_job_ref == "tx-123"
    assert job.description == "Renewal call"
    assert job.original_filename == "call.mp3"
    key, content, content_type = storage.saved[0]
    assert key.startswith(f"{user.id}/") and key.endswith(".mp3")
    assert content_type == "audio/mpeg"
    assert transcriber.submitted == [(f"https://files.test/{key}", True)]
    assert job.storage_path == f"https://files.test/{key}"


def test_content_type_parameters_are_ignored(db, make_user):
    user = make_user()
    job = SubmissionService(FakeStorage(), FakeTranscriber()).submit(
        db, user.id, _upload(content_type="audio/wav; codecs=1", filename="call.wav")
    )
    assert job.content_type == "audio/wav"


@pytest.mark.parametrize(
    "upload",
    [
        _upload(content_type="application/pdf", filename="call.pdf"),
        _upload(content_type=None),
        _upload(content=b""),
        _upload(content=b"x" * 11),
    ],
    ids=["wrong-type", "no-type", "empty", "too-large"],
)
def test_invalid_upload_creates_nothing(db, make_user, upload):
    user = make_user()
    storage, transcriber = FakeStorage(), FakeTranscriber()

    with pytest.raises(UploadValidationError):
        SubmissionService(storage, transcriber, max_upload_bytes=10).submit(db, user.id, upload)

    assert storage.saved == []
    assert transcriber.submitted == []
    assert _jobs_for(db, user.id) == []


def test_declared_size_is_checked_before_reading():
    service = SubmissionService(FakeStorage(), FakeTranscriber(), max_upload_bytes=10)

    service.check_size(None)
    service.check_size(10)
    with pytest.raises(UploadValidationError, match="exceeds"):
        service.check_size(11)


def test_storage_failure_creates_no_job(db, make_user):
    user = make_user()
    transcriber = FakeTranscriber()

    with pytest.raises(StorageError):
        SubmissionService(FakeStorage(error="bucket unavailable"), transcriber).submit(db, user.id, _upload())

    assert transcriber.submitted == []
    assert _jobs_for(db, user.id) == []


def test_provider_refusal_leaves_job_failed(db, make_user):
    user = make_user()
    transcriber = FakeTranscriber(submit_error=TranscriptionError("Transcription provider returned 401: Invalid API key"))

    with pytest.raises(SubmissionError) as exc_info:
        SubmissionService(FakeStorage(), transcriber).submit(db, user.id, _upload())

    jobs = _jobs_for(db, user.id)
    assert len(jobs) == 1
    assert exc_info.value.analysis_id == jobs[0].id
    assert jobs[0].status == AnalysisStatus.FAILED
    assert "Invalid API key" in jobs[0].error_message
    assert jobs[0].external_job_ref is None
