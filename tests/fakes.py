"""In-process stand-ins for the transcription provider, the LLM and artifact storage."""
from sqlmodel import Session

from callsight.services import analysis_store
from callsight.services.errors import StorageError
from callsight.services.storage import StoredArtifact
from callsight.services.transcription import TranscriptionStatus

SAMPLE_INSIGHTS = {
    "callSummary": "Rep introduced the product and booked a demo.",
    "totalScore": 78,
    "scoreBreakdown": {
        "rapportBuilding": 8,
        "discoveryQuality": 7,
        "objectionHandling": 6,
        "pitchEffectiveness": 8,
        "closeAttempt": 7,
        "clarityAndConfidence": 9,
        "engagementLevel": 7,
        "listeningRatio": 6,
        "personalization": 7,
        "callControl": 8,
    },
    "sentimentTimeline": [{"timestamp": "00:42", "speaker": "prospect", "sentiment": "positive"}],
    "talkRatio": {"salespersonTalkTime": 55, "prospectTalkTime": 45},
    "objections": [
        {"timestamp": "01:10", "type": "price", "handledEffectively": True, "repResponseSnippet": "We can start small."}
    ],
    "bestLine": "What would it mean for your team to get those hours back?",
    "missedOpportunities": ["Did not ask about budget owner"],
    "closingAttempted": True,
    "nextStepConfirmed": True,
    "strengths": ["Clear value proposition"],
    "areasToImprove": ["Ask more open questions"],
    "specificCoachingTips": ["Pause after pricing"],
    "tags": ["demo-booked"],
}

SAMPLE_FEEDBACK = {
    "callSummary": "Cold call to an operations lead; prospect agreed to a follow-up.",
    "leadStatus": "warm",
    "callDurationMinutes": 4.5,
    "nextStepSecured": True,
    "conversionAttempted": True,
    "salespersonPerformance": {
        "clarity": "excellent",
        "speakingPace": "balanced",
        "fillerWordsUsage": "low",
        "confidenceScore": 82,
        "personalization": "some",
        "rapportBuilt": True,
        "valuePropositionClarity": "strong",
        "followUpProposed": True,
    },
    "objectionHandling": {
        "objectionCount": 2,
        "objectionsHandledSuccessfully": 1,
        "objectionTypes": ["price", "timing"],
        "responseQuality": "average",
    },
    "engagementMetrics": {"prospectEngagementScore": 70, "sentimentTrend": "positive", "tensionMoments": []},
    "keyMoments": {"bestLine": "Let's find twenty minutes next week.", "missedOpportunities": [], "turningPoints": []},
    "feedbackSummary": {
        "strengths": ["Confident opener"],
        "weaknesses": ["Rushed the pricing answer"],
        "improvementSuggestions": ["Acknowledge the objection before answering"],
        "finalScore": 74,
        "coachCommentary": "Solid call; slow down on objections.",
    },
}

SAMPLES = {
    "SalesCallConversationInsights": SAMPLE_INSIGHTS,
    "SalesCallAnalysis": SAMPLE_FEEDBACK,
}


def provider_status(status, text=None, error=None, utterances=None, ref="ext-1") -> TranscriptionStatus:
    return TranscriptionStatus(id=ref, status=status, text=text, error=error, utterances=utterances)


class FakeTranscriber:
    """get_status replays `statuses` in order and then repeats the last one; exceptions are raised."""

    def __init__(self, statuses=None, submit_error=None, next_ref="ext-1"):
        self.statuses = list(statuses or [])
        self.submit_error = submit_error
        self.next_ref = next_ref
        self.submitted = []
        self.status_calls = []

    def submit(self, audio_url, speaker_labels=True):
        self.submitted.append((audio_url, speaker_labels))
        if self.submit_error:
            raise self.submit_error
        return self.next_ref

    def get_status(self, external_ref):
        self.status_calls.append(external_ref)
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeInsights:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def generate(self, prompt, schema, temperature=0.5):
        self.calls.append((prompt, schema, temperature))
        if self.error:
            raise self.error
        payload = self.result if self.result is not None else SAMPLES[schema.__name__]
        return schema.model_validate(payload)


class FakeStorage:
    def __init__(self, error=None):
        self.error = error
        self.saved = []

    def save(self, key, content, content_type):
        if self.error:
            raise StorageError(self.error)
        self.saved.append((key, content, content_type))
        return StoredArtifact(key=key, url=f"https://files.test/{key}", size=len(content), content_type=content_type)


def make_processing_job(db: Session, user_id: int, ref: str = "ext-1", description: str | None = None):
    job = analysis_store.create_job(
        db,
        user_id=user_id,
        storage_path="https://files.test/call.mp3",
        original_filename="call.mp3",
        content_type="audio/mpeg",
        description=description,
    )
    return analysis_store.mark_processing(db, job, ref)
