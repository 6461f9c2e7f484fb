"""
Structured outputs requested from the LLM.

The JSON schema of each model (by alias) is sent as the response format, and the
reply is validated against the same model before anything is persisted.
"""
from typing import Literal

from pydantic import Field

from .base import CamelModel

MMSS_PATTERN = r"^\d{2}:\d{2}$"


# --- Conversation intelligence (uploaded call recordings) ---


class ScoreBreakdown(CamelModel):
    rapport_building: float = Field(ge=0, le=10, description="Effectiveness in building rapport and connection.")
    discovery_quality: float = Field(ge=0, le=10, description="Depth and quality of questions asked to understand needs.")
    objection_handling: float = Field(ge=0, le=10, description="Addressing prospect objections effectively.")
    pitch_effectiveness: float = Field(ge=0, le=10, description="Clarity, relevance and impact of the value proposition.")
    close_attempt: float = Field(ge=0, le=10, description="Attempt (or lack thereof) to gain commitment or define next steps.")
    clarity_and_confidence: float = Field(ge=0, le=10, description="The salesperson's vocal clarity and confidence.")
    engagement_level: float = Field(ge=0, le=10, description="The prospect's engagement throughout the call.")
    listening_ratio: float = Field(ge=0, le=10, description="Balance between talking and listening.")
    personalization: float = Field(ge=0, le=10, description="Tailoring the conversation to the prospect.")
    call_control: float = Field(ge=0, le=10, description="Guiding the conversation towards the objective.")


class SentimentPoint(CamelModel):
    timestamp: str = Field(pattern=MMSS_PATTERN, description='Timestamp marker, e.g. "01:23".')
    speaker: Literal["salesperson", "prospect", "both", "unknown"]
    sentiment: Literal["positive", "neutral", "negative"]


class TalkRatio(CamelModel):
    salesperson_talk_time: float = Field(ge=0, le=100, description="Percentage of the call the salesperson spoke.")
    prospect_talk_time: float = Field(ge=0, le=100, description="Percentage of the call the prospect spoke.")


class DetectedObjection(CamelModel):
    timestamp: str = Field(pattern=MMSS_PATTERN)
    type: Literal[
        "price",
        "timing",
        "authority",
        "need",
        "trust",
        "competition",
        "budget",
        "feature_gap",
        "implementation",
        "not_interested",
        "other",
    ]
    handled_effectively: bool
    rep_response_snippet: str


class SalesCallConversationInsights(CamelModel):
    """Comprehensive analysis of a sales call recording: scores, insights and coaching."""

    call_summary: str = Field(description="One paragraph covering topics, participants and outcome.")
    total_score: float = Field(ge=0, le=100)
    score_breakdown: ScoreBreakdown
    sentiment_timeline: list[SentimentPoint] = Field(default_factory=list)
    talk_ratio: TalkRatio
    objections: list[DetectedObjection] = Field(default_factory=list)
    best_line: str
    missed_opportunities: list[str] = Field(default_factory=list)
    closing_attempted: bool
    next_step_confirmed: bool
    strengths: list[str] = Field(default_factory=list)
    areas_to_improve: list[str] = Field(default_factory=list)
    specific_coaching_tips: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


# --- Call simulator feedback ---


class SalespersonPerformance(CamelModel):
    clarity: Literal["poor", "average", "excellent"]
    speaking_pace: Literal["slow", "balanced", "fast"]
    filler_words_usage: Literal["low", "medium", "high"]
    confidence_score: float = Field(ge=0, le=100)
    personalization: Literal["none", "some", "high"]
    rapport_built: bool
    value_proposition_clarity: Literal["poor", "average", "strong"]
    follow_up_proposed: bool


class ObjectionHandling(CamelModel):
    objection_count: int = Field(ge=0)
    objections_handled_successfully: int = Field(ge=0)
    objection_types: list[
        Literal["price", "timing", "authority", "competitor", "budget", "need clarity", "not interested"]
    ] = Field(default_factory=list)
    response_quality: Literal["poor", "average", "strong"]


class EngagementMetrics(CamelModel):
    prospect_engagement_score: float = Field(ge=0, le=100)
    sentiment_trend: Literal["negative", "neutral", "positive", "mixed"]
    tension_moments: list[str] = Field(default_factory=list)


class KeyMoments(CamelModel):
    best_line: str
    missed_opportunities: list[str] = Field(default_factory=list)
    turning_points: list[str] = Field(default_factory=list)


class FeedbackSummary(CamelModel):
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    improvement_suggestions: list[str] = Field(default_factory=list)
    final_score: float = Field(ge=0, le=100)
    coach_commentary: str


class SalesCallAnalysis(CamelModel):
    """Coaching feedback for one simulated cold call."""

    call_summary: str
    lead_status: Literal["cold", "warm", "hot", "converted", "lost"]
    call_duration_minutes: float = Field(ge=0)
    next_step_secured: bool
    conversion_attempted: bool
    salesperson_performance: SalespersonPerformance
    objection_handling: ObjectionHandling
    engagement_metrics: EngagementMetrics
    key_moments: KeyMoments
    feedback_summary: FeedbackSummary
