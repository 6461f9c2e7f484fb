"""Prompt builders. Pure functions: text in, text out."""


def conversation_insights_prompt(transcript_text: str, description: str | None = None) -> str:
    context = f"- User Description: {description.strip()}" if description and description.strip() else "- No additional context provided."
    return f"""
You are an expert AI Sales Coach specializing in conversation intelligence.

**Objective:** Analyze the provided sales call transcript to generate a comprehensive performance report, including scoring, sentiment analysis, key moment identification, and actionable coaching feedback.

**1. Call Context (Optional):**
{context}

**2. Call Transcript:**
```
{transcript_text}
```

**Instructions:**
Based on the transcript and optional context, generate a structured Conversation Intelligence report using the provided schema. Ensure your analysis covers:
- A concise summary.
- An overall score (0-100) with a breakdown across key sales competencies.
- A timeline of significant sentiment shifts (timestamps as MM:SS).
- The talk-to-listen ratio.
- Detection and evaluation of objections.
- Identification of the best line, missed opportunities, and closing effectiveness.
- Concrete strengths, areas for improvement, and specific coaching tips.
- Relevant tags summarizing the call.

Provide objective, data-driven insights where possible, focusing on actionable feedback for the salesperson.
Return the structured data using the schema.
"""


def simulation_feedback_prompt(
    transcript_text: str,
    salesperson_name: str | None = None,
    prospect_name: str | None = None,
) -> str:
    sp_name = salesperson_name or "the salesperson"
    p_name = prospect_name or "the prospect"
    return f"""
You're a senior AI sales coach analyzing a recorded sales call simulation designed for training.

The salesperson is named {sp_name}.
The prospect (simulated by AI) is named {p_name}.

Your job is to extract structured insights from the conversation. Evaluate {sp_name}'s delivery, how objections were handled, overall engagement, and how the call progressed. Provide constructive, actionable feedback to help {sp_name} improve their cold-calling techniques.

Use the schema provided to produce structured feedback across all categories. The goal is to identify key learning moments and actionable improvement areas.

Transcript:
\"\"\"
{transcript_text}
\"\"\"
Analyze this and return structured data following the schema.
"""
