"""Social media sentiment analysis using Grok (xAI) with a keyword fallback."""

import asyncio
import json
import logging
import math
from collections import Counter
from typing import Any

from openai import AsyncOpenAI

from app.core.config import settings

logger = logging.getLogger(__name__)

SENTIMENTS = ("positive", "negative", "neutral")
RISK_LEVELS = ("low", "medium", "high")

# Detection order decides the winner when a post names several parishes
DETECTION_PARISHES = [
    "Kingston",
    "St. Andrew",
    "St. Catherine",
    "Clarendon",
    "Manchester",
    "St. Elizabeth",
    "Westmoreland",
    "Hanover",
    "St. James",
    "Trelawny",
    "St. Ann",
    "St. Mary",
    "Portland",
    "St. Thomas",
]

BATCH_SIZE = 5
BATCH_PAUSE_SECONDS = 1.0

# Matched against lowercased text, so party acronyms are stored lowercase too
ELECTION_KEYWORDS = [
    "election",
    "vote",
    "voting",
    "ballot",
    "poll",
    "candidate",
    "democracy",
    "constituency",
    "parliament",
    "political",
    "campaign",
    "party",
    "jlp",
    "pnp",
    "minister",
    "government",
    "opposition",
    "electoral",
    "jamaica",
    "jamaican",
]

RISK_KEYWORDS = [
    "violence",
    "threat",
    "attack",
    "protest",
    "riot",
    "unrest",
    "clash",
    "fraud",
    "corruption",
    "intimidation",
    "harassment",
    "disruption",
    "emergency",
    "crisis",
    "conflict",
    "tension",
    "danger",
]

TOPIC_RULES = [
    ("Election", ("election", "vote")),
    ("Politics", ("candidate", "political")),
    ("Security", ("security", "safety")),
    ("Participation", ("turnout", "participation")),
]

POST_SYSTEM_PROMPT = """You are an expert social media analyst specializing in Jamaican electoral observation and sentiment analysis.

Analyze the following post for:
1. Sentiment (positive, negative, neutral)
2. Confidence score (0-1)
3. Relevance to Jamaica elections (0-10)
4. Key topics mentioned
5. Geographic location/parish if mentioned
6. Risk assessment for electoral activities
7. Actionable insights

Respond with JSON in this exact format:
{
  "sentiment": "positive|negative|neutral",
  "confidence": number,
  "relevanceScore": number,
  "topics": ["topic1", "topic2"],
  "location": "location if mentioned",
  "parish": "parish if identified",
  "analysis": {
    "summary": "brief analysis summary",
    "keyPoints": ["point1", "point2"],
    "riskLevel": "low|medium|high",
    "actionable": boolean
  }
}"""

REPORT_SYSTEM_PROMPT = """You are analyzing social media sentiment data for Jamaica electoral observation. \
Generate a report based on the sentiment analysis results, focusing on overall trends, geographic \
patterns, risk and actionable recommendations for electoral observers.

Respond with JSON:
{
  "riskAssessment": "detailed risk analysis",
  "recommendations": ["recommendation1", "recommendation2"]
}"""


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def detect_parish(text: str) -> str | None:
    """First parish named in the text, also matching names written without spaces."""
    lowered = text.lower()
    for parish in DETECTION_PARISHES:
        name = parish.lower()
        if name in lowered or name.replace(" ", "") in lowered:
            return parish
    return None


def relevance_score(text: str) -> int:
    lowered = text.lower()
    return min(10, sum(1 for keyword in ELECTION_KEYWORDS if keyword in lowered))


def extract_topics(text: str) -> list[str]:
    lowered = text.lower()
    return [topic for topic, words in TOPIC_RULES if any(w in lowered for w in words)]


def detect_risk_level(text: str) -> str:
    lowered = text.lower()
    if any(keyword in lowered for keyword in RISK_KEYWORDS):
        return "high"
    if "concern" in lowered or "issue" in lowered:
        return "medium"
    return "low"


def fallback_analysis(text: str, location: str | None = None) -> dict[str, Any]:
    """Keyword-only result used when the model cannot be reached."""
    return {
        "sentiment": "neutral",
        "confidence": 0.5,
        "relevanceScore": relevance_score(text),
        "topics": extract_topics(text),
        "location": location,
        "parish": detect_parish(text),
        "analysis": {
            "summary": "Automated analysis unavailable",
            "keyPoints": [],
            "riskLevel": detect_risk_level(text),
            "actionable": False,
        },
    }


def _text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(low, min(high, number))


def normalize_model_result(
    result: dict[str, Any], text: str, location: str | None = None
) -> dict[str, Any]:
    """Coerce a model reply into the stored shape, clamping scores into range."""
    analysis = result.get("analysis") if isinstance(result.get("analysis"), dict) else {}
    sentiment = result.get("sentiment")
    risk_level = analysis.get("riskLevel")

    return {
        "sentiment": sentiment if sentiment in SENTIMENTS else "neutral",
        "confidence": _clamp(result.get("confidence") or 0.5, 0, 1, 0.5),
        "relevanceScore": _clamp(result.get("relevanceScore") or 0, 0, 10, 0),
        "topics": _strings(result.get("topics")),
        "location": _text(result.get("location")) or location,
        "parish": _text(result.get("parish")) or detect_parish(text),
        "analysis": {
            "summary": _text(analysis.get("summary")) or "No analysis available",
            "keyPoints": _strings(analysis.get("keyPoints")),
            "riskLevel": risk_level if risk_level in RISK_LEVELS else "low",
            "actionable": bool(analysis.get("actionable", False)),
        },
    }


def get_grok_client() -> AsyncOpenAI:
    if not settings.XAI_API_KEY:
        raise RuntimeError("XAI_API_KEY is not configured")
    return AsyncOpenAI(api_key=settings.XAI_API_KEY, base_url=settings.XAI_BASE_URL)


async def analyze_post(text: str, author: str, location: str | None = None) -> dict[str, Any]:
    """
    Analyze one post with Grok.

    Any provider failure (missing key, network, malformed JSON) degrades to
    the keyword analysis instead of raising.
    """
    user_prompt = f'Post: "{text}"\nAuthor: {author}'
    if location:
        user_prompt += f"\nLocation: {location}"

    try:
        client = get_grok_client()
        response = await client.chat.completions.create(
            model=settings.GROK_MODEL,
            messages=[
                {"role": "system", "content": POST_SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            response_format={"type": "json_object"},
            temperature=0.3,
            max_tokens=1000,
        )
        result = json.loads(response.choices[0].message.content or "{}")
        if not isinstance(result, dict):
            raise ValueError("Model reply is not a JSON object")
        return normalize_model_result(result, text, location)
    except Exception as e:
        logger.warning(f"Sentiment model unavailable, using keyword analysis: {e}")
        return fallback_analysis(text, location)


async def batch_analyze(posts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Analyze posts in groups of five, pausing between groups."""
    results: list[dict[str, Any]] = []

    for start in range(0, len(posts), BATCH_SIZE):
        batch = posts[start : start + BATCH_SIZE]
        results.extend(
            await asyncio.gather(
                *(
                    analyze_post(post["text"], post["author"], post.get("location"))
                    for post in batch
                )
            )
        )
        if start + BATCH_SIZE < len(posts):
            await asyncio.sleep(BATCH_PAUSE_SECONDS)

    return results


def overall_sentiment(results: list[dict[str, Any]]) -> str:
    """Most frequent sentiment; ties favour positive, then negative."""
    if not results:
        return "neutral"
    counts = Counter(r["sentiment"] for r in results)
    highest = max(counts[s] for s in SENTIMENTS)
    for sentiment in SENTIMENTS:
        if counts[sentiment] == highest:
            return sentiment
    return "neutral"


def sentiment_distribution(results: list[dict[str, Any]]) -> dict[str, int]:
    total = len(results)
    if total == 0:
        return {s: 0 for s in SENTIMENTS}
    counts = Counter(r["sentiment"] for r in results)
    return {s: _round_half_up(counts[s] / total * 100) for s in SENTIMENTS}


def average_confidence(results: list[dict[str, Any]]) -> float:
    if not results:
        return 0
    return _round_half_up(sum(r["confidence"] for r in results) / len(results) * 100) / 100


def top_topics(results: list[dict[str, Any]], limit: int = 10) -> list[str]:
    counts = Counter(topic for r in results for topic in r.get("topics", []))
    return [topic for topic, _ in counts.most_common(limit)]


async def generate_report(results: list[dict[str, Any]]) -> dict[str, Any]:
    """
    Summarize a set of analyses.

    Counts, distribution, confidence and topics are always computed locally;
    the model only contributes the narrative risk assessment and
    recommendations.
    """
    report = {
        "overall": overall_sentiment(results),
        "distribution": sentiment_distribution(results),
        "averageConfidence": average_confidence(results),
        "topTopics": top_topics(results),
        "riskAssessment": "Automated report generation unavailable",
        "recommendations": [],
        "totalAnalyzed": len(results),
    }
    if not results:
        return report

    try:
        client = get_grok_client()
        response = await client.chat.completions.create(
            model=settings.GROK_MODEL,
            messages=[
                {"role": "system", "content": REPORT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Analyze these sentiment results: {json.dumps(results[:50], default=str)}",
                },
            ],
            response_format={"type": "json_object"},
            temperature=0.3,
            max_tokens=1500,
        )
        narrative = json.loads(response.choices[0].message.content or "{}")
        report["riskAssessment"] = narrative.get("riskAssessment") or "Analysis unavailable"
        if isinstance(narrative.get("recommendations"), list):
            report["recommendations"] = narrative["recommendations"]
    except Exception as e:
        logger.warning(f"Sentiment report model unavailable: {e}")

    return report
