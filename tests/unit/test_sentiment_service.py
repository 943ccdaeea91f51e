"""
Unit tests for sentiment analysis helpers and the Grok client wrapper.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services import sentiment


def model_reply(payload: dict) -> SimpleNamespace:
    """Mimic an OpenAI chat completion carrying ``payload`` as JSON content."""
    message = SimpleNamespace(content=json.dumps(payload))
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def grok_client(reply) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=reply)
    return client


def result(value: str, confidence: float = 0.8, topics=None) -> dict:
    return {"sentiment": value, "confidence": confidence, "topics": topics or []}


class TestKeywordHeuristics:
    """Test the keyword analysis used without a model."""

    def test_detect_parish(self):
        assert sentiment.detect_parish("Long lines in Spanish Town, St. Catherine") == "St. Catherine"

    def test_detect_parish_without_spaces(self):
        assert sentiment.detect_parish("#St.James voters out early") == "St. James"

    def test_st_andrew_is_not_st_ann(self):
        assert sentiment.detect_parish("Half Way Tree, St. Andrew") == "St. Andrew"

    def test_no_parish(self):
        assert sentiment.detect_parish("Nothing to see here") is None

    def test_several_parishes_follow_detection_order(self):
        assert sentiment.detect_parish("Buses from St. Thomas and St. Catherine") == "St. Catherine"

    def test_relevance_capped_at_ten(self):
        text = " ".join(sentiment.ELECTION_KEYWORDS)

        assert sentiment.relevance_score(text) == 10

    def test_party_acronyms_match_case_insensitively(self):
        assert sentiment.relevance_score("JLP and PNP supporters") == 2

    def test_extract_topics(self):
        assert sentiment.extract_topics("Vote safely, security is tight and turnout high") == [
            "Election",
            "Security",
            "Participation",
        ]

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Reports of intimidation near the station", "high"),
            ("Some concern about late opening", "medium"),
            ("Smooth voting so far", "low"),
        ],
    )
    def test_detect_risk_level(self, text, expected):
        assert sentiment.detect_risk_level(text) == expected

    def test_fallback_analysis(self):
        analysis = sentiment.fallback_analysis(
            "Violence reported at the polling station in St. Catherine", "Spanish Town"
        )

        assert analysis["sentiment"] == "neutral"
        assert analysis["confidence"] == 0.5
        assert analysis["relevanceScore"] == 1
        assert analysis["parish"] == "St. Catherine"
        assert analysis["location"] == "Spanish Town"
        assert analysis["analysis"]["riskLevel"] == "high"
        assert analysis["analysis"]["actionable"] is False


class TestNormalizeModelResult:
    """Test coercion of model replies."""

    def test_scores_are_clamped(self):
        normalized = sentiment.normalize_model_result(
            {"sentiment": "negative", "confidence": 1.7, "relevanceScore": 14},
            "text",
        )

        assert normalized["sentiment"] == "negative"
        assert normalized["confidence"] == 1
        assert normalized["relevanceScore"] == 10

    def test_unknown_values_fall_back(self):
        normalized = sentiment.normalize_model_result(
            {
                "sentiment": "angry",
                "confidence": "high",
                "topics": "elections",
                "analysis": {"riskLevel": "extreme", "keyPoints": "one"},
            },
            "Queue at the polls in Portland",
        )

        assert normalized["sentiment"] == "neutral"
        assert normalized["confidence"] == 0.5
        assert normalized["topics"] == []
        assert normalized["parish"] == "Portland"
        assert normalized["analysis"]["riskLevel"] == "low"
        assert normalized["analysis"]["keyPoints"] == []
        assert normalized["analysis"]["summary"] == "No analysis available"

    def test_non_string_fields_are_coerced(self):
        normalized = sentiment.normalize_model_result(
            {
                "parish": ["Kingston"],
                "location": {"town": "Morant Bay"},
                "topics": ["Election", 3, None, "Security"],
                "analysis": {"summary": {"x": 1}, "keyPoints": ["Long queues", {"a": 1}]},
            },
            "Voting slow in St. Thomas",
            "Morant Bay",
        )

        assert normalized["parish"] == "St. Thomas"
        assert normalized["location"] == "Morant Bay"
        assert normalized["topics"] == ["Election", "Security"]
        assert normalized["analysis"]["summary"] == "No analysis available"
        assert normalized["analysis"]["keyPoints"] == ["Long queues"]


class TestReportAggregates:
    """Test report statistics computed locally."""

    def test_overall_sentiment_majority(self):
        results = [result("negative"), result("negative"), result("positive")]

        assert sentiment.overall_sentiment(results) == "negative"

    def test_overall_sentiment_tie_prefers_positive(self):
        results = [result("negative"), result("positive"), result("neutral")]

        assert sentiment.overall_sentiment(results) == "positive"

    def test_overall_sentiment_tie_negative_over_neutral(self):
        results = [result("negative"), result("neutral")]

        assert sentiment.overall_sentiment(results) == "negative"

    def test_overall_sentiment_empty(self):
        assert sentiment.overall_sentiment([]) == "neutral"

    def test_distribution_rounds_half_up(self):
        results = [result("positive")] + [result("neutral")] * 7

        assert sentiment.sentiment_distribution(results) == {
            "positive": 13,
            "negative": 0,
            "neutral": 88,
        }

    def test_distribution_empty(self):
        assert sentiment.sentiment_distribution([]) == {"positive": 0, "negative": 0, "neutral": 0}

    def test_average_confidence(self):
        results = [result("positive", 0.9), result("neutral", 0.7), result("neutral", 0.8)]

        assert sentiment.average_confidence(results) == 0.8

    def test_top_topics(self):
        results = [
            result("positive", topics=["Election", "Security"]),
            result("neutral", topics=["Election"]),
        ]

        assert sentiment.top_topics(results) == ["Election", "Security"]


class TestGrokCalls:
    """Test model calls with a mocked client."""

    @pytest.mark.asyncio
    async def test_analyze_post_uses_model(self, mocker):
        client = grok_client(
            model_reply(
                {
                    "sentiment": "positive",
                    "confidence": 0.92,
                    "relevanceScore": 8,
                    "topics": ["Election"],
                    "parish": "Kingston",
                    "analysis": {
                        "summary": "Voters upbeat",
                        "keyPoints": ["short lines"],
                        "riskLevel": "low",
                        "actionable": False,
                    },
                }
            )
        )
        mocker.patch.object(sentiment, "get_grok_client", return_value=client)

        analysis = await sentiment.analyze_post("Great turnout downtown", "@voter", "Kingston")

        assert analysis["sentiment"] == "positive"
        assert analysis["confidence"] == 0.92
        assert analysis["analysis"]["keyPoints"] == ["short lines"]
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["temperature"] == 0.3
        assert "Location: Kingston" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_analyze_post_falls_back_without_key(self, mocker):
        mocker.patch.object(sentiment.settings, "XAI_API_KEY", None)

        analysis = await sentiment.analyze_post("Riot near the poll", "@someone")

        assert analysis["confidence"] == 0.5
        assert analysis["analysis"]["riskLevel"] == "high"

    @pytest.mark.asyncio
    async def test_analyze_post_falls_back_on_bad_json(self, mocker):
        reply = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="not json"))]
        )
        mocker.patch.object(sentiment, "get_grok_client", return_value=grok_client(reply))

        analysis = await sentiment.analyze_post("vote today", "@someone")

        assert analysis["analysis"]["summary"] == "Automated analysis unavailable"

    @pytest.mark.asyncio
    async def test_batch_analyze_groups_of_five(self, mocker):
        analyze = mocker.patch.object(
            sentiment, "analyze_post", new=AsyncMock(return_value=result("neutral"))
        )
        sleep = mocker.patch.object(sentiment.asyncio, "sleep", new=AsyncMock())
        posts = [{"text": f"post {i}", "author": "@a"} for i in range(12)]

        results = await sentiment.batch_analyze(posts)

        assert len(results) == 12
        assert analyze.await_count == 12
        # Pauses between the three groups, not after the last
        assert sleep.await_count == 2
        sleep.assert_awaited_with(sentiment.BATCH_PAUSE_SECONDS)

    @pytest.mark.asyncio
    async def test_report_without_results_skips_model(self, mocker):
        get_client = mocker.patch.object(sentiment, "get_grok_client")

        report = await sentiment.generate_report([])

        get_client.assert_not_called()
        assert report["overall"] == "neutral"
        assert report["totalAnalyzed"] == 0

    @pytest.mark.asyncio
    async def test_report_keeps_local_stats_when_model_fails(self, mocker):
        mocker.patch.object(sentiment, "get_grok_client", side_effect=RuntimeError("down"))

        report = await sentiment.generate_report([result("negative", 0.6, ["Security"])])

        assert report["overall"] == "negative"
        assert report["distribution"]["negative"] == 100
        assert report["topTopics"] == ["Security"]
        assert report["riskAssessment"] == "Automated report generation unavailable"
        assert report["recommendations"] == []

    @pytest.mark.asyncio
    async def test_report_uses_model_narrative(self, mocker):
        client = grok_client(
            model_reply({"riskAssessment": "Low risk overall", "recommendations": ["Monitor St. James"]})
        )
        mocker.patch.object(sentiment, "get_grok_client", return_value=client)

        report = await sentiment.generate_report([result("positive")])

        assert report["riskAssessment"] == "Low risk overall"
        assert report["recommendations"] == ["Monitor St. James"]
