"""Tests for threadforge.services.profile_analysis."""

import pytest

from threadforge.exceptions import ProfileAnalysisError, ValidationError
from threadforge.schemas import ProfileAnalysisRequest
from threadforge.services.profile_analysis import (
    ProfileAnalysisService,
    clean_recent_tweets,
    normalize_username,
    parse_brand_description,
    validate_bio,
)

TWEETS = [f"Tweet number {i} about building in public" for i in range(1, 6)]

BRAND_JSON = {
    "overview": "An indie maker sharing revenue numbers.",
    "brandVoice": {"tone": "Candid", "style": "Short", "personality": "Scrappy"},
    "contentPillars": ["Revenue", "Launches"],
}


def analysis_request(**kwargs):
    kwargs.setdefault("username", "@levelsio")
    kwargs.setdefault("profile_bio", "Making things")
    kwargs.setdefault("recent_tweets", TWEETS)
    return ProfileAnalysisRequest(**kwargs)


class TestNormalizeUsername:
    def test_strips_at_and_whitespace(self):
        assert normalize_username("  @jack_2 ") == "jack_2"

    @pytest.mark.parametrize(
        "value, message",
        [
            (None, "Username is required"),
            ("   ", "Username is required"),
            ("@", "Username must be 1-15 characters"),
            ("a" * 16, "Username must be 1-15 characters"),
            ("bad-name", "Username can only contain letters, numbers, and underscores"),
        ],
    )
    def test_invalid(self, value, message):
        with pytest.raises(ValidationError) as exc_info:
            normalize_username(value)
        assert str(exc_info.value) == message


class TestValidateBio:
    def test_trimmed(self):
        assert validate_bio("  Builder  ") == "Builder"

    def test_missing(self):
        with pytest.raises(ValidationError, match="Please paste the profile bio"):
            validate_bio(" ")

    def test_too_long(self):
        with pytest.raises(ValidationError, match="400"):
            validate_bio("x" * 401)


class TestCleanRecentTweets:
    def test_blank_entries_are_dropped_before_counting(self):
        with pytest.raises(ValidationError, match="at least 5"):
            clean_recent_tweets(TWEETS[:4] + ["  ", None])

    def test_too_many(self):
        with pytest.raises(ValidationError, match="no more than 30"):
            clean_recent_tweets(["t"] * 31)

    def test_tweet_too_long(self):
        with pytest.raises(ValidationError, match="500"):
            clean_recent_tweets(TWEETS[:4] + ["x" * 501])

    def test_returns_trimmed(self):
        assert clean_recent_tweets([f" {t} " for t in TWEETS]) == TWEETS


class TestParseBrandDescription:
    def test_missing_fields_get_defaults(self):
        description = parse_brand_description(
            '{"overview": "Short", "brandVoice": {"tone": "Dry"}, "contentPillars": null}'
        )
        assert description.overview == "Short"
        assert description.brand_voice.tone == "Dry"
        assert description.brand_voice.style == "Informative"
        assert description.content_pillars == ["General topics"]
        assert description.target_audience.primary == "General audience"

    def test_fenced_json(self):
        assert parse_brand_description('```json\n{"overview": "X"}\n```').overview == "X"

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"contentPillars": "oops"}'])
    def test_unusable_output(self, raw):
        with pytest.raises(ProfileAnalysisError, match="Brand analysis failed. Try again."):
            parse_brand_description(raw)


class TestProfileAnalysisService:
    @pytest.mark.asyncio
    async def test_analyze(self, fake_chat):
        fake_chat.queue(BRAND_JSON)
        service = ProfileAnalysisService(fake_chat)

        response = await service.analyze(analysis_request())

        assert response.username == "levelsio"
        assert response.profile_url == "https://x.com/levelsio"
        assert response.tweet_count == 5
        assert response.brand_description.brand_voice.personality == "Scrappy"

        prompt = fake_chat.last_user_prompt
        assert "@levelsio" in prompt
        assert "- Tweet number 3 about building in public" in prompt

    @pytest.mark.asyncio
    async def test_response_serialises_camel_case(self, fake_chat):
        fake_chat.queue(BRAND_JSON)
        response = await ProfileAnalysisService(fake_chat).analyze(analysis_request())

        data = response.model_dump(by_alias=True)
        assert "profileUrl" in data
        assert "brandVoice" in data["brandDescription"]

    @pytest.mark.asyncio
    async def test_invalid_input_skips_model(self, fake_chat):
        with pytest.raises(ValidationError):
            await ProfileAnalysisService(fake_chat).analyze(analysis_request(username=""))
        assert fake_chat.calls == []

    @pytest.mark.asyncio
    async def test_unparseable_output_raises(self, fake_chat, event_logger):
        fake_chat.queue("I cannot analyze this profile.")

        with pytest.raises(ProfileAnalysisError):
            await ProfileAnalysisService(fake_chat).analyze(analysis_request())

        assert event_logger.get_recent(limit=1)[0].message == "Brand description could not be parsed"
