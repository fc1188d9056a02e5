"""Tests for threadforge.services.tweet_improver."""

import pytest

from threadforge.exceptions import TweetImprovementError, ValidationError
from threadforge.schemas import ImproveTweetRequest
from threadforge.services.tweet_improver import (
    DEFAULT_EXPLANATION,
    IMPROVEMENT_TYPES,
    TweetImproverService,
    build_user_prompt,
    parse_improvement,
    validate_improve_request,
)

DRAFT = "i think shipping fast matters"


class TestValidateImproveRequest:
    def test_draft_required(self):
        with pytest.raises(ValidationError, match="Draft is required"):
            validate_improve_request(ImproveTweetRequest(draft="  "))

    def test_draft_too_long(self):
        with pytest.raises(ValidationError, match="500"):
            validate_improve_request(ImproveTweetRequest(draft="x" * 501))

    def test_unknown_improvement_type(self):
        with pytest.raises(ValidationError, match="Improvement type must be one of"):
            validate_improve_request(ImproveTweetRequest(draft=DRAFT, improvement_type="louder"))

    def test_type_is_case_insensitive(self):
        validate_improve_request(ImproveTweetRequest(draft=DRAFT, improvement_type="More_Concise"))

    def test_preserve_and_instructions_limits(self):
        with pytest.raises(ValidationError, match="Preserve elements"):
            validate_improve_request(ImproveTweetRequest(draft=DRAFT, preserve_elements="x" * 201))
        with pytest.raises(ValidationError, match="Additional instructions"):
            validate_improve_request(
                ImproveTweetRequest(draft=DRAFT, additional_instructions="x" * 301)
            )


class TestBuildUserPrompt:
    def test_defaults_to_more_engaging(self):
        prompt = build_user_prompt(ImproveTweetRequest(draft=DRAFT))
        assert "IMPOSSIBLE to scroll past" in prompt
        assert f"original is {len(DRAFT)} chars" in prompt
        assert "TARGET TONE" not in prompt

    def test_optional_sections(self):
        prompt = build_user_prompt(
            ImproveTweetRequest(
                draft=DRAFT,
                improvement_type="more_concise",
                tone="humorous",
                preserve_elements="the word ship",
                additional_instructions="no emojis",
            )
        )
        assert "PUNCHY and TIGHT" in prompt
        assert "TARGET TONE: Witty" in prompt
        assert "MUST PRESERVE: the word ship" in prompt
        assert "ADDITIONAL INSTRUCTIONS: no emojis" in prompt


class TestParseImprovement:
    def test_json(self):
        response = parse_improvement(
            '{"improved": " Ship fast. ", "alternatives": ["a", "", 1, "b", "c"], "explanation": "Tighter."}',
            DRAFT,
        )
        assert response.original == DRAFT
        assert response.improved == "Ship fast."
        assert response.alternatives == ["a", "b"]
        assert response.explanation == "Tighter."
        assert response.character_count == 10
        assert response.is_within_limit is True

    def test_missing_explanation_gets_default(self):
        response = parse_improvement('{"improved": "Ship fast."}', DRAFT)
        assert response.explanation == DEFAULT_EXPLANATION
        assert response.alternatives == []

    def test_plain_text_fallback(self):
        response = parse_improvement('"Ship fast, learn faster."\nWhy: shorter', DRAFT)
        assert response.improved == "Ship fast, learn faster."
        assert response.alternatives == []
        assert response.explanation == DEFAULT_EXPLANATION

    def test_over_limit_is_flagged(self):
        response = parse_improvement('{"improved": "%s"}' % ("x" * 281), DRAFT)
        assert response.is_within_limit is False

    @pytest.mark.parametrize("raw", ["", '{"improved": ""}', "[1]", "{\n}"])
    def test_unusable_output(self, raw):
        with pytest.raises(TweetImprovementError):
            parse_improvement(raw, DRAFT)


class TestTweetImproverService:
    def test_improvement_types_is_a_copy(self):
        types = TweetImproverService.improvement_types()
        types.clear()
        assert "more_engaging" in IMPROVEMENT_TYPES

    @pytest.mark.asyncio
    async def test_improve(self, fake_chat):
        fake_chat.queue({"improved": "Ship fast.", "alternatives": ["Speed wins."], "explanation": "Shorter."})

        response = await TweetImproverService(fake_chat).improve(ImproveTweetRequest(draft=DRAFT))

        assert response.improved == "Ship fast."
        assert response.model == "grok-2-latest"
        assert fake_chat.calls[0]["options"].temperature == 0.7
        assert f'"{DRAFT}"' in fake_chat.last_user_prompt

    @pytest.mark.asyncio
    async def test_invalid_request_skips_model(self, fake_chat):
        with pytest.raises(ValidationError):
            await TweetImproverService(fake_chat).improve(ImproveTweetRequest())
        assert fake_chat.calls == []
