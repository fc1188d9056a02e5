"""
Single-tweet rewriting ("make this draft better").

The caller picks an improvement goal (``more_engaging`` by default) and
optionally a tone, elements to preserve and free-form instructions.  The
model answers with one improved version, up to two alternatives and a
short explanation.
"""

import json
import logging
from typing import Dict, List, Optional

from threadforge.config import XaiConfig
from threadforge.exceptions import TweetImprovementError, ValidationError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.models import ChatOptions, describe_tone
from threadforge.schemas import ImproveTweetRequest, ImproveTweetResponse
from threadforge.tools.xai_client import XaiChatClient, system_and_user
from threadforge.utils import strip_code_fences

logger = logging.getLogger(__name__)

TWITTER_CHAR_LIMIT = 280
MAX_DRAFT_CHARS = 500
MAX_PRESERVE_CHARS = 200
MAX_INSTRUCTIONS_CHARS = 300
MAX_ALTERNATIVES = 2
DEFAULT_IMPROVEMENT_TYPE = "more_engaging"
DEFAULT_EXPLANATION = "Improved for better engagement."

IMPROVEMENT_TYPES: Dict[str, str] = {
    "more_engaging": "Make it more engaging and attention-grabbing with hooks, questions, or bold statements",
    "more_concise": "Make it shorter and punchier while keeping the core message",
    "more_clear": "Make it clearer and easier to understand, simplify complex ideas",
    "more_viral": "Optimize for maximum shares and engagement with viral patterns",
    "more_professional": "Make it more polished and professional in tone",
    "more_casual": "Make it more casual, friendly, and conversational",
}

IMPROVEMENT_PROMPTS: Dict[str, str] = {
    "more_engaging": """Make this tweet IMPOSSIBLE to scroll past:
- Add a hook that creates curiosity or tension
- Use 'you' to speak directly to the reader
- Include a question, bold claim, or surprising angle
- Make people WANT to engage (like, reply, retweet)""",
    "more_concise": """Make this tweet PUNCHY and TIGHT:
- Cut every unnecessary word ruthlessly
- Remove filler words: very, really, just, actually, basically, that
- Use short sentences that hit hard
- One clear idea, maximum impact in minimum words""",
    "more_clear": """Make this tweet CRYSTAL CLEAR:
- Simplify complex language
- Use concrete examples instead of abstractions
- Structure the message logically
- Anyone should understand this instantly""",
    "more_viral": """Optimize this tweet for MAXIMUM VIRALITY:
- Use proven viral patterns (curiosity gap, contrarian take, specific numbers)
- Make it highly shareable and quotable
- Create an emotional reaction (surprise, agreement, inspiration)
- Add elements that encourage replies and discussion""",
    "more_professional": """Make this tweet POLISHED and PROFESSIONAL:
- Use proper grammar and clear structure
- Remove slang and overly casual language
- Sound authoritative and credible
- Maintain a confident but approachable tone""",
    "more_casual": """Make this tweet CONVERSATIONAL and FRIENDLY:
- Sound like you're talking to a friend
- Use natural, everyday language
- Add personality and warmth
- Keep it relatable and down-to-earth""",
}

SYSTEM_PROMPT = """You are TweetForge, an expert tweet writer who transforms mediocre drafts into scroll-stopping tweets.

Your expertise:
- You understand what makes people stop scrolling on Twitter/X
- You know viral patterns: curiosity gaps, contrarian takes, specific numbers, story hooks
- You write concise, punchy copy that fits the 280 character limit
- You preserve the original intent while dramatically improving the delivery

OUTPUT FORMAT: Return ONLY valid JSON:
{
    "improved": "The primary improved version of the tweet",
    "alternatives": ["Alternative version 1", "Alternative version 2"],
    "explanation": "Brief explanation of what was changed and why (1-2 sentences)"
}

RULES:
1. The "improved" tweet MUST be 280 characters or less
2. Each "alternative" MUST be 280 characters or less
3. Preserve the core message and intent of the original
4. Make meaningful improvements, not just minor word swaps
5. No hashtags unless the original had them
6. No markdown, no explanations outside the JSON"""


class TweetImproverService:
    """Rewrites a single tweet draft via xAI."""

    def __init__(self, chat_client: XaiChatClient, config: Optional[XaiConfig] = None) -> None:
        self.chat = chat_client
        self.config = config or XaiConfig()
        self.log = ComponentLogger(LogComponent.TWEET_IMPROVER)

    @staticmethod
    def improvement_types() -> Dict[str, str]:
        return dict(IMPROVEMENT_TYPES)

    async def improve(self, request: ImproveTweetRequest) -> ImproveTweetResponse:
        """Improve ``request.draft``.

        Raises:
            ValidationError: On invalid input.
            TweetImprovementError: When the model output is empty or unusable.
        """
        validate_improve_request(request)
        model = self.config.effective_model

        result = await self.chat.create_chat_completion(
            model,
            system_and_user(SYSTEM_PROMPT, build_user_prompt(request)),
            ChatOptions(temperature=0.7),
        )

        response = parse_improvement(result.content, request.draft)
        response.model = model

        await self.log.info(
            "Tweet improved",
            data={
                "original_chars": len(request.draft),
                "improved_chars": response.character_count,
                "within_limit": response.is_within_limit,
                "total_tokens": result.total_tokens,
            },
        )
        return response


def validate_improve_request(request: ImproveTweetRequest) -> None:
    if not request.draft or not request.draft.strip():
        raise ValidationError("Draft is required")
    if len(request.draft) > MAX_DRAFT_CHARS:
        raise ValidationError(f"Draft must not exceed {MAX_DRAFT_CHARS} characters")
    if request.improvement_type and request.improvement_type.strip() and (
        request.improvement_type.strip().lower() not in IMPROVEMENT_TYPES
    ):
        raise ValidationError(
            f"Improvement type must be one of: {', '.join(IMPROVEMENT_TYPES)}"
        )
    if request.preserve_elements and len(request.preserve_elements) > MAX_PRESERVE_CHARS:
        raise ValidationError(
            f"Preserve elements must not exceed {MAX_PRESERVE_CHARS} characters"
        )
    if (
        request.additional_instructions
        and len(request.additional_instructions) > MAX_INSTRUCTIONS_CHARS
    ):
        raise ValidationError(
            f"Additional instructions must not exceed {MAX_INSTRUCTIONS_CHARS} characters"
        )


def build_user_prompt(request: ImproveTweetRequest) -> str:
    improvement_type = (request.improvement_type or "").strip().lower() or DEFAULT_IMPROVEMENT_TYPE

    lines: List[str] = ["ORIGINAL TWEET DRAFT:", f'"{request.draft}"', ""]

    lines.extend(["IMPROVEMENT GOAL:", IMPROVEMENT_PROMPTS[improvement_type], ""])

    if request.tone and request.tone.strip():
        lines.extend([f"TARGET TONE: {describe_tone(request.tone, '')}", ""])

    if request.preserve_elements and request.preserve_elements.strip():
        lines.extend([f"MUST PRESERVE: {request.preserve_elements}", ""])

    if request.additional_instructions and request.additional_instructions.strip():
        lines.extend([f"ADDITIONAL INSTRUCTIONS: {request.additional_instructions}", ""])

    lines.extend(
        [
            "CONSTRAINTS:",
            f"- Maximum 280 characters per tweet (original is {len(request.draft)} chars)",
            "- Keep the core message intact",
            "- Make it feel natural, not forced",
            "- Provide 2 alternative versions with different approaches",
        ]
    )
    return "\n".join(lines) + "\n"


def _response(original: str, improved: str, alternatives: List[str], explanation: str) -> ImproveTweetResponse:
    return ImproveTweetResponse(
        original=original,
        improved=improved,
        alternatives=alternatives,
        explanation=explanation,
        character_count=len(improved),
        is_within_limit=len(improved) <= TWITTER_CHAR_LIMIT,
        model="",
    )


def parse_improvement(raw: str, original: str) -> ImproveTweetResponse:
    """Parse the JSON answer, falling back to the first plain-text line."""
    if not raw or not raw.strip():
        raise TweetImprovementError("Failed to improve tweet. Empty response.")

    try:
        data = json.loads(strip_code_fences(raw))
    except json.JSONDecodeError:
        logger.warning("Tweet improvement response is not JSON; using first text line")
        lines = [
            line.strip()
            for line in raw.splitlines()
            if line.strip() and not line.strip().startswith(("{", "}"))
        ]
        if not lines:
            raise TweetImprovementError("Failed to parse AI response. Please try again.")
        improved = lines[0].strip('" ')
        return _response(original, improved, [], DEFAULT_EXPLANATION)

    if not isinstance(data, dict):
        raise TweetImprovementError("Failed to parse improved tweet.")

    improved = data.get("improved")
    improved = improved.strip() if isinstance(improved, str) else ""
    if not improved:
        raise TweetImprovementError("Failed to parse improved tweet.")

    raw_alternatives = data.get("alternatives")
    alternatives = [
        alt.strip()
        for alt in (raw_alternatives if isinstance(raw_alternatives, list) else [])
        if isinstance(alt, str) and alt.strip()
    ][:MAX_ALTERNATIVES]

    explanation = data.get("explanation")
    explanation = explanation.strip() if isinstance(explanation, str) else DEFAULT_EXPLANATION

    return _response(original, improved, alternatives, explanation or DEFAULT_EXPLANATION)
