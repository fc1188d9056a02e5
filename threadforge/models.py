"""
Internal data types shared by the clients, services and database layer.

Request and response bodies of the HTTP API live in ``threadforge.schemas``
(pydantic, camelCase).  The dataclasses here never leave the process as-is:

- **Chat client**: ``ChatMessage``, ``ChatOptions``, ``ChatCompletionResult``,
  ``UsageStats``
- **Search**: ``SearchResult``
- **Quality**: ``ThreadQualityReport``
- **Persistence**: ``ThreadDraft``, ``BrandGuideline``
- **Constants**: provider name, tone descriptions, feedback tags
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from threadforge.utils import parse_timestamp, utc_now


# =============================================================================
# CONSTANTS
# =============================================================================

PROVIDER_XAI = "xai"

# Tone keys accepted by the generator and improver, with the wording the
# model sees.  Unknown tones are passed through verbatim.
TONE_DESCRIPTIONS: Dict[str, str] = {
    "indie_hacker": (
        "Casual, transparent, no-BS voice. First-person, share real experiences, "
        "motivational but realistic."
    ),
    "professional": "Clear, structured, authoritative but approachable. Polished language.",
    "humorous": "Witty, playful, internet-native humor. Light sarcasm when appropriate.",
    "motivational": "Inspiring, energetic, encouraging action and positivity.",
    "educational": "Teacher-like, clear explanations, helpful and informative.",
    "provocative": "Bold, contrarian, challenges conventional wisdom with strong statements.",
    "storytelling": "Narrative-driven, uses personal anecdotes, builds intrigue.",
    "clear_practical": "Straightforward, actionable, focuses on practical value.",
}

FEEDBACK_TAGS = frozenset(
    {"too_generic", "too_long", "weak_hook", "not_engaging", "too_marketing", "off_topic"}
)


def describe_tone(tone: Optional[str], default: str) -> str:
    """Expand a known tone key to its description; blank gives *default*."""
    if tone is None or not tone.strip():
        return default
    key = tone.strip().lower()
    return TONE_DESCRIPTIONS.get(key, tone.strip())


# =============================================================================
# CHAT CLIENT
# =============================================================================


@dataclass
class ChatMessage:
    role: str  # "system" | "user" | "assistant"
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatOptions:
    """Per-call completion options.

    ``json_mode`` asks the provider for ``response_format: json_object``.
    """

    temperature: float = 0.7
    max_tokens: Optional[int] = None
    json_mode: bool = True


@dataclass
class ChatCompletionResult:
    content: str
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass
class UsageStats:
    """Running token totals for one chat client."""

    requests: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def record(self, result: ChatCompletionResult) -> None:
        self.requests += 1
        self.prompt_tokens += result.prompt_tokens or 0
        self.completion_tokens += result.completion_tokens or 0
        self.total_tokens += result.total_tokens or 0


# =============================================================================
# SEARCH
# =============================================================================


@dataclass
class SearchResult:
    title: str
    snippet: str
    link: str = ""


# =============================================================================
# QUALITY
# =============================================================================


@dataclass
class ThreadQualityReport:
    """Heuristic hook/CTA score for a thread."""

    hook_score: int
    cta_score: int
    overall_score: int
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """camelCase form, stored in ``output_json`` and returned by the API."""
        return {
            "hookScore": self.hook_score,
            "ctaScore": self.cta_score,
            "overallScore": self.overall_score,
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadQualityReport":
        return cls(
            hook_score=int(data.get("hookScore", 0)),
            cta_score=int(data.get("ctaScore", 0)),
            overall_score=int(data.get("overallScore", 0)),
            warnings=list(data.get("warnings") or []),
            suggestions=list(data.get("suggestions") or []),
        )


# =============================================================================
# PERSISTENCE
# =============================================================================


@dataclass
class ThreadDraft:
    """One row of ``thread_drafts``: a generation request and its output."""

    id: str
    client_id: str
    prompt_json: Dict[str, Any]
    output_json: Dict[str, Any]
    provider: str
    model: str
    created_at: datetime = field(default_factory=utc_now)
    rating: Optional[int] = None
    regeneration_count: int = 0
    was_final_version: bool = False
    feedback_tags: List[str] = field(default_factory=list)
    parent_thread_id: Optional[str] = None

    @property
    def tweets(self) -> List[str]:
        return [t for t in self.output_json.get("tweets") or [] if isinstance(t, str)]

    @property
    def topic(self) -> str:
        return str(self.prompt_json.get("topic") or "")

    def to_row(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "prompt_json": self.prompt_json,
            "output_json": self.output_json,
            "provider": self.provider,
            "model": self.model,
            "created_at": self.created_at.isoformat(),
            "rating": self.rating,
            "regeneration_count": self.regeneration_count,
            "was_final_version": self.was_final_version,
            "feedback_tags": ",".join(self.feedback_tags) or None,
            "parent_thread_id": self.parent_thread_id,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "ThreadDraft":
        tags = row.get("feedback_tags") or ""
        return cls(
            id=str(row["id"]),
            client_id=row.get("client_id") or "",
            prompt_json=row.get("prompt_json") or {},
            output_json=row.get("output_json") or {},
            provider=row.get("provider") or PROVIDER_XAI,
            model=row.get("model") or "",
            created_at=parse_timestamp(row["created_at"]),
            rating=row.get("rating"),
            regeneration_count=row.get("regeneration_count") or 0,
            was_final_version=bool(row.get("was_final_version")),
            feedback_tags=[t for t in tags.split(",") if t],
            parent_thread_id=row.get("parent_thread_id"),
        )


@dataclass
class BrandGuideline:
    """The single global brand-voice guideline."""

    id: str
    text: str
    updated_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "BrandGuideline":
        return cls(
            id=str(row["id"]),
            text=row.get("text") or "",
            updated_at=parse_timestamp(row["updated_at"]),
        )
