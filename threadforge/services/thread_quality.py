"""
Heuristic quality scoring for generated threads.

Pure functions over keyword and regex tables: the first tweet is scored
as the hook, the last as the call-to-action, and the thread as a whole is
checked for repeated phrases and tone-inappropriate emoji use.  No I/O.
"""

import re
from typing import List, Optional, Sequence

from threadforge.models import ThreadQualityReport

# Hook strength indicators
POWER_VERBS = (
    "stop", "quit", "never", "always", "discovered", "realized", "learned",
    "built", "made", "created", "launched", "shipped", "changed", "transformed",
    "doubled", "tripled", "10x", "failed", "lost", "won", "broke",
)

CURIOSITY_PHRASES = (
    "here's what", "here's how", "here's why", "this is how", "this is why",
    "the truth", "the secret", "the real reason", "what happened next",
    "nobody talks about", "most people don't", "unpopular opinion",
    "hot take", "controversial", "i was wrong",
)

CTA_INDICATORS = (
    "follow", "retweet", "like", "share", "comment", "dm", "link in bio",
    "check out", "subscribe", "join", "sign up", "download", "try",
    "let me know", "what do you think", "agree?", "thoughts?",
)

CTA_ACTION_VERBS = ("follow", "share", "try", "start", "join", "build", "create")

WEAK_STARTS = ("i think", "in my opinion")
GENERIC_OPENERS = ("today i want to", "let me tell you")

NUMBER_PATTERN = re.compile(r"\$?\d[\d,\.]*[KkMmBb]?|\d+%|\d+x")
# Anything outside the Basic Multilingual Plane counts as an emoji.
EMOJI_PATTERN = re.compile("[\U00010000-\U0010FFFF]")

SHORT_HOOK_CHARS = 80
PROFESSIONAL_EMOJI_LIMIT = 3


class ThreadQualityService:
    """Scores hook and CTA strength; see ``analyze``."""

    def analyze(self, tweets: Sequence[str], tone: Optional[str] = None) -> ThreadQualityReport:
        """Score a thread.

        ``overall_score`` weights the hook twice and adds a constant 70 for
        the body, which is not scored: ``(hook*2 + cta + 70) // 4``.
        """
        if not tweets:
            return ThreadQualityReport(0, 0, 0, ["No tweets to analyze"], [])

        warnings: List[str] = []
        suggestions: List[str] = []

        hook_score = score_hook(tweets[0], warnings, suggestions)
        cta_score = score_cta(tweets[-1], warnings, suggestions)
        check_duplicates(tweets, warnings)
        check_emoji_usage(tweets, tone, warnings, suggestions)

        overall = (hook_score * 2 + cta_score + 70) // 4
        return ThreadQualityReport(hook_score, cta_score, overall, warnings, suggestions)


def _clamp(score: int) -> int:
    return max(0, min(100, score))


def score_hook(hook: str, warnings: List[str], suggestions: List[str]) -> int:
    score = 50
    lower = hook.lower()

    if NUMBER_PATTERN.search(hook):
        score += 15
    else:
        suggestions.append("Add specific numbers to your hook (e.g., '$47K', '3 months', '10x')")

    if any(verb in lower for verb in POWER_VERBS):
        score += 10

    if any(phrase in lower for phrase in CURIOSITY_PHRASES):
        score += 15
    else:
        suggestions.append("Create a curiosity gap (e.g., 'Here's what happened...')")

    if "?" in hook:
        score += 10

    if lower.startswith(WEAK_STARTS):
        score -= 15
        warnings.append("Hook starts with weak phrase. Be more direct and confident.")

    if lower.startswith(GENERIC_OPENERS):
        score -= 10
        warnings.append("Hook uses generic opener. Start with impact, not setup.")

    if len(hook) < SHORT_HOOK_CHARS:
        suggestions.append("Consider expanding your hook - longer hooks often perform better")

    return _clamp(score)


def score_cta(cta: str, warnings: List[str], suggestions: List[str]) -> int:
    score = 50
    lower = cta.lower()

    if any(indicator in lower for indicator in CTA_INDICATORS):
        score += 30
    else:
        warnings.append("Final tweet may lack a clear call-to-action")
        suggestions.append(
            "End with engagement: 'Follow for more', 'RT if you agree', 'What's your take?'"
        )

    if "?" in cta:
        score += 15

    if any(verb in lower for verb in CTA_ACTION_VERBS):
        score += 5

    return _clamp(score)


def check_duplicates(tweets: Sequence[str], warnings: List[str]) -> None:
    """Warn once about the first 4-word phrase (over 15 chars) seen twice."""
    seen = set()
    for tweet in tweets:
        words = tweet.split()
        for i in range(len(words) - 3):
            phrase = " ".join(words[i:i + 4])
            if len(phrase) <= 15:
                continue
            key = phrase.lower()
            if key in seen:
                warnings.append(f"Repeated phrase detected: '{phrase}'")
                return
            seen.add(key)


def count_emojis(text: str) -> int:
    return len(EMOJI_PATTERN.findall(text))


def check_emoji_usage(
    tweets: Sequence[str],
    tone: Optional[str],
    warnings: List[str],
    suggestions: List[str],
) -> None:
    total = sum(count_emojis(t) for t in tweets)
    tone_key = (tone or "").strip().lower()

    if tone_key == "professional" and total > PROFESSIONAL_EMOJI_LIMIT:
        warnings.append("Professional tone typically uses fewer emojis")

    if tone_key == "humorous" and total == 0:
        suggestions.append("Consider adding emojis to enhance the humorous tone")
