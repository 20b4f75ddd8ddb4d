"""Templated answers built from search evidence.

No generative model is involved: answers are short template sentences filled
with extracted keywords and post titles.  Confidence is always kept inside
``[MIN_CONFIDENCE, MAX_CONFIDENCE]`` since the text is a heuristic summary,
not verified fact.
"""

from dataclasses import dataclass

from ...models import Answer, AnswerSource, ExternalSnippet
from .fallback import extract_keywords

MIN_CONFIDENCE = 0.2
MAX_CONFIDENCE = 0.95
FALLBACK_CONFIDENCE = 0.35
# Assumed top score when a local answer has no posts to draw on.
DEFAULT_TOP_SCORE = 0.35

MAX_ANSWER_POSTS = 5
MAX_ANSWER_KEYWORDS = 8
INSIGHT_COUNT = 3
POST_PERMALINK_PREFIX = "/posts/"


@dataclass
class AnswerPost:
    """A ranked post contributing to a local answer."""

    post_id: str
    title: str
    text: str
    score: float


def clamp_confidence(value: float) -> float:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, round(value, 2)))


def format_list(items: list[str]) -> str:
    """Join items as English prose: ``a``, ``a and b``, ``a, b, and c``."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]} and {items[1]}"
    return f"{', '.join(items[:-1])}, and {items[-1]}"


def _summary_sentences(query: str, keywords: list[str]) -> str:
    topic = keywords[0] if keywords else (query.strip() or "this topic")
    highlights = keywords[1:4]
    secondary = keywords[4:7]

    if highlights:
        first = (
            f"Based on posts in the app, the discussion around {topic} "
            f"focuses on {format_list(highlights)}."
        )
    else:
        first = (
            "Based on posts in the app, users share practical notes and "
            f"recurring themes around {topic}."
        )

    if secondary:
        second = f"Common threads connect {format_list(secondary)} with {topic}."
    else:
        second = (
            f"The most relevant posts connect {topic} with day-to-day usage "
            "and real examples."
        )
    return f"{first} {second}"


def _insights(titles: list[str], keywords: list[str]) -> str:
    bullets = [f"- Common theme: {title}" for title in titles if title][:INSIGHT_COUNT]
    for keyword in keywords[:INSIGHT_COUNT]:
        if len(bullets) >= INSIGHT_COUNT:
            break
        bullets.append(f"- Users often mention {keyword}.")
    while len(bullets) < INSIGHT_COUNT:
        bullets.append("- More insights emerge as new posts are added.")
    return "\n\nInsights:\n" + "\n".join(bullets)


def build_local_answer(query: str, posts: list[AnswerPost]) -> Answer:
    """Summarise the top ranked posts (best first) for *query*."""
    posts = posts[:MAX_ANSWER_POSTS]
    combined_text = " ".join(post.text for post in posts)

    keywords: list[str] = []
    for keyword in extract_keywords(query) + extract_keywords(combined_text):
        if keyword not in keywords:
            keywords.append(keyword)
    keywords = keywords[:MAX_ANSWER_KEYWORDS]

    summary = _summary_sentences(query, keywords)
    summary += _insights([post.title for post in posts], keywords)

    top_score = posts[0].score if posts else DEFAULT_TOP_SCORE
    return Answer(
        summary=summary,
        confidence=clamp_confidence(0.3 + top_score * 0.7),
        sources=[
            AnswerSource(name=post.title, url=f"{POST_PERMALINK_PREFIX}{post.post_id}")
            for post in posts
        ],
    )


def build_fallback_answer(query: str, external: list[ExternalSnippet]) -> Answer:
    """Summarise external evidence when no post matched *query*."""
    best = external[0] if external else None
    topic = (best.title if best else "") or query.strip() or "this topic"
    snippet = best.snippet.strip() if best else ""

    if snippet:
        middle = f"Wikipedia suggests that {snippet.removesuffix('.')}."
    else:
        middle = f"Wikipedia has general background information about {topic}."

    summary = (
        "No relevant posts were found in the app. "
        f"{middle} "
        "This summary is based on external sources."
    )
    sources = [AnswerSource(name="Wikipedia", url=best.url)] if best else []
    return Answer(
        summary=summary,
        confidence=clamp_confidence(FALLBACK_CONFIDENCE),
        sources=sources,
    )
