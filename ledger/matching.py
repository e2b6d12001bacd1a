"""Avatar matching: comparing viewers against post target avatars."""

import logging
from datetime import datetime
from typing import Iterable, Optional

from ledger import (
    AttributeMatchDetail,
    AvatarConfig,
    BatchMatch,
    DetailedMatchResult,
    MatchConfig,
    MatchResult,
    MatchSummary,
    Post,
    RankedPost,
)
from ledger.avatar import ALL_MATCHING_ATTRIBUTES, PRIMARY_MATCHING_ATTRIBUTES
from ledger.ranking import format_post_sighting_time, get_post_sort_priority, is_post_deprioritized
from ledger.scoring import (
    ATTRIBUTE_MATCH_SIMILARITY,
    DEFAULT_MATCH_CONFIG,
    DEFAULT_MATCH_THRESHOLD,
    FLAT_MATCH_CONFIG,
    attribute_similarity,
    calculate_match_score,
    get_match_quality,
    round_half_up,
    weighted_totals,
)
from ledger.sighting_time import resolve_reference_date

log = logging.getLogger(__name__)

# Primary attributes that must be similar for a quick match
QUICK_MATCH_MIN_PRIMARY = 3

# Features named in a match explanation, exact matches first
EXPLAIN_MAX_FEATURES = 3
EXPLAIN_MAX_PARTIAL = 2

ATTRIBUTE_LABELS: dict[str, str] = {
    'skin_color': 'skin tone',
    'hair_color': 'hair color',
    'top_type': 'hairstyle',
    'facial_hair_type': 'facial hair',
    'facial_hair_color': 'facial hair color',
    'eye_type': 'eyes',
    'eyebrow_type': 'eyebrows',
    'mouth_type': 'expression',
    'clothe_type': 'top style',
    'clothe_color': 'top color',
    'accessories_type': 'accessories',
    'graphic_type': 'shirt graphic',
}


def compare_avatars(
    target: AvatarConfig,
    consumer: AvatarConfig,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    config: MatchConfig = FLAT_MATCH_CONFIG,
) -> MatchResult:
    """Compare a post's target avatar with a consumer's own avatar.

    Uses the flat primary/secondary weighting unless another config is
    given.

    Args:
        target: Avatar described in the post.
        consumer: The viewer's own avatar.
        threshold: Minimum score for is_match (clamped to [30, 95]).
        config: Scoring configuration.

    Returns:
        MatchResult with score 0-100 and is_match.
    """
    return calculate_match_score(target, consumer, config, threshold)


def compare_avatars_detailed(
    target: AvatarConfig,
    consumer: AvatarConfig,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    config: MatchConfig = FLAT_MATCH_CONFIG,
) -> DetailedMatchResult:
    """Compare avatars and explain the result attribute by attribute.

    Args:
        target: Avatar described in the post.
        consumer: The viewer's own avatar.
        threshold: Minimum score for is_match (clamped to [30, 95]).
        config: Scoring configuration.

    Returns:
        DetailedMatchResult with per-attribute details and raw totals.
    """
    result = calculate_match_score(target, consumer, config, threshold)
    weighted, max_possible = weighted_totals(result.breakdown)

    details = [
        AttributeMatchDetail(
            attribute=attribute,
            matches=detail.similarity >= ATTRIBUTE_MATCH_SIMILARITY,
            weight=detail.weight,
            similarity=detail.similarity,
            target_value=getattr(target, attribute),
            consumer_value=getattr(consumer, attribute),
        )
        for attribute, detail in result.breakdown.items()
    ]

    return DetailedMatchResult(
        score=result.score,
        is_match=result.is_match,
        quality=result.quality,
        breakdown=result.breakdown,
        min_threshold=result.min_threshold,
        details=details,
        max_possible_score=max_possible,
        weighted_score=weighted,
    )


def get_match_description(result: MatchResult | RankedPost) -> str:
    """Short label such as "85% match - Excellent"."""
    quality = result.quality or get_match_quality(result.score)
    return f'{result.score}% match - {quality.capitalize()}'


def explain_match(result: DetailedMatchResult) -> str:
    """Name the features behind a match, e.g. "skin tone and hair color match".

    Exact matches (similarity 1.0) are listed first, followed by at most
    two partial ones as "similar ...". Attributes that were not scored
    are left out.

    Args:
        result: Result of compare_avatars_detailed.

    Returns:
        Up to three features joined into a sentence, or "No matching
        features".
    """
    exact: list[str] = []
    partial: list[str] = []
    for detail in result.details:
        if result.breakdown and result.breakdown[detail.attribute].applicable is False:
            continue
        label = ATTRIBUTE_LABELS.get(detail.attribute, detail.attribute)
        if detail.similarity >= 1.0:
            exact.append(label)
        elif detail.similarity > 0:
            partial.append(f'similar {label}')

    features = (exact + partial[:EXPLAIN_MAX_PARTIAL])[:EXPLAIN_MAX_FEATURES]
    if not features:
        return 'No matching features'
    if len(features) == 1:
        return f'{features[0]} matches'
    if len(features) == 2:
        return f'{features[0]} and {features[1]} match'
    return f'{", ".join(features[:-1])}, and {features[-1]} match'


def _count_similar(
    target: AvatarConfig,
    consumer: AvatarConfig,
    attributes: tuple[str, ...],
) -> int:
    return sum(
        1 for attribute in attributes
        if attribute_similarity(
            attribute, getattr(target, attribute), getattr(consumer, attribute),
        ) >= ATTRIBUTE_MATCH_SIMILARITY
    )


def quick_match(target: AvatarConfig, consumer: AvatarConfig) -> bool:
    """Cheap pre-filter: at least 3 of the 5 primary attributes are similar."""
    return _count_similar(target, consumer, PRIMARY_MATCHING_ATTRIBUTES) >= QUICK_MATCH_MIN_PRIMARY


def _posts_with_avatar(posts: Iterable[Post]) -> list[Post]:
    usable: list[Post] = []
    for post in posts:
        if post.target_avatar is None:
            log.warning("Post %s has no target avatar, skipped", post.id)
            continue
        usable.append(post)
    return usable


def calculate_batch_matches(
    consumer: AvatarConfig,
    posts: Iterable[Post],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    config: MatchConfig = FLAT_MATCH_CONFIG,
) -> list[BatchMatch]:
    """Score a consumer avatar against many posts.

    Args:
        consumer: The viewer's own avatar.
        posts: Posts carrying a target avatar.
        threshold: Minimum score for is_match.
        config: Scoring configuration.

    Returns:
        BatchMatch list sorted by score, best first. Posts with equal
        scores keep their input order.
    """
    results = []
    for post in _posts_with_avatar(posts):
        result = calculate_match_score(post.target_avatar, consumer, config, threshold)
        results.append(BatchMatch(post_id=post.id, score=result.score, is_match=result.is_match))

    return sorted(results, key=lambda m: m.score, reverse=True)


def filter_matching_posts(
    consumer: AvatarConfig,
    posts: Iterable[Post],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    config: MatchConfig = FLAT_MATCH_CONFIG,
) -> list[Post]:
    """Keep only the posts whose target avatar matches the consumer."""
    return [
        post for post in _posts_with_avatar(posts)
        if calculate_match_score(post.target_avatar, consumer, config, threshold).is_match
    ]


def get_primary_match_count(target: AvatarConfig, consumer: AvatarConfig) -> MatchSummary:
    """Count similar primary attributes, e.g. for "3 of 5 key features match"."""
    total = len(PRIMARY_MATCHING_ATTRIBUTES)
    count = _count_similar(target, consumer, PRIMARY_MATCHING_ATTRIBUTES)
    return MatchSummary(match_count=count, total=total, percentage=round_half_up(100 * count / total))


def get_match_summary(target: AvatarConfig, consumer: AvatarConfig) -> MatchSummary:
    """Count similar attributes over all 12, e.g. "8 of 12 features match (67%)"."""
    total = len(ALL_MATCHING_ATTRIBUTES)
    count = _count_similar(target, consumer, ALL_MATCHING_ATTRIBUTES)
    return MatchSummary(match_count=count, total=total, percentage=round_half_up(100 * count / total))


def is_valid_for_matching(avatar: Optional[AvatarConfig]) -> bool:
    """An avatar can be matched when all primary attributes are set."""
    if avatar is None:
        return False
    return all(getattr(avatar, attribute) is not None for attribute in PRIMARY_MATCHING_ATTRIBUTES)


def rank_posts_for_viewer(
    consumer: AvatarConfig,
    posts: Iterable[Post],
    reference_date: Optional[datetime] = None,
    threshold: float = DEFAULT_MATCH_THRESHOLD,
    config: MatchConfig = DEFAULT_MATCH_CONFIG,
    use_quick_match: bool = False,
) -> list[RankedPost]:
    """Score and order a location's posts for one viewer.

    Matches come first; within matches and non-matches, posts are ordered
    by their deprioritized sort priority. With use_quick_match, posts
    failing the primary-attribute pre-filter are dropped before scoring.

    Args:
        consumer: The viewer's own avatar.
        posts: Posts at the location.
        reference_date: Current time (defaults to now).
        threshold: Minimum score for a match.
        config: Scoring configuration.
        use_quick_match: Apply quick_match before full scoring.

    Returns:
        RankedPost list in display order.
    """
    reference_date = resolve_reference_date(reference_date)
    candidates = _posts_with_avatar(posts)
    if use_quick_match:
        before = len(candidates)
        candidates = [p for p in candidates if quick_match(p.target_avatar, consumer)]
        log.info("Quick match kept %d of %d posts", len(candidates), before)

    ranked: list[RankedPost] = []
    for post in candidates:
        result = compare_avatars_detailed(post.target_avatar, consumer, threshold, config)
        ranked.append(RankedPost(
            post=post,
            score=result.score,
            is_match=result.is_match,
            quality=result.quality,
            priority=get_post_sort_priority(post, reference_date),
            deprioritized=is_post_deprioritized(post, reference_date),
            sighting_label=format_post_sighting_time(post, reference_date),
            explanation=explain_match(result),
        ))

    ranked.sort(key=lambda r: (r.is_match, r.priority), reverse=True)
    log.info(
        "Ranking finished: %d posts, %d matches",
        len(ranked), sum(1 for r in ranked if r.is_match),
    )
    return ranked
