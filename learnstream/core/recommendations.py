# ==============================================================================
# Recommendations - Pure Domain Logic
# ==============================================================================
"""
Content suggestions for one user built from progress, stats and trending.

Only unlocked, not yet completed catalog content is suggested. Each item is
typed by the strongest reason that applies, in this priority order:

    continue > similar > trending > complementary > new
"""

from learnstream.core.catalog import ContentCatalog
from learnstream.core.models import (
    ProgressState,
    Recommendation,
    RecommendationType,
    TrendingRecord,
    UserStats,
)

TYPE_PRIORITY = {
    RecommendationType.CONTINUE: 1,
    RecommendationType.SIMILAR: 2,
    RecommendationType.TRENDING: 3,
    RecommendationType.COMPLEMENTARY: 4,
    RecommendationType.NEW: 5,
}

REASONS = {
    RecommendationType.CONTINUE: "Pick up where you left off",
    RecommendationType.SIMILAR: "Similar to your favorite category",
    RecommendationType.TRENDING: "Popular right now",
    RecommendationType.COMPLEMENTARY: "Expand your knowledge",
    RecommendationType.NEW: "New model to explore",
}


def recommend(
    catalog: ContentCatalog,
    progress: dict[str, ProgressState],
    stats: UserStats,
    trending: list[TrendingRecord],
    limit: int = 12,
) -> list[Recommendation]:
    """
    Rank content suggestions for one user.

    Args:
        catalog: Content catalog
        progress: The user's progress computed with the catalog (lock state)
        stats: The user's stats (favorite and viewed categories)
        trending: Current trending list
        limit: Maximum number of suggestions

    Returns:
        Recommendations ordered by type priority, then score descending,
        then slug
    """
    trending_scores = {record.content_slug: record.score for record in trending}
    viewed_categories = {share.category for share in stats.top_categories}

    recommendations = []
    for node in catalog:
        state = progress.get(node.slug)
        if state is not None and (state.completed or state.locked):
            continue

        percentage = state.percentage if state else 0
        if percentage > 0:
            kind, score = RecommendationType.CONTINUE, float(percentage)
        elif stats.favorite_category is not None and node.category == stats.favorite_category:
            kind, score = RecommendationType.SIMILAR, trending_scores.get(node.slug, 0.0)
        elif node.slug in trending_scores:
            kind, score = RecommendationType.TRENDING, trending_scores[node.slug]
        elif node.category in viewed_categories:
            kind, score = RecommendationType.COMPLEMENTARY, 0.0
        else:
            kind, score = RecommendationType.NEW, 0.0

        recommendations.append(
            Recommendation(
                content_slug=node.slug,
                content_name=node.display_name,
                category=node.category,
                type=kind,
                reason=REASONS[kind],
                score=score,
            )
        )

    recommendations.sort(key=lambda r: (TYPE_PRIORITY[r.type], -r.score, r.content_slug))
    return recommendations[:limit]
