"""
Similar-channel matching.

Channels are compared by the overlap of their top title terms. Candidates
come from a local pool plus a channel search seeded with the seed's own
top terms. Zero-overlap candidates are dropped, not ranked low.
"""
import logging
from typing import Callable, Iterable, Optional

from ..discovery.scoring import channel_url
from ..youtube.client import YouTubeClient
from ..youtube.errors import YouTubeAPIError
from .models import CandidateChannel, SimilarityResult, SimilarRunResult
from .terms import similarity_percent, top_terms

logger = logging.getLogger(__name__)

MAX_SIMILAR_RESULTS = 15
QUERY_TERMS = 4
DEFAULT_QUERY = "homestead"
SEARCH_CANDIDATES = 20


def build_seed_query(seed_terms: list[str]) -> str:
    """Search query from the seed's top terms, with a fallback term."""
    return " ".join(seed_terms[:QUERY_TERMS]) or DEFAULT_QUERY


def merge_candidates(
    local: Iterable[CandidateChannel],
    searched: Iterable[CandidateChannel],
    seed_channel_id: Optional[str] = None,
) -> list[CandidateChannel]:
    """Merge candidate lists, deduplicated by channel id.

    A later entry for an id replaces the earlier one but keeps its
    position. The seed channel and entries without an id are dropped.
    """
    merged: dict[str, CandidateChannel] = {}
    for candidate in list(local) + list(searched):
        if not candidate.channel_id:
            continue
        merged[candidate.channel_id] = candidate
    merged.pop(seed_channel_id, None)
    return list(merged.values())


def score_candidate(
    seed_terms: list[str],
    candidate: CandidateChannel,
    candidate_terms: list[str],
) -> Optional[SimilarityResult]:
    """Similarity of one candidate, or None when nothing overlaps."""
    similarity = similarity_percent(seed_terms, candidate_terms)
    if similarity <= 0:
        return None

    candidate_set = set(candidate_terms)
    return SimilarityResult(
        channel_id=candidate.channel_id,
        channel_title=candidate.channel_title or "Unknown",
        channel_url=candidate.channel_url or channel_url(candidate.channel_id),
        similarity=similarity,
        matched_terms=[t for t in seed_terms if t in candidate_set],
    )


def rank_similar(
    seed_terms: list[str],
    candidates: list[CandidateChannel],
    terms_for: Callable[[str], list[str]],
    limit: int = MAX_SIMILAR_RESULTS,
) -> list[SimilarityResult]:
    """Score candidates against the seed terms and keep the best ``limit``.

    Args:
        seed_terms: Top terms of the seed channel.
        candidates: Deduplicated candidate channels.
        terms_for: Returns the top terms for a channel id.
        limit: Maximum number of results.

    Returns:
        Results with similarity > 0, sorted by similarity descending.
    """
    rows = []
    for candidate in candidates:
        result = score_candidate(seed_terms, candidate, terms_for(candidate.channel_id))
        if result is not None:
            rows.append(result)

    rows.sort(key=lambda r: r.similarity, reverse=True)
    return rows[:limit]


class SimilarChannelFinder:
    """Finds channels whose recent titles overlap with a seed channel."""

    def __init__(self, client: YouTubeClient):
        self.client = client

    def _candidate_terms(self, channel_id: str) -> list[str]:
        """Top terms of a candidate; an API failure counts as no terms."""
        try:
            titles = self.client.get_recent_titles(channel_id)
        except YouTubeAPIError as e:
            logger.warning("Could not fetch titles for %s: %s", channel_id, e)
            return []
        return top_terms(titles)

    def find(
        self,
        seed_input: str,
        candidate_channels: Iterable[CandidateChannel] = (),
    ) -> SimilarRunResult:
        """Run a similar-channel search for ``seed_input``.

        Seed resolution and seed title errors propagate. Candidate-level
        errors are logged and the candidate is skipped.
        """
        seed_channel_id = self.client.resolve_channel_id(seed_input)
        seed_terms = top_terms(self.client.get_recent_titles(seed_channel_id))
        query = build_seed_query(seed_terms)
        logger.info("Seed %s terms=%s query='%s'", seed_channel_id, seed_terms, query)

        try:
            searched = self.client.search_channels(query, max_results=SEARCH_CANDIDATES)
        except YouTubeAPIError as e:
            logger.warning("Channel search failed for '%s': %s", query, e)
            searched = []

        candidates = merge_candidates(candidate_channels, searched, seed_channel_id)
        logger.info("Scoring %d candidate channels", len(candidates))

        items = rank_similar(seed_terms, candidates, self._candidate_terms)
        logger.info("Found %d similar channels for %s", len(items), seed_channel_id)

        return SimilarRunResult(
            seed_input=seed_input,
            seed_channel_id=seed_channel_id,
            query=query,
            seed_terms=seed_terms,
            items=items,
        )
