"""
Data models for similar-channel matching.
"""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class CandidateChannel:
    """A channel that may be similar to the seed."""
    channel_id: str
    channel_title: Optional[str] = None
    channel_url: Optional[str] = None


@dataclass
class SimilarityResult:
    """Term overlap between the seed and one candidate channel."""
    channel_id: str
    channel_title: str
    channel_url: str
    similarity: float  # 0-100
    matched_terms: list[str]


@dataclass
class SimilarRunResult:
    """Outcome of one similar-channel search."""
    seed_input: str
    seed_channel_id: str
    query: str
    seed_terms: list[str]
    items: list[SimilarityResult] = field(default_factory=list)
