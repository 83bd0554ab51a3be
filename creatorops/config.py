"""
Runtime configuration and niche presets.

Settings come from the environment; a ``.env`` file in the working
directory is loaded first if present.
"""
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .discovery.models import DiscoveryBounds, WeightVector
from .youtube.keypool import QUOTA_LIMIT_PER_KEY, parse_api_keys

load_dotenv()

DEFAULT_DB_PATH = "data/creatorops.db"
DEFAULT_LLM_MODEL = "qwen2.5:7b"


class Settings(BaseModel):
    """Process-wide settings."""

    youtube_api_keys: List[str] = Field(default_factory=list)
    db_path: str = DEFAULT_DB_PATH
    llm_model: str = DEFAULT_LLM_MODEL
    quota_per_key: int = QUOTA_LIMIT_PER_KEY

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            youtube_api_keys=parse_api_keys(
                os.getenv("YOUTUBE_API_KEYS", ""),
                os.getenv("YOUTUBE_API_KEY"),
            ),
            db_path=os.getenv("CREATOROPS_DB_PATH", DEFAULT_DB_PATH),
            llm_model=os.getenv("CREATOROPS_LLM_MODEL", DEFAULT_LLM_MODEL),
            quota_per_key=int(os.getenv("CREATOROPS_YT_QUOTA_PER_KEY", str(QUOTA_LIMIT_PER_KEY))),
        )


class NichePreset(BaseModel):
    """Discovery defaults for one content niche."""

    slug: str
    name: str
    primary_query: str
    keyword_set: List[str] = Field(default_factory=list)
    min_duration_sec: int = 240
    window_days: int = 7
    max_results: int = 50
    view_sum_weight: float = 0.45
    median_view_weight: float = 0.30
    upload_weight: float = 0.25
    risk_words: List[str] = Field(default_factory=list)
    min_subscribers: Optional[int] = None
    max_subscribers: Optional[int] = None
    max_channel_age_days: Optional[int] = None
    min_view_sub_ratio: Optional[float] = None
    max_view_sub_ratio: Optional[float] = None

    def weights(self) -> WeightVector:
        return WeightVector(
            view_sum=self.view_sum_weight,
            median_view=self.median_view_weight,
            upload=self.upload_weight,
        )

    def bounds(self) -> DiscoveryBounds:
        return DiscoveryBounds(
            min_subscribers=self.min_subscribers,
            max_subscribers=self.max_subscribers,
            max_channel_age_days=self.max_channel_age_days,
            min_view_sub_ratio=self.min_view_sub_ratio,
            max_view_sub_ratio=self.max_view_sub_ratio,
        )


DEFAULT_NICHE_PRESETS: List[NichePreset] = [
    NichePreset(
        slug="homestead",
        name="Homestead / Off-grid",
        primary_query="homestead",
        keyword_set=["homestead", "off grid", "self sufficient", "backyard farming"],
        min_duration_sec=240,
        window_days=7,
        view_sum_weight=0.45,
        median_view_weight=0.30,
        upload_weight=0.25,
        risk_words=["instantly", "miracle cure", "FDA banned"],
    ),
    NichePreset(
        slug="ai-tools",
        name="AI Tools",
        primary_query="ai tools",
        keyword_set=["ai tools", "chatgpt tutorial", "automation", "no code ai"],
        min_duration_sec=120,
        window_days=7,
        view_sum_weight=0.5,
        median_view_weight=0.25,
        upload_weight=0.25,
        risk_words=["make money fast", "guaranteed income"],
    ),
    NichePreset(
        slug="fitness",
        name="Fitness",
        primary_query="fitness",
        keyword_set=["fitness", "workout", "fat loss", "muscle gain"],
        min_duration_sec=60,
        window_days=14,
        view_sum_weight=0.4,
        median_view_weight=0.35,
        upload_weight=0.25,
        risk_words=["lose 10kg in 3 days", "instant body transformation"],
    ),
]


def list_niche_presets() -> List[NichePreset]:
    return list(DEFAULT_NICHE_PRESETS)


def get_niche_preset(slug: Optional[str]) -> Optional[NichePreset]:
    """Preset for ``slug``, or None when the slug is empty or unknown."""
    if not slug:
        return None
    for preset in DEFAULT_NICHE_PRESETS:
        if preset.slug == slug:
            return preset
    return None
