"""
Script planning: LLM script generation, quality scoring and
generation contract enforcement.
"""
from .models import DetailedScript, MalformedScriptError, TimelineSegment, parse_script_payload
from .quality import ScriptQualityScore, evaluate_script_quality, grade_for
from .quality_enhanced import (
    ScoreWeights,
    evaluate_script_quality_enhanced,
    get_default_weights,
    validate_weights,
)
from .contract import (
    BannedWordError,
    ContractReport,
    ContractViolation,
    CountMismatchError,
    CoverageGapError,
    GenerationConstraints,
    InsufficientSegmentsError,
    MissingShotActionError,
    OffTopicError,
    ScriptContractError,
    SegmentTooShortError,
    TooVagueError,
    check_contract,
    enforce_contract,
    parse_required_count,
)
from .generator import GenerationResult, ScriptGenerator

__all__ = [
    "DetailedScript",
    "MalformedScriptError",
    "TimelineSegment",
    "parse_script_payload",
    "ScriptQualityScore",
    "evaluate_script_quality",
    "grade_for",
    "ScoreWeights",
    "evaluate_script_quality_enhanced",
    "get_default_weights",
    "validate_weights",
    "BannedWordError",
    "ContractReport",
    "ContractViolation",
    "CountMismatchError",
    "CoverageGapError",
    "GenerationConstraints",
    "InsufficientSegmentsError",
    "MissingShotActionError",
    "OffTopicError",
    "ScriptContractError",
    "SegmentTooShortError",
    "TooVagueError",
    "check_contract",
    "enforce_contract",
    "parse_required_count",
    "GenerationResult",
    "ScriptGenerator",
]
