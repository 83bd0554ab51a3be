"""
Generation contract checks for LLM-produced scripts.

Every rule is checked and every failure is collected, so a rejected
script reports all of its problems at once. ``enforce_contract`` turns a
failed report into a single ScriptContractError.
"""
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from .models import DetailedScript
from .quality import SHOT_KEYWORDS

MAX_REQUIRED_COUNT = 50
MIN_ITEM_CHARS = 4
MIN_SEGMENTS = 8
MIN_VOICEOVER_CHARS = 60
MIN_VISUALS_CHARS = 40

_REQUIRED_COUNT_RE = re.compile(r"(\d{1,3})\s*(种|个|条|items?)", re.IGNORECASE)
_COVERAGE_RE = re.compile(r"要点\s*(\d+)(?:[-~到](\d+))?")


class ContractViolation(Exception):
    """One failed contract rule."""

    @property
    def kind(self) -> str:
        return type(self).__name__


class CountMismatchError(ContractViolation):
    pass


class TooVagueError(ContractViolation):
    pass


class InsufficientSegmentsError(ContractViolation):
    pass


class SegmentTooShortError(ContractViolation):
    pass


class MissingShotActionError(ContractViolation):
    pass


class CoverageGapError(ContractViolation):
    pass


class OffTopicError(ContractViolation):
    pass


class BannedWordError(ContractViolation):
    pass


@dataclass
class GenerationConstraints:
    """What the caller asked the generator for."""
    direction: str = ""
    topic_lock: str = ""
    banned_words: List[str] = field(default_factory=list)

    @property
    def required_count(self) -> Optional[int]:
        return parse_required_count(self.direction)

    def cleaned_topic_lock(self) -> str:
        return (self.topic_lock or "").strip()

    def cleaned_banned_words(self) -> List[str]:
        return [w.strip() for w in self.banned_words if w and w.strip()]


@dataclass
class ContractReport:
    """Result of checking one script against its constraints."""
    violations: List[ContractViolation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def kinds(self) -> List[str]:
        return [v.kind for v in self.violations]

    def summary(self) -> str:
        if self.is_valid:
            return "Contract satisfied"
        lines = [f"{len(self.violations)} contract violation(s):"]
        for v in self.violations:
            lines.append(f"  - {v.kind}: {v}")
        return "\n".join(lines)


class ScriptContractError(ValueError):
    """A generated script broke one or more contract rules."""

    def __init__(self, report: ContractReport):
        self.report = report
        super().__init__(report.summary())

    @property
    def violations(self) -> List[ContractViolation]:
        return self.report.violations

    def has(self, kind) -> bool:
        """True if a violation of ``kind`` (class or class name) was found."""
        name = kind if isinstance(kind, str) else kind.__name__
        return name in self.report.kinds()


def parse_required_count(text: Optional[str]) -> Optional[int]:
    """Item count promised in free text ("10种", "7 items"), if any.

    Only the first match counts, and only when 0 < N <= 50.
    """
    m = _REQUIRED_COUNT_RE.search(text or "")
    if not m:
        return None
    n = int(m.group(1))
    if n <= 0 or n > MAX_REQUIRED_COUNT:
        return None
    return n


def covered_indices(labels: Iterable[str], upper: int) -> set[int]:
    """Item indices in 1..upper referenced by "要点N" / "要点A-B" labels."""
    covered: set[int] = set()
    for label in labels:
        for m in _COVERAGE_RE.finditer(label or ""):
            start = int(m.group(1))
            end = int(m.group(2)) if m.group(2) else start
            lo, hi = min(start, end), max(start, end)
            covered.update(range(max(lo, 1), min(hi, upper) + 1))
    return covered


def topic_text(script: DetailedScript) -> str:
    """Lowercased topic, title and content items joined by spaces."""
    return " ".join([script.topic, script.title, *script.content_items]).lower()


def check_contract(script: DetailedScript, constraints: Optional[GenerationConstraints] = None) -> ContractReport:
    """Check a script against every contract rule and collect the failures."""
    constraints = constraints or GenerationConstraints()
    violations: List[ContractViolation] = []
    required = constraints.required_count

    if required is not None and len(script.content_items) != required:
        violations.append(CountMismatchError(
            f"required {required} content items, got {len(script.content_items)}"
        ))

    for i, item in enumerate(script.content_items, 1):
        if len(item) < MIN_ITEM_CHARS:
            violations.append(TooVagueError(f"content item {i} is too vague: {item!r}"))

    if len(script.timeline) < MIN_SEGMENTS:
        violations.append(InsufficientSegmentsError(
            f"timeline has {len(script.timeline)} segments, need at least {MIN_SEGMENTS}"
        ))

    for i, seg in enumerate(script.timeline, 1):
        if len(seg.voiceover) < MIN_VOICEOVER_CHARS or len(seg.visuals) < MIN_VISUALS_CHARS:
            violations.append(SegmentTooShortError(
                f"segment {i} too short (voiceover {len(seg.voiceover)}, visuals {len(seg.visuals)})"
            ))
        if not any(kw in seg.visuals for kw in SHOT_KEYWORDS):
            violations.append(MissingShotActionError(f"segment {i} visuals name no shot action"))

    if required is not None:
        covered = covered_indices((s.segment for s in script.timeline), required)
        missing = [n for n in range(1, required + 1) if n not in covered]
        if missing:
            violations.append(CoverageGapError(f"timeline does not cover items {missing}"))

    text = topic_text(script)
    topic_lock = constraints.cleaned_topic_lock()
    if topic_lock and topic_lock.lower() not in text:
        violations.append(OffTopicError(f"script does not stay on topic {topic_lock!r}"))

    for word in constraints.cleaned_banned_words():
        if word.lower() in text:
            violations.append(BannedWordError(f"banned word used: {word!r}"))

    return ContractReport(violations=violations)


def enforce_contract(script: DetailedScript, constraints: Optional[GenerationConstraints] = None) -> DetailedScript:
    """Return the script unchanged if it meets the contract.

    Raises:
        ScriptContractError: One or more rules failed.
    """
    report = check_contract(script, constraints)
    if not report.is_valid:
        raise ScriptContractError(report)
    return script
