"""
Script quality scoring.

Three dimensions, each 0-100:
  structure     additive from 0   (opening, segment count, items, balance, differentiation)
  shootability  additive from 0   (shot/scene keyword coverage and density)
  concreteness  subtractive from 100 (vague words, numbers, examples, verb specificity)

overall = round(structure * 0.3 + shootability * 0.4 + concreteness * 0.3)
"""
import math
import re
from dataclasses import dataclass, field
from typing import Callable, Optional

import numpy as np

from .models import DetailedScript

GRADE_EXCELLENT = "优秀"
GRADE_GOOD = "良好"
GRADE_PASS = "及格"
GRADE_NEEDS_WORK = "待改进"

SHOT_KEYWORDS = [
    "近景", "远景", "中景", "特写", "俯拍", "仰拍", "跟拍",
    "推镜", "拉镜", "转场", "机位", "镜头", "切换",
]
SCENE_KEYWORDS = ["室内", "室外", "桌面", "手持", "固定", "移动", "背景", "前景"]

VAGUE_WORDS = [
    "非常", "很", "特别", "十分", "极其", "相当",
    "可能", "也许", "大概", "基本上", "一般来说",
    "等等", "之类", "什么的",
    "比较", "还是", "应该", "可以说",
]
EXAMPLE_KEYWORDS = ["例如", "比如", "举例", "案例", "实验", "研究", "数据显示", "事实上"]
VAGUE_VERBS = ["做", "搞", "弄", "处理", "进行", "实施", "开展"]
CONCRETE_VERBS = ["切", "拌", "煮", "炒", "烤", "测量", "调整", "安装", "固定", "连接"]

NUMBER_PATTERN = r"\d+(?:\.\d+)?[%个条种项天分钟小时元块]"

MIN_VISUALS_CHARS = 30
MIN_VOICEOVER_CHARS = 50
MAX_SHOOTABILITY_DETAILS = 5

OVERALL_WEIGHTS = {"structure": 0.3, "shootability": 0.4, "concreteness": 0.3}


@dataclass
class RuleOutcome:
    """Signed score delta from one rule plus its explanation."""
    delta: int
    detail: str


@dataclass
class DimensionScore:
    score: int
    details: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"score": self.score, "details": list(self.details)}


@dataclass
class ScriptQualityScore:
    """Read-only quality assessment of one script."""
    overall: int
    structure: DimensionScore
    shootability: DimensionScore
    concreteness: DimensionScore
    grade: str

    def to_dict(self) -> dict:
        return {
            "overall": self.overall,
            "structure": self.structure.to_dict(),
            "shootability": self.shootability.to_dict(),
            "concreteness": self.concreteness.to_dict(),
            "grade": self.grade,
        }


Rule = Callable[[DetailedScript], Optional[RuleOutcome]]


def grade_for(overall: int) -> str:
    """Map an overall score to its grade band (lower bounds inclusive)."""
    if overall >= 85:
        return GRADE_EXCELLENT
    if overall >= 70:
        return GRADE_GOOD
    if overall >= 60:
        return GRADE_PASS
    return GRADE_NEEDS_WORK


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def count_occurrences(text: str, words: list[str]) -> int:
    """Total non-overlapping occurrences of every word in ``text``."""
    return sum(text.count(w) for w in words)


def apply_rules(script: DetailedScript, baseline: int, rules: list[Rule]) -> DimensionScore:
    score = baseline
    details = []
    for rule in rules:
        outcome = rule(script)
        if outcome is None:
            continue
        score += outcome.delta
        details.append(outcome.detail)
    return DimensionScore(score=max(0, min(score, 100)), details=details)


# Structure

def opening_rule(script: DetailedScript) -> RuleOutcome:
    if len(script.opening_15s) >= 3:
        return RuleOutcome(15, "✓ 开场口播完整（≥3句）")
    return RuleOutcome(0, "✗ 开场口播不足3句")


def segment_count_rule(script: DetailedScript) -> RuleOutcome:
    n = len(script.timeline)
    if n >= 8:
        return RuleOutcome(25, f"✓ 分镜段数充足（{n}段）")
    if n >= 5:
        return RuleOutcome(15, f"△ 分镜段数偏少（{n}段，建议≥8段）")
    return RuleOutcome(0, f"✗ 分镜段数严重不足（{n}段）")


def content_items_rule(script: DetailedScript) -> RuleOutcome:
    n = len(script.content_items)
    if n >= 5:
        return RuleOutcome(20, f"✓ 内容要点清晰（{n}条）")
    if n >= 3:
        return RuleOutcome(10, f"△ 内容要点偏少（{n}条，建议≥5条）")
    return RuleOutcome(0, f"✗ 内容要点不足（{n}条）")


def voiceover_variation(script: DetailedScript) -> float:
    """Coefficient of variation of voiceover lengths (inf when all empty)."""
    lengths = np.array([len(s.voiceover) for s in script.timeline], dtype=float)
    mean = lengths.mean()
    if mean == 0:
        return float("inf")
    return float(lengths.std() / mean)


def balance_rule(script: DetailedScript) -> Optional[RuleOutcome]:
    if not script.timeline:
        return None
    cv = voiceover_variation(script)
    if cv < 0.3:
        return RuleOutcome(20, "✓ 分镜段落长度均衡")
    if cv < 0.5:
        return RuleOutcome(10, "△ 分镜段落长度略有不均")
    return RuleOutcome(0, "✗ 分镜段落长度差异过大")


def differentiation_rule(script: DetailedScript) -> RuleOutcome:
    n = len(script.differentiation)
    if n >= 3:
        return RuleOutcome(20, f"✓ 差异化点充分（{n}条）")
    if n >= 2:
        return RuleOutcome(10, f"△ 差异化点偏少（{n}条，建议≥3条）")
    return RuleOutcome(0, f"✗ 差异化点不足（{n}条）")


STRUCTURE_RULES: list[Rule] = [
    opening_rule,
    segment_count_rule,
    content_items_rule,
    balance_rule,
    differentiation_rule,
]


def evaluate_structure(script: DetailedScript) -> DimensionScore:
    return apply_rules(script, 0, STRUCTURE_RULES)


# Shootability

def _keyword_hits(text: str, keywords: list[str]) -> int:
    return sum(1 for kw in keywords if kw in text)


def _coverage(script: DetailedScript, keywords: list[str]) -> float:
    hits = sum(1 for s in script.timeline if _keyword_hits(s.visuals, keywords) > 0)
    return hits / len(script.timeline)


def shot_coverage_rule(script: DetailedScript) -> RuleOutcome:
    coverage = _coverage(script, SHOT_KEYWORDS)
    pct = round_half_up(coverage * 100)
    if coverage >= 0.8:
        return RuleOutcome(40, f"✓ 镜头动作覆盖率高（{pct}%）")
    if coverage >= 0.5:
        return RuleOutcome(25, f"△ 镜头动作覆盖率中等（{pct}%）")
    return RuleOutcome(0, f"✗ 镜头动作覆盖率低（{pct}%）")


def scene_coverage_rule(script: DetailedScript) -> RuleOutcome:
    coverage = _coverage(script, SCENE_KEYWORDS)
    pct = round_half_up(coverage * 100)
    if coverage >= 0.6:
        return RuleOutcome(30, f"✓ 场景描述充分（{pct}%）")
    if coverage >= 0.3:
        return RuleOutcome(15, f"△ 场景描述一般（{pct}%）")
    return RuleOutcome(0, f"✗ 场景描述不足（{pct}%）")


def shot_density_rule(script: DetailedScript) -> RuleOutcome:
    total = sum(_keyword_hits(s.visuals, SHOT_KEYWORDS) for s in script.timeline)
    density = total / len(script.timeline)
    if density >= 2:
        return RuleOutcome(30, f"✓ 镜头动作密度高（平均{density:.1f}个/段）")
    if density >= 1:
        return RuleOutcome(15, f"△ 镜头动作密度中等（平均{density:.1f}个/段）")
    return RuleOutcome(0, f"✗ 镜头动作密度低（平均{density:.1f}个/段）")


SHOOTABILITY_RULES: list[Rule] = [
    shot_coverage_rule,
    scene_coverage_rule,
    shot_density_rule,
]


def segment_length_flags(script: DetailedScript) -> list[str]:
    """Non-scoring warnings for segments with thin visuals or narration."""
    flags = []
    for i, seg in enumerate(script.timeline, 1):
        if len(seg.visuals) < MIN_VISUALS_CHARS:
            flags.append(f"✗ 第{i}段画面描述过短（{len(seg.visuals)}字）")
        if len(seg.voiceover) < MIN_VOICEOVER_CHARS:
            flags.append(f"✗ 第{i}段口播过短（{len(seg.voiceover)}字）")
    return flags


def evaluate_shootability(script: DetailedScript) -> DimensionScore:
    if not script.timeline:
        return DimensionScore(score=0, details=["✗ 缺少分镜脚本"])

    scored = apply_rules(script, 0, SHOOTABILITY_RULES)
    details = segment_length_flags(script) + scored.details
    return DimensionScore(score=scored.score, details=details[:MAX_SHOOTABILITY_DETAILS])


# Concreteness

def script_text(script: DetailedScript) -> str:
    """All spoken and written copy of a script, space-joined."""
    parts = [script.topic, script.title, script.thumbnail_copy]
    parts.extend(script.opening_15s)
    parts.extend(s.voiceover + s.visuals for s in script.timeline)
    parts.extend(script.content_items)
    parts.append(script.cta)
    return " ".join(parts)


def per_hundred_chars(count: int, text: str) -> float:
    if not text:
        return 0.0
    return count / (len(text) / 100)


def vague_word_rule(script: DetailedScript) -> RuleOutcome:
    text = script_text(script)
    count = count_occurrences(text, VAGUE_WORDS)
    density = per_hundred_chars(count, text)
    if density > 3:
        return RuleOutcome(-30, f"✗ 空话词汇过多（{count}个，密度{density:.1f}/100字）")
    if density > 1.5:
        return RuleOutcome(-15, f"△ 空话词汇偏多（{count}个，密度{density:.1f}/100字）")
    return RuleOutcome(0, f"✓ 空话词汇控制良好（{count}个）")


def number_density_rule(script: DetailedScript) -> RuleOutcome:
    text = script_text(script)
    count = len(re.findall(NUMBER_PATTERN, text))
    density = per_hundred_chars(count, text)
    if density >= 2:
        return RuleOutcome(0, f"✓ 数字数据充足（{count}个，密度{density:.1f}/100字）")
    if density >= 1:
        return RuleOutcome(-10, f"△ 数字数据偏少（{count}个，建议增加具体数据）")
    return RuleOutcome(-20, f"✗ 数字数据严重不足（{count}个）")


def example_rule(script: DetailedScript) -> RuleOutcome:
    text = script_text(script)
    count = _keyword_hits(text, EXAMPLE_KEYWORDS)
    if count >= 3:
        return RuleOutcome(0, f"✓ 案例引用充分（{count}处）")
    if count >= 1:
        return RuleOutcome(-10, f"△ 案例引用偏少（{count}处，建议≥3处）")
    return RuleOutcome(-20, "✗ 缺少具体案例引用")


def verb_specificity_rule(script: DetailedScript) -> RuleOutcome:
    text = script_text(script)
    vague = count_occurrences(text, VAGUE_VERBS)
    concrete = count_occurrences(text, CONCRETE_VERBS)
    if concrete > vague * 2:
        return RuleOutcome(0, f"✓ 动词具体性强（具体动词{concrete}个 vs 泛化动词{vague}个）")
    if concrete > vague:
        return RuleOutcome(-15, "△ 动词具体性一般（建议多用具体动作动词）")
    return RuleOutcome(-30, f"✗ 动词过于泛化（泛化动词{vague}个 > 具体动词{concrete}个）")


CONCRETENESS_RULES: list[Rule] = [
    vague_word_rule,
    number_density_rule,
    example_rule,
    verb_specificity_rule,
]


def evaluate_concreteness(script: DetailedScript) -> DimensionScore:
    return apply_rules(script, 100, CONCRETENESS_RULES)


def evaluate_script_quality(script: DetailedScript) -> ScriptQualityScore:
    """Score a script on structure, shootability and concreteness."""
    structure = evaluate_structure(script)
    shootability = evaluate_shootability(script)
    concreteness = evaluate_concreteness(script)

    overall = round_half_up(
        structure.score * OVERALL_WEIGHTS["structure"]
        + shootability.score * OVERALL_WEIGHTS["shootability"]
        + concreteness.score * OVERALL_WEIGHTS["concreteness"]
    )

    return ScriptQualityScore(
        overall=overall,
        structure=structure,
        shootability=shootability,
        concreteness=concreteness,
        grade=grade_for(overall),
    )
