"""
Enhanced script scoring: the three base dimensions plus creativity,
emotion and rhythm, combined with a configurable weight vector.
"""
import re
from dataclasses import asdict, dataclass, fields
from typing import Optional

from .models import DetailedScript
from .quality import (
    DimensionScore,
    RuleOutcome,
    Rule,
    apply_rules,
    evaluate_script_quality,
    grade_for,
    round_half_up,
)

WEIGHT_SUM_TOLERANCE = 0.01

COMMON_TITLE_PATTERNS = ["如何", "怎么", "方法", "技巧", "教程", "攻略"]
UNIQUE_ANGLE_KEYWORDS = ["误区", "真相", "秘密", "内幕", "揭秘", "对比", "实验", "测试"]
EMOTION_WORDS = [
    "惊讶", "震惊", "意外", "没想到", "居然", "竟然",
    "担心", "焦虑", "害怕", "恐惧", "紧张",
    "开心", "高兴", "兴奋", "激动", "满意",
    "失望", "遗憾", "可惜", "后悔",
    "愤怒", "生气", "不满",
]
PAIN_POINTS = [
    "浪费", "损失", "错过", "后悔", "失败",
    "困扰", "问题", "难题", "挑战", "障碍",
    "省钱", "省时", "省力", "避免", "防止",
]
RESONANCE_PHRASES = ["你是否", "有没有", "是不是", "想不想", "会不会"]

_QUESTION_RE = re.compile(r"[？?]")
_CONTRAST_RE = re.compile(r"(但是|然而|其实|实际上|事实上)")
_DIGIT_RE = re.compile(r"\d+")


@dataclass
class ScoreWeights:
    structure: float = 0.20
    shootability: float = 0.25
    concreteness: float = 0.20
    creativity: float = 0.15
    emotion: float = 0.10
    rhythm: float = 0.10

    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))


DEFAULT_WEIGHTS = ScoreWeights()


@dataclass
class EnhancedScriptQualityScore:
    overall: int
    structure: DimensionScore
    shootability: DimensionScore
    concreteness: DimensionScore
    creativity: DimensionScore
    emotion: DimensionScore
    rhythm: DimensionScore
    grade: str
    weights: ScoreWeights

    def to_dict(self) -> dict:
        return {
            "overall": self.overall,
            "structure": self.structure.to_dict(),
            "shootability": self.shootability.to_dict(),
            "concreteness": self.concreteness.to_dict(),
            "creativity": self.creativity.to_dict(),
            "emotion": self.emotion.to_dict(),
            "rhythm": self.rhythm.to_dict(),
            "grade": self.grade,
            "weights": asdict(self.weights),
        }


def get_default_weights() -> ScoreWeights:
    """Fresh copy of the default weight vector."""
    return ScoreWeights(**asdict(DEFAULT_WEIGHTS))


def validate_weights(weights: ScoreWeights) -> bool:
    """True when the weights sum to 1.0 within tolerance.

    Scoring does not call this; callers check custom weights themselves.
    """
    return abs(weights.total() - 1.0) < WEIGHT_SUM_TOLERANCE


def merge_weights(custom: Optional[dict] = None) -> ScoreWeights:
    """Overlay a partial ``{dimension: weight}`` mapping on the defaults."""
    merged = asdict(DEFAULT_WEIGHTS)
    for name, value in (custom or {}).items():
        if name not in merged:
            raise ValueError(f"Unknown score dimension: {name}")
        merged[name] = float(value)
    return ScoreWeights(**merged)


# Creativity

def differentiation_depth_rule(script: DetailedScript) -> RuleOutcome:
    n = len(script.differentiation)
    if n >= 3:
        return RuleOutcome(0, f"✓ 差异化点充足（{n}个）")
    if n >= 2:
        return RuleOutcome(-10, f"△ 差异化点一般（{n}个，建议≥3个）")
    return RuleOutcome(-30, f"✗ 差异化点不足（{n}个）")


def title_novelty_rule(script: DetailedScript) -> RuleOutcome:
    title = script.title
    if any(p in title for p in COMMON_TITLE_PATTERNS):
        return RuleOutcome(-15, "△ 标题使用常见套路（建议更新颖）")
    if title:
        return RuleOutcome(0, "✓ 标题避开常见套路")
    return RuleOutcome(-20, "✗ 标题缺失")


def opening_hook_rule(script: DetailedScript) -> RuleOutcome:
    if not script.opening_15s:
        return RuleOutcome(-25, "✗ 缺少开场钩子")

    opening = "".join(script.opening_15s)
    hook = 0
    if _QUESTION_RE.search(opening):
        hook += 8
    if _CONTRAST_RE.search(opening):
        hook += 8
    if _DIGIT_RE.search(opening):
        hook += 9

    if hook >= 16:
        return RuleOutcome(0, "✓ 开场钩子多样化")
    if hook >= 8:
        return RuleOutcome(-10, "△ 开场钩子单一（建议增加疑问/对比/数据）")
    return RuleOutcome(-25, "✗ 开场钩子缺乏吸引力")


def unique_angle_rule(script: DetailedScript) -> RuleOutcome:
    content = "".join(script.content_items)
    if any(k in content for k in UNIQUE_ANGLE_KEYWORDS):
        return RuleOutcome(0, "✓ 内容角度独特")
    return RuleOutcome(-20, "△ 内容角度常规（建议增加独特视角）")


CREATIVITY_RULES: list[Rule] = [
    differentiation_depth_rule,
    title_novelty_rule,
    opening_hook_rule,
    unique_angle_rule,
]


def evaluate_creativity(script: DetailedScript) -> DimensionScore:
    return apply_rules(script, 100, CREATIVITY_RULES)


# Emotion

def _emotional_text(script: DetailedScript) -> str:
    parts = [script.title, script.thumbnail_copy]
    parts.extend(script.opening_15s)
    parts.extend(script.content_items)
    parts.append(script.cta)
    return "".join(parts)


def emotion_words_rule(script: DetailedScript) -> RuleOutcome:
    text = _emotional_text(script)
    count = sum(1 for w in EMOTION_WORDS if w in text)
    if count >= 3:
        return RuleOutcome(0, f"✓ 情感词汇丰富（{count}个）")
    if count >= 1:
        return RuleOutcome(-15, f"△ 情感词汇偏少（{count}个，建议≥3个）")
    return RuleOutcome(-30, "✗ 缺乏情感词汇")


def pain_point_rule(script: DetailedScript) -> RuleOutcome:
    text = _emotional_text(script)
    count = sum(1 for p in PAIN_POINTS if p in text)
    if count >= 2:
        return RuleOutcome(0, f"✓ 触达用户痛点（{count}个）")
    if count >= 1:
        return RuleOutcome(-15, f"△ 痛点触达不足（{count}个，建议≥2个）")
    return RuleOutcome(-35, "✗ 未触达用户痛点")


def resonance_rule(script: DetailedScript) -> RuleOutcome:
    text = _emotional_text(script)
    if any(w in text for w in RESONANCE_PHRASES):
        return RuleOutcome(0, "✓ 包含共鸣场景描述")
    return RuleOutcome(-30, "△ 缺少共鸣场景（建议增加\"你是否...\"等描述）")


EMOTION_RULES: list[Rule] = [emotion_words_rule, pain_point_rule, resonance_rule]


def evaluate_emotion(script: DetailedScript) -> DimensionScore:
    return apply_rules(script, 100, EMOTION_RULES)


# Rhythm

def segment_seconds(time_label: str) -> int:
    """First integer in a segment time label ("0:15-0:30" -> 0)."""
    match = _DIGIT_RE.search(time_label)
    return int(match.group()) if match else 0


def pacing_rule(script: DetailedScript) -> RuleOutcome:
    if not script.timeline:
        return RuleOutcome(-40, "✗ 缺少分镜时间轴")

    durations = [segment_seconds(s.time) for s in script.timeline]
    short = sum(1 for d in durations if d <= 15)
    medium = sum(1 for d in durations if 15 < d <= 30)
    long_ = sum(1 for d in durations if d > 30)

    if short > 0 and medium > 0:
        return RuleOutcome(0, "✓ 分镜时长分布合理（快慢结合）")
    if long_ > len(durations) * 0.7:
        return RuleOutcome(-25, "△ 分镜过长（建议增加快节奏片段）")
    return RuleOutcome(-15, "△ 分镜节奏单一")


def sentence_variety_rule(script: DetailedScript) -> RuleOutcome:
    if not script.opening_15s:
        return RuleOutcome(-30, "✗ 缺少开场口播")
    lengths = [len(s) for s in script.opening_15s]
    if max(lengths) - min(lengths) > 10:
        return RuleOutcome(0, "✓ 句子长度有变化")
    return RuleOutcome(-20, "△ 句子长度过于统一（建议长短结合）")


def content_density_rule(script: DetailedScript) -> RuleOutcome:
    if not script.content_items:
        return RuleOutcome(-30, "✗ 缺少内容要点")
    avg = sum(len(item) for item in script.content_items) / len(script.content_items)
    if 20 <= avg <= 50:
        return RuleOutcome(0, "✓ 内容密度适中")
    if avg > 50:
        return RuleOutcome(-20, "△ 内容过于密集（建议拆分）")
    return RuleOutcome(-15, "△ 内容过于简略（建议补充细节）")


RHYTHM_RULES: list[Rule] = [pacing_rule, sentence_variety_rule, content_density_rule]


def evaluate_rhythm(script: DetailedScript) -> DimensionScore:
    return apply_rules(script, 100, RHYTHM_RULES)


def evaluate_script_quality_enhanced(
    script: DetailedScript,
    custom_weights: Optional[dict] = None,
) -> EnhancedScriptQualityScore:
    """Score all six dimensions and weight them into one overall score.

    Args:
        script: Script to score.
        custom_weights: Partial mapping of dimension name to weight,
            merged over the defaults. Not normalized or validated here.
    """
    basic = evaluate_script_quality(script)
    creativity = evaluate_creativity(script)
    emotion = evaluate_emotion(script)
    rhythm = evaluate_rhythm(script)
    weights = merge_weights(custom_weights)

    overall = round_half_up(
        basic.structure.score * weights.structure
        + basic.shootability.score * weights.shootability
        + basic.concreteness.score * weights.concreteness
        + creativity.score * weights.creativity
        + emotion.score * weights.emotion
        + rhythm.score * weights.rhythm
    )

    return EnhancedScriptQualityScore(
        overall=overall,
        structure=basic.structure,
        shootability=basic.shootability,
        concreteness=basic.concreteness,
        creativity=creativity,
        emotion=emotion,
        rhythm=rhythm,
        grade=grade_for(overall),
        weights=weights,
    )
