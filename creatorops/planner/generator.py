"""
Script generation from reference channels using Ollama.

Seed channels are resolved, their recent titles sampled, and the local
model is asked for one shootable script in DetailedScript's JSON schema.
Every response must pass the generation contract; after ``max_attempts``
rejected responses a static template script is returned instead.
"""
import json
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

import ollama

from ..youtube.client import YouTubeClient
from .contract import GenerationConstraints, ScriptContractError, enforce_contract
from .models import DetailedScript, MalformedScriptError, TimelineSegment, parse_script_payload

logger = logging.getLogger(__name__)

MAX_SEEDS = 5
MAX_SAMPLED_TITLES = 24
DEFAULT_ATTEMPTS = 2
DEFAULT_DIRECTION = "同类型视频"

SYSTEM_PROMPT = (
    "你是YouTube内容策划。请基于参考频道风格，产出1篇可直接拍摄的详细文案。"
    "仅学习结构和节奏，禁止复用原句。禁止编造数字承诺；"
    "如果提到N种/个/条，contentItems必须严格给出N条。必须输出JSON。"
)

PROMPT_CONSTRAINTS = [
    "不要照抄参考标题和原句",
    "至少给出3条差异化点",
    "风格贴近参考频道但更适合实操拍摄",
    "timeline至少8段，每段voiceover不少于60字，visuals不少于40字并写明镜头动作",
    "如果requiredCount存在，contentItems长度必须===requiredCount，timeline的segment用“要点N”标明覆盖的要点",
    "如果topicLock存在，topic/title/contentItems必须明显围绕topicLock",
    "如果bannedWords存在，输出中不能出现这些词",
]

OUTPUT_FIELDS = [
    "topic", "title", "thumbnailCopy", "opening15s", "timeline",
    "contentItems", "cta", "publishCopy", "tags", "differentiation",
]


@dataclass
class GenerationResult:
    """An accepted (or template) script plus what it was built from."""
    script: DetailedScript
    seeds: List[str]
    sampled_titles: List[str]
    attempts: int = 0
    errors: List[str] = field(default_factory=list)


def split_seeds(seed_text: str) -> List[str]:
    """Seed channel inputs from newline/comma separated text (max 5)."""
    seeds = [s.strip() for s in re.split(r"\n|,", seed_text or "")]
    return [s for s in seeds if s][:MAX_SEEDS]


def template_script(sampled_titles: List[str], required_count: Optional[int] = None) -> DetailedScript:
    """Static fallback script, used when no model output is acceptable."""
    first = sampled_titles[0] if sampled_titles else "参考频道同类主题"
    if required_count:
        items = [f"要点{i}" for i in range(1, required_count + 1)]
    else:
        items = ["核心要点1", "核心要点2", "核心要点3"]

    return DetailedScript(
        topic="参考频道同类型实操视频",
        title=f"我按{first[:24]}的方法实测7天，结果如何？",
        thumbnail_copy="实测7天 结果公开",
        opening_15s=[
            "我选了参考频道常见的一种做法。",
            "这次我不抄答案，直接实测7天。",
            "今天给你看真实过程和结果。",
        ],
        timeline=[
            TimelineSegment(time="00:00", segment="开场钩子",
                            voiceover="先说目标和结果预期。", visuals="结果先行画面+字幕"),
            TimelineSegment(time="00:20", segment="方法拆解",
                            voiceover="拆成3步并解释为什么这么做。", visuals="手绘流程/实操镜头"),
            TimelineSegment(time="01:20", segment="执行过程",
                            voiceover="展示关键动作和踩坑。", visuals="前后对比+B-roll"),
            TimelineSegment(time="02:40", segment="结果与复盘",
                            voiceover="给出可量化结果和失败点。", visuals="数据卡+对比图"),
        ],
        content_items=items,
        cta="如果你要我继续做第2期，评论区打‘继续’。",
        publish_copy="这期按参考频道常见打法做了完整实测，但我们做了3处关键改造，结果比预期更稳。",
        tags=["实测", "教程", "复盘", "同类型选题"],
        differentiation=["把泛化建议改成可执行步骤", "增加失败样本和纠错过程", "加入量化对比结果"],
        provider="template",
    )


class ScriptGenerator:
    """Generates shootable scripts styled after reference channels."""

    def __init__(
        self,
        client: YouTubeClient,
        model: str = "qwen2.5:7b",
        max_attempts: int = DEFAULT_ATTEMPTS,
    ):
        self.client = client
        self.model = model
        self.max_attempts = max(1, max_attempts)

    def _sample_titles(self, seeds: List[str]) -> List[str]:
        titles: List[str] = []
        for seed in seeds:
            channel_id = self.client.resolve_channel_id(seed)
            titles.extend(self.client.get_recent_titles(channel_id))
        return titles[:MAX_SAMPLED_TITLES]

    def build_messages(
        self,
        seeds: List[str],
        sampled_titles: List[str],
        constraints: GenerationConstraints,
        language: str = "zh",
    ) -> List[dict]:
        """Chat messages for one generation request."""
        request = {
            "language": language,
            "direction": constraints.direction or DEFAULT_DIRECTION,
            "topicLock": constraints.cleaned_topic_lock(),
            "bannedWords": constraints.cleaned_banned_words(),
            "requiredCount": constraints.required_count,
            "requirement": {
                "count": 1,
                "outputFields": OUTPUT_FIELDS,
                "timelineFormat": "[{time,segment,voiceover,visuals}]",
                "constraints": PROMPT_CONSTRAINTS,
            },
            "references": {"seeds": seeds, "sampledTitles": sampled_titles},
        }
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": json.dumps(request, ensure_ascii=False)},
        ]

    def _ask_model(self, messages: List[dict]) -> Optional[str]:
        """Raw JSON text from the model, or None if the call failed."""
        try:
            response = ollama.chat(
                model=self.model,
                messages=messages,
                format=DetailedScript.model_json_schema(by_alias=True),
            )
            return response.message.content
        except Exception as e:
            logger.error("LLM script generation failed (%s): %s", self.model, e)
            return None

    def generate(
        self,
        seed_text: str,
        language: str = "zh",
        direction: Optional[str] = None,
        topic_lock: Optional[str] = None,
        banned_words: Optional[List[str]] = None,
    ) -> GenerationResult:
        """Generate one script from reference channels.

        Args:
            seed_text: Up to 5 channel inputs separated by newlines or commas.
            language: Output language hint ("zh" or "en").
            direction: Free-text direction; "10种" etc. sets the item count.
            topic_lock: Term the topic/title/items must contain.
            banned_words: Words that must not appear.

        Returns:
            GenerationResult whose script has provider "ai", or "template"
            when every attempt was rejected.

        Raises:
            ValueError: No seed channel given.
            ChannelNotFoundError: A seed cannot be resolved.
        """
        seeds = split_seeds(seed_text)
        if not seeds:
            raise ValueError("At least one seed channel is required")

        sampled_titles = self._sample_titles(seeds)
        constraints = GenerationConstraints(
            direction=direction or "",
            topic_lock=topic_lock or "",
            banned_words=list(banned_words or []),
        )
        messages = self.build_messages(seeds, sampled_titles, constraints, language)
        errors: List[str] = []

        for attempt in range(1, self.max_attempts + 1):
            content = self._ask_model(messages)
            if content is None:
                errors.append("model call failed")
                continue

            try:
                script = parse_script_payload(content)
                enforce_contract(script, constraints)
            except MalformedScriptError as e:
                logger.warning("Attempt %d: malformed script: %s", attempt, e)
                errors.append(str(e))
                continue
            except ScriptContractError as e:
                logger.warning("Attempt %d: %s", attempt, e.report.summary())
                errors.append(str(e))
                continue

            logger.info("Script accepted on attempt %d", attempt)
            return GenerationResult(
                script=script.model_copy(update={"provider": "ai"}),
                seeds=seeds,
                sampled_titles=sampled_titles,
                attempts=attempt,
                errors=errors,
            )

        logger.warning("No acceptable script after %d attempts, using template", self.max_attempts)
        return GenerationResult(
            script=template_script(sampled_titles, constraints.required_count),
            seeds=seeds,
            sampled_titles=sampled_titles,
            attempts=self.max_attempts,
            errors=errors,
        )
