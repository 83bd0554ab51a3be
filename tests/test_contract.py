"""
Tests for the generation contract enforcer.
"""
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from creatorops.planner.contract import (
    BannedWordError,
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
    covered_indices,
    enforce_contract,
    parse_required_count,
)
from creatorops.planner.models import TimelineSegment


class TestParseRequiredCount:
    @pytest.mark.parametrize("text,expected", [
        ("10种省钱方法", 10),
        ("给我 7 个技巧", 7),
        ("5条建议", 5),
        ("top 3 items", 3),
        ("12 ITEMS please", 12),
        ("1 item", 1),
        ("0个", None),
        ("51种", None),
        ("同类型视频", None),
        ("", None),
        (None, None),
    ])
    def test_parse(self, text, expected):
        assert parse_required_count(text) == expected

    def test_first_match_wins(self):
        assert parse_required_count("3种方法，每种5个步骤") == 3


class TestCoveredIndices:
    def test_single_and_ranges(self):
        labels = ["要点1", "要点 2-4", "要点5~6", "要点7到8", "开场"]
        assert covered_indices(labels, 10) == {1, 2, 3, 4, 5, 6, 7, 8}

    def test_multiple_refs_in_one_label(self):
        assert covered_indices(["要点1 与 要点3"], 5) == {1, 3}

    def test_clipped_to_upper(self):
        assert covered_indices(["要点1-999"], 4) == {1, 2, 3, 4}


class TestCountLaw:
    def test_accepts_full_coverage(self, script_factory):
        script = script_factory(item_count=10)
        constraints = GenerationConstraints(direction="10种番茄种植办法")

        report = check_contract(script, constraints)

        assert report.is_valid, report.summary()
        assert enforce_contract(script, constraints) is script

    @pytest.mark.parametrize("missing", [1, 5, 10])
    def test_removing_any_index_breaks_coverage(self, script_factory, missing):
        script = script_factory(item_count=10)
        timeline = list(script.timeline)
        timeline[missing - 1] = timeline[missing - 1].model_copy(update={"segment": "补充说明"})
        script = script.model_copy(update={"timeline": timeline})

        with pytest.raises(ScriptContractError) as exc_info:
            enforce_contract(script, GenerationConstraints(direction="10种"))

        assert exc_info.value.has(CoverageGapError)
        assert exc_info.value.report.kinds() == ["CoverageGapError"]

    def test_count_mismatch(self, script_factory):
        script = script_factory(item_count=9)
        report = check_contract(script, GenerationConstraints(direction="10种"))
        assert "CountMismatchError" in report.kinds()

    def test_no_count_no_coverage_check(self, script_factory):
        script = script_factory(item_count=3, segment_count=8)
        assert check_contract(script, GenerationConstraints(direction="同类型视频")).is_valid


class TestContractRules:
    def test_four_segments_rejected(self, script_factory):
        script = script_factory(item_count=4, segment_count=4)
        with pytest.raises(ScriptContractError) as exc_info:
            enforce_contract(script)
        assert exc_info.value.has(InsufficientSegmentsError)

    def test_too_vague_item(self, script_factory):
        script = script_factory(item_count=3)
        script = script.model_copy(update={"content_items": ["好", "第二种办法测试", "第三种办法测试"]})
        report = check_contract(script)
        assert report.kinds() == ["TooVagueError"]

    def test_short_segment(self, script_factory):
        script = script_factory()
        timeline = list(script.timeline)
        timeline[0] = TimelineSegment(time="0s", segment="要点1", voiceover="太短了", visuals=timeline[0].visuals)
        script = script.model_copy(update={"timeline": timeline})

        report = check_contract(script)

        assert report.kinds() == ["SegmentTooShortError"]

    def test_missing_shot_action(self, script_factory):
        script = script_factory()
        timeline = list(script.timeline)
        timeline[2] = timeline[2].model_copy(update={"visuals": "一盘切好的番茄放在白色盘子上，旁边放着一把刀和一块砧板，光线自然柔和，背景是木质桌面和绿色植物"})
        script = script.model_copy(update={"timeline": timeline})

        report = check_contract(script)

        assert report.kinds() == ["MissingShotActionError"]

    def test_topic_lock(self, script_factory):
        script = script_factory()
        assert check_contract(script, GenerationConstraints(topic_lock=" 番茄 ")).is_valid
        report = check_contract(script, GenerationConstraints(topic_lock="黄瓜"))
        assert report.kinds() == ["OffTopicError"]

    def test_topic_lock_case_insensitive(self, script_factory):
        script = script_factory(title="Tomato tips")
        assert check_contract(script, GenerationConstraints(topic_lock="TOMATO")).is_valid

    def test_banned_words(self, script_factory):
        script = script_factory()
        report = check_contract(script, GenerationConstraints(banned_words=["实测", "", "  "]))
        assert report.kinds() == ["BannedWordError"]

    def test_collects_every_violation(self, script_factory):
        script = script_factory(item_count=2, segment_count=4)
        constraints = GenerationConstraints(direction="5个", topic_lock="黄瓜", banned_words=["番茄"])

        with pytest.raises(ScriptContractError) as exc_info:
            enforce_contract(script, constraints)

        err = exc_info.value
        for kind in (CountMismatchError, InsufficientSegmentsError, CoverageGapError,
                     OffTopicError, BannedWordError):
            assert err.has(kind)
        assert err.has("OffTopicError")
        assert not err.has(TooVagueError)
        assert not err.has(SegmentTooShortError)
        assert not err.has(MissingShotActionError)
        assert "contract violation" in str(err)

    def test_summary_when_valid(self, script_factory):
        assert check_contract(script_factory()).summary() == "Contract satisfied"
