"""
Pytest configuration and fixtures.
"""
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from creatorops.planner.models import DetailedScript, TimelineSegment


VOICEOVER_LINE = "我们把番茄切成小块然后放进锅里慢慢煮十分钟，"
VISUALS = "近景特写：手持镜头跟拍切菜动作，室内桌面固定机位，背景是厨房灶台全景画面，前景放置计时器"


def make_script(item_count=10, segment_count=10, **overrides):
    """A script that satisfies every contract rule for "N种" directions."""
    timeline = [
        TimelineSegment(
            time=f"{(i - 1) * 20}s",
            segment=f"要点{i}" if i <= item_count else "总结",
            voiceover=f"第{i}步：" + VOICEOVER_LINE * 3,
            visuals=VISUALS,
        )
        for i in range(1, segment_count + 1)
    ]
    fields = dict(
        topic="番茄种植实测",
        title="番茄种植实测：10种办法哪种产量最高",
        thumbnail_copy="实测10种办法",
        opening_15s=[
            "你是否种了三年番茄还是只结几个果？",
            "其实问题出在土壤。",
            "今天用3组对照实验告诉你答案。",
        ],
        timeline=timeline,
        content_items=[f"第{i}种办法：调整浇水频率" for i in range(1, item_count + 1)],
        cta="评论区告诉我你家番茄的产量。",
        publish_copy="番茄种植对照实验完整记录。",
        tags=["番茄", "种植"],
        differentiation=["真实对照实验", "公开失败样本", "量化产量对比"],
    )
    fields.update(overrides)
    return DetailedScript(**fields)


@pytest.fixture
def script_factory():
    return make_script
