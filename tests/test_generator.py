"""
Tests for the Ollama-backed script generator.
"""
import json
import os
import sys
from unittest.mock import MagicMock, patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from creatorops.planner.contract import GenerationConstraints
from creatorops.planner.generator import ScriptGenerator, split_seeds, template_script
from creatorops.planner.models import DetailedScript
from creatorops.youtube.errors import ChannelNotFoundError


def _chat_response(content):
    return MagicMock(message=MagicMock(content=content))


def _script_json(script):
    return json.dumps(script.model_dump(by_alias=True), ensure_ascii=False)


@pytest.fixture
def client():
    client = MagicMock()
    client.resolve_channel_id.side_effect = lambda seed: f"UC_{seed}"
    client.get_recent_titles.return_value = [f"Title {i}" for i in range(20)]
    return client


class TestSplitSeeds:
    def test_newlines_and_commas(self):
        assert split_seeds("@a\n@b, @c,,\n") == ["@a", "@b", "@c"]

    def test_capped_at_five(self):
        assert len(split_seeds(",".join(f"s{i}" for i in range(8)))) == 5

    def test_empty(self):
        assert split_seeds("") == []
        assert split_seeds(None) == []


class TestTemplateScript:
    def test_required_count_items(self):
        script = template_script(["A title"], 4)
        assert script.content_items == ["要点1", "要点2", "要点3", "要点4"]
        assert script.provider == "template"
        assert "A title" in script.title

    def test_default_items(self):
        script = template_script([])
        assert len(script.content_items) == 3
        assert "参考频道同类主题" in script.title


class TestScriptGenerator:
    @patch("creatorops.planner.generator.ollama")
    def test_accepts_first_valid_response(self, mock_ollama, client, script_factory):
        mock_ollama.chat.return_value = _chat_response(_script_json(script_factory(item_count=10)))

        result = ScriptGenerator(client).generate("@one\n@two", direction="10种番茄种植办法")

        assert result.attempts == 1
        assert result.errors == []
        assert result.script.provider == "ai"
        assert len(result.script.content_items) == 10
        assert result.seeds == ["@one", "@two"]
        # 20 titles per seed, capped
        assert len(result.sampled_titles) == 24
        assert client.resolve_channel_id.call_count == 2

    @patch("creatorops.planner.generator.ollama")
    def test_requests_schema_output(self, mock_ollama, client, script_factory):
        mock_ollama.chat.return_value = _chat_response(_script_json(script_factory()))

        ScriptGenerator(client, model="llama3").generate("@one")

        kwargs = mock_ollama.chat.call_args.kwargs
        assert kwargs["model"] == "llama3"
        assert kwargs["format"] == DetailedScript.model_json_schema(by_alias=True)
        assert kwargs["messages"][0]["role"] == "system"

    @patch("creatorops.planner.generator.ollama")
    def test_retries_after_rejected_response(self, mock_ollama, client, script_factory):
        mock_ollama.chat.side_effect = [
            _chat_response("{broken"),
            _chat_response(_script_json(script_factory())),
        ]

        result = ScriptGenerator(client).generate("@one")

        assert result.attempts == 2
        assert len(result.errors) == 1
        assert result.script.provider == "ai"

    @patch("creatorops.planner.generator.ollama")
    def test_contract_violation_counts_as_failed_attempt(self, mock_ollama, client, script_factory):
        short = script_factory(item_count=4, segment_count=4)
        mock_ollama.chat.return_value = _chat_response(_script_json(short))

        result = ScriptGenerator(client).generate("@one", direction="10种")

        assert result.script.provider == "template"
        assert result.script.content_items == [f"要点{i}" for i in range(1, 11)]
        assert result.attempts == 2
        assert all("contract violation" in e for e in result.errors)

    @patch("creatorops.planner.generator.ollama")
    def test_model_failure_falls_back_to_template(self, mock_ollama, client):
        mock_ollama.chat.side_effect = Exception("connection refused")

        result = ScriptGenerator(client, max_attempts=3).generate("@one")

        assert result.script.provider == "template"
        assert result.errors == ["model call failed"] * 3
        assert mock_ollama.chat.call_count == 3

    @patch("creatorops.planner.generator.ollama")
    def test_topic_lock_enforced(self, mock_ollama, client, script_factory):
        mock_ollama.chat.return_value = _chat_response(_script_json(script_factory()))

        result = ScriptGenerator(client).generate("@one", topic_lock="黄瓜")

        assert result.script.provider == "template"

    def test_no_seeds(self, client):
        with pytest.raises(ValueError):
            ScriptGenerator(client).generate(" , \n")

    def test_unresolvable_seed(self, client):
        client.resolve_channel_id.side_effect = ChannelNotFoundError("nope")
        with pytest.raises(ChannelNotFoundError):
            ScriptGenerator(client).generate("@ghost")


class TestBuildMessages:
    def test_request_payload(self, client):
        generator = ScriptGenerator(client)
        constraints = GenerationConstraints(direction="7个技巧", topic_lock=" 番茄 ", banned_words=["", "最"])

        messages = generator.build_messages(["@a"], ["t1"], constraints, language="en")
        request = json.loads(messages[1]["content"])

        assert request["language"] == "en"
        assert request["requiredCount"] == 7
        assert request["topicLock"] == "番茄"
        assert request["bannedWords"] == ["最"]
        assert request["references"] == {"seeds": ["@a"], "sampledTitles": ["t1"]}

    def test_default_direction(self, client):
        messages = ScriptGenerator(client).build_messages([], [], GenerationConstraints())
        request = json.loads(messages[1]["content"])
        assert request["direction"] == "同类型视频"
        assert request["requiredCount"] is None
