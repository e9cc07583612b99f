"""
Tests for ai.py - response cleanup, field fallbacks, parse_task_text and sort_tasks_text with a fake client.
"""
import json
import pytest
import sys
import os
from types import SimpleNamespace

import anthropic
import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import ai
from ai import (
    AIParseError,
    build_parsed_task,
    build_sorted_tasks,
    describe_task_for_sort,
    parse_task_text,
    sort_tasks_text,
    strip_code_fence,
)
from models import Complexity, Quadrant, TaskForSort
from prompts import PARSE_TASK_PROMPT, SORT_TASKS_PROMPT
from recurrence import CustomRecurrence, NoRecurrence, SimpleRecurrence
from xp import DEFAULT_AI_SCORES

VALID_REPLY = {
    "title": "Renew passport",
    "description": "Before the summer trip",
    "deadline": "2026-11-01",
    "quadrant": "not-urgent-important",
    "recurrence": None,
    "complexity": "medium",
    "futurePainScore": 0.9,
    "urgencyScore": 0.4,
    "frictionScore": 0.9,
}


class FakeClient:
    """Stands in for AsyncAnthropic: records the request and replies with fixed text."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []
        self.messages = SimpleNamespace(create=self._create)

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        content = [] if self.reply is None else [SimpleNamespace(text=self.reply)]
        return SimpleNamespace(content=content)


class TestStripCodeFence:

    def test_plain_json_untouched(self):
        assert strip_code_fence('  {"a": 1}  ') == '{"a": 1}'

    def test_fenced_json(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_unterminated_fence(self):
        assert strip_code_fence('```\n{"a": 1}') == '{"a": 1}'


class TestBuildParsedTask:

    def test_valid_reply(self):
        parsed = build_parsed_task(VALID_REPLY)

        assert parsed.title == "Renew passport"
        assert parsed.deadline == "2026-11-01"
        assert parsed.quadrant == Quadrant.NOT_URGENT_IMPORTANT
        assert parsed.complexity == Complexity.MEDIUM
        assert parsed.recurrence == NoRecurrence()
        # 0.5*0.9 + 0.3*0.4 + 0.2*0.9 = 0.75
        assert parsed.xp == 60

    def test_invalid_fields_fall_back(self):
        parsed = build_parsed_task({
            "title": "Something",
            "quadrant": "whenever",
            "complexity": "epic",
            "futurePainScore": "lots",
            "description": None,
            "deadline": 20261101,
            "recurrence": "weekly",
        })

        assert parsed.quadrant == Quadrant.NOT_URGENT_NOT_IMPORTANT
        assert parsed.complexity == Complexity.MEDIUM
        assert parsed.ai_scores == DEFAULT_AI_SCORES
        assert parsed.xp == 30
        assert parsed.description == ""
        assert parsed.deadline is None
        assert parsed.recurrence == SimpleRecurrence(unit="week")

    def test_long_title_truncated(self):
        parsed = build_parsed_task({**VALID_REPLY, "title": "x" * 250})
        assert len(parsed.title) == ai.MAX_TITLE_LENGTH

    @pytest.mark.parametrize("title", [None, "", "   ", 42])
    def test_missing_title(self, title):
        with pytest.raises(AIParseError):
            build_parsed_task({**VALID_REPLY, "title": title})


class TestParseTaskText:

    @pytest.mark.asyncio
    async def test_parses_reply(self):
        client = FakeClient(reply="```json\n" + json.dumps(VALID_REPLY) + "\n```")

        parsed = await parse_task_text("renew my passport before summer", client=client)

        assert parsed.title == "Renew passport"
        (call,) = client.calls
        assert call["model"] == ai.MODEL
        assert call["max_tokens"] == ai.MAX_TOKENS
        assert "renew my passport before summer" in call["messages"][0]["content"]

    @pytest.mark.asyncio
    async def test_api_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = FakeClient(error=anthropic.APIError("overloaded", request, body=None))

        with pytest.raises(AIParseError):
            await parse_task_text("anything", client=client)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [None, "not json at all", "[1, 2, 3]"])
    async def test_unusable_reply(self, reply):
        with pytest.raises(AIParseError):
            await parse_task_text("anything", client=FakeClient(reply=reply))

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setattr(ai, "_client", None)

        with pytest.raises(AIParseError):
            await parse_task_text("anything")

    @pytest.mark.asyncio
    async def test_placeholder_api_key(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "your-api-key-here")
        monkeypatch.setattr(ai, "_client", None)

        with pytest.raises(AIParseError):
            await parse_task_text("anything")


SORT_REPLY = [
    {"text": "Pay rent", "quadrant": "urgent-important", "complexity": "easy", "recurrence": "monthly"},
    {"text": "Gym", "quadrant": "not-urgent-important", "complexity": "medium",
     "recurrence": {"interval": 1, "unit": "week", "weekDays": [1, 3]}},
]


class TestDescribeTaskForSort:

    def test_text_only(self):
        assert describe_task_for_sort(TaskForSort(text="Buy milk")) == "Task: Buy milk"

    def test_all_details(self):
        task = TaskForSort(
            text="Gym",
            description="Upper body",
            deadline="2026-10-30",
            complexity="hard",
            recurrence="weekly",
        )
        assert describe_task_for_sort(task) == (
            "Task: Gym\n"
            "Description: Upper body\n"
            "Deadline: 2026-10-30\n"
            "Current complexity: hard\n"
            'Current recurrence: {"kind":"simple","unit":"week"}'
        )

    def test_malformed_recurrence_omitted(self):
        assert describe_task_for_sort(TaskForSort(text="Gym", recurrence={"interval": 0})) == "Task: Gym"


class TestBuildSortedTasks:

    def test_valid_entries(self):
        rent, gym = build_sorted_tasks(SORT_REPLY)

        assert rent.text == "Pay rent"
        assert rent.quadrant == Quadrant.URGENT_IMPORTANT
        assert rent.complexity == Complexity.EASY
        assert rent.recurrence == SimpleRecurrence(unit="month")
        assert gym.recurrence == CustomRecurrence(interval=1, unit="week", week_days=[1, 3])

    def test_invalid_fields_fall_back(self):
        (task,) = build_sorted_tasks([{"text": "Gym", "quadrant": ["soon"], "complexity": 3, "recurrence": "sometimes"}])

        assert task.quadrant == Quadrant.NOT_URGENT_NOT_IMPORTANT
        assert task.complexity == Complexity.MEDIUM
        assert task.recurrence == NoRecurrence()

    def test_entries_without_text_skipped(self):
        entries = [None, "Gym", {"quadrant": "urgent-important"}, {"text": "  "}, {"text": "Gym"}]
        assert [t.text for t in build_sorted_tasks(entries)] == ["Gym"]


class TestSortTasksText:

    @pytest.mark.asyncio
    async def test_sorts_batch(self):
        client = FakeClient(reply="```json\n" + json.dumps(SORT_REPLY) + "\n```")
        tasks = [TaskForSort(text="Pay rent", deadline="2026-11-01"), TaskForSort(text="Gym")]

        result = await sort_tasks_text(tasks, client=client)

        assert [t.text for t in result] == ["Pay rent", "Gym"]
        (call,) = client.calls
        assert call["max_tokens"] == ai.SORT_MAX_TOKENS
        assert call["temperature"] == 0.3
        content = call["messages"][0]["content"]
        assert "Task: Pay rent\nDeadline: 2026-11-01\n\nTask: Gym" in content

    @pytest.mark.asyncio
    async def test_empty_batch_skips_api(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        client = FakeClient(reply="[]")

        assert await sort_tasks_text([], client=client) == []
        assert await sort_tasks_text([]) == []
        assert client.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [None, "not json", json.dumps(VALID_REPLY)])
    async def test_unusable_reply(self, reply):
        with pytest.raises(AIParseError):
            await sort_tasks_text([TaskForSort(text="Gym")], client=FakeClient(reply=reply))

    @pytest.mark.asyncio
    async def test_api_error(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = FakeClient(error=anthropic.APIError("overloaded", request, body=None))

        with pytest.raises(AIParseError):
            await sort_tasks_text([TaskForSort(text="Gym")], client=client)


class TestPrompt:

    def test_placeholders(self):
        prompt = PARSE_TASK_PROMPT.format(today="Monday, October 19, 2026", input="buy milk")
        assert "Today's date is: Monday, October 19, 2026" in prompt
        assert 'User input: "buy milk"' in prompt
        assert '"futurePainScore"' in prompt

    def test_sort_placeholders(self):
        prompt = SORT_TASKS_PROMPT.format(today="Monday, October 19, 2026", tasks="Task: Gym")
        assert "Today's date is: Monday, October 19, 2026" in prompt
        assert "Here are the tasks to categorize:\nTask: Gym" in prompt
        assert '"weekDays": [0, 6]' in prompt
