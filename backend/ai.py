"""
Claude-backed helpers: free-form task text -> ParsedTask, and batch re-categorization of tasks.
"""
import json
import logging
import os
from datetime import datetime
from typing import Optional

import anthropic

from models import Complexity, ParsedTask, Quadrant, SortedTask, TaskForSort
from prompts import PARSE_TASK_PROMPT, SORT_TASKS_PROMPT
from recurrence import NoRecurrence, validate_recurrence
from xp import DEFAULT_AI_SCORES, calculate_xp_from_scores, validate_ai_scores

logger = logging.getLogger(__name__)

MODEL = "claude-sonnet-4-5"
MAX_TOKENS = 300
SORT_MAX_TOKENS = 2000
MAX_TITLE_LENGTH = 100

_client: Optional[anthropic.AsyncAnthropic] = None


class AIParseError(RuntimeError):
    """The parsing collaborator could not produce a usable result."""


def _get_client() -> anthropic.AsyncAnthropic:
    global _client
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key or api_key == "your-api-key-here":
        raise AIParseError("ANTHROPIC_API_KEY is not configured")
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=api_key)
    return _client


def strip_code_fence(text: str) -> str:
    """Strip a markdown code block wrapper if the model added one."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]  # Remove last line (```)
        text = "\n".join(lines)
    return text


def _quadrant_or_default(value) -> str:
    if isinstance(value, str) and value in {q.value for q in Quadrant}:
        return value
    return Quadrant.NOT_URGENT_NOT_IMPORTANT.value


def _complexity_or_default(value) -> str:
    if isinstance(value, str) and value in {c.value for c in Complexity}:
        return value
    return Complexity.MEDIUM.value


def build_parsed_task(data: dict) -> ParsedTask:
    """Validate the model's JSON; bad fields fall back to defaults instead of failing."""
    ai_scores = validate_ai_scores(data) or DEFAULT_AI_SCORES

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise AIParseError("AI response has no title")

    description = data.get("description")
    deadline = data.get("deadline")

    return ParsedTask(
        title=title[:MAX_TITLE_LENGTH],
        description=description if isinstance(description, str) else "",
        deadline=deadline if isinstance(deadline, str) and deadline else None,
        quadrant=_quadrant_or_default(data.get("quadrant")),
        recurrence=validate_recurrence(data.get("recurrence")),
        complexity=_complexity_or_default(data.get("complexity")),
        ai_scores=ai_scores,
        xp=calculate_xp_from_scores(ai_scores),
    )


def describe_task_for_sort(task: TaskForSort) -> str:
    lines = [f"Task: {task.text}"]
    if task.description:
        lines.append(f"Description: {task.description}")
    if task.deadline:
        lines.append(f"Deadline: {task.deadline}")
    if task.complexity:
        lines.append(f"Current complexity: {task.complexity.value}")
    recurrence = validate_recurrence(task.recurrence)
    if not isinstance(recurrence, NoRecurrence):
        lines.append(f"Current recurrence: {recurrence.model_dump_json(exclude_none=True)}")
    return "\n".join(lines)


def build_sorted_tasks(data: list) -> list[SortedTask]:
    """Validate the model's array; entries without a text are skipped, bad fields fall back to defaults."""
    sorted_tasks = []
    for item in data:
        if not isinstance(item, dict) or not isinstance(item.get("text"), str) or not item["text"].strip():
            logger.debug("Skipping unusable sort entry: %r", item)
            continue
        sorted_tasks.append(SortedTask(
            text=item["text"],
            quadrant=_quadrant_or_default(item.get("quadrant")),
            complexity=_complexity_or_default(item.get("complexity")),
            recurrence=validate_recurrence(item.get("recurrence")),
        ))
    return sorted_tasks


async def _ask_claude(client: anthropic.AsyncAnthropic, prompt: str, max_tokens: int, temperature: float):
    """Send one prompt and return the decoded JSON reply."""
    try:
        response = await client.messages.create(
            model=MODEL,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.APIError as e:
        raise AIParseError(f"API error: {e}") from e

    if not response.content:
        raise AIParseError("No response from AI")
    ai_text = strip_code_fence(response.content[0].text)
    logger.debug("Claude response: %s", ai_text)

    try:
        return json.loads(ai_text)
    except json.JSONDecodeError as e:
        raise AIParseError("Failed to parse AI response") from e


def _today() -> str:
    return datetime.now().strftime("%A, %B %d, %Y")


async def parse_task_text(text: str, client: Optional[anthropic.AsyncAnthropic] = None) -> ParsedTask:
    """
    Ask Claude to structure a task description.
    Raises AIParseError on any failure (missing key, API error, unparseable reply).
    """
    client = client or _get_client()
    prompt = PARSE_TASK_PROMPT.format(today=_today(), input=text)

    data = await _ask_claude(client, prompt, MAX_TOKENS, temperature=0)
    if not isinstance(data, dict):
        raise AIParseError("AI response is not a JSON object")

    return build_parsed_task(data)


async def sort_tasks_text(
    tasks: list[TaskForSort],
    client: Optional[anthropic.AsyncAnthropic] = None,
) -> list[SortedTask]:
    """
    Ask Claude to re-categorize a batch of tasks (quadrant, complexity, recurrence).
    Raises AIParseError on any failure, like parse_task_text.
    """
    if not tasks:
        return []

    client = client or _get_client()
    prompt = SORT_TASKS_PROMPT.format(
        today=_today(),
        tasks="\n\n".join(describe_task_for_sort(task) for task in tasks),
    )

    data = await _ask_claude(client, prompt, SORT_MAX_TOKENS, temperature=0.3)
    if not isinstance(data, list):
        raise AIParseError("AI response is not a JSON array")

    sorted_tasks = build_sorted_tasks(data)
    logger.info("Sorted %d of %d task(s)", len(sorted_tasks), len(tasks))
    return sorted_tasks
