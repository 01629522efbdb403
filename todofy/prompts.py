"""
Default prompts for summarizing single emails, a day's worth of summaries,
and picking the top tasks.
"""

import json
from typing import List

from pydantic import TypeAdapter, ValidationError

from .llm_client import LLMError
from .models import TaskRecommendation

_RECOMMENDATIONS = TypeAdapter(List[TaskRecommendation])

SUMMARY_SPLITTER = "=========================\n"

DEFAULT_PROMPT_SUMMARY_EMAIL = (
    "Could you please provide a concise and comprehensive summary of the given email? "
    "The summary should capture the main points and key details of the text while "
    "conveying the author's intended meaning accurately. Please ensure that the summary "
    "is well-organized and easy to read. The length of the summary should be appropriate "
    "to capture the main points without including unnecessary information or becoming "
    "overly long.\n\n"
    "IMPORTANT: Do not write something like \"OK, this is my summary\". Just start with the summary.\n"
    "IMPORTANT: Follow markdown formatting as much as possible.\n"
    "IMPORTANT: Be concise, 1-2 sentences.\n"
    "IMPORTANT: Avoid showing the # symbol in the summary.\n\n"
    "The email content you are to summarize is as follows:"
)

DEFAULT_PROMPT_SUMMARY_RANGE = (
    "Below are all of the emails I received today, each already summarized by a previous "
    "call. Please rank them by importance and reduce each item to a brief one-sentence "
    "summary, so I can have an overview of the emails at the start of the morning.\n\n"
    "IMPORTANT: Do not write something like \"OK, this is my summary\". Just start with the summary.\n"
    "IMPORTANT: Use plain text readable in a mail client (no markdown).\n"
    "IMPORTANT: Group emails into four categories: \"Important\", \"Urgent\", \"Normal\", "
    "\"Low Priority\". Emails that are not important go into \"Low Priority\".\n"
    "IMPORTANT: Treat similar emails as one email.\n\n"
    "All the previously summarized emails are as follows:"
)

DEFAULT_PROMPT_RECOMMEND_TOP_TASKS = (
    "Below is a list of task summaries I received in the last 24 hours. Pick exactly THREE "
    "that are the most important and require my immediate attention. For each, provide a "
    "title and a reason, ranked from most important (#1) to least important (#3).\n\n"
    "IMPORTANT: Respond with ONLY a valid JSON array, no other text before or after.\n"
    "IMPORTANT: Each element must have exactly these fields: \"rank\" (integer 1-3), "
    "\"title\" (string, one line), \"reason\" (string, 1-2 sentences).\n"
    "IMPORTANT: Output exactly 3 items. If there are fewer than 3 tasks, repeat the most "
    "important one and say so in the reason.\n\n"
    "The task summaries from the last 24 hours are as follows:"
)


def join_summaries(summaries) -> str:
    """Concatenate per-email summaries into one block for the range prompt."""
    content = SUMMARY_SPLITTER
    for s in summaries:
        content += s + "\n" + SUMMARY_SPLITTER
    return content


def _extract_json_array(text: str) -> str:
    """
    Pull the JSON array out of a model answer that may be wrapped in a
    ```json fence or surrounded by commentary.
    """
    text = text.strip()
    if not text:
        raise LLMError("Empty response from model when a JSON array was expected.")

    if "```" in text:
        parts = text.split("```")
        if len(parts) >= 3:
            inner = parts[1]
            if inner.lstrip().lower().startswith("json"):
                inner = inner.split("\n", 1)[-1]
            text = inner.strip()

    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise LLMError(f"No JSON array found in model response: {text[:200]!r}")
    return text[start : end + 1]


def parse_recommendations(text: str) -> List[TaskRecommendation]:
    """Parse the top-tasks answer into recommendations ordered by rank."""
    raw = _extract_json_array(text)
    try:
        items = _RECOMMENDATIONS.validate_python(json.loads(raw))
    except json.JSONDecodeError as e:
        raise LLMError(f"Invalid JSON in task recommendations: {e}") from e
    except ValidationError as e:
        raise LLMError(f"Unexpected task recommendation shape: {e}") from e
    return sorted(items, key=lambda r: r.rank)
