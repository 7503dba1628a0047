"""
Parsers that turn raw model output into each action's result shape.

Parsers never raise. When a response is not in the expected shape they log
the condition and wrap the raw text as a single result item.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

BULLET_PATTERN = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
TOPIC_HEADER_PATTERN = re.compile(r"Topic\s*\d+\s*:", re.IGNORECASE)
CODE_FENCE_PATTERN = re.compile(r"```[\w-]*\s*\n(.*?)```", re.DOTALL)


def _extract_json_array(text: str) -> Optional[List[Any]]:
    """Decode a response that is itself a JSON array, optionally inside a code fence."""
    candidate = text.strip()
    fence_match = CODE_FENCE_PATTERN.search(candidate)
    if fence_match:
        candidate = fence_match.group(1).strip()
    # Brackets inside list items are not JSON
    if not (candidate.startswith("[") and candidate.endswith("]")):
        return None
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def parse_summary(text: str) -> str:
    """Summaries are used as returned."""
    return (text or "").strip()


def parse_key_points(text: str) -> List[str]:
    """
    Parse key points from a model response.

    Accepts a JSON array of strings, or a markdown bullet/numbered list.
    """
    response_text = (text or "").strip()
    if not response_text:
        return []

    parsed = _extract_json_array(response_text)
    if parsed is not None:
        points = []
        for item in parsed:
            if isinstance(item, str):
                point = item.strip()
            elif isinstance(item, dict):
                point = str(item.get("point") or item.get("text") or json.dumps(item)).strip()
            else:
                point = str(item).strip()
            if point:
                points.append(point)
        if points:
            return points

    points = [
        BULLET_PATTERN.sub("", line).strip()
        for line in response_text.split("\n")
        if BULLET_PATTERN.match(line)
    ]
    points = [point for point in points if point]
    if points:
        return points

    logger.warning("Could not parse key points from response, using raw text")
    return [response_text]


def _normalize_topic(item: Any, index: int) -> Optional[Dict[str, str]]:
    if isinstance(item, dict):
        name = item.get("name") or item.get("title") or item.get("topic") or f"Topic {index}"
        description = item.get("description") or item.get("summary") or ""
        return {"name": str(name).strip(), "description": str(description).strip()}
    if isinstance(item, str) and item.strip():
        return {"name": item.strip(), "description": ""}
    return None


def parse_topics(text: str) -> List[Dict[str, str]]:
    """
    Parse topics from a model response.

    Accepts a JSON array of {name, description} objects, or sections headed
    "Topic N:" whose first line is the name and the rest the description.
    """
    response_text = (text or "").strip()
    if not response_text:
        return []

    parsed = _extract_json_array(response_text)
    if parsed is not None:
        topics = [
            topic
            for topic in (_normalize_topic(item, i) for i, item in enumerate(parsed, 1))
            if topic is not None
        ]
        if topics:
            return topics

    if TOPIC_HEADER_PATTERN.search(response_text):
        topics = []
        sections = TOPIC_HEADER_PATTERN.split(response_text)
        # Anything before the first header is preamble
        sections = [s for s in sections[1:] if s.strip()]
        for index, section in enumerate(sections, 1):
            lines = [line for line in section.strip().split("\n") if line.strip()]
            name = lines[0].strip() if lines else f"Topic {index}"
            description = "\n".join(lines[1:]).strip()
            topics.append({"name": name, "description": description})
        if topics:
            return topics

    logger.warning("Could not parse topics from response, using raw text")
    return [{"name": "Content Overview", "description": response_text}]
