"""
AI action processors.

Summary, key points and topic extraction share one orchestration shape and
differ only in prompts, parser, input type and consolidation policy. Each is
described by an ActionProcessor and run by the HierarchicalOrchestrator.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from models.processing_models import InputType, ProcessorConfig
from services.processing.parsers import parse_key_points, parse_summary, parse_topics


@dataclass(frozen=True)
class ActionDefinition:
    """Display metadata for an action"""
    id: str
    name: str
    description: str
    order: int


@dataclass(frozen=True)
class ConsolidationPolicy:
    """When and how per-chapter results are merged by one extra AI call"""
    threshold: int  # partial item counts above this trigger consolidation
    prompt_name: str
    system_prompt: str
    format_item: Callable[[Any], str]

    def needs_consolidation(self, items: Sequence[Any]) -> bool:
        return len(items) > self.threshold

    def format_items(self, items: Sequence[Any]) -> str:
        return "\n".join(self.format_item(item) for item in items)


@dataclass(frozen=True)
class ActionProcessor:
    """Strategy bundle consumed by the orchestrator"""
    definition: ActionDefinition
    config: ProcessorConfig
    prompt_name: str
    system_prompt: str
    parse_result: Callable[[str], Any]
    combine_partials: Callable[[List[Tuple[str, Any]]], Any]
    empty_result: Callable[[], Any]
    consolidation: Optional[ConsolidationPolicy] = None

    @property
    def id(self) -> str:
        return self.definition.id


def _flatten(partials: List[Tuple[str, Any]]) -> List[Any]:
    items = []
    for _, result in partials:
        if isinstance(result, list):
            items.extend(result)
        elif result:
            items.append(result)
    return items


def _join_summaries(partials: List[Tuple[str, Any]]) -> str:
    sections = [f"## {title}\n\n{summary}" for title, summary in partials if summary]
    return "\n\n".join(sections)


def _format_key_point(point: Any) -> str:
    return f"- {point}"


def _format_topic(topic: Any) -> str:
    if isinstance(topic, dict):
        return f"- {topic.get('name', '')}: {topic.get('description', '')}\n"
    return f"- {topic}\n"


SUMMARY = ActionProcessor(
    definition=ActionDefinition(
        id="summary",
        name="Summary",
        description="Generate a concise summary of the video content",
        order=1,
    ),
    config=ProcessorConfig(input_type=InputType.FULL_TRANSCRIPT, max_tokens=1000, temperature=0.3),
    prompt_name="summary",
    system_prompt="You are an AI assistant that summarizes video transcripts.",
    parse_result=parse_summary,
    combine_partials=_join_summaries,
    empty_result=str,
)

KEY_POINTS = ActionProcessor(
    definition=ActionDefinition(
        id="key_points",
        name="Key Points",
        description="Extract the main points and insights from the video",
        order=2,
    ),
    config=ProcessorConfig(input_type=InputType.CHAPTERS, max_tokens=1000, temperature=0.3),
    prompt_name="key_points",
    system_prompt="You are an AI assistant that extracts key points from video transcripts.",
    parse_result=parse_key_points,
    combine_partials=_flatten,
    empty_result=list,
    consolidation=ConsolidationPolicy(
        threshold=15,
        prompt_name="key_points_consolidation",
        system_prompt="You are an AI assistant that consolidates key points from video transcripts.",
        format_item=_format_key_point,
    ),
)

TOPIC_EXTRACTION = ActionProcessor(
    definition=ActionDefinition(
        id="topic_extraction",
        name="Topic Extraction",
        description="Identify and organize the main topics discussed in the video",
        order=3,
    ),
    config=ProcessorConfig(input_type=InputType.CHAPTERS, max_tokens=1500, temperature=0.3),
    prompt_name="topic_extraction",
    system_prompt="You are an AI assistant that extracts and organizes the main topics from video transcripts.",
    parse_result=parse_topics,
    combine_partials=_flatten,
    empty_result=list,
    consolidation=ConsolidationPolicy(
        threshold=10,
        prompt_name="topic_extraction_consolidation",
        system_prompt="You are an AI assistant that consolidates topics from video transcripts.",
        format_item=_format_topic,
    ),
)

PROCESSORS: Dict[str, ActionProcessor] = {
    processor.id: processor for processor in (SUMMARY, KEY_POINTS, TOPIC_EXTRACTION)
}


def get_processor_by_id(processor_id: str) -> Optional[ActionProcessor]:
    """Get a processor by its ID, or None if unknown."""
    return PROCESSORS.get(processor_id)


def get_all_processors() -> List[ActionDefinition]:
    """Definitions of all available processors, in display order."""
    return sorted((p.definition for p in PROCESSORS.values()), key=lambda d: d.order)
