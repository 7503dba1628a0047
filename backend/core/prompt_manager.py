"""
Centralized prompt file management with fallback templates.
"""
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)


def fill_template(template: str, values: Mapping[str, str]) -> str:
    """
    Substitute {name} placeholders without str.format.

    Transcripts routinely contain braces, so only the named placeholders are
    replaced and everything else is left untouched.
    """
    for name, value in values.items():
        template = template.replace("{" + name + "}", value)
    return template


class PromptManager:
    """Manages prompt file loading with consistent fallback behavior."""

    def __init__(self, prompts_dir: Optional[Path] = None):
        if prompts_dir is None:
            from core.config import PROMPTS_DIR
            prompts_dir = PROMPTS_DIR
        self.prompts_dir = prompts_dir
        self.loaded_prompts: Dict[str, str] = {}

        # Fallback templates
        self.fallback_templates = {
            "summary": self._get_summary_fallback(),
            "key_points": self._get_key_points_fallback(),
            "key_points_consolidation": self._get_key_points_consolidation_fallback(),
            "topic_extraction": self._get_topic_extraction_fallback(),
            "topic_extraction_consolidation": self._get_topic_consolidation_fallback(),
        }

    def get_prompt(self, prompt_name: str) -> str:
        """
        Load prompt by name with fallback.

        Args:
            prompt_name: Name of prompt file (without .txt extension)

        Returns:
            Prompt template string
        """
        # Return cached if already loaded
        if prompt_name in self.loaded_prompts:
            return self.loaded_prompts[prompt_name]

        # Try to load from file
        prompt_file = self.prompts_dir / f"{prompt_name}.txt"

        if prompt_file.exists():
            try:
                template = prompt_file.read_text(encoding="utf-8")

                # Validate not empty
                if not template.strip():
                    raise ValueError(f"Prompt file is empty: {prompt_file}")

                # Cache and return
                self.loaded_prompts[prompt_name] = template
                return template

            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load prompt file {prompt_file}: {e}")
                # Fall through to fallback

        # Use fallback template
        if prompt_name in self.fallback_templates:
            logger.debug(f"Using fallback template for: {prompt_name}")
            template = self.fallback_templates[prompt_name]
            self.loaded_prompts[prompt_name] = template
            return template

        # No fallback available
        raise FileNotFoundError(
            f"Prompt file not found and no fallback available: {prompt_name}.txt. "
            f"Expected at: {prompt_file}"
        )

    def _get_summary_fallback(self) -> str:
        """Fallback template for summaries."""
        return """You are an AI assistant that summarizes video transcripts.

Provide a concise and comprehensive summary of the following transcript of a YouTube video titled "{title}".
Focus on the main ideas, key arguments, and important details.
Make the summary clear, well-structured, and informative.

TRANSCRIPT:
{transcript}

OUTPUT FORMAT:
Provide the summary as well-formatted markdown text with proper paragraphs, bullet points where appropriate, and clear organization."""

    def _get_key_points_fallback(self) -> str:
        """Fallback template for key point extraction."""
        return """You are an AI assistant that extracts key points from video transcripts.

Extract the 5-10 most important points from the following transcript of a YouTube video titled "{title}".
For each key point, provide a clear and concise statement that captures an important insight, fact, or takeaway from the video.
Focus on the most valuable and actionable information.

TRANSCRIPT:
{transcript}

OUTPUT FORMAT:
Provide the key points as a JSON array of markdown-formatted strings. Each point should be clear, concise, and self-contained."""

    def _get_key_points_consolidation_fallback(self) -> str:
        """Fallback template for merging per-chapter key points."""
        return """I have extracted key points from different sections of a video titled "{title}". Please review these points and provide a consolidated list of the 7-10 most important and non-redundant points.

EXTRACTED POINTS:
{items}

OUTPUT FORMAT:
Provide the consolidated key points as a JSON array of markdown-formatted strings. Each point should be clear, concise, and self-contained."""

    def _get_topic_extraction_fallback(self) -> str:
        """Fallback template for topic extraction."""
        return """You are an AI assistant that extracts and organizes the main topics from video transcripts.

Analyze the following transcript of a YouTube video titled "{title}" and identify the main topics discussed.
For each topic, provide a title and a brief description of what was covered.

TRANSCRIPT:
{transcript}

OUTPUT FORMAT:
Provide the topics as a JSON array of objects, each with a "name" and "description" field.
The name should be a short title for the topic, and the description should be a concise summary in markdown format."""

    def _get_topic_consolidation_fallback(self) -> str:
        """Fallback template for merging per-chapter topics."""
        return """I have extracted topics from different sections of a video titled "{title}". Please review these topics and provide a consolidated list of the 5-7 most important and non-redundant topics.

EXTRACTED TOPICS:
{items}

OUTPUT FORMAT:
Provide the consolidated topics as a JSON array of objects, each with a "name" and "description" field.
The name should be a short title for the topic, and the description should be a concise summary in markdown format."""


# Global prompt manager instance
prompt_manager = PromptManager()
