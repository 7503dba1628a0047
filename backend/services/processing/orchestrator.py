"""
Hierarchical fan-out / consolidate orchestration for AI actions.

A request either runs as one whole-document call, or fans out one call per
chapter (bounded concurrency), merges the partial results and, when there
are too many items, runs a single consolidation call over them.
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from core.config import CHUNK_MAX_TOKENS, CHUNK_OVERLAP_TOKENS, MAX_CONCURRENT_REQUESTS
from core.errors import InputValidationError, QuotaExceededError
from core.prompt_manager import PromptManager, fill_template, prompt_manager
from models.processing_models import (
    Chapter,
    Completion,
    InputType,
    ProcessingMode,
    ProcessingResult,
    TokenUsage,
    VideoMetadata,
)
from services.processing.actions import ActionProcessor
from services.processing.chunker import chunks_from_chapters

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Unknown"


class HierarchicalOrchestrator:
    """Runs one ActionProcessor against a transcript or its chapters."""

    def __init__(
        self,
        processor: ActionProcessor,
        max_concurrent_requests: int = MAX_CONCURRENT_REQUESTS,
        prompts: Optional[PromptManager] = None,
        max_tokens_per_chapter: int = CHUNK_MAX_TOKENS,
    ):
        self.processor = processor
        self.max_concurrent_requests = max_concurrent_requests
        self.prompts = prompts or prompt_manager
        self.max_tokens_per_chapter = max_tokens_per_chapter

    def select_mode(self, chapters: Optional[Sequence[Chapter]]) -> ProcessingMode:
        if self.processor.config.input_type == InputType.CHAPTERS and chapters:
            return ProcessingMode.CHAPTER_FANOUT
        return ProcessingMode.WHOLE_DOCUMENT

    async def process(
        self,
        transcript: Optional[str],
        chapters: Optional[Sequence[Chapter]],
        video_metadata: Optional[VideoMetadata],
        client: Any,
        options: Optional[Dict[str, Any]] = None,
    ) -> ProcessingResult:
        """
        Process a transcript with this orchestrator's action.

        Args:
            transcript: Full transcript text
            chapters: Optional caller-supplied chapters
            video_metadata: Title and other details used in prompts
            client: Object with an async generate_completion(system_prompt, user_prompt, ...)
            options: Overrides for prompt_template, system_prompt, max_tokens,
                temperature and max_concurrent_requests

        Returns:
            ProcessingResult with parsed output, summed usage, wall-clock time and metadata

        Raises:
            InputValidationError: If there is neither transcript text nor chapters
            QuotaExceededError: If any AI call reports quota exhaustion
            AIProviderError: If the whole-document call or every chapter call fails
        """
        options = options or {}
        start_time = time.perf_counter()

        has_transcript = bool(transcript and transcript.strip())
        if not has_transcript and not chapters:
            raise InputValidationError("Transcript text is required")

        mode = self.select_mode(chapters)
        title = (video_metadata.title if video_metadata else None) or DEFAULT_TITLE
        logger.info(f"Processing '{self.processor.id}' for '{title}' in {mode.value} mode")

        if mode == ProcessingMode.CHAPTER_FANOUT:
            text, usage, metadata = await self._process_chapters(chapters, title, client, options)
        else:
            if not has_transcript:
                # Chapters supplied to a whole-document action
                transcript = "\n\n".join(chapter.text for chapter in chapters)
            completion = await self._generate(client, title, transcript, options)
            text = self.processor.parse_result(completion.text)
            usage = completion.usage
            metadata = {"mode": mode.value, "partial_failure": False}

        processing_time = time.perf_counter() - start_time
        logger.info(
            f"'{self.processor.id}' finished in {processing_time:.2f}s "
            f"using {usage.total_tokens} tokens"
        )
        return ProcessingResult(
            text=text,
            usage=usage,
            processing_time=processing_time,
            metadata=metadata,
        )

    async def _process_chapters(
        self,
        chapters: Sequence[Chapter],
        title: str,
        client: Any,
        options: Dict[str, Any],
    ) -> Tuple[Any, TokenUsage, Dict[str, Any]]:
        bounded = chunks_from_chapters(chapters, self.max_tokens_per_chapter, CHUNK_OVERLAP_TOKENS)
        limit = options.get("max_concurrent_requests") or self.max_concurrent_requests
        semaphore = asyncio.Semaphore(max(1, limit))

        async def run_chapter(chapter: Chapter) -> Completion:
            async with semaphore:
                return await self._generate(client, f"{title} - {chapter.title}", chapter.text, options)

        outcomes = await asyncio.gather(
            *(run_chapter(chapter) for chapter in bounded),
            return_exceptions=True,
        )

        usage = TokenUsage()
        partials: List[Tuple[str, Any]] = []
        failed_chapters: List[str] = []
        first_error: Optional[BaseException] = None

        for chapter, outcome in zip(bounded, outcomes):
            if isinstance(outcome, QuotaExceededError):
                raise outcome
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"Chapter '{chapter.title}' failed: {outcome}")
                failed_chapters.append(chapter.title)
                first_error = first_error or outcome
                partials.append((chapter.title, self.processor.empty_result()))
                continue
            usage = usage + outcome.usage
            partials.append((chapter.title, self.processor.parse_result(outcome.text)))

        if len(failed_chapters) == len(bounded):
            logger.error(f"All {len(bounded)} chapter calls failed for '{self.processor.id}'")
            raise first_error

        combined = self.processor.combine_partials(partials)
        metadata: Dict[str, Any] = {
            "mode": ProcessingMode.CHAPTER_FANOUT.value,
            "chapter_count": len(bounded),
            "partial_failure": bool(failed_chapters),
            "failed_chapters": failed_chapters,
            "consolidated": False,
        }

        policy = self.processor.consolidation
        if policy is not None and policy.needs_consolidation(combined):
            logger.info(f"Consolidating {len(combined)} items for '{self.processor.id}'")
            template = self.prompts.get_prompt(policy.prompt_name)
            prompt = fill_template(template, {"title": title, "items": policy.format_items(combined)})
            try:
                completion = await client.generate_completion(
                    policy.system_prompt,
                    prompt,
                    max_tokens=options.get("max_tokens") or self.processor.config.max_tokens,
                    temperature=self._temperature(options),
                )
            except QuotaExceededError:
                raise
            except Exception as e:
                logger.warning(f"Consolidation failed, returning unconsolidated results: {e}")
                metadata["consolidation_failed"] = True
            else:
                usage = usage + completion.usage
                consolidated = self.processor.parse_result(completion.text)
                if consolidated:
                    combined = consolidated
                    metadata["consolidated"] = True
                else:
                    logger.warning("Consolidation returned no items, keeping unconsolidated results")

        return combined, usage, metadata

    async def _generate(self, client: Any, title: str, transcript: str, options: Dict[str, Any]) -> Completion:
        template = options.get("prompt_template") or self.prompts.get_prompt(self.processor.prompt_name)
        prompt = fill_template(template, {"title": title, "transcript": transcript})
        return await client.generate_completion(
            options.get("system_prompt") or self.processor.system_prompt,
            prompt,
            max_tokens=options.get("max_tokens") or self.processor.config.max_tokens,
            temperature=self._temperature(options),
        )

    def _temperature(self, options: Dict[str, Any]) -> float:
        temperature = options.get("temperature")
        return self.processor.config.temperature if temperature is None else temperature
