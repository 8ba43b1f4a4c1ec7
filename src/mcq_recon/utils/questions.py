"""
Question assembly.

Groups option regions under the question region on the same page and runs
region extraction for each, one region at a time with a fixed pause between
calls.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Dict, Any

from .io import ProcessingProgress
from .reconcile import ExtractionOutcome, HybridTextExtractor
from .regions import Region, RegionKind

logger = logging.getLogger(__name__)

FALLBACK_OPTIONS = ["Option A", "Option B", "Option C", "Option D"]


@dataclass
class MCQ:
    """A multiple-choice question assembled from its regions."""
    question_id: str
    question: str
    options: List[str]
    page: int
    outcomes: Dict[str, ExtractionOutcome] = field(default_factory=dict)
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.question_id,
            "question": self.question,
            "options": self.options,
            "page": self.page,
            "is_fallback": self.is_fallback,
            "outcomes": {k: v.to_dict() for k, v in self.outcomes.items()}
        }


class QuestionAssembler:
    """
    Builds MCQs from question and option regions.

    ``source`` provides ``render_page(page)``, ``fragments_for(page)``,
    ``page_height(page)`` and ``render_scale``.
    """

    def __init__(
        self,
        extractor: HybridTextExtractor,
        source,
        inter_call_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep
    ):
        self.extractor = extractor
        self.source = source
        self.inter_call_delay = inter_call_delay
        self._sleep = sleep
        self._calls = 0

    def _extract(self, region: Region) -> ExtractionOutcome:
        if self._calls and self.inter_call_delay > 0:
            self._sleep(self.inter_call_delay)
        self._calls += 1

        return self.extractor.extract_region(
            region,
            self.source.render_page(region.page),
            self.source.fragments_for(region.page),
            self.source.page_height(region.page),
            render_scale=self.source.render_scale
        )

    def assemble(
        self,
        regions: List[Region],
        progress: Optional[ProcessingProgress] = None
    ) -> List[MCQ]:
        """
        Extract every question with the options on its page.

        Args:
            regions: Question and option regions, in drawing order
            progress: Optional progress tracker, advanced once per question

        Returns:
            List of MCQs. Questions without any option text are skipped; a
            question whose extraction raised yields a placeholder MCQ.
        """
        questions = [r for r in regions if r.kind == RegionKind.QUESTION]
        if progress is not None:
            progress.total = len(questions)

        mcqs = []
        for i, question in enumerate(questions, start=1):
            if progress is not None:
                progress.update("extracting", page=question.page)

            options = [
                r for r in regions
                if r.kind == RegionKind.OPTION and r.page == question.page
            ]

            try:
                mcq = self._assemble_one(question, options)
            except Exception as e:
                message = f"Extraction failed for question {i}: {e}"
                if progress is not None:
                    progress.add_error(message)
                else:
                    logger.error(message)
                mcq = MCQ(
                    question_id=question.region_id,
                    question=f"Question {i} from page {question.page}",
                    options=list(FALLBACK_OPTIONS),
                    page=question.page,
                    is_fallback=True
                )

            if mcq is not None:
                mcqs.append(mcq)
            if progress is not None:
                progress.advance()

        logger.info(f"Assembled {len(mcqs)} of {len(questions)} questions")
        return mcqs

    def _assemble_one(self, question: Region, options: List[Region]) -> Optional[MCQ]:
        outcomes = {question.region_id: self._extract(question)}

        option_texts = []
        for option in options:
            outcome = self._extract(option)
            outcomes[option.region_id] = outcome
            text = outcome.text.strip()
            if text:
                option_texts.append(text)

        question_text = outcomes[question.region_id].text
        if not question_text or not option_texts:
            logger.warning(f"Question {question.region_id} on page {question.page} has no options")
            return None

        return MCQ(
            question_id=question.region_id,
            question=question_text,
            options=option_texts,
            page=question.page,
            outcomes=outcomes
        )
