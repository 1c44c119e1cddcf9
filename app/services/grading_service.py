"""
Quiz grading service
Multiple-choice / true-false: exact option-label match
Fill-in-the-blank: fuzzy free-text match against the canonical option text
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from app.services.question_validator import FILL_IN_THE_BLANK, OPTION_LABELS
from app.utils.text_matching import is_fuzzy_match

logger = logging.getLogger(__name__)


@dataclass
class GradingReport:
    """Outcome of grading one answer map against a quiz"""

    score: int
    total_questions: int
    breakdown: List[Dict[str, Any]] = field(default_factory=list)
    skipped_question_ids: List[str] = field(default_factory=list)

    @property
    def outcomes(self) -> List[bool]:
        return [item["is_correct"] for item in self.breakdown]


class GradingService:
    """
    Service for grading quiz answers

    Strategy:
    - Choice questions: case-insensitive label comparison, no partial credit
    - Fill-in-the-blank: the submitted label, or free text within the fuzzy threshold
    - Missing answers are incorrect; answers to unknown questions are skipped
    """

    def grade_question(self, question: Dict[str, Any], submitted: Any) -> bool:
        """
        Grade a single answer

        Args:
            question: Question document
            submitted: Submitted value (option label, option index or free text)

        Returns:
            True if the answer is correct
        """
        submitted_text = self._as_text(submitted)
        if submitted_text is None or not submitted_text.strip():
            return False

        if question.get("type") == FILL_IN_THE_BLANK:
            return self._grade_fill_in_the_blank(question, submitted_text)

        canonical = str(question.get("answer", "")).strip().upper()
        return submitted_text.strip().upper() == canonical

    def grade_answers(self, questions: List[Dict[str, Any]], answers: Dict[str, Any]) -> GradingReport:
        """
        Grade an answer map against the quiz's questions, in question order

        Args:
            questions: Ordered question documents
            answers: {question_id: submitted value}

        Returns:
            GradingReport with score, per-question breakdown and skipped ids
        """
        answers = answers or {}
        known_ids = {question.get("id") for question in questions}
        skipped = [question_id for question_id in answers if question_id not in known_ids]
        for question_id in skipped:
            logger.warning(f"Skipping answer for unknown question id {question_id!r}")

        breakdown = []
        score = 0
        for question in questions:
            submitted = answers.get(question.get("id"))
            is_correct = self.grade_question(question, submitted)
            if is_correct:
                score += 1
            breakdown.append({
                "question_id": question.get("id"),
                "type": question.get("type"),
                "difficulty": question.get("difficulty"),
                "submitted": submitted,
                "correct_answer": question.get("answer"),
                "is_correct": is_correct,
            })

        logger.info(f"Graded {len(questions)} questions: {score} correct, {len(skipped)} skipped")
        return GradingReport(
            score=score,
            total_questions=len(questions),
            breakdown=breakdown,
            skipped_question_ids=skipped,
        )

    def _as_text(self, submitted: Any) -> Optional[str]:
        if submitted is None:
            return None
        # Clients may send the option index instead of its label
        if isinstance(submitted, int) and not isinstance(submitted, bool) and 0 <= submitted < len(OPTION_LABELS):
            return OPTION_LABELS[submitted]
        return str(submitted)

    def _grade_fill_in_the_blank(self, question: Dict[str, Any], submitted: str) -> bool:
        answer_key = str(question.get("answer", "")).strip()
        options = question.get("options") or {}
        label = answer_key.upper()

        if label in OPTION_LABELS and options.get(label):
            if submitted.strip().upper() == label:
                return True
            canonical = options[label]
        else:
            canonical = answer_key

        return is_fuzzy_match(submitted, canonical)


# Global instance
grading_service = GradingService()
