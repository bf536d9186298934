"""
Turn OCR / LLM output into pending question rows.

Two sources feed the staging table:

* OCR service ``merged`` items: raw question text with inline ``(a) .. (d)``
  options plus a matched solution.
* LLM extraction replies: a JSON object with a ``questions`` list, sometimes
  wrapped in a markdown code fence.

Verification replies are parsed here too, one JSON object per question.
"""
import json
import re
from typing import Any, Dict, List, Optional

from eduplatform.models.document import PendingQuestion, UploadedDocument

OPTION_PATTERN = re.compile(r"\(([a-d])\)\s*([^(]+?)(?=\s*\([a-d]\)|$)", re.IGNORECASE)
OPTION_START = re.compile(r"\([a-d]\)\s*", re.IGNORECASE)
QUESTION_NUMBER = re.compile(r"^\d+\.\s*")
EXPLANATION_IMAGE = re.compile(r"!\[.*?\]\((\./images/[^)]+)\)")
CODE_FENCE = re.compile(r"^```(?:json)?\s*\n?|\n?```\s*$")

DIFFICULTY_LEVELS = ("Low", "Medium", "Intermediate", "Advanced")
VERIFICATION_STATUSES = ("correct", "medium", "wrong")


def extract_options(question_text: str) -> Dict[str, str]:
    options = {}
    for key, value in OPTION_PATTERN.findall(question_text or ""):
        options[key] = value.strip()
    return options


def clean_question_text(question_text: str, has_options: bool) -> str:
    text = QUESTION_NUMBER.sub("", (question_text or "").strip()).strip()
    if has_options:
        match = OPTION_START.search(text)
        if match:
            text = text[:match.start()].strip()
    return text


def extract_explanation_images(explanation: Optional[str]) -> List[str]:
    if not explanation:
        return []
    return EXPLANATION_IMAGE.findall(explanation)


def contains_formula(text: Optional[str]) -> bool:
    text = text or ""
    return "\\(" in text or "\\[" in text


def _placement(document: UploadedDocument) -> dict:
    return {
        "document_id": document.id,
        "course_id": document.course_id,
        "subject_id": document.subject_id,
        "chapter_id": document.chapter_id,
        "topic_id": document.topic_id,
    }


def pending_from_merged_item(item: dict, document: UploadedDocument) -> PendingQuestion:
    """Build a pending question from one OCR service ``merged`` item."""
    question_text = item.get("question_text") or ""
    options = extract_options(question_text)
    has_options = bool(options)

    solution = item.get("matched_solution") or {}
    explanation = solution.get("text") or ""
    question_images = item.get("question_images") or []
    explanation_images = extract_explanation_images(explanation)

    return PendingQuestion(
        **_placement(document),
        question_text=clean_question_text(question_text, has_options),
        question_format="single_choice" if has_options else "short_answer",
        question_type="mcq",
        options=options if has_options else None,
        correct_answer=solution.get("answer_key") or "",
        explanation=explanation or None,
        question_images=question_images or None,
        explanation_images=explanation_images or None,
        contains_formula=True,
        marks=1,
        difficulty="Medium",
    )


def _load_json(llm_response: str):
    text = (llm_response or "").strip()
    if text.startswith("```"):
        text = CODE_FENCE.sub("", text).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError("Failed to parse AI response as JSON") from e


def parse_llm_json(llm_response: str) -> List[dict]:
    data = _load_json(llm_response)
    questions = data.get("questions", []) if isinstance(data, dict) else None
    if not isinstance(questions, list):
        raise ValueError("Invalid response format: questions is not an array")
    return questions


def _as_text(value: Any) -> Optional[str]:
    # Text columns only take strings; models sometimes nest objects
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def pending_from_llm_question(question: dict, document: UploadedDocument) -> PendingQuestion:
    text = _as_text(question.get("question_text")) or ""
    suggested = _as_text(question.get("difficulty"))
    marks = question.get("marks")
    return PendingQuestion(
        **_placement(document),
        question_text=text,
        question_format=_as_text(question.get("question_format")) or "single_choice",
        question_type=_as_text(question.get("question_type")) or "objective",
        difficulty=suggested or "Medium",
        marks=marks if isinstance(marks, int) and marks else 1,
        options=question.get("options") or None,
        correct_answer=_as_text(question.get("correct_answer")) or "",
        explanation=_as_text(question.get("explanation")) or None,
        llm_suggested_difficulty=suggested,
        llm_difficulty_reasoning=_as_text(question.get("difficulty_reasoning")),
        contains_formula=contains_formula(text),
    )


def difficulty_distribution(questions: List[dict]) -> Dict[str, int]:
    distribution = {level: 0 for level in DIFFICULTY_LEVELS}
    for question in questions:
        level = question.get("difficulty")
        if level in distribution:
            distribution[level] += 1
    return distribution


def parse_llm_verification(llm_response: str) -> dict:
    """
    Parse one verification reply.

    Returns the status, a confidence between 0 and 1, comments, a list of
    issues and the suggested difficulty (None when the model agrees with the
    stored one).
    """
    data = _load_json(llm_response)
    if not isinstance(data, dict) or data.get("status") not in VERIFICATION_STATUSES:
        raise ValueError("Invalid verification response: unknown status")

    try:
        confidence = float(data.get("confidence") or 0)
    except (TypeError, ValueError):
        confidence = 0.0
    issues = data.get("issues") or []
    if not isinstance(issues, list):
        issues = [issues]

    assessment = data.get("difficulty_assessment")
    if not isinstance(assessment, dict):
        assessment = {}
    suggested = _as_text(assessment.get("suggested_difficulty"))
    if assessment.get("is_appropriate", True) or suggested not in DIFFICULTY_LEVELS:
        suggested = None

    return {
        "status": data["status"],
        "confidence": min(max(confidence, 0.0), 1.0),
        "comments": _as_text(data.get("comments")),
        "issues": [_as_text(issue) for issue in issues],
        "suggested_difficulty": suggested,
        "difficulty_reasoning": _as_text(assessment.get("reasoning")),
    }
