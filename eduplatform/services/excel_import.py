import io
import logging
from typing import Any, Dict, List, Optional
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.ext.asyncio import AsyncSession

from eduplatform.exceptions import ImportValidationError
from eduplatform.models.document import Question

logger = logging.getLogger(__name__)

TEMPLATE_HEADERS = [
    "question_text", "question_format", "option_a", "option_b", "option_c", "option_d",
    "correct_answer", "explanation", "difficulty", "marks", "question_type", "contains_formula",
]

TEMPLATE_EXAMPLE = [
    "What is the SI unit of force?", "single_choice", "Joule", "Newton", "Watt", "Pascal",
    "B", "Force is measured in newtons (kg*m/s^2).", "Low", 1, "objective", "FALSE",
]


def read_rows(content: bytes) -> List[Dict[str, Any]]:
    """First sheet, first row as header; fully empty rows are skipped."""
    workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    try:
        rows = workbook.worksheets[0].iter_rows(values_only=True)

        header = next(rows, None)
        if not header:
            return []
        keys = [str(h).strip() if h is not None else "" for h in header]

        records = []
        for values in rows:
            if all(v is None or str(v).strip() == "" for v in values):
                continue
            records.append({key: value for key, value in zip(keys, values) if key})
        return records
    finally:
        workbook.close()


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _marks(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 1


def question_from_row(row: Dict[str, Any], topic_id: Optional[int] = None) -> Question:
    options = {}
    for key in ("a", "b", "c", "d"):
        value = _text(row.get(f"option_{key}"))
        if value:
            options[key.upper()] = value

    explanation = _text(row.get("explanation"))
    row_topic = row.get("topic_id")

    return Question(
        topic_id=int(row_topic) if row_topic not in (None, "") else topic_id,
        # A missing question_text is stored as "" rather than rejected
        question_text=str(row.get("question_text") or ""),
        question_format=_text(row.get("question_format")) or "single_choice",
        options=options or None,
        correct_answer=_text(row.get("correct_answer")).upper(),
        explanation=explanation or None,
        difficulty=_text(row.get("difficulty")) or "Medium",
        marks=_marks(row.get("marks")),
        question_type=_text(row.get("question_type")) or "objective",
        contains_formula=_text(row.get("contains_formula")).lower() == "true",
        is_verified=False,
        is_ai_generated=False,
    )


async def import_questions(db: AsyncSession, content: bytes, topic_id: Optional[int] = None) -> dict:
    try:
        rows = read_rows(content)
    except (BadZipFile, InvalidFileException, OSError, KeyError, ValueError) as e:
        raise ImportValidationError(f"Could not read Excel file: {e}")

    if not rows:
        raise ImportValidationError("The Excel file is empty")

    questions = []
    errors = []
    # Header is row 1, so data rows start at 2
    for index, row in enumerate(rows, start=2):
        try:
            questions.append(question_from_row(row, topic_id))
        except (TypeError, ValueError) as e:
            errors.append(f"Row {index}: {e}")

    db.add_all(questions)
    await db.commit()
    logger.info(f"Imported {len(questions)} questions from Excel ({len(errors)} errors)")
    return {"success": len(questions), "errors": errors}


def build_template() -> io.BytesIO:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Questions"
    sheet.append(TEMPLATE_HEADERS)
    sheet.append(TEMPLATE_EXAMPLE)

    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer
