import io

import pytest
from openpyxl import Workbook, load_workbook
from sqlalchemy import select

from eduplatform.exceptions import ImportValidationError
from eduplatform.models.document import Question
from eduplatform.services import excel_import


def xlsx_bytes(rows):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


HEADER = ["question_text", "question_format", "option_a", "option_b", "option_c", "option_d",
          "correct_answer", "explanation", "difficulty", "marks", "question_type", "contains_formula"]


async def test_rows_are_mapped_with_defaults(db):
    content = xlsx_bytes([
        HEADER,
        ["Unit of charge?", None, "Coulomb", "Volt", None, None, "a", "", None, "two", None, "TRUE"],
        [None, None, None, None, None, None, None, None, None, None, None, None],
        [None, "short_answer", None, None, None, None, None, "Because", "Advanced", 4, "subjective", "no"],
    ])

    result = await excel_import.import_questions(db, content, topic_id=None)

    assert result == {"success": 2, "errors": []}
    rows = (await db.execute(select(Question).order_by(Question.id))).scalars().all()

    first, second = rows
    assert first.question_text == "Unit of charge?"
    assert first.question_format == "single_choice"
    assert first.options == {"A": "Coulomb", "B": "Volt"}
    assert first.correct_answer == "A"
    assert first.explanation is None
    assert first.difficulty == "Medium"
    assert first.marks == 1
    assert first.question_type == "objective"
    assert first.contains_formula is True
    assert first.is_verified is False
    assert first.is_ai_generated is False

    # Missing question text is kept as an empty string
    assert second.question_text == ""
    assert second.options is None
    assert second.marks == 4
    assert second.difficulty == "Advanced"
    assert second.contains_formula is False


async def test_empty_file_is_rejected(db):
    with pytest.raises(ImportValidationError, match="The Excel file is empty"):
        await excel_import.import_questions(db, xlsx_bytes([HEADER]))


async def test_non_excel_content_is_rejected(db):
    with pytest.raises(ImportValidationError, match="Could not read Excel file"):
        await excel_import.import_questions(db, b"this is not a zip")


async def test_import_endpoint(client):
    content = xlsx_bytes([HEADER, ["Q?", None, "1", "2", None, None, "b", None, None, 1, None, None]])

    response = await client.post(
        "/api/questions/import",
        files={"file": ("questions.xlsx", content, "application/octet-stream")},
    )

    assert response.status_code == 200
    assert response.json() == {"success": 1, "errors": []}


async def test_import_endpoint_reports_empty_file(client):
    response = await client.post(
        "/api/questions/import",
        files={"file": ("questions.xlsx", xlsx_bytes([HEADER]), "application/octet-stream")},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "The Excel file is empty"


async def test_template_has_header_and_example(client):
    response = await client.get("/api/questions/import/template")

    assert response.status_code == 200
    sheet = load_workbook(io.BytesIO(response.content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert list(rows[0]) == excel_import.TEMPLATE_HEADERS
    assert len(rows) == 2


async def test_import_endpoint_rejects_non_excel_upload(client):
    response = await client.post(
        "/api/questions/import",
        files={"file": ("questions.xlsx", b"this is not a zip", "application/octet-stream")},
    )

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Could not read Excel file")
