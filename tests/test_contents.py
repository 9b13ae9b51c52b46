"""
Test: Content library and document processing.
OpenAI is replaced with a stub client; PDF and DOCX inputs are generated
in-memory with PyMuPDF and python-docx.
"""
import io
import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from easymind.errors import EasyMindError, NotFoundError, ValidationError
from easymind.services import contents

NOW = datetime(2026, 10, 14, 4, 0, tzinfo=timezone.utc)

QUESTION = {"questionText": "What color is the sky?", "options": ["Blue", "Red"], "correctAnswer": "Blue"}


class StubOpenAI:
    """Mimics client.chat.completions.create()."""

    def __init__(self, reply):
        self.reply = reply
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.reply, Exception):
            raise self.reply
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def library(db):
    db.seed("teacherRequests", "teacher1", {"firstName": "Ana", "lastName": "Reyes"})
    db.seed("contents", "c1", {"type": "assessment", "title": "Colors Quiz", "createdBy": "teacher1",
                               "createdAt": NOW - timedelta(hours=2)})
    db.seed("contents", "c2", {"type": "lesson", "title": "Shapes", "createdBy": "teacher1",
                               "createdAt": NOW - timedelta(days=3)})
    db.seed("contents", "c3", {"type": "uploaded-material", "title": "Money", "createdBy": "teacher1",
                               "createdAt": NOW - timedelta(days=20)})
    db.seed("contents", "c4", {"type": "lesson", "title": "Not mine", "createdBy": "teacher2",
                               "createdAt": NOW})
    return db


class TestListContents:
    def test_materials_newest_first(self, library):
        rows = contents.list_contents("teacher1", now=NOW)
        assert [r["id"] for r in rows] == ["c2", "c3"]

    def test_assessments(self, library):
        assert [r["id"] for r in contents.list_contents("teacher1", assessments=True, now=NOW)] == ["c1"]

    def test_time_range(self, library):
        assert [r["id"] for r in contents.list_contents("teacher1", time_range="7_days", now=NOW)] == ["c2"]

    def test_single_day(self, library):
        # c2 was created 11 Oct 12:00 Manila
        assert [r["id"] for r in contents.list_contents("teacher1", date="2026-10-11", now=NOW)] == ["c2"]

    def test_invalid_range(self, library):
        with pytest.raises(ValidationError):
            contents.list_contents("teacher1", time_range="forever")

    def test_invalid_date(self, library):
        with pytest.raises(ValidationError):
            contents.list_contents("teacher1", date="11/10/2026")


class TestCreateAssessment:
    def test_creates_and_logs(self, db, library):
        result = contents.create_assessment("teacher1", {"title": " Sky ", "questions": [QUESTION]})
        doc = db.doc("contents", result["id"])
        assert doc["title"] == "Sky"
        assert doc["type"] == "assessment"
        assert doc["questions"][0]["correctAnswer"] == "Blue"
        logs = [l["activityDescription"] for l in db.docs("logs").values()]
        assert logs == ["Added quiz: Sky"]

    def test_title_required(self, library):
        with pytest.raises(ValidationError, match="quiz title"):
            contents.create_assessment("teacher1", {"questions": [QUESTION]})

    def test_question_required(self, library):
        with pytest.raises(ValidationError, match="at least one question"):
            contents.create_assessment("teacher1", {"title": "Sky"})

    @pytest.mark.parametrize("question", [
        dict(QUESTION, options=["Blue"]),
        dict(QUESTION, options=["Blue", " "]),
        dict(QUESTION, correctAnswer=""),
    ])
    def test_incomplete_question(self, library, question):
        with pytest.raises(ValidationError, match="at least two non-empty options"):
            contents.create_assessment("teacher1", {"title": "Sky", "questions": [question]})

    def test_answer_must_be_an_option(self, library):
        with pytest.raises(ValidationError, match="must match one of the options"):
            contents.create_assessment("teacher1", {"title": "Sky", "questions": [dict(QUESTION, correctAnswer="Green")]})

    @pytest.mark.parametrize("question,message", [
        (dict(QUESTION, questionText=42), "Question text must be text."),
        (dict(QUESTION, options=["Blue", 7]), "options must be a list of text"),
        (dict(QUESTION, options="Blue,Red"), "options must be a list of text"),
        ("What color is the sky?", "must be an object"),
    ])
    def test_non_text_question_fields(self, library, question, message):
        with pytest.raises(ValidationError, match=message):
            contents.create_assessment("teacher1", {"title": "Sky", "questions": [question]})

    def test_non_text_title(self, library):
        with pytest.raises(ValidationError, match="Title must be text."):
            contents.create_assessment("teacher1", {"title": 2026, "questions": [QUESTION]})

    def test_questions_must_be_a_list(self, library):
        with pytest.raises(ValidationError, match="Questions must be a list."):
            contents.create_assessment("teacher1", {"title": "Sky", "questions": QUESTION})


class TestDeleteContent:
    def test_delete_quiz(self, db, library):
        contents.delete_content("teacher1", "c1")
        assert db.doc("contents", "c1") is None
        (log,) = db.docs("logs").values()
        assert log["activityDescription"] == "Deleted quiz: Colors Quiz"

    def test_delete_lesson(self, db, library):
        contents.delete_content("teacher1", "c2")
        (log,) = db.docs("logs").values()
        assert log["activityDescription"] == "Deleted lesson/material: Shapes"

    def test_not_owner(self, db, library):
        with pytest.raises(NotFoundError):
            contents.delete_content("teacher1", "c4")
        assert db.doc("contents", "c4") is not None


class TestExtraction:
    def test_plain_text(self):
        assert contents.extract_text("text/plain", "Colors: red".encode()) == "Colors: red"

    def test_pdf(self):
        import fitz
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), "Circles are round")
        data = doc.tobytes()
        doc.close()
        assert "Circles are round" in contents.extract_text("application/pdf", data)

    def test_docx(self):
        from docx import Document
        doc = Document()
        doc.add_paragraph("Triangles have three sides")
        table = doc.add_table(rows=1, cols=2)
        table.rows[0].cells[0].text = "Square"
        table.rows[0].cells[1].text = "Four sides"
        buf = io.BytesIO()
        doc.save(buf)

        text = contents.extract_text(contents.WORD_TYPES[0], buf.getvalue())
        assert "Triangles have three sides" in text
        assert "Square | Four sides" in text

    def test_unsupported(self):
        with pytest.raises(ValidationError, match="not supported"):
            contents.extract_text("image/png", b"png")


class TestStructureText:
    LESSON = {"title": "Shapes", "description": "Basic shapes", "suggestedCategory": "FUNCTIONAL_ACADEMICS",
              "items": [{"name": "Circle", "description": "Round", "examples": "Ball, Coin"}]}

    def test_parses_json_in_reply(self):
        client = StubOpenAI("Here you go:\n" + json.dumps(self.LESSON) + "\nEnjoy!")
        assert contents.structure_text("Circles are round", client) == self.LESSON

    def test_truncates_prompt(self):
        client = StubOpenAI(json.dumps(self.LESSON))
        contents.structure_text("x" * 20000, client)
        user_message = client.calls[0]["messages"][1]["content"]
        assert user_message.endswith("x" * contents.MAX_PROMPT_CHARS)
        assert "x" * (contents.MAX_PROMPT_CHARS + 1) not in user_message

    def test_no_json(self):
        with pytest.raises(EasyMindError, match="Failed to parse AI response"):
            contents.structure_text("text", StubOpenAI("Sorry, I cannot help."))

    def test_api_error(self):
        with pytest.raises(EasyMindError, match="OpenAI API error"):
            contents.structure_text("text", StubOpenAI(RuntimeError("rate limited")))

    def test_missing_key(self, monkeypatch):
        monkeypatch.setattr(contents, "OPENAI_API_KEY", "")
        with pytest.raises(EasyMindError, match="OPENAI_API_KEY") as exc:
            contents.structure_text("text")
        assert exc.value.status_code == 500


class TestProcessDocument:
    def test_text_file(self):
        client = StubOpenAI(json.dumps(TestStructureText.LESSON))
        content = contents.process_document("shapes.txt", "text/plain", b"Circles are round", client)
        assert content["items"][0]["name"] == "Circle"

    def test_empty_upload(self):
        with pytest.raises(ValidationError, match="No file uploaded"):
            contents.process_document("empty.txt", "text/plain", b"")

    def test_blank_text(self):
        with pytest.raises(ValidationError, match="No text could be extracted"):
            contents.process_document("blank.txt", "text/plain", b"   \n ", StubOpenAI("{}"))
