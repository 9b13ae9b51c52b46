"""
Teacher content library: quizzes, lessons and uploaded materials, plus
AI-assisted extraction of lesson items from uploaded documents.
"""
import io
import json
import logging
import re
from datetime import datetime, timedelta, timezone

from easymind import store
from easymind.config import OPENAI_API_KEY, OPENAI_MODEL
from easymind.errors import EasyMindError, NotFoundError, ValidationError
from easymind.services.formatting import clean_text, local_tz
from easymind.services.students import add_log

logger = logging.getLogger(__name__)

ASSESSMENT_TYPES = ["assessment", "interactive-assessment"]
MATERIAL_TYPES = [
    "material",
    "uploaded-material",
    "interactive-lesson",
    "game-activity",
    "lesson",
    "game",
    "activity",
    "interactive-colors",
    "interactive-alphabet",
    "interactive-shapes",
    "interactive-numbers",
    "interactive-animals",
    "interactive-emotions",
    "interactive-daily_routines",
    "interactive-vocational",
]

TIME_RANGES = {
    "1_day": timedelta(days=1),
    "7_days": timedelta(days=7),
    "30_days": timedelta(days=30),
    "all_time": None,
}

CONTENT_CATEGORIES = [
    "FUNCTIONAL_ACADEMICS",
    "COMMUNICATION_SKILLS",
    "SOCIAL_SKILLS",
    "PRE-VOCATIONAL_SKILLS",
    "SELF_HELP",
    "NUMBER_SKILLS",
]

PDF_TYPE = 'application/pdf'
TEXT_TYPE = 'text/plain'
WORD_TYPES = (
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/msword',
)

MAX_PROMPT_CHARS = 10000

EXTRACTION_PROMPT = """You are an educational content expert. Extract learning items from the provided text and structure them into a JSON format suitable for a special education lesson. Each item should have:
- name: A short title/name for the concept
- description: A clear, simple explanation suitable for special education students
- examples: Real-world examples (if applicable)

Return ONLY valid JSON in this format:
{
  "title": "Lesson title based on content",
  "description": "Brief description of what the lesson teaches",
  "suggestedCategory": "One of: FUNCTIONAL_ACADEMICS, COMMUNICATION_SKILLS, SOCIAL_SKILLS, PRE-VOCATIONAL_SKILLS, SELF_HELP, NUMBER_SKILLS",
  "items": [
    {
      "name": "Item name",
      "description": "Simple explanation",
      "examples": "Example 1, Example 2, Example 3"
    }
  ]
}"""


def is_assessment(content_type):
    return content_type in ASSESSMENT_TYPES


def list_contents(teacher_id, assessments=False, time_range='all_time', date=None, now=None):
    """The teacher's contents, newest first.

    date is an optional 'YYYY-MM-DD' string limiting results to that local day.
    """
    if time_range not in TIME_RANGES:
        raise ValidationError(f"Invalid time range: {time_range}")

    filters = [
        ('createdBy', '==', teacher_id),
        ('type', 'in', ASSESSMENT_TYPES if assessments else MATERIAL_TYPES),
    ]

    window = TIME_RANGES[time_range]
    if window is not None:
        filters.append(('createdAt', '>=', (now or datetime.now(timezone.utc)) - window))

    if date:
        try:
            day = datetime.strptime(date, '%Y-%m-%d').replace(tzinfo=local_tz())
        except ValueError:
            raise ValidationError(f"Invalid date filter: {date}")
        filters.append(('createdAt', '>=', day))
        filters.append(('createdAt', '<', day + timedelta(days=1)))

    return store.fetch_where(store.CONTENTS, filters, order_by='createdAt', descending=True)


def validate_question(question):
    if not isinstance(question, dict):
        return "Each question must be an object."
    options = question.get('options') or []
    correct = question.get('correctAnswer')
    if not isinstance(options, list) or not all(o is None or isinstance(o, str) for o in options):
        return "Question options must be a list of text."
    if not clean_text(question.get('questionText'), "Question text"):
        return "Each question needs question text."
    if len(options) < 2 or any(not (o or '').strip() for o in options) or not correct:
        return (
            "Please complete the current question: provide at least two non-empty "
            "options and select a correct answer."
        )
    if correct not in options:
        return "The correct answer must match one of the options."
    return None


def create_assessment(teacher_id, data):
    title = clean_text(data.get('title'), "Title")
    if not title:
        raise ValidationError("Please enter a quiz title.")

    questions = data.get('questions') or []
    if not isinstance(questions, list):
        raise ValidationError("Questions must be a list.")
    if not questions:
        raise ValidationError("Please add at least one question.")
    for question in questions:
        error = validate_question(question)
        if error:
            raise ValidationError(error)

    content_id = store.add_document(store.CONTENTS, {
        "type": "assessment",
        "title": title,
        "description": data.get('description') or "",
        "category": data.get('category') or CONTENT_CATEGORIES[0],
        "questions": [
            {
                "questionText": q['questionText'].strip(),
                "options": q['options'],
                "correctAnswer": q['correctAnswer'],
                "image": q.get('image'),
            }
            for q in questions
        ],
        "createdBy": teacher_id,
        "createdAt": store.SERVER_TIMESTAMP,
    })
    add_log(teacher_id, f"Added quiz: {title}")
    return {"id": content_id, "message": "Quiz added successfully!"}


def delete_content(teacher_id, content_id):
    content = store.get_document(store.CONTENTS, content_id)
    if content is None or content.get('createdBy') != teacher_id:
        raise NotFoundError("Content not found.")

    store.delete_document(store.CONTENTS, content_id)
    item_type = "quiz" if is_assessment(content.get('type')) else "lesson/material"
    add_log(teacher_id, f"Deleted {item_type}: {content.get('title')}")
    return {"id": content_id, "message": "Content deleted successfully!"}


# ---------------------------------------------------------------------------
# Document processing
# ---------------------------------------------------------------------------

def extract_pdf_text(data):
    """Extract text from PDF bytes using PyMuPDF."""
    import fitz
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return "\n\n".join(page.get_text() for page in doc)
    finally:
        doc.close()


def extract_docx_text(data):
    """Extract paragraph and table text from DOCX bytes using python-docx."""
    from docx import Document
    from docx.table import Table
    from docx.text.paragraph import Paragraph

    doc = Document(io.BytesIO(data))
    full_text = []
    for element in doc.element.body:
        if element.tag.endswith('p'):
            para = Paragraph(element, doc)
            if para.text.strip():
                full_text.append(para.text)
        elif element.tag.endswith('tbl'):
            table = Table(element, doc)
            for row in table.rows:
                row_text = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if row_text:
                    full_text.append(' | '.join(row_text))
    return '\n'.join(full_text)


def extract_text(content_type, data):
    if content_type == PDF_TYPE:
        return extract_pdf_text(data)
    if content_type == TEXT_TYPE:
        return data.decode('utf-8', errors='replace')
    if content_type in WORD_TYPES:
        return extract_docx_text(data)
    raise ValidationError(
        f"File type {content_type} is not supported. Please use PDF, Word, or text files."
    )


def parse_ai_json(reply):
    """Parse the first {...} block in a model reply."""
    match = re.search(r'\{[\s\S]*\}', reply or '')
    if not match:
        raise ValueError('No valid JSON found in response')
    return json.loads(match.group(0))


def structure_text(text, client=None, model=None):
    """Ask OpenAI to turn extracted text into lesson items."""
    if client is None:
        if not OPENAI_API_KEY:
            raise EasyMindError(
                "OpenAI API key is not configured. Please add OPENAI_API_KEY to your .env file",
                status_code=500,
            )
        from openai import OpenAI
        client = OpenAI(api_key=OPENAI_API_KEY)

    try:
        response = client.chat.completions.create(
            model=model or OPENAI_MODEL,
            messages=[
                {"role": "system", "content": EXTRACTION_PROMPT},
                {
                    "role": "user",
                    "content": "Extract and structure learning content from this text:\n\n"
                               + text[:MAX_PROMPT_CHARS],
                },
            ],
            temperature=0.7,
            max_tokens=2000,
        )
    except Exception as e:
        logger.error("OpenAI API error: %s", e)
        raise EasyMindError("OpenAI API error: " + str(e), status_code=500)

    reply = response.choices[0].message.content
    try:
        return parse_ai_json(reply)
    except ValueError as e:
        logger.error("Error parsing AI response: %s", e)
        raise EasyMindError("Failed to parse AI response: " + str(e), status_code=500)


def process_document(filename, content_type, data, client=None):
    """Extract lesson content from an uploaded PDF, Word or text file."""
    if not data:
        raise ValidationError("No file uploaded")
    logger.info("Processing file %s (%s, %d bytes)", filename, content_type, len(data))

    text = extract_text(content_type, data)
    if not text or not text.strip():
        raise ValidationError("No text could be extracted from the document")

    content = structure_text(text, client)
    logger.info("Extracted %d items from %s", len(content.get('items') or []), filename)
    return content
