import io
import os
import sys
import threading

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.llm_service import LLMService
from services.result_store import InMemoryResultStore
from services.session_store import InMemorySessionStore


def make_question_items(n, prefix="Question"):
    """Model-shaped question dicts; the correct index of item i is i % 4."""
    return [
        {
            "question": f"{prefix} {i + 1}: which option is correct?",
            "options": [f"Option {i + 1}.{k}" for k in range(4)],
            "correct_answer": i % 4,
            "explanation": f"Option {i % 4} is stated in the text.",
        }
        for i in range(n)
    ]


class FakeLLMService(LLMService):
    """Returns queued responses in order; the last one repeats. Exceptions
    in the queue are raised instead of returned."""

    def __init__(self, *responses):
        super().__init__()
        self.responses = list(responses)
        self.prompts = []

    def get_response(self, system_prompt, user_prompt, response_schema=None, **kwargs):
        self.prompts.append(user_prompt)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return {"response": item, "finish_reason": "stop"}


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeRedisLock:
    def __init__(self, lock, blocking_timeout):
        self._lock = lock
        self.blocking_timeout = blocking_timeout

    def acquire(self):
        return self._lock.acquire(timeout=self.blocking_timeout)

    def release(self):
        self._lock.release()


class FakeRedisClient:
    """The handful of redis-py calls the session store uses."""

    def __init__(self):
        self.data = {}
        self.ttl = {}
        self._locks = {}
        self.closed = False

    def setex(self, key, expiry, value):
        self.data[key] = value
        self.ttl[key] = expiry

    def set(self, key, value):
        self.data[key] = value

    def get(self, key):
        return self.data.get(key)

    def expire(self, key, expiry):
        if key not in self.data:
            return False
        self.ttl[key] = expiry
        return True

    def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def lock(self, name, timeout=None, blocking_timeout=None):
        lock = self._locks.setdefault(name, threading.Lock())
        return FakeRedisLock(lock, blocking_timeout)

    def close(self):
        self.closed = True


def build_pdf(lines):
    """Assembles a one-page PDF showing the given lines in Helvetica."""
    content = "BT /F1 12 Tf 72 720 Td 14 TL " + " ".join(
        f"({line}) Tj T*" for line in lines
    ) + " ET"
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        "/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        f"<< /Length {len(content)} >>\nstream\n{content}\nendstream",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = b"%PDF-1.4\n"
    offsets = []
    for number, obj in enumerate(objects, 1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{obj}\nendobj\n".encode("latin-1")
    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode()
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode()
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref}\n%%EOF\n"
    ).encode()
    return out


def build_docx(paragraphs, table_rows=None):
    import docx

    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, value in enumerate(row):
                table.cell(r, c).text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def build_pptx(slides):
    """slides: list of (title, body, notes)."""
    from pptx import Presentation
    from pptx.util import Inches

    presentation = Presentation()
    for title, body, notes in slides:
        slide = presentation.slides.add_slide(presentation.slide_layouts[5])
        slide.shapes.title.text = title
        box = slide.shapes.add_textbox(Inches(1), Inches(2), Inches(8), Inches(3))
        box.text_frame.text = body
        if notes:
            slide.notes_slide.notes_text_frame.text = notes
    buffer = io.BytesIO()
    presentation.save(buffer)
    return buffer.getvalue()


LONG_PARAGRAPHS = [
    "Photosynthesis converts light energy into chemical energy inside chloroplasts.",
    "The light dependent reactions take place in the thylakoid membranes.",
    "The Calvin cycle fixes carbon dioxide into sugars in the stroma.",
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_store(clock):
    return InMemorySessionStore(idle_seconds=600, lock_timeout=5, clock=clock)


@pytest.fixture
def result_store():
    return InMemoryResultStore()
