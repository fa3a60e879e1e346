import io
import json
from types import SimpleNamespace

import pytest
import PyPDF2
from docx import Document

from resume_analyzer.config import (
    LLMConfig,
    Settings,
    SupabaseConfig,
    TruncationConfig,
    UploadConfig,
)
from resume_analyzer.services.cv_analyzer import CVAnalyzer
from resume_analyzer.services.file_processor import FileProcessor
from resume_analyzer.services.supabase_service import SupabaseService

RESUME_TEXT = (
    "Jane Doe\n"
    "jane.doe@example.com | +1 555 0100\n"
    "Summary: Backend engineer with six years of Python and FastAPI experience.\n"
    "Experience: Senior Engineer at Example Corp, 2020-2024. Built data pipelines and REST APIs.\n"
    "Skills: Python, FastAPI, PostgreSQL, Docker, AWS"
)

MODEL_REPLY = {
    "overallImpression": "A solid backend resume with clear experience.",
    "strengths": ["Relevant Python experience", "Clear structure"],
    "areasForImprovement": ["Quantify achievements"],
    "atsFriendliness": {"score": 82, "suggestions": ["Use standard section headings"]},
    "relevantSkills": ["Python", "FastAPI", "Docker"],
    "formattingAndStructure": {"clarity": "Good", "suggestions": []},
}


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.operation = None
        self.payload = None
        self.filters = []

    def insert(self, row):
        self.operation = "insert"
        self.payload = row
        return self

    def update(self, values):
        self.operation = "update"
        self.payload = values
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def execute(self):
        self.client.calls.append((self.table, self.operation, self.payload, tuple(self.filters)))
        error = self.client.errors.get(self.operation)
        if error is not None:
            raise error

        rows = self.client.rows.setdefault(self.table, [])
        if self.operation == "insert":
            row = {"id": self.client.next_id, **self.payload}
            self.client.next_id += 1
            rows.append(row)
            return SimpleNamespace(data=[row])

        matched = [r for r in rows if all(r.get(c) == v for c, v in self.filters)]
        for row in matched:
            row.update(self.payload)
        return SimpleNamespace(data=matched)


class FakeSupabaseClient:
    """In-memory stand-in for supabase.Client's table API"""

    def __init__(self):
        self.rows = {}
        self.calls = []
        self.errors = {}
        self.next_id = 1

    def table(self, name):
        return FakeQuery(self, name)

    def fail_on(self, operation, error):
        self.errors[operation] = error


@pytest.fixture
def uploads_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def settings(uploads_dir):
    return Settings(
        llm=LLMConfig(api_key="test-key"),
        supabase=SupabaseConfig(url="https://example.supabase.co", service_key="service-key"),
        upload=UploadConfig(uploads_dir=uploads_dir),
        truncation=TruncationConfig(),
    )


@pytest.fixture
def fake_supabase():
    return FakeSupabaseClient()


@pytest.fixture
def supabase_service(settings, fake_supabase):
    return SupabaseService(settings.supabase, client=fake_supabase)


@pytest.fixture
def file_processor(settings):
    return FileProcessor(settings.upload)


@pytest.fixture
def model_calls():
    return []


@pytest.fixture
def cv_analyzer(settings, model_calls):
    analyzer = CVAnalyzer(settings.llm, settings.truncation)

    async def fake_call_model(prompt):
        model_calls.append(prompt)
        return json.dumps(MODEL_REPLY)

    analyzer._call_model = fake_call_model
    return analyzer


def make_docx(text: str) -> bytes:
    document = Document()
    for line in text.splitlines():
        document.add_paragraph(line)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def make_blank_pdf() -> bytes:
    writer = PyPDF2.PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def staged_files(directory):
    if not directory.exists():
        return []
    return list(directory.iterdir())


def make_text_pdf(text: str) -> bytes:
    """One-page PDF drawing each line of ``text`` in Helvetica."""

    def escape(line):
        return line.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")

    operations = ["BT", "/F1 11 Tf", "14 TL", "72 720 Td"]
    operations += [f"({escape(line)}) Tj T*" for line in text.splitlines()]
    operations.append("ET")
    stream = "\n".join(operations).encode("latin-1")

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    ]

    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += f"{number} 0 obj\n".encode() + body + b"\nendobj\n"

    xref_offset = len(pdf)
    pdf += f"xref\n0 {len(objects) + 1}\n".encode()
    pdf += b"0000000000 65535 f \n"
    for offset in offsets:
        pdf += f"{offset:010d} 00000 n \n".encode()
    pdf += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode()
    return bytes(pdf)
