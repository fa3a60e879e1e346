import asyncio
import io
import re
import time
import uuid
from dataclasses import dataclass
from pathlib import Path

import PyPDF2
from docx import Document
from fastapi import UploadFile

from resume_analyzer.config import UploadConfig
from resume_analyzer.errors import ExtractionError, InvalidInputError
from resume_analyzer.logger import get_logger

logger = get_logger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"
ALLOWED_MIME_TYPES = {PDF_MIME, DOCX_MIME, DOC_MIME}

_READ_CHUNK_BYTES = 64 * 1024


@dataclass
class StagedFile:
    path: Path
    original_name: str
    content_type: str
    size_bytes: int


class FileProcessor:
    """Service for staging uploaded resumes on disk and extracting their text"""

    def __init__(self, config: UploadConfig):
        self.config = config

    async def stage(self, file: UploadFile) -> StagedFile:
        """
        Validate an upload and write it to the uploads directory under a unique name.

        Nothing is written when validation fails.
        """
        if file is None or not getattr(file, "filename", ""):
            raise InvalidInputError("No resume file uploaded.")

        content_type = (file.content_type or "").lower()
        if content_type not in ALLOWED_MIME_TYPES:
            raise InvalidInputError("Invalid file type. Only PDF and DOCX files are allowed.")

        content = await self._read_limited(file)
        if not content:
            raise InvalidInputError("Uploaded file is empty.")

        path = self._unique_path(file.filename)
        await asyncio.to_thread(self._write, path, content)
        logger.info("Staged upload %s (%s, %d bytes) at %s", file.filename, content_type, len(content), path.name)

        return StagedFile(
            path=path,
            original_name=file.filename,
            content_type=content_type,
            size_bytes=len(content),
        )

    async def extract_text(self, staged: StagedFile) -> str:
        """
        Extract text from a staged file (PDF, DOCX, DOC)
        """
        text = await asyncio.to_thread(self._extract_sync, staged.path, staged.content_type)
        if len(text) < self.config.min_extracted_chars:
            logger.warning(
                "Extracted only %d characters from %s; treating as unreadable",
                len(text), staged.original_name,
            )
            raise ExtractionError(
                "Could not extract meaningful text from the resume. "
                "The document may be scanned or image-only; please upload a text-based PDF or DOCX."
            )
        return text

    def remove(self, staged: StagedFile) -> None:
        try:
            staged.path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Error deleting temp file %s: %s", staged.path, e)

    async def _read_limited(self, file: UploadFile) -> bytes:
        # Read at most one byte past the limit so oversized bodies are never held whole
        limit = self.config.max_upload_bytes
        buffer = bytearray()
        while len(buffer) <= limit:
            chunk = await file.read(min(_READ_CHUNK_BYTES, limit + 1 - len(buffer)))
            if not chunk:
                break
            buffer.extend(chunk)
        if len(buffer) > limit:
            megabytes = limit / (1024 * 1024)
            raise InvalidInputError(f"File too large. Maximum size is {megabytes:g}MB.")
        return bytes(buffer)

    def _unique_path(self, filename: str) -> Path:
        safe_name = re.sub(r"[^\w.\-]", "_", Path(filename).name)[-100:]
        return self.config.uploads_dir / f"{time.time_ns()}-{uuid.uuid4().hex[:8]}-{safe_name}"

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.write_bytes(content)
        except OSError:
            path.unlink(missing_ok=True)
            raise

    def _extract_sync(self, path: Path, content_type: str) -> str:
        content = path.read_bytes()
        if content_type == PDF_MIME:
            return self._extract_from_pdf(content)
        if content_type == DOCX_MIME:
            return self._extract_from_word(content)
        if content_type == DOC_MIME:
            logger.warning("Attempting to parse legacy .doc file %s. DOCX or PDF is recommended.", path.name)
            return self._extract_from_word(content)
        raise ExtractionError("Unsupported file type for text extraction. Please use PDF or DOCX.")

    def _extract_from_pdf(self, content: bytes) -> str:
        """Extract text from PDF using PyPDF2"""
        try:
            text = ""
            pdf_reader = PyPDF2.PdfReader(io.BytesIO(content))
            for page in pdf_reader.pages:
                page_text = page.extract_text()
                if page_text:
                    text += page_text + "\n"
            return self._clean_text(text)
        except Exception as e:
            logger.error("PDF extraction failed: %s", e)
            raise ExtractionError(f"Failed to extract text from file: {e}")

    def _extract_from_word(self, content: bytes) -> str:
        """Extract text from Word document"""
        try:
            doc = Document(io.BytesIO(content))
            text = ""

            for paragraph in doc.paragraphs:
                text += paragraph.text + "\n"

            for table in doc.tables:
                for row in table.rows:
                    for cell in row.cells:
                        text += cell.text + " "
                    text += "\n"

            return self._clean_text(text)

        except Exception as e:
            logger.error("Word extraction failed: %s", e)
            raise ExtractionError(f"Failed to extract text from file: {e}")

    def _clean_text(self, text: str) -> str:
        """Normalize whitespace while keeping line structure"""
        if not text:
            return ""

        text = re.sub(r"[ \t\r\f\v]+", " ", text)
        text = re.sub(r" *\n *", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)

        return text.strip()
