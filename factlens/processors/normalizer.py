from __future__ import annotations

import logging
import mimetypes
import re
from typing import Callable, Protocol

import fitz

from factlens.models.errors import EmptyContentError, InputError, MediaError
from factlens.models.types import (
    AnalysisMode,
    AnalysisRequest,
    InputType,
    MediaPayload,
    Upload,
)

logger = logging.getLogger(__name__)

MAX_PDF_PAGES = 10
MAX_UPLOAD_BYTES = 20 * 1024 * 1024

_URL_PATTERN = re.compile(r"(http|https)://[^ \"]+")
_GENERIC_MIME = "application/octet-stream"


def is_url(text: str) -> bool:
    """Return ``True`` when *text*, once stripped, is nothing but one http(s) URL.

    This is a heuristic, not a URL parser. Surrounding whitespace is ignored,
    so ``"  https://a.b  "`` is a URL. Any inner space or double quote rejects
    the input, so a URL followed by prose is treated as plain text. Tabs and
    newlines are not excluded by the pattern, which means two URLs separated
    by a newline still count as one URL.
    """
    if not text:
        return False
    return _URL_PATTERN.fullmatch(text.strip()) is not None


class PdfDocument(Protocol):
    """The two questions the normalizer asks of a PDF."""

    @property
    def page_count(self) -> int: ...

    def page_text(self, index: int) -> str: ...

    def close(self) -> None: ...


class FitzPdfDocument:
    """PDF text access backed by PyMuPDF."""

    def __init__(self, data: bytes) -> None:
        try:
            self._doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise MediaError(f"Could not open PDF: {exc}") from exc
        if self._doc.needs_pass:
            self._doc.close()
            raise MediaError(
                "PDF is encrypted",
                user_message="This PDF is password-protected and cannot be read.",
            )

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def page_text(self, index: int) -> str:
        return self._doc.load_page(index).get_text()

    def close(self) -> None:
        self._doc.close()


def resolve_mime_type(upload: Upload) -> str:
    mime = (upload.mime_type or "").lower()
    if not mime or mime == _GENERIC_MIME:
        mime = mimetypes.guess_type(upload.filename or "")[0] or ""
    return mime


def detect_upload_kind(upload: Upload) -> InputType:
    mime = resolve_mime_type(upload)
    if mime == "application/pdf" or upload.data[:5] == b"%PDF-":
        return InputType.PDF
    if mime.startswith("image/"):
        return InputType.IMAGE
    raise MediaError(
        f"Unsupported file type: {mime or upload.filename!r}",
        user_message="Unsupported file type. Please attach an image or a PDF.",
    )


class MediaNormalizer:
    """Turns whatever the caller submitted into a single AnalysisRequest.

    PDFs become page-tagged text, images become an inline payload tagged with
    their MIME type, and free text is classified as either a bare URL or prose.
    """

    def __init__(
        self,
        max_pdf_pages: int = MAX_PDF_PAGES,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        pdf_opener: Callable[[bytes], PdfDocument] = FitzPdfDocument,
    ) -> None:
        self.max_pdf_pages = max_pdf_pages
        self.max_upload_bytes = max_upload_bytes
        self._pdf_opener = pdf_opener

    def normalize(
        self,
        text: str | None,
        upload: Upload | None = None,
        mode: AnalysisMode | str = AnalysisMode.STANDARD,
    ) -> AnalysisRequest:
        text = (text or "").strip()
        mode = AnalysisMode.coerce(mode)
        if upload is not None and not upload.data:
            upload = None

        if not text and upload is None:
            raise InputError("Nothing submitted: no text and no file")

        if upload is None:
            input_type = InputType.URL if is_url(text) else InputType.TEXT
            return AnalysisRequest(primary_text=text, mode=mode, input_type=input_type)

        self._check_size(upload)
        kind = detect_upload_kind(upload)

        if kind is InputType.PDF:
            pdf_text = self.extract_pdf_text(upload.data)
            primary = f"{text}\n\n{pdf_text}" if text else pdf_text
            return AnalysisRequest(
                primary_text=primary,
                mode=mode,
                input_type=InputType.PDF,
            )

        return AnalysisRequest(
            primary_text=text,
            media=self.image_payload(upload),
            mode=mode,
            input_type=InputType.MIXED if text else InputType.IMAGE,
        )

    def extract_pdf_text(self, data: bytes) -> str:
        """Return text of at most ``max_pdf_pages`` pages, each tagged ``[Page N]``."""
        doc = self._pdf_opener(data)
        try:
            total = doc.page_count
            limit = min(total, self.max_pdf_pages)
            chunks: list[str] = []
            body: list[str] = []
            for index in range(limit):
                page_text = " ".join(doc.page_text(index).split())
                body.append(page_text)
                chunks.append(f"[Page {index + 1}] {page_text}\n")
        except RuntimeError as exc:
            raise MediaError(f"Failed reading PDF page: {exc}") from exc
        finally:
            doc.close()

        if not "".join(body).strip():
            raise EmptyContentError(f"No extractable text in the first {limit} PDF pages")

        full_text = "".join(chunks)
        if total > limit:
            full_text += f"\n[...Truncated. Analysis limited to first {limit} pages...]"

        logger.info(
            "Extracted %d chars of text from %d of %d PDF pages",
            len(full_text), limit, total,
        )
        return full_text

    def image_payload(self, upload: Upload) -> MediaPayload:
        mime = resolve_mime_type(upload)
        if not mime.startswith("image/"):
            raise MediaError(f"Not an image: {mime!r}")
        logger.info("Prepared %s image payload (%d bytes)", mime, len(upload.data))
        return MediaPayload(data=upload.data, mime_type=mime)

    def _check_size(self, upload: Upload) -> None:
        if len(upload.data) > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes / (1024 * 1024)
            raise MediaError(
                f"Upload of {len(upload.data)} bytes exceeds {self.max_upload_bytes}",
                user_message=f"File is too large. The limit is {limit_mb:.0f} MB.",
            )
