"""Tests for factlens.processors.normalizer."""
from __future__ import annotations

import fitz
import pytest

from factlens.models.errors import EmptyContentError, InputError, MediaError
from factlens.models.types import AnalysisMode, InputType, Upload
from factlens.processors.normalizer import (
    FitzPdfDocument,
    MediaNormalizer,
    detect_upload_kind,
    is_url,
)


def _real_pdf(page_texts: list[str]) -> bytes:
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestIsUrl:
    def test_bare_url(self):
        assert is_url("https://example.com/a?b=c")
        assert is_url("  http://example.com  ")

    def test_url_followed_by_prose_is_text(self):
        assert not is_url("https://example.com is fake news")

    def test_non_http_schemes_and_quotes(self):
        assert not is_url("ftp://example.com")
        assert not is_url('https://example.com/"quoted"')
        assert not is_url("")


class TestTextInput:
    def test_plain_text(self):
        request = MediaNormalizer().normalize("  Vaccines cause autism.  ")
        assert request.input_type is InputType.TEXT
        assert request.primary_text == "Vaccines cause autism."
        assert request.media is None

    def test_url_input(self):
        request = MediaNormalizer().normalize("https://example.com/story", mode="deep")
        assert request.input_type is InputType.URL
        assert request.mode is AnalysisMode.DEEP

    def test_mode_members_are_accepted(self):
        normalizer = MediaNormalizer()
        assert normalizer.normalize("claim").mode is AnalysisMode.STANDARD
        assert normalizer.normalize("claim", mode=AnalysisMode.DEEP).mode is AnalysisMode.DEEP

    def test_empty_submission(self):
        with pytest.raises(InputError):
            MediaNormalizer().normalize("   ", None)

    def test_empty_upload_counts_as_nothing(self):
        with pytest.raises(InputError):
            MediaNormalizer().normalize("", Upload(data=b"", filename="x.png"))


class TestPdfInput:
    def test_pages_are_tagged_in_order(self, fake_pdf_opener):
        opener = fake_pdf_opener(["first page", "second  page"])
        normalizer = MediaNormalizer(pdf_opener=opener)
        request = normalizer.normalize("", Upload(data=b"%PDF-1.4", filename="doc.pdf"))
        assert request.input_type is InputType.PDF
        assert request.primary_text == "[Page 1] first page\n[Page 2] second page\n"
        assert opener.opened[0].closed

    def test_more_than_ten_pages_is_truncated(self, fake_pdf_opener):
        pages = [f"text of page {i}" for i in range(1, 13)]
        normalizer = MediaNormalizer(pdf_opener=fake_pdf_opener(pages))
        text = normalizer.extract_pdf_text(b"%PDF-1.4")
        positions = [text.index(f"[Page {i}] ") for i in range(1, 11)]
        assert positions == sorted(positions)
        assert "[Page 11]" not in text
        assert text.endswith("[...Truncated. Analysis limited to first 10 pages...]")

    def test_blank_pdf_is_media_error(self, fake_pdf_opener):
        normalizer = MediaNormalizer(pdf_opener=fake_pdf_opener(["", "   \n "]))
        with pytest.raises(EmptyContentError) as excinfo:
            normalizer.normalize("", Upload(data=b"%PDF-1.4", mime_type="application/pdf"))
        assert isinstance(excinfo.value, MediaError)

    def test_typed_text_precedes_pdf_text(self, fake_pdf_opener):
        normalizer = MediaNormalizer(pdf_opener=fake_pdf_opener(["body"]))
        request = normalizer.normalize("Check this", Upload(data=b"%PDF-1.4", mime_type="application/pdf"))
        assert request.primary_text == "Check this\n\n[Page 1] body\n"

    def test_real_pdf_through_pymupdf(self):
        data = _real_pdf(["The moon landing happened in 1969."])
        request = MediaNormalizer().normalize("", Upload(data=data, filename="moon.pdf"))
        assert "[Page 1]" in request.primary_text
        assert "1969" in request.primary_text

    def test_real_pdf_without_text(self):
        data = _real_pdf(["", ""])
        with pytest.raises(EmptyContentError):
            MediaNormalizer().normalize("", Upload(data=data, filename="scan.pdf"))

    def test_corrupt_pdf(self):
        with pytest.raises(MediaError):
            FitzPdfDocument(b"%PDF-1.4 this is not really a pdf")


class TestImageInput:
    def test_image_only(self):
        upload = Upload(data=b"\x89PNG\r\n", filename="photo.png", mime_type="image/png")
        request = MediaNormalizer().normalize(None, upload)
        assert request.input_type is InputType.IMAGE
        assert request.media.mime_type == "image/png"
        assert request.media.data == upload.data

    def test_image_with_text_is_mixed(self):
        upload = Upload(data=b"\xff\xd8\xff", filename="photo.jpg")
        request = MediaNormalizer().normalize("Is this real?", upload)
        assert request.input_type is InputType.MIXED
        assert request.media.mime_type == "image/jpeg"
        assert request.primary_text == "Is this real?"

    def test_unsupported_type(self):
        with pytest.raises(MediaError):
            detect_upload_kind(Upload(data=b"PK\x03\x04", filename="archive.zip"))

    def test_size_limit(self):
        normalizer = MediaNormalizer(max_upload_bytes=4)
        with pytest.raises(MediaError) as excinfo:
            normalizer.normalize("", Upload(data=b"12345", mime_type="image/png"))
        assert "too large" in excinfo.value.user_message
