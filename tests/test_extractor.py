import fitz
import pytest

from ragchat_server.core.errors import ExtractionError, UnsupportedFormatError
from ragchat_server.extraction.extractor import TextExtractor


@pytest.fixture
def extractor():
    return TextExtractor(extensions=[".txt", ".pdf"])


def make_pdf(*pages):
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def test_txt_is_decoded_as_utf8(extractor):
    assert extractor.extract("notes.TXT", "café au lait".encode("utf-8")) == "café au lait"


def test_invalid_utf8_is_replaced(extractor):
    text = extractor.extract("bad.txt", b"ok \xff\xfe end")

    assert text.startswith("ok ")
    assert text.endswith(" end")


def test_pdf_text_from_every_page(extractor):
    text = extractor.extract("doc.pdf", make_pdf("first page words", "second page words"))

    assert "first page words" in text
    assert "second page words" in text
    assert text.index("first") < text.index("second")


def test_corrupt_pdf_raises_extraction_error(extractor):
    with pytest.raises(ExtractionError):
        extractor.extract("doc.pdf", b"not a pdf")


@pytest.mark.parametrize("filename", ["sheet.xlsx", "README", "image.png"])
def test_unsupported_extension(extractor, filename):
    with pytest.raises(UnsupportedFormatError):
        extractor.extract(filename, b"data")


def test_disabled_extension_is_unsupported():
    txt_only = TextExtractor(extensions=[".txt", ".md"])

    assert txt_only.extensions == (".txt",)
    with pytest.raises(UnsupportedFormatError):
        txt_only.extract("doc.pdf", b"%PDF-1.7")
