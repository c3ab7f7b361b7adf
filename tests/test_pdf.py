"""Tests for PDF loading, rendering and text block grouping."""

import asyncio

import pytest

from lsr.core.errors import DocumentNotLoadedError, InvalidDocumentError
from lsr.document.pdf import PdfDocument, TextItem, group_blocks
from lsr.utils.cache import document_fingerprint


def _make_pdf(pages: list[str]) -> bytes:
    import fitz

    doc = fitz.open()
    for text in pages:
        page = doc.new_page(width=300, height=400)
        page.insert_text((40, 60), text, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


class TestGroupBlocks:
    def test_same_line_runs_join(self):
        items = [TextItem("Hello", 10, 100, 30, 10), TextItem("world", 45, 101, 30, 10)]
        blocks = group_blocks(items, "fp", 1)
        assert len(blocks) == 1
        assert blocks[0].text == "Hello world"
        assert blocks[0].block_id == "fp_p1_b0"
        assert blocks[0].bbox == (10, 100, 65, 11)

    def test_close_lines_form_one_paragraph(self):
        items = [
            TextItem("The first line of a paragraph", 10, 100, 200, 10),
            TextItem("continues on the next line", 10, 112, 200, 10),
        ]
        blocks = group_blocks(items, "fp", 2)
        assert len(blocks) == 1
        assert blocks[0].kind == "paragraph"

    def test_large_gap_splits_paragraphs(self):
        items = [
            TextItem("INTRODUCTION", 10, 50, 100, 14),
            TextItem("Body text that is long enough to be a paragraph.", 10, 90, 200, 10),
        ]
        blocks = group_blocks(items, "fp", 3)
        assert [b.kind for b in blocks] == ["heading", "paragraph"]
        assert [b.block_id for b in blocks] == ["fp_p3_b0", "fp_p3_b1"]

    def test_short_block(self):
        blocks = group_blocks([TextItem("42", 10, 10, 10, 10)], "fp", 1)
        assert blocks[0].kind == "short"

    def test_empty_page(self):
        assert group_blocks([], "fp", 1) == []


class TestPdfDocument:
    def test_load_document(self):
        data = _make_pdf(["Page one", "Page two"])
        doc = PdfDocument()
        info = doc.load_document(data, name="book.pdf")
        assert info.page_count == 2
        assert info.fingerprint == document_fingerprint(data)
        assert info.name == "book.pdf"
        doc.close()
        assert doc.info is None

    def test_extract_page_text(self):
        doc = PdfDocument()
        doc.load_document(_make_pdf(["Alpha page", "Beta page"]))
        assert "Beta page" in asyncio.run(doc.extract_page_text(2))
        doc.close()

    def test_extract_page_blocks(self):
        doc = PdfDocument()
        info = doc.load_document(_make_pdf(["Some text on the page"]))
        blocks = asyncio.run(doc.extract_page_blocks(1))
        assert blocks
        assert blocks[0].block_id == f"{info.fingerprint}_p1_b0"
        assert "Some text" in blocks[0].text
        doc.close()

    def test_render_page(self, tmp_path):
        doc = PdfDocument()
        doc.load_document(_make_pdf(["Render me"]))
        target = tmp_path / "pages" / "p1.png"
        size = doc.render_page(1, target, scale=2.0)
        assert target.is_file()
        assert size.width == 600
        assert size.height == 800
        doc.close()

    def test_not_loaded(self):
        with pytest.raises(DocumentNotLoadedError):
            asyncio.run(PdfDocument().extract_page_text(1))

    def test_page_out_of_range(self):
        doc = PdfDocument()
        doc.load_document(_make_pdf(["Only"]))
        with pytest.raises(ValueError):
            asyncio.run(doc.extract_page_text(2))
        doc.close()

    def test_load_path(self, tmp_path):
        path = tmp_path / "doc.pdf"
        path.write_bytes(_make_pdf(["x"]))
        info = PdfDocument().load_path(path)
        assert info.name == "doc.pdf"
        assert info.page_count == 1

    def test_invalid_bytes(self):
        doc = PdfDocument()
        with pytest.raises(InvalidDocumentError):
            doc.load_document(b"not a pdf", name="notes.txt")
        assert doc.info is None


class TestDocumentSwap:
    def test_read_in_flight_is_not_memoized_for_new_document(self):
        doc = PdfDocument()
        doc.load_document(_make_pdf(["ALPHA"]))

        async def scenario():
            stale = asyncio.create_task(doc.extract_page_text(1))
            await asyncio.sleep(0)  # worker thread is now reading ALPHA
            doc.load_document(_make_pdf(["BRAVO"]))
            with pytest.raises(DocumentNotLoadedError, match="changed"):
                await stale
            return await doc.extract_page_text(1)

        text = asyncio.run(scenario())
        assert "BRAVO" in text
        assert "ALPHA" not in text
        doc.close()

    def test_blocks_in_flight_during_close(self):
        doc = PdfDocument()
        doc.load_document(_make_pdf(["Some text on the page"]))

        async def scenario():
            task = asyncio.create_task(doc.extract_page_blocks(1))
            await asyncio.sleep(0)
            doc.close()
            with pytest.raises(DocumentNotLoadedError):
                await task

        asyncio.run(scenario())

    def test_render_after_reload(self, tmp_path):
        doc = PdfDocument()
        doc.load_document(_make_pdf(["first"]))
        doc.load_document(_make_pdf(["second", "third"]))
        size = doc.render_page(2, tmp_path / "p2.png", scale=1.0)
        assert (size.width, size.height) == (300, 400)
        doc.close()
