"""
Tests for content cleaning and chunk splitting.

Run with: pytest tests/test_chunking.py -v
"""

import pytest

from letterspace.translate.chunking import (
    clean_content_for_translation,
    pack_paragraphs,
    simple_chunk,
    split_content_into_chunks,
)


def paragraphs(count: int, length: int) -> list[str]:
    return [(f"P{i} " + "word " * length)[:length] for i in range(count)]


class TestCleanContent:
    """Tests for removing image references."""

    def test_uuid_png_removed(self):
        text = "Before 0F8FAD5B-D9CB-469F-A165-70867728950E.png after"
        assert clean_content_for_translation(text) == "Before  after"

    def test_image_filenames_removed(self):
        text = "See photo.jpg and chart.gif here"
        assert clean_content_for_translation(text) == "See  and  here"

    def test_blank_lines_collapsed(self):
        assert clean_content_for_translation("One\n\n\n\n\nTwo") == "One\n\nTwo"

    def test_removing_image_collapses_gap(self):
        text = "Intro\n\nbanner.png\n\nBody"
        assert clean_content_for_translation(text) == "Intro\n\nBody"

    def test_plain_text_untouched(self):
        text = "Grace and peace to you.\n\nAmen."
        assert clean_content_for_translation(text) == text


class TestSimpleChunk:
    """Tests for fixed-size slicing."""

    def test_slices(self):
        content = "x" * 2000
        chunks = simple_chunk(content)

        assert [len(c) for c in chunks] == [800, 800, 400]
        assert "".join(chunks) == content

    def test_empty(self):
        assert simple_chunk("") == []


class TestPackParagraphs:
    """Tests for greedy paragraph packing."""

    def test_packs_up_to_limit(self):
        chunks = pack_paragraphs(["a" * 300, "b" * 300, "c" * 300], chunk_size=800)
        assert chunks == ["a" * 300 + "\n\n" + "b" * 300, "c" * 300]

    def test_oversized_paragraph_kept_whole(self):
        chunks = pack_paragraphs(["a" * 1200, "b" * 10], chunk_size=800)
        assert chunks == ["a" * 1200, "b" * 10]


class TestSplitContent:
    """Tests for choosing a chunking strategy."""

    def test_short_content_single_chunk(self):
        content = "Short.\n\nStill short."
        assert split_content_into_chunks(content) == [content]

    def test_moderate_paragraph_count_used_directly(self):
        """3 to 20 paragraphs become one chunk each."""
        paras = paragraphs(5, 300)
        content = "\n\n".join(paras)

        assert split_content_into_chunks(content) == paras

    def test_many_paragraphs_packed(self):
        """More than 20 paragraphs are packed into ~800 character chunks."""
        paras = paragraphs(30, 100)
        content = "\n\n".join(paras)

        chunks = split_content_into_chunks(content)

        assert len(chunks) < 30
        assert all(len(c) <= 800 for c in chunks)
        assert "\n\n".join(chunks) == content

    def test_two_long_paragraphs_packed(self):
        """Fewer than 3 paragraphs fall through to packing."""
        paras = paragraphs(2, 700)
        content = "\n\n".join(paras)

        assert split_content_into_chunks(content) == paras

    def test_lossy_packing_falls_back_to_slices(self):
        """Packing that drops content falls back to 800 character slices."""
        # 50 leading empty paragraphs vanish when packed
        content = "\n" * 100 + "x" * 900

        chunks = split_content_into_chunks(content)

        assert chunks == simple_chunk(content)

    @pytest.mark.parametrize("count,length", [(4, 400), (25, 90), (2, 900), (1, 3000), (60, 40)])
    def test_rejoining_keeps_content(self, count, length):
        """Rejoining the chunks recovers at least 95% of the characters."""
        content = "\n\n".join(paragraphs(count, length))
        chunks = split_content_into_chunks(content)

        rejoined = "\n\n".join(chunks)
        if len(rejoined) < 0.95 * len(content):
            assert chunks == simple_chunk(content)
        else:
            assert len(rejoined) >= int(0.95 * len(content))
