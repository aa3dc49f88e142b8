from __future__ import annotations

from research_twin.domain.chunking import (
    chunk_text,
    default_chunking_for,
    normalize_extracted_text,
    strip_html_to_text,
)


def test_empty_text_yields_no_chunks() -> None:
    assert chunk_text("", 900, 150) == []
    assert chunk_text("   \r\n  ", 900, 150) == []


def test_window_advances_by_size_minus_overlap() -> None:
    assert chunk_text("abcdefghij", 4, 1) == ["abcd", "defg", "ghij"]


def test_last_window_reaches_end_of_text() -> None:
    text = "".join(chr(97 + i % 26) for i in range(2500))
    chunks = chunk_text(text, 900, 140)

    assert chunks[0] == text[:900]
    assert chunks[-1] == text[2280:]
    assert all(0 < len(c) <= 900 for c in chunks)
    assert len(chunks) == 4


def test_overlap_not_smaller_than_size_still_terminates() -> None:
    chunks = chunk_text("abcdef", 2, 5)
    assert chunks[-1] == "ef"
    assert len(chunks) == 5


def test_crlf_is_normalized_and_slices_trimmed() -> None:
    assert chunk_text("a\r\nb", 10, 0) == ["a\nb"]
    assert chunk_text("  hello  ", 100, 10) == ["hello"]


def test_role_defaults() -> None:
    pub = default_chunking_for("publication")
    thesis = default_chunking_for("thesis")
    other = default_chunking_for("web")
    assert (pub.chunk_size, pub.chunk_overlap) == (900, 140)
    assert (thesis.chunk_size, thesis.chunk_overlap) == (1200, 180)
    assert (other.chunk_size, other.chunk_overlap) == (900, 150)


def test_normalize_extracted_text() -> None:
    assert normalize_extracted_text("a\x00b\r\n\n\n\nc  ") == "ab\n\nc"


def test_strip_html_to_text() -> None:
    html = (
        "<html><head><style>p { color: red; }</style><script>var x = 1;</script></head>"
        "<body><p>Hello&nbsp;<b>World</b> &amp; more</p><noscript>enable js</noscript></body></html>"
    )
    assert strip_html_to_text(html) == "Hello World & more"
