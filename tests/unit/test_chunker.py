import pytest
from src.ingestion.chunker import chunk_text, estimate_tokens, make_chunk_id, ChunkingError

LONG_NOTE = """# Project Kickoff
We agreed on the scope of the first milestone. The team will ship the importer first.
Budget questions are parked until the next review!

## Risks
Vendor delays could push the schedule. Is the fallback supplier approved? Nobody knows yet.
"""

def test_estimate_tokens_is_chars_over_four():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2

def test_chunk_ids_are_deterministic():
    assert make_chunk_id("note-7", 3) == "note-7_chunk_3"

def test_chunk_empty():
    assert chunk_text("", "n1") == []
    assert chunk_text("   \n\t\n ", "n1") == []

def test_rechunking_is_idempotent():
    first = chunk_text(LONG_NOTE, "n1", max_tokens=30, overlap_words=5)
    second = chunk_text(LONG_NOTE, "n1", max_tokens=30, overlap_words=5)

    assert len(first) > 1
    assert [c.model_dump() for c in first] == [c.model_dump() for c in second]

def test_no_tiny_fragments():
    text = "# H\nshort\n# Long heading here\nthis content is definitely longer than twenty"
    chunks = chunk_text(text, "n1", max_tokens=500, overlap_words=5)

    assert all(len(c.content.strip()) > 20 for c in chunks)
    # The dropped fragment keeps its index; the survivor is the second emitted chunk
    assert len(chunks) == 1
    assert chunks[0].index == 1
    assert chunks[0].chunk_id == "n1_chunk_1"
    assert chunks[0].heading == "Long heading here"

def test_headings_start_new_chunks():
    text = "# Alpha\nfoo bar is a phrase long enough\n# Beta\nbaz qux is also long enough here"
    chunks = chunk_text(text, "n1", max_tokens=500, overlap_words=5)

    assert len(chunks) == 2
    assert chunks[0].index == 0
    assert chunks[0].heading == "Alpha"
    assert "# Alpha" in chunks[0].content
    assert "foo bar" in chunks[0].content
    assert chunks[1].index == 1
    assert chunks[1].heading == "Beta"
    assert "baz qux" in chunks[1].content
    assert "foo bar" not in chunks[1].content

def test_heading_markers_are_stripped():
    chunks = chunk_text("### Deep Dive\nthe details of the deep dive live here", "n1", max_tokens=500)
    assert chunks[0].heading == "Deep Dive"

    chunks = chunk_text("#NoSpace\nthe details of this section live here", "n1", max_tokens=500)
    assert chunks[0].heading == "NoSpace"

def test_bare_heading_marker_has_no_heading():
    chunks = chunk_text("# Plans\nthe first section has a title\n##\nthis section is left untitled", "n1", max_tokens=500)

    assert [c.heading for c in chunks] == ["Plans", None]

def test_text_before_first_heading_has_no_heading():
    text = "An introduction paragraph without any heading.\n# Later\nA section that does have a heading."
    chunks = chunk_text(text, "n1", max_tokens=500)

    assert chunks[0].heading is None
    assert chunks[1].heading == "Later"

def test_note_without_headings():
    text = "Line one of a plain note with no markdown.\nLine two keeps going without headings."
    chunks = chunk_text(text, "n1", max_tokens=500)

    assert len(chunks) == 1
    assert all(c.heading is None for c in chunks)

def test_oversized_chunk_splits_at_middle_sentence_with_overlap():
    text = "First sentence here. Second sentence here. Third one."
    chunks = chunk_text(text, "n1", max_tokens=10, overlap_words=2)

    assert len(chunks) == 2
    assert chunks[0].content == "First sentence here. Second sentence here."
    # Next chunk is seeded with the last two words of the first half
    assert chunks[1].content.startswith("sentence here.")
    assert "Third one" in chunks[1].content
    assert [c.index for c in chunks] == [0, 1]

def test_run_on_block_is_flushed_whole_without_overlap():
    text = ("a" * 30) + "\n" + ("b" * 30)
    chunks = chunk_text(text, "n1", max_tokens=5, overlap_words=10)

    assert [c.content for c in chunks] == ["a" * 30, "b" * 30]
    assert [c.chunk_id for c in chunks] == ["n1_chunk_0", "n1_chunk_1"]

def test_indices_strictly_increase():
    chunks = chunk_text(LONG_NOTE * 3, "n1", max_tokens=20, overlap_words=3)
    indices = [c.index for c in chunks]
    assert indices == sorted(set(indices))

def test_chunk_error_handling():
    with pytest.raises(ChunkingError):
        chunk_text(12345, "n1")
