import pytest

from config import MissingRangePolicy
from core.errors import MalformedRangeError, RangeRequiredError, UnsatisfiableRangeError
from core.streaming.range import (
    CHUNK_SIZE,
    RangeSpec,
    RangeStreamer,
    media_type_for,
    parse_range_header,
    resolve_window,
)


class RecordingOpener:
    """Stands in for storage; remembers every window it was asked for."""

    def __init__(self):
        self.calls = []

    def __call__(self, start, end):
        self.calls.append((start, end))
        return _NullSource()


class _NullSource:
    closed = False

    def read(self, size):
        return b""

    def close(self):
        self.closed = True


# --- Header parsing ---

def test_parse_open_end():
    assert parse_range_header("bytes=1000-") == RangeSpec(1000, None)

def test_parse_closed_range():
    assert parse_range_header("bytes=0-999") == RangeSpec(0, 999)

def test_parse_only_first_of_multiple_ranges():
    assert parse_range_header("bytes=0-9, 20-29") == RangeSpec(0, 9)

def test_parse_non_numeric_start_becomes_zero():
    assert parse_range_header("bytes=abc-") == RangeSpec(0, None)
    assert parse_range_header("bytes=-500") == RangeSpec(0, 500)
    assert parse_range_header("garbage") == RangeSpec(0, None)

def test_parse_non_numeric_end_is_open():
    assert parse_range_header("bytes=10-xyz") == RangeSpec(10, None)

def test_parse_tolerates_whitespace_and_case():
    assert parse_range_header("  BYTES= 5 - 7 ") == RangeSpec(5, 7)

@pytest.mark.parametrize(
    "header",
    ["bytes=abc-", "bytes=-500", "items=0-10", "bytes=10", "bytes=1-x", "0-10"],
)
def test_strict_parse_rejects_malformed(header):
    with pytest.raises(MalformedRangeError):
        parse_range_header(header, strict=True)

def test_strict_parse_accepts_well_formed():
    assert parse_range_header("bytes=3-", strict=True) == RangeSpec(3, None)
    assert parse_range_header("bytes=3-8", strict=True) == RangeSpec(3, 8)


# --- Window arithmetic ---

def test_open_end_is_capped_at_chunk_size():
    window = resolve_window(RangeSpec(0), 2_500_000)
    assert (window.start, window.end) == (0, 999_999)
    assert window.length == CHUNK_SIZE
    assert window.content_range == "bytes 0-999999/2500000"

def test_open_end_is_capped_at_file_end():
    window = resolve_window(RangeSpec(0), 500)
    assert window.content_range == "bytes 0-499/500"
    assert window.length == 500

def test_explicit_end_is_honored_beyond_chunk_size():
    window = resolve_window(RangeSpec(0, 1_500_000), 2_500_000)
    assert window.end == 1_500_000

def test_explicit_end_is_clamped():
    window = resolve_window(RangeSpec(100, 10_000), 500)
    assert (window.start, window.end, window.length) == (100, 499, 400)

def test_last_byte():
    window = resolve_window(RangeSpec(499), 500)
    assert window.length == 1

@pytest.mark.parametrize(
    "spec,size",
    [
        (RangeSpec(600), 500),
        (RangeSpec(500), 500),
        (RangeSpec(0), 0),
        (RangeSpec(0, 10), 0),
        (RangeSpec(10, 5), 500),
        (RangeSpec(-1), 500),
    ],
)
def test_unsatisfiable_windows(spec, size):
    with pytest.raises(UnsatisfiableRangeError) as exc:
        resolve_window(spec, size)
    assert exc.value.file_size == size

@pytest.mark.parametrize("size", [1, 7, 1000])
def test_valid_windows_have_matching_length(size):
    for start in range(0, size, max(1, size // 7)):
        for end in (start, (start + size) // 2, size - 1):
            if end < start:
                continue
            window = resolve_window(RangeSpec(start, end), size)
            assert window.length == end - start + 1

def test_sequential_open_requests_cover_file_once():
    size = 2_500_000
    windows = []
    start = 0
    while True:
        window = resolve_window(RangeSpec(start), size)
        windows.append(window)
        if window.end == size - 1:
            break
        start = window.end + 1

    assert [w.length for w in windows] == [CHUNK_SIZE, CHUNK_SIZE, 500_000]
    assert sum(w.length for w in windows) == size


# --- Streamer responses ---

def test_serve_partial_content_headers():
    opener = RecordingOpener()
    response = RangeStreamer().serve("bytes=0-", 2_500_000, opener)

    assert response.status_code == 206
    assert response.headers["content-range"] == "bytes 0-999999/2500000"
    assert response.headers["content-length"] == "1000000"
    assert response.headers["accept-ranges"] == "bytes"
    assert response.headers["content-type"] == "video/mp4"
    assert opener.calls == [(0, 999_999)]

def test_serve_small_file():
    opener = RecordingOpener()
    response = RangeStreamer().serve("bytes=0-", 500, opener)
    assert response.headers["content-range"] == "bytes 0-499/500"
    assert response.headers["content-length"] == "500"

def test_serve_unsatisfiable_never_opens_source():
    opener = RecordingOpener()
    with pytest.raises(UnsatisfiableRangeError) as exc:
        RangeStreamer().serve("bytes=600-", 500, opener)
    assert exc.value.file_size == 500
    assert opener.calls == []

def test_serve_zero_byte_file_is_unsatisfiable():
    opener = RecordingOpener()
    with pytest.raises(UnsatisfiableRangeError):
        RangeStreamer().serve("bytes=0-", 0, opener)
    assert opener.calls == []

@pytest.mark.parametrize("header", [None, ""])
def test_missing_header_rejected_by_default(header):
    opener = RecordingOpener()
    with pytest.raises(RangeRequiredError):
        RangeStreamer().serve(header, 500, opener)
    assert opener.calls == []

def test_missing_header_full_policy_serves_whole_file():
    opener = RecordingOpener()
    streamer = RangeStreamer(missing_range_policy=MissingRangePolicy.FULL)
    response = streamer.serve(None, 500, opener)
    assert response.status_code == 200
    assert response.headers["content-length"] == "500"
    assert "content-range" not in response.headers
    assert opener.calls == [(0, 499)]

def test_strict_streamer_reports_size_on_malformed():
    with pytest.raises(MalformedRangeError) as exc:
        RangeStreamer(strict=True).serve("bytes=abc-", 500, RecordingOpener())
    assert exc.value.file_size == 500

def test_custom_window_size():
    streamer = RangeStreamer(chunk_size=100)
    response = streamer.serve("bytes=50-", 1000, RecordingOpener())
    assert response.headers["content-range"] == "bytes 50-149/1000"

def test_media_type_for_known_and_unknown_suffix():
    assert media_type_for("a.webm") == "video/webm"
    assert media_type_for("A.MKV") == "video/x-matroska"
    assert media_type_for("noext") == "video/mp4"
