import io
import shutil
from unittest.mock import patch

from incusbackup.progress import ProgressReader


def _drain(reader, chunk):
    parts = []
    while True:
        data = reader.read(chunk)
        if not data:
            break
        parts.append(data)
    return b"".join(parts)


def test_passes_data_through_unchanged():
    payload = bytes(range(256)) * 10
    out = io.StringIO()
    reader = ProgressReader(io.BytesIO(payload), 0, "copy", out)
    assert _drain(reader, 100) == payload
    assert reader.bytes_read == len(payload)


def test_final_line_without_total():
    payload = b"abcdefgh"
    out = io.StringIO()
    reader = ProgressReader(io.BytesIO(payload), 0, "upload", out)
    _drain(reader, 3)
    assert out.getvalue().endswith(f"\r[upload] {len(payload)} bytes\n")


def test_final_line_with_total_shows_full_percentage():
    payload = b"x" * 50
    out = io.StringIO()
    reader = ProgressReader(io.BytesIO(payload), len(payload), "dl", out)
    _drain(reader, 7)
    assert out.getvalue().endswith(f"100.0% ({len(payload)}/{len(payload)} bytes)\n")


def test_updates_are_throttled():
    out = io.StringIO()
    reader = ProgressReader(io.BytesIO(b"a" * 30), 0, "t", out)
    with patch("incusbackup.progress.monotonic", return_value=1000.0):
        _drain(reader, 10)
    # First chunk prints immediately, later chunks fall inside the interval,
    # and EOF always prints a final line.
    assert out.getvalue().count("\r") == 2


def test_updates_resume_after_interval():
    out = io.StringIO()
    reader = ProgressReader(io.BytesIO(b"a" * 30), 0, "t", out)
    times = iter([1000.0, 1000.5, 1001.0])
    with patch("incusbackup.progress.monotonic", side_effect=lambda: next(times)):
        _drain(reader, 10)
    assert out.getvalue().count("\r") == 4


def test_no_output_stream_is_silent():
    payload = b"hello world"
    reader = ProgressReader(io.BytesIO(payload), len(payload), "quiet", None)
    assert _drain(reader, 4) == payload
    assert reader.bytes_read == len(payload)


def test_works_with_copyfileobj():
    payload = b"z" * 1000
    dest = io.BytesIO()
    out = io.StringIO()
    shutil.copyfileobj(ProgressReader(io.BytesIO(payload), 0, "cp", out), dest)
    assert dest.getvalue() == payload
    assert out.getvalue().endswith("\n")