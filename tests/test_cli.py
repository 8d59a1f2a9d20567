import io
import sys

import pytest

from b32decode import main


def feed_stdin(monkeypatch, data: bytes):
    monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(data)))


def test_stdin_to_stdout(monkeypatch, capsysbinary):
    feed_stdin(monkeypatch, b"NBSWY3DP\n")
    assert main([]) == 0
    out, err = capsysbinary.readouterr()
    assert out == b"hello\n"
    assert err == b""


def test_no_newline(monkeypatch, capsysbinary):
    feed_stdin(monkeypatch, b"MZXW6===")
    assert main(["-n"]) == 0
    out, _ = capsysbinary.readouterr()
    assert out == b"foo"


def test_empty_input(monkeypatch, capsysbinary):
    feed_stdin(monkeypatch, b"")
    assert main([]) == 0
    out, _ = capsysbinary.readouterr()
    assert out == b"\n"


def test_file_to_file(tmp_path, capsysbinary):
    source = tmp_path / "encoded.txt"
    target = tmp_path / "decoded.bin"
    source.write_bytes(b"74======\n")

    assert main(["-i", str(source), "-o", str(target)]) == 0
    assert target.read_bytes() == b"\xff"
    out, err = capsysbinary.readouterr()
    assert out == b""
    assert b"Decoded data saved to" in err


def test_invalid_character_writes_nothing(monkeypatch, capsysbinary):
    feed_stdin(monkeypatch, b"N1SWY3DP\n")
    assert main([]) == 1
    out, err = capsysbinary.readouterr()
    assert out == b""
    assert err.startswith(b"Error: Invalid base32 character")


def test_invalid_length_writes_nothing(monkeypatch, capsysbinary):
    feed_stdin(monkeypatch, b"ABC\n")
    assert main(["-v"]) == 1
    out, err = capsysbinary.readouterr()
    assert out == b""
    assert b"Invalid length for final quantum: 3" in err


def test_verbose_reports_geometry(monkeypatch, capsysbinary):
    feed_stdin(monkeypatch, b"MZXW6YTBOI======\n")
    assert main(["-v"]) == 0
    out, err = capsysbinary.readouterr()
    assert out == b"foobar\n"
    assert b"Content: 10 chars, padding: 6" in err
    assert b"Decoded 6 bytes" in err


def test_missing_input_file(tmp_path, capsysbinary):
    with pytest.raises(SystemExit) as exc:
        main(["-i", str(tmp_path / "missing.txt")])
    assert exc.value.code == 1
    _, err = capsysbinary.readouterr()
    assert b"File not found" in err
