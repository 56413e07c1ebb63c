import pytest

from pdf_gateway.errors import ValidationError
from pdf_gateway.keys import KEY_PREFIX, decode_key, derive_key


def test_derive_key_layout():
    assert derive_key("report.pdf", now_ms=1718000000000) == "documents/1718000000000-report.pdf"


def test_derive_key_uses_current_time():
    key = derive_key("report.pdf")
    timestamp, _, name = key[len(KEY_PREFIX):].partition("-")
    assert key.startswith(KEY_PREFIX)
    assert timestamp.isdigit() and len(timestamp) >= 13
    assert name == "report.pdf"


@pytest.mark.parametrize(
    "original_name",
    ["../../etc/passwd", "nested/dir/file.pdf", "100% legit.pdf", "résumé.pdf", ""],
)
def test_derive_key_keeps_original_name_verbatim(original_name: str):
    assert derive_key(original_name, now_ms=1).endswith(f"-{original_name}")


@pytest.mark.parametrize(
    "raw_key, expected",
    [
        ("documents%2F1-report.pdf", "documents/1-report.pdf"),
        ("documents/1-report.pdf", "documents/1-report.pdf"),
        ("documents%2F1-a%2520b.pdf", "documents/1-a%20b.pdf"),
        ("documents%2F1-r%C3%A9sum%C3%A9.pdf", "documents/1-résumé.pdf"),
        ("documents%2F1-a+b.pdf", "documents/1-a+b.pdf"),
    ],
)
def test_decode_key(raw_key: str, expected: str):
    assert decode_key(raw_key) == expected


@pytest.mark.parametrize("raw_key", ["", "documents%2F1-%zz.pdf", "documents%2F1-%.pdf", "documents%2F1-%E9.pdf"])
def test_decode_key_rejects_bad_input(raw_key: str):
    with pytest.raises(ValidationError):
        decode_key(raw_key)
