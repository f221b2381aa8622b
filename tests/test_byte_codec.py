import pytest

from docfetch.byte_codec import bytes_from_numeric_sequence, numeric_sequence_from_bytes


def test_numeric_sequence_rebuilds_exact_bytes():
    assert bytes_from_numeric_sequence([1, 2, 3]) == b"\x01\x02\x03"
    assert bytes_from_numeric_sequence([0, 255]) == b"\x00\xff"


def test_pdf_header_survives_the_seam():
    header = b"%PDF-1.7\n"
    seq = numeric_sequence_from_bytes(header)

    assert seq[:4] == [37, 80, 68, 70]
    assert all(isinstance(v, int) for v in seq)
    assert bytes_from_numeric_sequence(seq) == header


def test_none_and_empty_mean_no_payload():
    assert bytes_from_numeric_sequence(None) == b""
    assert bytes_from_numeric_sequence([]) == b""


@pytest.mark.parametrize(
    "seq, match",
    [
        ({"0": 1}, "Expected a list"),
        ("abc", "Expected a list"),
        ([1, 256], "out of range"),
        ([-1], "out of range"),
        ([1, "2"], "Non-integer"),
        ([1.0], "Non-integer"),
        ([True], "Non-integer"),
    ],
)
def test_invalid_sequences_are_rejected(seq, match):
    with pytest.raises(ValueError, match=match):
        bytes_from_numeric_sequence(seq)
