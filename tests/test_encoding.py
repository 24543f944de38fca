import pytest

from amanuensis.encoding import decode_line, decode_log_bytes
from amanuensis.timestamp import format_timestamp, parse_timestamp

pytestmark = pytest.mark.encoding


def test_yen_marker_from_legacy_byte():
    """O byte 0xA5 de um log antigo deve virar o simbolo ¥ (U+00A5)."""
    # Arrange
    data = b"\xa5You seem to fight more effectively now."

    # Act
    text = decode_log_bytes(data)

    # Assert
    assert text == "¥You seem to fight more effectively now."


def test_valid_utf8_is_returned_unchanged():
    data = "• Welcome to Clan Lord, Fen! ¥ é".encode("utf-8")

    assert decode_log_bytes(data) == "• Welcome to Clan Lord, Fen! ¥ é"


def test_truncated_line_does_not_spoil_valid_line():
    """
    Um arquivo com uma linha UTF-8 completa e outra cortada no meio de uma
    sequencia multi-byte: a primeira linha mantem o bullet intacto e a
    segunda cai no fallback legado sem levantar excecao.
    """
    # Arrange
    bullet = "•".encode("utf-8")
    data = bullet + b"You have completed your training with Evus.\n" + bullet[:2]

    # Act
    lines = decode_log_bytes(data).split("\n")

    # Assert
    assert lines[0] == "•You have completed your training with Evus."
    assert len(lines) == 2
    assert "•" not in lines[1]


def test_mac_roman_letters_are_remapped():
    """Letras acentuadas do Mac Roman (0x8E = é) nao podem virar simbolos do cp1252."""
    assert decode_line(b"Caf\x8e") == "Café"
    assert decode_line(b"\x80rger") == "Ärger"


def test_cp1252_punctuation_is_kept():
    # 0x85 (reticencias) e 0x95 (bullet) ficam fora do remapeamento
    assert decode_line(b"Hmm\x85") == "Hmm…"
    assert decode_line(b"\x95You learn to befriend the Vermine.") == "•You learn to befriend the Vermine."


def test_mixed_buffer_decodes_line_by_line():
    data = "é utf8".encode("utf-8") + b"\n" + b"\xa5legacy\n"

    assert decode_log_bytes(data) == "é utf8\n¥legacy\n"


def test_decode_never_raises_on_garbage():
    data = bytes(range(256)) * 4

    assert isinstance(decode_log_bytes(data), str)


@pytest.mark.parametrize(
    ("line", "expected_date", "message"),
    [
        ("1/2/24 3:04:05p You killed a Rat.", "2024-01-02 15:04:05", "You killed a Rat."),
        ("12/31/23 12:00:00a Midnight", "2023-12-31 00:00:00", "Midnight"),
        ("6/15/22 12:30:00p Noon", "2022-06-15 12:30:00", "Noon"),
    ],
)
def test_parse_timestamp(line, expected_date, message):
    # Act
    dt, rest = parse_timestamp(line)

    # Assert
    assert format_timestamp(dt) == expected_date
    assert rest == message


@pytest.mark.parametrize(
    "line",
    [
        "2/30/24 1:00:00a impossible day",
        "1/1/24 13:00:00p hour out of range",
        "You killed a Rat.",
        "",
    ],
)
def test_line_without_valid_timestamp_is_all_message(line):
    dt, rest = parse_timestamp(line)

    assert dt is None
    assert rest == line
    assert format_timestamp(dt) == ""
