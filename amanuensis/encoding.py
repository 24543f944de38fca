"""
Normalizador de encoding dos logs do Clan Lord.

Os clientes antigos (Mac) gravam em um encoding de 1 byte; o cliente
Windows grava UTF-8. Um mesmo arquivo pode misturar os dois, entao o
fallback e feito linha a linha, sobre os bytes brutos.
"""

import logging

logger = logging.getLogger("amanuensis.encoding")

# Letras acentuadas do Mac Roman -> byte equivalente no cp1252.
# 0x85 e 0x91-0x97 ficam de fora: no cp1252 sao reticencias, aspas, bullet e travessoes.
_LEGACY_LETTERS: dict[int, int] = {
    0x80: 0xC4,  # Ä
    0x81: 0xC5,  # Å
    0x82: 0xC7,  # Ç
    0x83: 0xC9,  # É
    0x84: 0xD1,  # Ñ
    0x86: 0xDC,  # Ü
    0x87: 0xE1,  # á
    0x88: 0xE0,  # à
    0x89: 0xE2,  # â
    0x8A: 0xE4,  # ä
    0x8B: 0xE3,  # ã
    0x8C: 0xE5,  # å
    0x8D: 0xE7,  # ç
    0x8E: 0xE9,  # é
    0x8F: 0xE8,  # è
    0x90: 0xEA,  # ê
    0x98: 0xF2,  # ò
    0x99: 0xF4,  # ô
    0x9A: 0xF6,  # ö
    0x9B: 0xF5,  # õ
    0x9C: 0xFA,  # ú
    0x9D: 0xF9,  # ù
    0x9E: 0xFB,  # û
    0x9F: 0xFC,  # ü
}

_LEGACY_REMAP = bytes.maketrans(
    bytes(_LEGACY_LETTERS.keys()), bytes(_LEGACY_LETTERS.values())
)

LEGACY_ENCODING = "cp1252"


def _decode_legacy_line(raw: bytes) -> str:
    return raw.translate(_LEGACY_REMAP).decode(LEGACY_ENCODING, errors="replace")


def decode_line(raw: bytes) -> str:
    """Decodifica uma unica linha: UTF-8 se valida, senao o fallback legado."""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        return _decode_legacy_line(raw)


def decode_log_bytes(data: bytes) -> str:
    """Converte os bytes de um log em texto; nunca falha.

    Caminho rapido: o buffer inteiro e UTF-8 valido. Caso contrario cada
    linha (separada pelo byte ``\\n``) e decodificada isoladamente, de modo
    que uma linha truncada no meio de uma sequencia multi-byte nao
    contamina as demais.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        logger.debug("Buffer nao e UTF-8 (byte %s); decodificando por linha", exc.start)

    return "\n".join(decode_line(raw) for raw in data.split(b"\n"))
