from typing import Union

from .errors import PrefixMismatchError, TooShortError
from .registry import AssetKind, get_asset_type

HEADER_LENGTH = 16
RPGM_HEADER = b'RPGMV\x00\x00\x00\x00\x03\x01\x00\x00\x00\x00\x00'
ENCRYPTED_HEADER_LENGTH = len(RPGM_HEADER) + HEADER_LENGTH

Buffer = Union[bytes, bytearray, memoryview]


def _xor_header(header: Buffer, key: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(header, key))


def has_rpgm_signature(data: Buffer) -> bool:
    return bytes(data[:len(RPGM_HEADER)]) == RPGM_HEADER


def restore(data: Buffer, key: bytes) -> bytes:
    """Strip the RPGMV signature and unscramble the original 16-byte header."""
    if len(data) < ENCRYPTED_HEADER_LENGTH:
        raise TooShortError(f'Scrambled asset needs at least {ENCRYPTED_HEADER_LENGTH} bytes, got {len(data)}')
    header = _xor_header(data[len(RPGM_HEADER):ENCRYPTED_HEADER_LENGTH], key)
    return header + bytes(data[ENCRYPTED_HEADER_LENGTH:])


def scramble(data: Buffer, key: bytes) -> bytes:
    """Scramble the first 16 bytes and prepend the RPGMV signature."""
    if len(data) < HEADER_LENGTH:
        raise TooShortError(f'Asset needs at least {HEADER_LENGTH} bytes to be scrambled, got {len(data)}')
    return RPGM_HEADER + _xor_header(data[:HEADER_LENGTH], key) + bytes(data[HEADER_LENGTH:])


def verify(data: Buffer, kind: AssetKind) -> None:
    """Check a restored buffer carries the signature of its kind."""
    info = get_asset_type(kind)
    start = info.signature_offset
    if bytes(data[start:start + len(info.signature)]) != info.signature:
        raise PrefixMismatchError(
            f'Restored {kind.value} asset has invalid signature, check the key used to decrypt it')
