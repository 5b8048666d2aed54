from enum import Enum


class ErrorKind(Enum):
    TOO_SHORT = 'too_short'
    UNKNOWN_KIND = 'unknown_kind'
    KEY_UNRESOLVED = 'key_unresolved'
    PREFIX_MISMATCH = 'prefix_mismatch'
    IO_FAILURE = 'io_failure'
    INVALID_KEY = 'invalid_key'


class AssetCipherError(Exception):
    """Base error for asset cipher failures. ``kind`` is what ends up in a file's outcome."""

    kind: ErrorKind = ErrorKind.IO_FAILURE


class TooShortError(AssetCipherError):
    kind = ErrorKind.TOO_SHORT


class UnknownKindError(AssetCipherError):
    kind = ErrorKind.UNKNOWN_KIND


class KeyUnresolvedError(AssetCipherError):
    kind = ErrorKind.KEY_UNRESOLVED


class PrefixMismatchError(AssetCipherError):
    """Restored data does not look like its asset kind, the key is most likely wrong."""

    kind = ErrorKind.PREFIX_MISMATCH


class IOFailureError(AssetCipherError):
    kind = ErrorKind.IO_FAILURE


class InvalidKeyError(AssetCipherError):
    kind = ErrorKind.INVALID_KEY
