import logging
import aiofiles
import coloredlogs
import ujson as json
from pathlib import Path
from typing import Union

from ..log_format import LOG_LEVEL, LOG_FORMAT, FIELD_STYLE
from .cipher import ENCRYPTED_HEADER_LENGTH, HEADER_LENGTH, RPGM_HEADER
from .errors import IOFailureError, InvalidKeyError, TooShortError, UnknownKindError
from .model import AssetKey, KeyFill
from .registry import AssetKind, classify, get_asset_type, is_scrambled_extension

logger = logging.getLogger(__name__)
coloredlogs.install(level=LOG_LEVEL, logger=logger, fmt=LOG_FORMAT, field_styles=FIELD_STYLE)

SYSTEM_JSON_NAME = 'System.json'


def known_length(kind: AssetKind) -> int:
    return min(len(get_asset_type(kind).expected_prefix), HEADER_LENGTH)


def is_complete(kind: AssetKind) -> bool:
    """Whether one file of this kind is enough to recover every key byte."""
    return known_length(kind) == HEADER_LENGTH


def recover(data: bytes, kind: AssetKind, fill: KeyFill = KeyFill.ZERO) -> AssetKey:
    """Recover the key by XORing the scrambled header against the kind's known plaintext.

    Key bytes past the known plaintext cannot be derived from a single file and are
    filled according to ``fill``.
    """
    if len(data) < ENCRYPTED_HEADER_LENGTH:
        raise TooShortError(f'Scrambled asset needs at least {ENCRYPTED_HEADER_LENGTH} bytes, got {len(data)}')
    prefix = get_asset_type(kind).expected_prefix[:HEADER_LENGTH]
    header = data[len(RPGM_HEADER):ENCRYPTED_HEADER_LENGTH]
    known = bytes(a ^ b for a, b in zip(header, prefix))
    missing = HEADER_LENGTH - len(known)
    if missing and fill == KeyFill.REPEAT:
        known += (known * (missing // len(known) + 1))[:missing]
    return AssetKey(known.ljust(HEADER_LENGTH, b'\x00'))


async def recover_from_file(path: Union[Path, str], fill: KeyFill = KeyFill.ZERO) -> AssetKey:
    """Recover the key from a scrambled asset on disk."""
    path = Path(path)
    kind = classify(path.suffix)
    if kind is None or not is_scrambled_extension(path.suffix):
        raise UnknownKindError(f'Not a scrambled RPG Maker asset: {path.name}')
    try:
        async with aiofiles.open(path, 'rb') as f:
            data = await f.read(ENCRYPTED_HEADER_LENGTH)
    except OSError as e:
        raise IOFailureError(f'Failed to read {path}: {e}') from e
    return recover(data, kind, fill)


async def read_system_json_key(path: Union[Path, str]) -> AssetKey:
    """Read the ``encryptionKey`` a game stores in its System.json."""
    path = Path(path)
    try:
        async with aiofiles.open(path, 'r', encoding='utf-8-sig') as f:
            system = json.loads(await f.read())
    except OSError as e:
        raise IOFailureError(f'Failed to read {path}: {e}') from e
    except ValueError as e:
        raise IOFailureError(f'{path} is not valid JSON: {e}') from e
    key = system.get('encryptionKey') if isinstance(system, dict) else None
    if not key:
        raise InvalidKeyError(f'{path.name} has no encryptionKey, the game is probably not encrypted')
    if not isinstance(key, str):
        raise InvalidKeyError(f'{path.name} has a non-string encryptionKey: {key!r}')
    return AssetKey.from_hex(key)


async def extract_key(path: Union[Path, str], fill: KeyFill = KeyFill.ZERO) -> AssetKey:
    """Extract the key from System.json or from a scrambled asset."""
    path = Path(path)
    if path.name == SYSTEM_JSON_NAME:
        key = await read_system_json_key(path)
    else:
        key = await recover_from_file(path, fill)
        kind = classify(path.suffix)
        if not is_complete(kind):
            logger.warning(f'Only {known_length(kind)} of {HEADER_LENGTH} key bytes are known from {path.name}')
    logger.info(f'Extracted key {key} from {path.name}')
    return key
