import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from Modules.RPGMAssetCipher.cipher import scramble
from Modules.RPGMAssetCipher.model import AssetKey

KEY = AssetKey(bytes(range(1, 17)))
KEY_HEX = "0102030405060708090a0b0c0d0e0f10"

PNG_PREFIX = b"\x89PNG\r\n\x1a\n\x00\x00\x00\x0dIHDR"


def make_png(body: bytes = b"\x00\x00\x01\x00\x00\x00\x01\x00\x08\x06\x00\x00\x00IDAT") -> bytes:
    return PNG_PREFIX + body


def make_ogg(serial: bytes = b"\x9a\x3c\x11\x07", body: bytes = b"\x00" * 24) -> bytes:
    return b"OggS\x00\x02" + b"\x00" * 8 + serial + body


def make_m4a(body: bytes = b"M4A mp42isom\x00\x00\x00\x08free") -> bytes:
    return b"\x00\x00\x00\x20ftypM4A \x00\x00\x00\x00" + body


def write_scrambled(path: Path, plain: bytes, key: bytes = KEY) -> bytes:
    path.parent.mkdir(parents=True, exist_ok=True)
    data = scramble(plain, key)
    path.write_bytes(data)
    return data
