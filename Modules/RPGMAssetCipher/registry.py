from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
OGG_SIGNATURE = b'OggS'
M4A_SIGNATURE = b'ftyp'


class AssetKind(Enum):
    IMAGE = 'image'
    AUDIO_OGG = 'audio-ogg'
    AUDIO_M4A = 'audio-m4a'


class EngineVariant(Enum):
    MV = 'mv'
    MZ = 'mz'


class Direction(Enum):
    DECRYPT = 'decrypt'
    ENCRYPT = 'encrypt'


class AssetTypeInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    restored_extension: str
    scrambled_extensions: Dict[EngineVariant, str]
    # Known plaintext at the start of a restored file, at most 16 bytes
    expected_prefix: bytes
    signature: bytes
    signature_offset: int = 0


ASSET_TYPES: Dict[AssetKind, AssetTypeInfo] = {
    AssetKind.IMAGE: AssetTypeInfo(
        restored_extension='png',
        scrambled_extensions={EngineVariant.MV: 'rpgmvp', EngineVariant.MZ: 'png_'},
        # Signature, IHDR chunk length (always 13), IHDR chunk type
        expected_prefix=PNG_SIGNATURE + b'\x00\x00\x00\x0dIHDR',
        signature=PNG_SIGNATURE,
    ),
    AssetKind.AUDIO_OGG: AssetTypeInfo(
        restored_extension='ogg',
        scrambled_extensions={EngineVariant.MV: 'rpgmvo', EngineVariant.MZ: 'ogg_'},
        # Capture pattern, stream version, BOS flag, zero granule position.
        # The bitstream serial number that follows is random.
        expected_prefix=OGG_SIGNATURE + b'\x00\x02' + b'\x00' * 8,
        signature=OGG_SIGNATURE,
    ),
    AssetKind.AUDIO_M4A: AssetTypeInfo(
        restored_extension='m4a',
        scrambled_extensions={EngineVariant.MV: 'rpgmvm', EngineVariant.MZ: 'm4a_'},
        # 32-byte ftyp box with major brand "M4A " and minor version 0
        expected_prefix=b'\x00\x00\x00\x20' + M4A_SIGNATURE + b'M4A ' + b'\x00' * 4,
        signature=M4A_SIGNATURE,
        signature_offset=4,
    ),
}

_RESTORED_EXTENSIONS: Dict[str, AssetKind] = {
    info.restored_extension: kind for kind, info in ASSET_TYPES.items()
}
_SCRAMBLED_EXTENSIONS: Dict[str, AssetKind] = {
    extension: kind
    for kind, info in ASSET_TYPES.items()
    for extension in info.scrambled_extensions.values()
}


def _normalize(extension: str) -> str:
    return extension.lower().lstrip('.')


def classify(extension: str) -> Optional[AssetKind]:
    """Look up the asset kind of a scrambled or restored file extension."""
    extension = _normalize(extension)
    return _SCRAMBLED_EXTENSIONS.get(extension) or _RESTORED_EXTENSIONS.get(extension)


def is_scrambled_extension(extension: str) -> bool:
    return _normalize(extension) in _SCRAMBLED_EXTENSIONS


def engine_of(extension: str) -> Optional[EngineVariant]:
    """Engine variant a scrambled extension belongs to, None for anything else."""
    extension = _normalize(extension)
    for info in ASSET_TYPES.values():
        for engine, scrambled in info.scrambled_extensions.items():
            if scrambled == extension:
                return engine
    return None


def get_asset_type(kind: AssetKind) -> AssetTypeInfo:
    return ASSET_TYPES[kind]


def target_extension(kind: AssetKind, direction: Direction, engine: EngineVariant = EngineVariant.MV) -> str:
    info = ASSET_TYPES[kind]
    if direction == Direction.ENCRYPT:
        return info.scrambled_extensions[engine]
    return info.restored_extension
