"""Entry points the CLI and the HTTP service call into."""
from pathlib import Path
from typing import Optional, Union

from .key_recovery import extract_key as _extract_key
from .model import AssetKey, BatchReport, KeyFill
from .processor import DEFAULT_CONCURRENCY, AssetBatchProcessor
from .registry import Direction, EngineVariant

KeyLike = Union[AssetKey, bytes, str]


async def decrypt(input_path: Union[Path, str], key: Optional[KeyLike] = None, single_file: bool = False,
                  output_dir: Optional[Union[Path, str]] = None, strict: bool = False,
                  concurrency: int = DEFAULT_CONCURRENCY, key_fill: KeyFill = KeyFill.ZERO,
                  show_progress: bool = True) -> BatchReport:
    """Restore scrambled assets, recovering the key from the assets when none is given."""
    processor = AssetBatchProcessor(
        input_path=input_path,
        direction=Direction.DECRYPT,
        key=AssetKey.coerce(key) if key else None,
        output_dir=output_dir,
        single_file=single_file,
        strict=strict,
        concurrency=concurrency,
        key_fill=key_fill,
        show_progress=show_progress,
    )
    return await processor.run()


async def encrypt(input_path: Union[Path, str], key: Optional[KeyLike],
                  engine_variant: Union[EngineVariant, str] = EngineVariant.MV,
                  output_dir: Optional[Union[Path, str]] = None, strict: bool = False,
                  concurrency: int = DEFAULT_CONCURRENCY, show_progress: bool = True) -> BatchReport:
    """Scramble plain assets into the extension family of ``engine_variant``."""
    processor = AssetBatchProcessor(
        input_path=input_path,
        direction=Direction.ENCRYPT,
        key=AssetKey.coerce(key) if key else None,
        engine=EngineVariant(engine_variant),
        output_dir=output_dir,
        strict=strict,
        concurrency=concurrency,
        show_progress=show_progress,
    )
    return await processor.run()


async def extract_key(file: Union[Path, str], key_fill: KeyFill = KeyFill.ZERO) -> str:
    return str(await _extract_key(file, key_fill))
