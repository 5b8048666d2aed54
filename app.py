import asyncio
from pathlib import Path
from typing import Dict, Optional, Tuple
from quart import Quart, jsonify, request, Response

from Modules.RPGMAssetCipher.errors import AssetCipherError
from Modules.RPGMAssetCipher.operations import decrypt, encrypt, extract_key
from Modules.RPGMAssetCipher.registry import EngineVariant
from configs import (
    AUTHORIZATION,
    WORK_DIR,
    CONCURRENCY,
    STRICT_MODE,
    KEY_FILL,
    SHOW_PROGRESS,
)

app = Quart(__name__)
lock = asyncio.Lock()


def _authorized() -> bool:
    return AUTHORIZATION is None or request.headers.get("Authorization") == f"Bearer {AUTHORIZATION}"


def _resolve_path(value: Optional[str]) -> Optional[Path]:
    if value is None:
        return None
    path = Path(value)
    return path if path.is_absolute() else WORK_DIR / path


def _error(e: AssetCipherError) -> Tuple[Response, int]:
    return jsonify({"message": str(e), "error": e.kind.value}), 400


async def run_batch(operation: str, data: Dict) -> Dict:
    if operation == "decrypt":
        report = await decrypt(
            input_path=_resolve_path(data["input_path"]),
            key=data.get("key"),
            single_file=data.get("single_file", False),
            output_dir=_resolve_path(data.get("output_dir")),
            strict=data.get("strict", STRICT_MODE),
            concurrency=CONCURRENCY,
            key_fill=KEY_FILL,
            show_progress=SHOW_PROGRESS,
        )
    else:
        report = await encrypt(
            input_path=_resolve_path(data["input_path"]),
            key=data.get("key"),
            engine_variant=EngineVariant(data["engine"].lower()),
            output_dir=_resolve_path(data.get("output_dir")),
            strict=data.get("strict", STRICT_MODE),
            concurrency=CONCURRENCY,
            show_progress=SHOW_PROGRESS,
        )
    return report.summary()


async def handle_batch(operation: str) -> Tuple[Response, int]:
    if not _authorized():
        return jsonify({"message": "Invalid authorization header"}), 401
    data = await request.get_json(silent=True) or {}
    # No await between the check and the acquire
    if lock.locked():
        return jsonify({"message": "Another batch is running"}), 409
    async with lock:
        try:
            return jsonify(await run_batch(operation, data)), 200
        except (KeyError, ValueError, AttributeError) as e:
            return jsonify({"message": f"Invalid request: {e!r}"}), 400
        except AssetCipherError as e:
            return _error(e)


@app.route("/decrypt", methods=["POST"])
async def decrypt_assets() -> Tuple[Response, int]:
    return await handle_batch("decrypt")


@app.route("/encrypt", methods=["POST"])
async def encrypt_assets() -> Tuple[Response, int]:
    return await handle_batch("encrypt")


@app.route("/extract_key", methods=["POST"])
async def extract_asset_key() -> Tuple[Response, int]:
    if not _authorized():
        return jsonify({"message": "Invalid authorization header"}), 401
    data = await request.get_json(silent=True) or {}
    if "file" not in data:
        return jsonify({"message": "Invalid request: 'file' is required"}), 400
    try:
        key = await extract_key(_resolve_path(data["file"]), KEY_FILL)
    except AssetCipherError as e:
        return _error(e)
    return jsonify({"key": key}), 200
