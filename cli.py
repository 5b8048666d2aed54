"""Command line front end: decrypt, encrypt or extract the key of RPG Maker MV/MZ assets."""
import sys
import time
import asyncio
import argparse
import logging
import coloredlogs
from pathlib import Path
from typing import List, Optional

from Modules.log_format import LOG_LEVEL, LOG_FORMAT, FIELD_STYLE
from Modules.RPGMAssetCipher.errors import AssetCipherError
from Modules.RPGMAssetCipher.model import BatchReport, OutcomeStatus
from Modules.RPGMAssetCipher.operations import decrypt, encrypt, extract_key
from configs import CONCURRENCY, KEY_FILL, SHOW_PROGRESS

logger = logging.getLogger('rpgm_asset_cipher')
coloredlogs.install(level=LOG_LEVEL, logger=logger, fmt=LOG_FORMAT, field_styles=FIELD_STYLE)

EXIT_OK = 0
EXIT_FAILED_FILES = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Decrypt/encrypt RPG Maker MV/MZ audio and image assets.")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-e", "--key", help="32-char hex key. Decrypt recovers it from the assets when omitted")
    common.add_argument("-i", "--input-dir", type=Path, default=Path("./"), help="Input directory")
    common.add_argument("-o", "--output-dir", type=Path, help="Output directory, defaults to beside the input")
    common.add_argument("-f", "--file", type=Path, help="Single file to process or to extract the key from")
    common.add_argument("--strict", action="store_true", help="Abort on the first file that fails")
    common.add_argument("--no-progress", action="store_true", help="Hide the progress bar")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("decrypt", parents=[common],
                          help=".rpgmvp/.png_ => .png, .rpgmvo/.ogg_ => .ogg, .rpgmvm/.m4a_ => .m4a")
    encrypt_parser = subparsers.add_parser("encrypt", parents=[common],
                                           help=".png/.ogg/.m4a => scrambled assets, requires --key and --engine")
    encrypt_parser.add_argument("-E", "--engine", choices=["mv", "mz"], required=True, help="Game engine")
    subparsers.add_parser("extract-key", parents=[common],
                          help="Print the key of System.json or of a scrambled asset given in --file")
    return parser


def print_report(report: BatchReport) -> None:
    for outcome in report.outcomes:
        if outcome.status == OutcomeStatus.FAILED:
            print(f"FAILED  {outcome.source}: [{outcome.error.value}] {outcome.reason}")
        elif outcome.status == OutcomeStatus.SKIPPED and outcome.kind is not None:
            print(f"SKIPPED {outcome.source}: {outcome.reason}")
    print(f"Key: {report.key}")
    print(f"Written: {report.written}, skipped: {report.skipped}, failed: {report.failed}"
          + (" (aborted)" if report.aborted else ""))


async def run(args: argparse.Namespace) -> int:
    show_progress = SHOW_PROGRESS and not args.no_progress
    if args.command == "extract-key":
        if args.file is None:
            logger.error("--file argument is not specified.")
            return EXIT_ERROR
        print(f"Encryption key: {await extract_key(args.file, KEY_FILL)}")
        return EXIT_OK

    input_path = args.file if args.file is not None else args.input_dir
    if args.command == "decrypt":
        report = await decrypt(input_path, key=args.key, single_file=args.file is not None,
                               output_dir=args.output_dir, strict=args.strict, concurrency=CONCURRENCY,
                               key_fill=KEY_FILL, show_progress=show_progress)
    else:
        if not args.key:
            logger.error("--key argument is not specified.")
            return EXIT_ERROR
        report = await encrypt(input_path, key=args.key, engine_variant=args.engine, output_dir=args.output_dir,
                               strict=args.strict, concurrency=CONCURRENCY, show_progress=show_progress)
    print_report(report)
    return EXIT_OK if report.ok else EXIT_FAILED_FILES


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    start_time = time.perf_counter()
    try:
        code = asyncio.run(run(args))
    except AssetCipherError as e:
        logger.error(f"{e.kind.value}: {e}")
        return EXIT_ERROR
    print(f"Elapsed: {time.perf_counter() - start_time:.2f}s")
    return code


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
