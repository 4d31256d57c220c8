"""Command-line front end for the batch translator.

Reads one text per line from a file or stdin, translates the texts to the target language through the
configured engine and prints the translations in input order, one per line. Progress goes to stderr.

The API key is taken from the OPENROUTER_API_KEY environment variable.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final, NoReturn, TextIO

from config.loader import ConfigLoader, ConfigLoaderError
from core.cache.manager import TranslationCacheManager
from core.trans.interface import TranslateExceptionError
from core.trans.manager import TransManager
from models.cache_models import CACHE_LAYERS
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from models.cache_models import CacheStatistics
    from models.config_models import Config
    from models.translation_models import ConnectionTestResult

CFG_FILE: Final[str] = "batch_translator.ini"

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        print(f"\n{message}\n", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(2)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv (list[str] | None): Arguments to parse. Defaults to sys.argv[1:].

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = _ArgumentParser(
        description="Translate lines of text in batches through a language model API",
        epilog="Example: python translate_texts.py Japanese --input texts.txt",
    )
    parser.add_argument("target_language", nargs="?", help="Target language, e.g. 'Japanese' or 'French'")
    parser.add_argument("-i", "--input", dest="input", metavar="FILE", help="Read texts from FILE instead of stdin")
    parser.add_argument("-c", "--config", dest="config", metavar="INI", default=CFG_FILE, help="Configuration file")
    parser.add_argument("--model", dest="model", metavar="MODEL", help="Override the model identifier")
    parser.add_argument(
        "--priority", dest="priority", metavar="N", type=int, help="Number of batches translated sequentially first"
    )
    parser.add_argument(
        "--clear-cache", dest="clear_cache", metavar="LAYER", choices=CACHE_LAYERS, help="Clear a cache layer and exit"
    )
    parser.add_argument("--stats", dest="stats", action="store_true", help="Print cache statistics and exit")
    parser.add_argument(
        "--test-connection", dest="test_connection", action="store_true", help="Check the API connection and exit"
    )
    parser.add_argument("--debug", dest="debug", action="store_true", help="Enable debug logging")
    args: argparse.Namespace = parser.parse_args(argv)
    if not (args.target_language or args.clear_cache or args.stats or args.test_connection):
        parser.error("the target language is required")
    return args


def load_config(args: argparse.Namespace) -> Config:
    """Load configuration file and apply CLI overrides.

    Raises:
        ConfigLoaderError: If configuration file cannot be loaded.
    """
    script_name: str = Path(sys.argv[0]).stem
    return ConfigLoader(config_filename=args.config, script_name=script_name, debug=args.debug, model=args.model).config


def read_texts(stream: TextIO) -> list[str]:
    """Read one text per line, skipping blank lines."""
    return [line.rstrip("\n") for line in stream if line.strip()]


def configure_logging(config: Config) -> None:
    console_level: int = logging.DEBUG if config.GENERAL.DEBUG else logging.WARNING
    logger_utils = LoggerUtils(config.GENERAL.LOG_FILE, console_level=console_level)
    logger_utils.set_level(config.GENERAL.LOG_LEVEL)


def print_statistics(stats: CacheStatistics) -> None:
    print(f"Memory entries : {stats.memory}")
    print(f"Session entries: {stats.session}")
    print(f"Local entries  : {stats.local}")
    print(f"Hit rate       : {stats.hit_rate:.1f}%")


async def run_cache_maintenance(args: argparse.Namespace, cache_manager: TranslationCacheManager) -> int:
    """Clear a cache layer or print statistics without setting up the engine.

    Returns:
        int: Process exit code.
    """
    await cache_manager.component_load()
    try:
        if args.clear_cache:
            await cache_manager.clear_cache(args.clear_cache)
            print(f"Cache cleared: {args.clear_cache}")
        if args.stats:
            print_statistics(await cache_manager.get_cache_statistics())
    finally:
        await cache_manager.component_teardown()
    return 0


async def run(args: argparse.Namespace, config: Config) -> int:
    """Wire up the translator and run the requested action.

    Returns:
        int: Process exit code.
    """
    cache_manager = TranslationCacheManager(config)
    if args.clear_cache or args.stats:
        return await run_cache_maintenance(args, cache_manager)

    manager = TransManager(config, cache_manager)
    try:
        await manager.initialize()
    except TranslateExceptionError as err:
        print(f"\nError: {err}", file=sys.stderr)
        await cache_manager.component_teardown()
        return 1

    try:
        if args.test_connection:
            result: ConnectionTestResult = await manager.engine.test_connection()
            if result.success:
                print(result.message)
                return 0
            print(f"Connection failed: {result.error}", file=sys.stderr)
            return 1

        if args.input:
            with Path(args.input).open(encoding="utf-8") as stream:
                texts: list[str] = read_texts(stream)
        else:
            texts = read_texts(sys.stdin)

        done: int = 0

        def on_batch_complete(batch_index: int, translations: list[str], positions: list[int]) -> None:
            nonlocal done
            _ = translations
            done += len(positions)
            print(f"Batch {batch_index} done ({done}/{len(texts)})", file=sys.stderr)

        results: list[str] = await manager.translate_batch_semi_parallel(
            texts, args.target_language, args.priority, on_batch_complete
        )
        for translation in results:
            print(translation.replace("\n", " "))
        return 0
    except TranslateExceptionError as err:
        logger.error("Translation failed: %s", err)
        print(f"\nError: {err}", file=sys.stderr)
        return 1
    finally:
        await manager.shutdown()


def main(argv: list[str] | None = None) -> int:
    args: argparse.Namespace = parse_arguments(argv)
    try:
        config: Config = load_config(args)
    except ConfigLoaderError as err:
        print("\nError: Failed to load configuration file.", file=sys.stderr)
        print(f"Details: {err}", file=sys.stderr)
        return 1

    configure_logging(config)
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\nTranslation cancelled by user.", file=sys.stderr)
        sys.exit(130)
