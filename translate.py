"""
Command-line interface for EPUB translation
"""
import argparse
import asyncio
import sys

from inktranslate.config import (DEFAULT_MODEL, GEMINI_MODEL, MAX_CHUNK_SIZE, CONCURRENCY_LIMIT, API_ENDPOINT,
                                 LLM_PROVIDER, GEMINI_API_KEY, REQUEST_TIMEOUT, DEFAULT_SOURCE_LANGUAGE,
                                 DEFAULT_TARGET_LANGUAGE, TranslationConfig)
from inktranslate.core.epub_processor import translate_epub_file
from inktranslate.exceptions import InkTranslateError
from inktranslate.utils.file_detector import ensure_epub_path, generate_output_filename
from inktranslate.utils.unified_logger import setup_cli_logger, LogType


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Translate the chapters of an EPUB file using an LLM.")
    parser.add_argument("-i", "--input", required=True, help="Path to the input EPUB file.")
    parser.add_argument("-o", "--output", default=None, help="Path to the output file. If not specified, uses input filename with suffix.")
    parser.add_argument("-sl", "--source_lang", default=DEFAULT_SOURCE_LANGUAGE, help=f"Source language (default: {DEFAULT_SOURCE_LANGUAGE}).")
    parser.add_argument("-tl", "--target_lang", default=DEFAULT_TARGET_LANGUAGE, help=f"Target language (default: {DEFAULT_TARGET_LANGUAGE}).")
    parser.add_argument("-m", "--model", default=None, help=f"LLM model (default: {GEMINI_MODEL} for gemini, {DEFAULT_MODEL} for ollama).")
    parser.add_argument("-cs", "--chunksize", type=int, default=MAX_CHUNK_SIZE, help=f"Maximum characters per translation request (default: {MAX_CHUNK_SIZE}).")
    parser.add_argument("--concurrency", type=int, default=CONCURRENCY_LIMIT, help=f"Requests in flight per chapter (default: {CONCURRENCY_LIMIT}).")
    parser.add_argument("--provider", default=LLM_PROVIDER, choices=["gemini", "ollama"], help=f"LLM provider to use (default: {LLM_PROVIDER}).")
    parser.add_argument("--api_endpoint", default=API_ENDPOINT, help=f"API endpoint for the Ollama provider (default: {API_ENDPOINT}).")
    parser.add_argument("--gemini_api_key", default=GEMINI_API_KEY, help="Google Gemini API key (required if using gemini provider).")
    parser.add_argument("--custom_instructions", default="", help="Additional custom instructions for translation.")
    parser.add_argument("--timeout", type=int, default=REQUEST_TIMEOUT, help=f"Request timeout in seconds (default: {REQUEST_TIMEOUT}).")
    parser.add_argument("--verbose", action="store_true", help="Show raw LLM requests and responses.")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output.")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        ensure_epub_path(args.input)
    except ValueError as e:
        parser.error(str(e))

    if args.output is None:
        args.output = generate_output_filename(args.input, args.target_lang)

    if args.chunksize < 1:
        parser.error("--chunksize must be at least 1")
    if args.concurrency < 1:
        parser.error("--concurrency must be at least 1")

    # Validate Gemini API key if using Gemini provider
    if args.provider == "gemini" and not args.gemini_api_key:
        parser.error("--gemini_api_key is required when using gemini provider")

    config = TranslationConfig.from_cli_args(args)
    logger = setup_cli_logger(enable_colors=config.enable_colors, verbose=args.verbose)
    log_callback = logger.create_legacy_callback()

    try:
        summary = asyncio.run(translate_epub_file(
            args.input,
            args.output,
            config=config,
            progress_callback=None,
            log_callback=log_callback,
            stats_callback=None,
            check_interruption_callback=None
        ))
    except InkTranslateError as e:
        logger.error(f"Translation failed: {e.message}", LogType.ERROR_DETAIL, {
            'details': e.details or str(e),
            'input_file': args.input
        })
        sys.exit(1)
    except KeyboardInterrupt:
        logger.warning("Translation interrupted by user")
        sys.exit(130)

    logger.info("Translation Completed", LogType.TRANSLATION_END, {
        'output_file': args.output,
        'stats': summary.to_stats()
    })
    if summary.failed_chunks or summary.skipped_chapters:
        sys.exit(2)


if __name__ == "__main__":
    main()
