"""
EPUB processing module: translate every spine chapter of a book
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from tqdm.auto import tqdm

from inktranslate.config import TranslationConfig
from .chapter_orchestrator import ChapterOrchestrator
from .epub_package import EpubPackage
from inktranslate.exceptions import MalformedDocument
from .llm_client import TranslationClient, create_translation_client
from .models import ChapterOutcome


@dataclass
class BookTranslationSummary:
    """Outcome of a whole-book run"""
    output_path: str
    outcomes: List[ChapterOutcome] = field(default_factory=list)
    skipped_chapters: List[str] = field(default_factory=list)
    interrupted: bool = False

    @property
    def total_chunks(self) -> int:
        return sum(outcome.total_chunks for outcome in self.outcomes)

    @property
    def succeeded_chunks(self) -> int:
        return sum(outcome.succeeded_chunks for outcome in self.outcomes)

    @property
    def failed_chunks(self) -> int:
        return sum(outcome.failed_chunks for outcome in self.outcomes)

    def to_stats(self) -> dict:
        return {
            'total_chunks': self.total_chunks,
            'completed_chunks': self.succeeded_chunks,
            'failed_chunks': self.failed_chunks,
            'failed_chapters': len(self.skipped_chapters)
        }


def _log(log_callback, key, message, data=None):
    if log_callback:
        log_callback(key, message, data)
    else:
        tqdm.write(message)


async def translate_epub_file(input_filepath: str, output_filepath: str,
                              config: Optional[TranslationConfig] = None,
                              progress_callback: Optional[Callable[[int], None]] = None,
                              log_callback: Optional[Callable] = None,
                              stats_callback: Optional[Callable[[dict], None]] = None,
                              check_interruption_callback: Optional[Callable[[], bool]] = None,
                              client: Optional[TranslationClient] = None) -> BookTranslationSummary:
    """
    Translate an EPUB file chapter by chapter, in spine order

    Args:
        input_filepath: Path to input EPUB
        output_filepath: Path to output EPUB
        config: Run settings (languages, provider, chunk size, concurrency)
        progress_callback: Overall progress in percent
        log_callback: Logging callback
        stats_callback: Receives aggregated chunk statistics after each chapter
        check_interruption_callback: Interruption check callback
        client: Translation client to use instead of one built from config

    Returns:
        BookTranslationSummary

    Raises:
        ArchiveIOError: If the input cannot be read or the output written
        TranslationServiceError: If no client is given and the configured
        provider cannot be set up
    """
    config = config or TranslationConfig()
    package = EpubPackage.from_file(input_filepath)
    chapters = package.list_chapters()
    summary = BookTranslationSummary(output_path=output_filepath)

    _log(log_callback, "epub_translation_start", "Translation Started", {
        'type': 'translation_start',
        'title': package.metadata.title,
        'source_lang': config.source_language,
        'target_lang': config.target_language,
        'model': config.model,
        'total_chapters': len(chapters)
    })

    if not chapters:
        _log(log_callback, "epub_no_chapters", "No XHTML chapters found in the EPUB spine.")

    chapter_position = 0

    def chapter_progress(percent):
        if progress_callback and chapters:
            progress_callback(int((chapter_position + percent / 100) / len(chapters) * 100))

    own_client = client is None
    client = client or create_translation_client(config, log_callback)
    orchestrator = ChapterOrchestrator(
        package, client,
        max_chunk_size=config.max_chunk_size,
        concurrency_limit=config.concurrency_limit,
        progress_callback=chapter_progress,
        log_callback=log_callback,
        check_interruption_callback=check_interruption_callback
    )

    try:
        iterator = tqdm(chapters, desc="Translating chapters", unit="chapter") if not progress_callback else chapters
        for chapter_position, chapter in enumerate(iterator):
            if check_interruption_callback and check_interruption_callback():
                summary.interrupted = True
                _log(log_callback, "epub_translation_interrupted",
                     f"EPUB translation interrupted before chapter {chapter_position + 1}/{len(chapters)}.")
                break

            _log(log_callback, "chapter_start", f"Chapter {chapter_position + 1}/{len(chapters)}",
                 {'type': 'chapter_start', 'index': chapter_position + 1, 'path': chapter.path})

            try:
                outcome = await orchestrator.process_chapter(chapter.id)
            except MalformedDocument as e:
                summary.skipped_chapters.append(chapter.path)
                _log(log_callback, "epub_chapter_parse_error",
                     f"ERROR: Chapter '{chapter.path}' could not be parsed and was left unchanged: {e}")
                continue

            summary.outcomes.append(outcome)
            _log(log_callback, "chapter_end", f"Chapter {chapter.path} done", {
                'type': 'chapter_end',
                'total_chunks': outcome.total_chunks,
                'succeeded_chunks': outcome.succeeded_chunks,
                'failed_chunks': outcome.failed_chunks
            })
            _log(log_callback, "epub_progress", f"{chapter_position + 1}/{len(chapters)} chapters", {
                'type': 'progress',
                'percentage': (chapter_position + 1) / len(chapters) * 100,
                'current': chapter_position + 1,
                'total': len(chapters)
            })
            if stats_callback:
                stats_callback(summary.to_stats())

            if outcome.cancelled:
                summary.interrupted = True
                break
    finally:
        if own_client:
            await client.close()

    package.save(output_filepath)

    if progress_callback and not summary.interrupted:
        progress_callback(100)

    save_msg = f"Translated (Full/Partial) EPUB saved: '{output_filepath}'"
    _log(log_callback, "epub_save_success", save_msg)
    return summary
