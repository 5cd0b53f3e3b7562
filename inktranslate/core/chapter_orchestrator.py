"""
Chapter orchestration: segment, translate in batches, reassemble, write back
"""
from typing import Callable, Optional

from inktranslate.config import MAX_CHUNK_SIZE, CONCURRENCY_LIMIT
from .epub_package import EpubPackage
from .llm_client import TranslationClient
from .models import ChapterOutcome
from .reassembler import reassemble
from .scheduler import schedule_chunks
from .segmenter import segment_chapter


class ChapterOrchestrator:
    """
    Runs the pipeline for one chapter at a time

    Holds no per-chapter state between calls; the tagged tree, chunks and
    results of a chapter live only inside process_chapter.
    """

    def __init__(self, package: EpubPackage, client: TranslationClient,
                 max_chunk_size: int = MAX_CHUNK_SIZE,
                 concurrency_limit: int = CONCURRENCY_LIMIT,
                 progress_callback: Optional[Callable[[int], None]] = None,
                 log_callback: Optional[Callable] = None,
                 check_interruption_callback: Optional[Callable[[], bool]] = None,
                 write_partial: bool = False):
        self.package = package
        self.client = client
        self.max_chunk_size = max_chunk_size
        self.concurrency_limit = concurrency_limit
        self.progress_callback = progress_callback
        self.log_callback = log_callback
        self.check_interruption_callback = check_interruption_callback
        self.write_partial = write_partial

    async def process_chapter(self, chapter_id: str) -> ChapterOutcome:
        """
        Translate one spine chapter and write it back under the same path

        Args:
            chapter_id: Manifest id of the chapter

        Returns:
            ChapterOutcome with the final markup and chunk counts

        Raises:
            ArchiveIOError: If the chapter is unknown or cannot be read
            MalformedDocument: If the chapter markup cannot be parsed
        """
        chapter = self.package.get_chapter(chapter_id)
        original_markup = self.package.read_entry(chapter.path)

        segmented = segment_chapter(original_markup, self.max_chunk_size, self.log_callback)
        if not segmented.chunks:
            if self.log_callback:
                self.log_callback("chapter_no_units", f"No translatable text in '{chapter.path}'.")
            if self.progress_callback:
                self.progress_callback(100)
            return ChapterOutcome(
                chapter_id=chapter.id, path=chapter.path, final_markup=original_markup,
                total_chunks=0, succeeded_chunks=0, failed_chunks=0
            )

        async def translate_one(chunk):
            return await self.client.translate(chunk.text)

        batch = await schedule_chunks(
            segmented.chunks,
            translate_one,
            concurrency_limit=self.concurrency_limit,
            progress_callback=self.progress_callback,
            check_interruption_callback=self.check_interruption_callback,
            log_callback=self.log_callback
        )

        final_markup = reassemble(segmented.tagged_markup, batch.results, self.log_callback)

        if not batch.cancelled or self.write_partial:
            self.package.write_entry(chapter.path, final_markup)
        elif self.log_callback:
            self.log_callback("chapter_partial_not_written",
                              f"Chapter '{chapter.path}' interrupted; original content kept in the package.")

        return ChapterOutcome(
            chapter_id=chapter.id,
            path=chapter.path,
            final_markup=final_markup,
            total_chunks=batch.total,
            succeeded_chunks=batch.succeeded,
            failed_chunks=batch.failed,
            cancelled=batch.cancelled
        )
