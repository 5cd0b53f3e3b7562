"""
Batch scheduling of chunk translation requests in bounded concurrent windows
"""
import asyncio
from typing import Awaitable, Callable, List, Optional

from tqdm.auto import tqdm

from inktranslate.config import CONCURRENCY_LIMIT
from inktranslate.exceptions import TranslationServiceError
from .models import BatchResult, Chunk, TranslationResult


TranslateOne = Callable[[Chunk], Awaitable[List[TranslationResult]]]


def _log(log_callback, key, message):
    if log_callback:
        log_callback(key, message)
    else:
        tqdm.write(message)


async def _translate_settled(index, chunk, translate_one):
    """
    Run one translation call and report its outcome instead of raising

    Returns:
        tuple: (index, chunk, results or None, error or None)
    """
    try:
        results = await translate_one(chunk)
    except asyncio.CancelledError:
        raise
    except Exception as e:
        return index, chunk, None, e

    if not isinstance(results, list):
        return index, chunk, None, TranslationServiceError(
            "Translation response is not an array", details=type(results).__name__)
    if not all(isinstance(result, TranslationResult) for result in results):
        return index, chunk, None, TranslationServiceError(
            "Translation response contains malformed items")
    return index, chunk, results, None


def _fold_outcome(batch, index, chunk, results, error, log_callback):
    """Merge one settled call into the batch accumulator"""
    if error is not None:
        batch.failed += 1
        _log(log_callback, "chunk_translation_error",
             f"ERROR translating chunk {index + 1}/{batch.total} ({len(chunk.ids)} units). "
             f"Original content preserved. {type(error).__name__}: {error}")
        return

    batch.succeeded += 1
    batch.results.extend(results)
    returned_ids = {result.id for result in results}
    missing_ids = [unit_id for unit_id in chunk.ids if unit_id not in returned_ids]
    if missing_ids:
        # Counted as succeeded: the call itself went through
        _log(log_callback, "chunk_partial_warning",
             f"WARNING: Chunk {index + 1}/{batch.total} response omitted {len(missing_ids)} "
             f"of {len(chunk.ids)} units; they stay untranslated.")


async def schedule_chunks(chunks: List[Chunk], translate_one: TranslateOne,
                          concurrency_limit: int = CONCURRENCY_LIMIT,
                          progress_callback: Optional[Callable[[int], None]] = None,
                          check_interruption_callback: Optional[Callable[[], bool]] = None,
                          log_callback: Optional[Callable] = None) -> BatchResult:
    """
    Translate chunks in sequential windows of concurrent calls

    A window of at most concurrency_limit calls is issued at once and must
    fully settle before the next window starts. Failed calls are counted and
    contribute no results; nothing is retried. Progress is reported as an
    integer percentage after every settled call.

    Args:
        chunks: Chunks in document order
        translate_one: Coroutine function translating one chunk
        concurrency_limit: Maximum number of calls in flight
        progress_callback: Called with the percentage of settled chunks
        check_interruption_callback: Checked before each call is issued; once
            it returns True no further chunks are dispatched
        log_callback: Logging callback

    Returns:
        BatchResult with all collected results and the chunk counts
    """
    if concurrency_limit < 1:
        raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")

    batch = BatchResult(results=[], total=len(chunks))

    for window_start in range(0, len(chunks), concurrency_limit):
        window = chunks[window_start:window_start + concurrency_limit]

        tasks = []
        for offset, chunk in enumerate(window):
            if check_interruption_callback and check_interruption_callback():
                batch.cancelled = True
                _log(log_callback, "translation_interrupted",
                     f"Translation interrupted before chunk {window_start + offset + 1}/{batch.total}.")
                break
            tasks.append(asyncio.ensure_future(
                _translate_settled(window_start + offset, chunk, translate_one)))

        try:
            for next_settled in asyncio.as_completed(tasks):
                index, chunk, results, error = await next_settled
                _fold_outcome(batch, index, chunk, results, error, log_callback)
                if progress_callback and batch.total > 0:
                    progress_callback(batch.settled * 100 // batch.total)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        if batch.cancelled:
            break

    return batch
