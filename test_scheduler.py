#!/usr/bin/env python3
"""
Test script for windowed batch scheduling of chunk translations
"""

import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from inktranslate.exceptions import TranslationServiceError
from inktranslate.core.models import Chunk, TranslationResult
from inktranslate.core.scheduler import schedule_chunks


def _make_chunks(count, units_per_chunk=1):
    chunks = []
    for i in range(count):
        ids = [f"tid-{i}-{j}" for j in range(units_per_chunk)]
        chunks.append(Chunk(ids=ids, text="".join(f'<p id="{unit_id}">text</p>\n' for unit_id in ids)))
    return chunks


class RecordingTranslator:
    """Fake translate_one that tracks how many calls are in flight"""

    def __init__(self, fail_indexes=(), delay=0.01):
        self.fail_indexes = set(fail_indexes)
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = 0

    async def __call__(self, chunk):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            index = int(chunk.ids[0].split('-')[1])
            if index in self.fail_indexes:
                raise TranslationServiceError("simulated outage")
            return [TranslationResult(id=unit_id, translated_markup="texte") for unit_id in chunk.ids]
        finally:
            self.in_flight -= 1


def test_window_bound():
    """Test that no more than concurrency_limit calls are ever in flight"""
    print("=== Test 1: Concurrency bound ===")

    for limit in (1, 2, 3, 10):
        translator = RecordingTranslator()
        batch = asyncio.run(schedule_chunks(_make_chunks(7), translator, concurrency_limit=limit,
                                            log_callback=lambda key, message: None))
        print(f"limit={limit} max_in_flight={translator.max_in_flight}")
        assert translator.max_in_flight <= limit
        assert translator.max_in_flight == min(limit, 7)
        assert batch.total == 7 and batch.succeeded == 7 and batch.failed == 0
        assert len(batch.results) == 7
    print("✓ Window bound respected\n")


def test_next_window_waits_for_slowest_call():
    """Test that a window starts only after every call of the previous window settled"""
    print("=== Test 1b: Window boundaries ===")

    events = []
    delays = {0: 0.05, 1: 0.0, 2: 0.0, 3: 0.0}

    async def translate_one(chunk):
        index = int(chunk.ids[0].split('-')[1])
        events.append(f"start{index}")
        await asyncio.sleep(delays[index])
        events.append(f"end{index}")
        return [TranslationResult(id=unit_id, translated_markup="texte") for unit_id in chunk.ids]

    batch = asyncio.run(schedule_chunks(_make_chunks(4), translate_one, concurrency_limit=2,
                                        log_callback=lambda key, message: None))
    print(f"Events: {events}")

    assert batch.succeeded == 4
    assert events.index("end1") < events.index("end0"), "The fast call settles first"
    assert events.index("start2") > events.index("end0"), "Next window waits for the slow call"
    assert events.index("start3") > events.index("end0")
    print("✓ Windows run one after another\n")


def test_failures_counted():
    """Test that failed calls are counted and contribute no results"""
    print("=== Test 2: Failures ===")

    translator = RecordingTranslator(fail_indexes={1, 4})
    messages = []
    batch = asyncio.run(schedule_chunks(_make_chunks(5, units_per_chunk=2), translator, concurrency_limit=2,
                                        log_callback=lambda key, message: messages.append(key)))

    assert batch.succeeded == 3 and batch.failed == 2
    assert batch.succeeded + batch.failed == batch.total
    assert len(batch.results) == 6
    assert not any(result.id.startswith("tid-1-") for result in batch.results)
    assert messages.count("chunk_translation_error") == 2
    assert translator.calls == 5, "Failed chunks must not be retried"
    print("✓ Failures isolated\n")


def test_progress_monotone():
    """Test that progress only increases and ends at 100"""
    print("=== Test 3: Progress ===")

    progress = []
    asyncio.run(schedule_chunks(_make_chunks(3), RecordingTranslator(fail_indexes={2}), concurrency_limit=2,
                                progress_callback=progress.append,
                                log_callback=lambda key, message: None))
    print(f"Progress: {progress}")

    assert progress == sorted(progress)
    assert progress == [33, 66, 100]
    print("✓ Progress reported per settled chunk\n")


def test_incomplete_response_counts_as_success():
    """Test that a response missing some ids still counts as a successful call"""
    print("=== Test 4: Incomplete response ===")

    async def partial(chunk):
        return [TranslationResult(id=chunk.ids[0], translated_markup="texte")]

    messages = []
    batch = asyncio.run(schedule_chunks(_make_chunks(1, units_per_chunk=2), partial,
                                        log_callback=lambda key, message: messages.append(key)))
    assert batch.succeeded == 1 and batch.failed == 0
    assert [result.id for result in batch.results] == ["tid-0-0"]
    assert "chunk_partial_warning" in messages
    print("✓ Incomplete response accepted with warning\n")


def test_malformed_response_is_failure():
    """Test that a non-list response counts as a failed call"""
    print("=== Test 5: Non-list response ===")

    async def broken(chunk):
        return {"id": chunk.ids[0]}

    batch = asyncio.run(schedule_chunks(_make_chunks(2), broken, log_callback=lambda key, message: None))
    assert batch.failed == 2 and batch.succeeded == 0 and batch.results == []
    print("✓ Non-list response rejected\n")


def test_interruption():
    """Test that no chunk is dispatched once interruption is requested"""
    print("=== Test 6: Interruption ===")

    translator = RecordingTranslator()
    state = {"checks": 0}

    def should_stop():
        state["checks"] += 1
        return state["checks"] > 3

    batch = asyncio.run(schedule_chunks(_make_chunks(8), translator, concurrency_limit=2,
                                        check_interruption_callback=should_stop,
                                        log_callback=lambda key, message: None))

    assert batch.cancelled
    assert translator.calls == 3
    assert batch.succeeded == 3 and batch.total == 8
    print("✓ Interruption stops dispatching\n")


def test_edge_cases():
    """Test empty input and an invalid concurrency limit"""
    print("=== Test 7: Edge cases ===")

    batch = asyncio.run(schedule_chunks([], RecordingTranslator()))
    assert batch.total == 0 and batch.results == [] and not batch.cancelled

    try:
        asyncio.run(schedule_chunks(_make_chunks(1), RecordingTranslator(), concurrency_limit=0))
    except ValueError:
        pass
    else:
        raise AssertionError("ValueError expected for concurrency_limit=0")
    print("✓ Edge cases handled\n")


def run_all_tests():
    """Run all test functions"""
    print("Running scheduling tests...\n")

    try:
        test_window_bound()
        test_next_window_waits_for_slowest_call()
        test_failures_counted()
        test_progress_monotone()
        test_incomplete_response_counts_as_success()
        test_malformed_response_is_failure()
        test_interruption()
        test_edge_cases()

        print("\n" + "=" * 50)
        print("✓ ALL TESTS PASSED!")
        print("=" * 50)

    except AssertionError as e:
        print(f"\n✗ TEST FAILED: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"\n✗ UNEXPECTED ERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    run_all_tests()
