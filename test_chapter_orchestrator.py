#!/usr/bin/env python3
"""
Test script for the chapter pipeline and the whole-book driver, with stub
translation clients
"""

import asyncio
import re
import sys
import tempfile
from pathlib import Path

# Add the project root to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from lxml import etree

from inktranslate.config import TRANSLATE_ID_ATTRIBUTE, TranslationConfig
from inktranslate.core.chapter_orchestrator import ChapterOrchestrator
from inktranslate.core.epub_package import EpubPackage
from inktranslate.core.epub_processor import translate_epub_file
from inktranslate.exceptions import TranslationServiceError
from inktranslate.core.models import TranslationResult
from test_epub_package import build_epub_bytes, make_chapter


XHTML_NS = 'http://www.w3.org/1999/xhtml'
UNIT_PATTERN = re.compile(r'<(\w+) id="(tid-[0-9a-f]+)">(.*?)</\1>\n', re.DOTALL)


class MockTranslationClient:
    """Stub client answering from a dictionary of source text to translation"""

    def __init__(self, dictionary=None, fail_all=False, drop_last=False, fail_on=None):
        self.dictionary = dictionary or {}
        self.fail_all = fail_all
        self.fail_on = fail_on
        self.failed_payloads = []
        self.drop_last = drop_last
        self.payloads = []
        self.closed = False

    async def translate(self, payload):
        self.payloads.append(payload)
        if self.fail_all or (self.fail_on and self.fail_on in payload):
            self.failed_payloads.append(payload)
            raise TranslationServiceError("service unavailable")
        units = UNIT_PATTERN.findall(payload)
        if self.drop_last:
            units = units[:-1]
        return [TranslationResult(id=unit_id, translated_markup=self.dictionary.get(content, content))
                for _, unit_id, content in units]

    async def close(self):
        self.closed = True


def _paragraph_texts(markup):
    root = etree.fromstring(markup.encode('utf-8'))
    return ["".join(p.itertext()) for p in root.iter(f'{{{XHTML_NS}}}p')]


def test_chapter_translated():
    """Test the full segment, translate, reassemble cycle for one chapter"""
    print("=== Test 1: Chapter translated ===")

    package = EpubPackage.from_bytes(build_epub_bytes())
    client = MockTranslationClient({
        "Hello <em>world</em>!": "Bonjour <em>le monde</em> !",
        "Second line.": "Deuxième ligne.",
    })
    orchestrator = ChapterOrchestrator(package, client, max_chunk_size=1500, concurrency_limit=2,
                                       log_callback=lambda key, message, data=None: None)

    outcome = asyncio.run(orchestrator.process_chapter("ch1"))
    print(f"Final: {outcome.final_markup}")

    assert outcome.total_chunks == 1 and outcome.succeeded_chunks == 1 and outcome.failed_chunks == 0
    assert _paragraph_texts(outcome.final_markup) == ["Bonjour le monde !", "Deuxième ligne."]
    assert '<em>le monde</em>' in outcome.final_markup
    assert TRANSLATE_ID_ATTRIBUTE not in outcome.final_markup
    assert package.read_entry("OEBPS/text/chapter1.xhtml") == outcome.final_markup, "Chapter written back"
    assert "Another chapter." in package.read_entry("OEBPS/text/chapter 2.xhtml"), "Other chapters untouched"
    print("✓ Chapter translated and written back\n")


def test_partial_response():
    """Test that units missing from a response stay untranslated"""
    print("=== Test 2: Partial response ===")

    package = EpubPackage.from_bytes(build_epub_bytes())
    client = MockTranslationClient({"Hello <em>world</em>!": "Bonjour <em>le monde</em> !"}, drop_last=True)
    orchestrator = ChapterOrchestrator(package, client, log_callback=lambda key, message, data=None: None)

    outcome = asyncio.run(orchestrator.process_chapter("ch1"))
    assert outcome.succeeded_chunks == 1 and outcome.failed_chunks == 0
    assert _paragraph_texts(outcome.final_markup) == ["Bonjour le monde !", "Second line."]
    print("✓ Missing unit kept in source language\n")


def test_service_down():
    """Test that a failing service leaves the chapter content untranslated"""
    print("=== Test 3: Service failures ===")

    chapters = {
        "OEBPS/text/chapter1.xhtml": make_chapter(*[f"Paragraph {i}." for i in range(6)]),
        "OEBPS/text/chapter 2.xhtml": make_chapter("Another chapter."),
    }
    package = EpubPackage.from_bytes(build_epub_bytes(chapters))
    client = MockTranslationClient(fail_all=True)
    orchestrator = ChapterOrchestrator(package, client, max_chunk_size=80, concurrency_limit=2,
                                       log_callback=lambda key, message, data=None: None)

    outcome = asyncio.run(orchestrator.process_chapter("ch1"))
    assert outcome.total_chunks > 1
    assert outcome.failed_chunks == outcome.total_chunks and outcome.succeeded_chunks == 0
    assert _paragraph_texts(outcome.final_markup) == [f"Paragraph {i}." for i in range(6)]
    assert TRANSLATE_ID_ATTRIBUTE not in outcome.final_markup
    print("✓ Failures leave source text in place\n")


def test_one_chunk_fails():
    """Test that only the units of the failed chunk keep their source text"""
    print("=== Test 3b: One chunk fails ===")

    sources = [f"Paragraph {i}." for i in range(6)]
    chapters = {
        "OEBPS/text/chapter1.xhtml": make_chapter(*sources),
        "OEBPS/text/chapter 2.xhtml": make_chapter("Another chapter."),
    }
    package = EpubPackage.from_bytes(build_epub_bytes(chapters))
    client = MockTranslationClient({text: f"Paragraphe {i}." for i, text in enumerate(sources)},
                                   fail_on="Paragraph 2.")
    orchestrator = ChapterOrchestrator(package, client, max_chunk_size=80, concurrency_limit=2,
                                       log_callback=lambda key, message, data=None: None)

    outcome = asyncio.run(orchestrator.process_chapter("ch1"))
    assert outcome.total_chunks > 2
    assert outcome.failed_chunks == 1 and outcome.succeeded_chunks == outcome.total_chunks - 1
    assert len(client.failed_payloads) == 1

    failed_payload = client.failed_payloads[0]
    expected = [text if f">{text}<" in failed_payload else f"Paragraphe {i}."
                for i, text in enumerate(sources)]
    print(f"Expected: {expected}")
    assert "Paragraph 2." in expected and "Paragraphe 0." in expected and "Paragraphe 5." in expected
    assert _paragraph_texts(outcome.final_markup) == expected
    assert TRANSLATE_ID_ATTRIBUTE not in outcome.final_markup
    print("✓ Only the failed chunk stays untranslated\n")


def test_chapter_without_text():
    """Test that a chapter with nothing to translate is returned unchanged"""
    print("=== Test 4: Empty chapter ===")

    empty_chapter = ('<html xmlns="http://www.w3.org/1999/xhtml"><head><title>Cover</title></head>'
                     '<body><div><img src="cover.png" alt=""/></div></body></html>')
    chapters = {
        "OEBPS/text/chapter1.xhtml": empty_chapter,
        "OEBPS/text/chapter 2.xhtml": make_chapter("Another chapter."),
    }
    package = EpubPackage.from_bytes(build_epub_bytes(chapters))
    client = MockTranslationClient()
    progress = []
    orchestrator = ChapterOrchestrator(package, client, progress_callback=progress.append,
                                       log_callback=lambda key, message, data=None: None)

    outcome = asyncio.run(orchestrator.process_chapter("ch1"))
    assert outcome.final_markup == empty_chapter
    assert outcome.total_chunks == 0
    assert client.payloads == [], "No translation request for an empty chapter"
    assert progress == [100]
    print("✓ Empty chapter unchanged\n")


def test_interrupted_chapter_not_written():
    """Test that an interrupted chapter keeps its original content in the package"""
    print("=== Test 5: Interrupted chapter ===")

    chapters = {
        "OEBPS/text/chapter1.xhtml": make_chapter(*[f"Paragraph {i}." for i in range(6)]),
        "OEBPS/text/chapter 2.xhtml": make_chapter("Another chapter."),
    }
    package = EpubPackage.from_bytes(build_epub_bytes(chapters))
    original = package.read_entry("OEBPS/text/chapter1.xhtml")
    client = MockTranslationClient()
    state = {"checks": 0}

    def should_stop():
        state["checks"] += 1
        return state["checks"] > 1

    orchestrator = ChapterOrchestrator(package, client, max_chunk_size=80, concurrency_limit=1,
                                       check_interruption_callback=should_stop,
                                       log_callback=lambda key, message, data=None: None)
    outcome = asyncio.run(orchestrator.process_chapter("ch1"))

    assert outcome.cancelled
    assert outcome.succeeded_chunks == 1 and outcome.total_chunks > 1
    assert package.read_entry("OEBPS/text/chapter1.xhtml") == original
    print("✓ Interrupted chapter not written\n")


def test_translate_epub_file():
    """Test the whole-book driver from input file to output file"""
    print("=== Test 6: Whole book ===")

    client = MockTranslationClient({
        "Hello <em>world</em>!": "Bonjour <em>le monde</em> !",
        "Second line.": "Deuxième ligne.",
        "Another chapter.": "Un autre chapitre.",
    })
    progress = []
    stats = []
    logs = []

    with tempfile.TemporaryDirectory() as tmp_dir:
        input_path = Path(tmp_dir) / "book.epub"
        output_path = Path(tmp_dir) / "book_translated_french.epub"
        input_path.write_bytes(build_epub_bytes())

        summary = asyncio.run(translate_epub_file(
            str(input_path), str(output_path),
            config=TranslationConfig(source_language="English", target_language="French"),
            progress_callback=progress.append,
            log_callback=lambda key, message, data=None: logs.append(key),
            stats_callback=stats.append,
            client=client
        ))

        translated = EpubPackage.from_file(str(output_path))
        assert _paragraph_texts(translated.read_entry("OEBPS/text/chapter1.xhtml")) == \
            ["Bonjour le monde !", "Deuxième ligne."]
        assert _paragraph_texts(translated.read_entry("OEBPS/text/chapter 2.xhtml")) == ["Un autre chapitre."]
        assert translated.read_entry("OEBPS/content.opf") == \
            EpubPackage.from_file(str(input_path)).read_entry("OEBPS/content.opf"), "OPF untouched"

    assert summary.total_chunks == 2 and summary.succeeded_chunks == 2 and summary.failed_chunks == 0
    assert not summary.interrupted
    assert progress == sorted(progress) and progress[-1] == 100
    assert stats[-1]['completed_chunks'] == 2
    assert "epub_save_success" in logs
    assert not client.closed, "A client passed in is left open for the caller"
    print("✓ Book translated\n")


def test_unparsable_chapter_skipped():
    """Test that a chapter that cannot be parsed is skipped, not fatal"""
    print("=== Test 7: Unparsable chapter ===")

    chapters = {
        "OEBPS/text/chapter1.xhtml": "this is not markup at all",
        "OEBPS/text/chapter 2.xhtml": make_chapter("Another chapter."),
    }
    client = MockTranslationClient({"Another chapter.": "Un autre chapitre."})

    with tempfile.TemporaryDirectory() as tmp_dir:
        input_path = Path(tmp_dir) / "book.epub"
        output_path = Path(tmp_dir) / "out.epub"
        input_path.write_bytes(build_epub_bytes(chapters))

        summary = asyncio.run(translate_epub_file(
            str(input_path), str(output_path), config=TranslationConfig(),
            progress_callback=lambda percent: None,
            log_callback=lambda key, message, data=None: None,
            client=client
        ))
        translated = EpubPackage.from_file(str(output_path))
        assert translated.read_entry("OEBPS/text/chapter1.xhtml") == "this is not markup at all"
        assert _paragraph_texts(translated.read_entry("OEBPS/text/chapter 2.xhtml")) == ["Un autre chapitre."]

    assert summary.skipped_chapters == ["OEBPS/text/chapter1.xhtml"]
    assert summary.to_stats()['failed_chapters'] == 1
    print("✓ Unparsable chapter skipped\n")


def run_all_tests():
    """Run all test functions"""
    print("Running chapter pipeline tests...\n")

    try:
        test_chapter_translated()
        test_partial_response()
        test_service_down()
        test_one_chunk_fails()
        test_chapter_without_text()
        test_interrupted_chapter_not_written()
        test_translate_epub_file()
        test_unparsable_chapter_skipped()

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
