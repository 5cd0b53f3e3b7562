"""
Core translation modules
"""
from .segmenter import segment_chapter
from .scheduler import schedule_chunks
from .reassembler import reassemble
from .chapter_orchestrator import ChapterOrchestrator
from .epub_package import EpubPackage
from .llm_client import TranslationClient
from .epub_processor import translate_epub_file

__all__ = [
    'segment_chapter',
    'schedule_chunks',
    'reassemble',
    'ChapterOrchestrator',
    'EpubPackage',
    'TranslationClient',
    'translate_epub_file'
]
