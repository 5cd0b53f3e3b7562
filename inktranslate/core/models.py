"""
Data types shared by the segmentation, scheduling and reassembly stages
"""
from dataclasses import dataclass, field
from typing import List


@dataclass
class TranslationUnit:
    """A block element selected for atomic translation"""
    id: str
    tag_name: str
    inner_markup: str


@dataclass
class Chunk:
    """One remote translation request: ordered unit ids and their tagged markup"""
    ids: List[str] = field(default_factory=list)
    text: str = ""

    def __len__(self) -> int:
        return len(self.text)


@dataclass
class TranslationResult:
    """Translated inner markup for one unit"""
    id: str
    translated_markup: str


@dataclass
class SegmentedChapter:
    """Output of the segmenter for one chapter"""
    tagged_markup: str
    units: List[TranslationUnit]
    chunks: List[Chunk]


@dataclass
class BatchResult:
    """Aggregate of one scheduled batch of chunks"""
    results: List[TranslationResult]
    total: int
    succeeded: int = 0
    failed: int = 0
    cancelled: bool = False

    @property
    def settled(self) -> int:
        return self.succeeded + self.failed


@dataclass(frozen=True)
class ChapterOutcome:
    """Final markup and chunk statistics of one processed chapter"""
    chapter_id: str
    path: str
    final_markup: str
    total_chunks: int
    succeeded_chunks: int
    failed_chunks: int
    cancelled: bool = False
