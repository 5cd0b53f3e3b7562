"""
Chapter segmentation: select translation units and group them into chunks
"""
import uuid
from typing import Callable, List, Optional, Set, Tuple

from inktranslate.config import (
    BLOCK_TAGS, IGNORED_TAGS, MAX_CHUNK_SIZE, TRANSLATE_ID_ATTRIBUTE
)
from .markup import (
    find_body, has_xml_declaration, inner_markup, local_name, parse_markup,
    serialize_document, text_content
)
from .models import Chunk, SegmentedChapter, TranslationUnit


def generate_unit_id(used_ids: Set[str]) -> str:
    """Return a fresh id not present in used_ids, and record it"""
    while True:
        unit_id = f"tid-{uuid.uuid4().hex[:9]}"
        if unit_id not in used_ids:
            used_ids.add(unit_id)
            return unit_id


class ChunkBuilder:
    """
    Accumulates tagged unit fragments into size-bounded chunks

    A fragment is appended to the open chunk unless that would push it past
    max_chunk_size while it already holds a unit, in which case the chunk is
    closed first. A single fragment is never split, so a chunk only exceeds
    the budget when it contains exactly one oversized unit.
    """

    def __init__(self, max_chunk_size: int = MAX_CHUNK_SIZE):
        self.max_chunk_size = max_chunk_size
        self.chunks: List[Chunk] = []
        self._current = Chunk()

    def add(self, unit_id: str, fragment: str) -> None:
        if self._current.ids and len(self._current.text) + len(fragment) > self.max_chunk_size:
            self._close()
        self._current.ids.append(unit_id)
        self._current.text += fragment

    def _close(self) -> None:
        if self._current.ids:
            self.chunks.append(self._current)
        self._current = Chunk()

    def finish(self) -> List[Chunk]:
        self._close()
        return self.chunks


def _format_unit_fragment(tag_name: str, unit_id: str, content: str) -> str:
    return f'<{tag_name} id="{unit_id}">{content}</{tag_name}>\n'


def _collect_units_recursive(element, builder, units, used_ids):
    """
    Depth-first walk selecting translation units

    Args:
        element: lxml element to visit
        builder: ChunkBuilder receiving the tagged fragments
        units: List of TranslationUnit to append to
        used_ids: Ids already handed out in this chapter
    """
    tag_name = local_name(element)
    if tag_name is None or tag_name in IGNORED_TAGS:
        return

    if tag_name in BLOCK_TAGS and text_content(element).strip():
        unit_id = generate_unit_id(used_ids)
        element.set(TRANSLATE_ID_ATTRIBUTE, unit_id)
        content = inner_markup(element)
        units.append(TranslationUnit(id=unit_id, tag_name=tag_name, inner_markup=content))
        builder.add(unit_id, _format_unit_fragment(tag_name, unit_id, content))
        # The block is atomic: inline formatting inside it stays in one request
        return

    # Generic containers and empty blocks are transparent
    for child in element:
        _collect_units_recursive(child, builder, units, used_ids)


def segment_tree(root, max_chunk_size: int = MAX_CHUNK_SIZE) -> Tuple[List[TranslationUnit], List[Chunk]]:
    """
    Tag the translation units of a parsed chapter in place and chunk them

    Args:
        root: Root element of the chapter document
        max_chunk_size: Character budget per chunk

    Returns:
        tuple: (units, chunks), both in document order
    """
    body = find_body(root)
    if body is None:
        return [], []

    builder = ChunkBuilder(max_chunk_size)
    units: List[TranslationUnit] = []
    used_ids: Set[str] = set()
    for child in body:
        _collect_units_recursive(child, builder, units, used_ids)
    return units, builder.finish()


def segment_chapter(markup: str, max_chunk_size: int = MAX_CHUNK_SIZE,
                    log_callback: Optional[Callable] = None) -> SegmentedChapter:
    """
    Parse a chapter, tag its translation units and split them into chunks

    Args:
        markup: Raw chapter markup
        max_chunk_size: Character budget per chunk
        log_callback: Logging callback

    Returns:
        SegmentedChapter with the tagged markup, units and chunks. When no unit
        is found the tagged markup is the input unchanged.

    Raises:
        MalformedDocument: If the markup cannot be parsed
    """
    if not markup or not markup.strip():
        return SegmentedChapter(tagged_markup=markup, units=[], chunks=[])

    root = parse_markup(markup)
    units, chunks = segment_tree(root, max_chunk_size)
    if not units:
        return SegmentedChapter(tagged_markup=markup, units=[], chunks=[])

    oversized = sum(1 for chunk in chunks if len(chunk) > max_chunk_size)
    if log_callback:
        log_callback("segment_done",
                     f"{len(units)} translation units grouped into {len(chunks)} chunks "
                     f"(max {max_chunk_size} chars).")
        if oversized:
            log_callback("segment_oversized_warning",
                         f"WARNING: {oversized} chunk(s) hold a single unit larger than {max_chunk_size} chars.")

    tagged_markup = serialize_document(root, xml_declaration=has_xml_declaration(markup))
    return SegmentedChapter(tagged_markup=tagged_markup, units=units, chunks=chunks)
