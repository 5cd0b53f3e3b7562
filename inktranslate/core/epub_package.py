"""
EPUB container access: spine chapters, entry text, archive re-serialization
"""
import io
import os
import posixpath
import zipfile
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import unquote

from lxml import etree

from inktranslate.config import NAMESPACES, CHAPTER_MEDIA_TYPES
from inktranslate.utils.security import ArchiveValidator, default_validator
from inktranslate.exceptions import ArchiveIOError


CONTAINER_PATH = "META-INF/container.xml"
MIMETYPE_ENTRY = "mimetype"


@dataclass
class ChapterEntry:
    """One spine chapter: manifest id and archive path"""
    id: str
    path: str
    media_type: str = "application/xhtml+xml"


@dataclass
class BookMetadata:
    title: str = "Unknown"
    creator: str = "Unknown"
    language: str = "Unknown"


def _parse_xml_entry(data: bytes, name: str):
    parser = etree.XMLParser(recover=True, remove_blank_text=False)
    try:
        root = etree.fromstring(data, parser)
    except etree.XMLSyntaxError as e:
        raise ArchiveIOError(f"Could not parse '{name}'", details=str(e)) from e
    if root is None:
        raise ArchiveIOError(f"'{name}' is empty")
    return root


class EpubPackage:
    """
    In-memory EPUB package

    Entries are kept in archive order as raw bytes; chapters are resolved from
    the OPF spine. Writing an entry replaces its bytes, everything else
    (paths, manifest, resources) is written back untouched.
    """

    def __init__(self, entries: "OrderedDict[str, bytes]"):
        self._entries = entries
        self.opf_path = self._find_opf_path()
        self.opf_dir = posixpath.dirname(self.opf_path)
        self._opf_root = _parse_xml_entry(self._entries[self.opf_path], self.opf_path)
        self.metadata = self._extract_metadata()
        self._chapters = self._extract_spine()

    @classmethod
    def from_bytes(cls, data: bytes, validator: Optional[ArchiveValidator] = None) -> "EpubPackage":
        """
        Open an EPUB from its bytes

        Raises:
            ArchiveIOError: If the data is not a usable EPUB container
        """
        validator = validator or default_validator
        try:
            with zipfile.ZipFile(io.BytesIO(data), 'r') as zip_ref:
                validator.validate_archive(zip_ref, archive_size=len(data))
                entries = OrderedDict(
                    (info.filename, zip_ref.read(info.filename)) for info in zip_ref.infolist()
                )
        except zipfile.BadZipFile as e:
            raise ArchiveIOError("Not a valid EPUB (zip) archive", details=str(e)) from e
        return cls(entries)

    @classmethod
    def from_file(cls, epub_path: str, validator: Optional[ArchiveValidator] = None) -> "EpubPackage":
        if not os.path.exists(epub_path):
            raise ArchiveIOError(f"Input EPUB file '{epub_path}' not found.")
        try:
            with open(epub_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise ArchiveIOError(f"Could not read '{epub_path}'", details=str(e)) from e
        return cls.from_bytes(data, validator)

    def _find_opf_path(self) -> str:
        """Locate the OPF through META-INF/container.xml, else the first .opf entry"""
        if CONTAINER_PATH in self._entries:
            container_root = _parse_xml_entry(self._entries[CONTAINER_PATH], CONTAINER_PATH)
            rootfile = container_root.find('.//container:rootfile', namespaces=NAMESPACES)
            if rootfile is None:
                rootfile = container_root.find('.//rootfile')
            if rootfile is not None:
                full_path = rootfile.get('full-path')
                if full_path and full_path in self._entries:
                    return full_path

        for name in self._entries:
            if name.lower().endswith('.opf'):
                return name
        raise ArchiveIOError("CRITICAL ERROR: content.opf not found in EPUB.")

    def _extract_metadata(self) -> BookMetadata:
        metadata_el = self._opf_root.find('.//opf:metadata', namespaces=NAMESPACES)
        values = {}
        for field_name in ('title', 'creator', 'language'):
            element = None
            if metadata_el is not None:
                element = metadata_el.find(f'.//dc:{field_name}', namespaces=NAMESPACES)
            if element is not None and element.text and element.text.strip():
                values[field_name] = element.text.strip()
        return BookMetadata(**values)

    def _extract_spine(self) -> List[ChapterEntry]:
        manifest = self._opf_root.find('.//opf:manifest', namespaces=NAMESPACES)
        spine = self._opf_root.find('.//opf:spine', namespaces=NAMESPACES)
        if manifest is None or spine is None:
            raise ArchiveIOError("CRITICAL ERROR: manifest or spine missing in EPUB.")

        manifest_items: Dict[str, etree._Element] = {
            item.get('id'): item for item in manifest.findall('opf:item', namespaces=NAMESPACES)
        }

        chapters = []
        for itemref in spine.findall('opf:itemref', namespaces=NAMESPACES):
            idref = itemref.get('idref')
            item = manifest_items.get(idref)
            if item is None or not item.get('href'):
                continue
            media_type = item.get('media-type', '')
            if media_type not in CHAPTER_MEDIA_TYPES:
                continue
            path = posixpath.normpath(posixpath.join(self.opf_dir, unquote(item.get('href'))))
            chapters.append(ChapterEntry(id=idref, path=path, media_type=media_type))
        return chapters

    def list_chapters(self) -> List[ChapterEntry]:
        """Chapters in spine order"""
        return list(self._chapters)

    def get_chapter(self, chapter_id: str) -> ChapterEntry:
        for chapter in self._chapters:
            if chapter.id == chapter_id:
                return chapter
        raise ArchiveIOError(f"Chapter '{chapter_id}' is not in the spine.")

    def read_entry(self, path: str) -> str:
        if path not in self._entries:
            raise ArchiveIOError(f"Entry '{path}' not found in EPUB.")
        try:
            return self._entries[path].decode('utf-8')
        except UnicodeDecodeError as e:
            raise ArchiveIOError(f"Entry '{path}' is not UTF-8 text", details=str(e)) from e

    def write_entry(self, path: str, text: str) -> None:
        """Replace (or add) an entry's content"""
        self._entries[path] = text.encode('utf-8')

    def serialize_archive(self) -> bytes:
        """
        Build the EPUB zip: mimetype first and stored, the rest deflated in
        their original order
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as epub_zip:
            if MIMETYPE_ENTRY in self._entries:
                epub_zip.writestr(MIMETYPE_ENTRY, self._entries[MIMETYPE_ENTRY], compress_type=zipfile.ZIP_STORED)
            for name, data in self._entries.items():
                if name != MIMETYPE_ENTRY:
                    epub_zip.writestr(name, data)
        return buffer.getvalue()

    def save(self, output_path: str) -> None:
        try:
            with open(output_path, 'wb') as f_out:
                f_out.write(self.serialize_archive())
        except OSError as e:
            raise ArchiveIOError(f"ERROR writing EPUB file '{output_path}'", details=str(e)) from e
