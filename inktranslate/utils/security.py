"""
Security utilities for EPUB archive validation
"""
import posixpath
import re
import zipfile
from typing import Optional

from inktranslate.exceptions import ArchiveIOError


class SecurityError(ArchiveIOError):
    """Archive rejected by a safety check"""
    pass


class ArchiveValidator:
    """Checks an EPUB container before any entry is extracted"""

    # Maximum archive size (100MB)
    MAX_FILE_SIZE: int = 100 * 1024 * 1024

    # Maximum total uncompressed size (1GB)
    MAX_UNCOMPRESSED_SIZE: int = 1024 * 1024 * 1024

    # Beyond this ratio an entry is treated as a decompression bomb
    MAX_COMPRESSION_RATIO: int = 100
    RATIO_CHECK_MIN_SIZE: int = 1024 * 1024

    MAX_ENTRIES: int = 10000

    _drive_pattern = re.compile(r'^[A-Za-z]:')

    def validate_size(self, archive_size: int) -> None:
        if archive_size > self.MAX_FILE_SIZE:
            raise SecurityError(
                f"File too large: {archive_size/1024/1024:.1f}MB. Maximum allowed: {self.MAX_FILE_SIZE/1024/1024:.0f}MB")

    def validate_entry_name(self, name: str) -> None:
        """Reject absolute paths, drive letters and parent-directory escapes"""
        normalized = name.replace('\\', '/')
        if normalized.startswith('/') or self._drive_pattern.match(normalized):
            raise SecurityError("Absolute path in archive", details=name)
        if '..' in posixpath.normpath(normalized).split('/'):
            raise SecurityError("Path traversal attempt in archive", details=name)

    def validate_archive(self, zip_file: zipfile.ZipFile, archive_size: Optional[int] = None) -> None:
        """
        Run every check on an opened archive

        Raises:
            SecurityError: On the first failed check
        """
        if archive_size is not None:
            self.validate_size(archive_size)

        infos = zip_file.infolist()
        if len(infos) > self.MAX_ENTRIES:
            raise SecurityError(f"Too many entries in archive: {len(infos)}")

        total_uncompressed = 0
        for info in infos:
            self.validate_entry_name(info.filename)
            total_uncompressed += info.file_size
            if (info.file_size > self.RATIO_CHECK_MIN_SIZE and info.compress_size
                    and info.file_size / info.compress_size > self.MAX_COMPRESSION_RATIO):
                raise SecurityError("Suspicious compression ratio", details=info.filename)

        if total_uncompressed > self.MAX_UNCOMPRESSED_SIZE:
            raise SecurityError(f"Uncompressed content too large: {total_uncompressed/1024/1024:.0f}MB")


default_validator = ArchiveValidator()
