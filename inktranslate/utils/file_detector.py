"""
Input validation and output naming for EPUB files
"""
import os


def ensure_epub_path(file_path: str) -> str:
    """
    Check that a path names an EPUB file

    Raises:
        ValueError: If the extension is not .epub
    """
    _, ext = os.path.splitext(file_path.lower())
    if ext != '.epub':
        raise ValueError(f"Unsupported file type: {ext or '(none)'}. Only .epub files are supported")
    return file_path


def generate_output_filename(input_path: str, target_language: str) -> str:
    """
    Generate output filename based on input and target language

    Args:
        input_path: Input file path
        target_language: Target language

    Returns:
        '<input base>_translated_<language>.epub'
    """
    base, _ = os.path.splitext(input_path)
    lang_suffix = target_language.lower().replace(' ', '_')
    return f"{base}_translated_{lang_suffix}.epub"
