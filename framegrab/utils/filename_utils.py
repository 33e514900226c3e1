"""
Filename utility functions for storage keys.

This module provides utilities for:
- Sanitizing ids so they can never escape the storage directories
- Normalizing file extensions
- Building deterministic {id}{ext} file names
- Matching artifact file names back to their owning id
"""

import os
import unicodedata


# Ids are cut before the extension is appended, so a name never loses its extension
MAX_ID_LENGTH = 180
MAX_EXTENSION_LENGTH = 10


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to be safe for filesystem while preserving Unicode."""
    # Normalize Unicode characters
    filename = unicodedata.normalize('NFC', filename)
    # Replace path separators and other problematic characters
    filename = filename.replace('/', '-').replace('\\', '-')
    filename = filename.replace(':', '-').replace('*', '-')
    filename = filename.replace('?', '-').replace('"', '-')
    filename = filename.replace('<', '-').replace('>', '-')
    filename = filename.replace('|', '-').replace('\0', '-')
    # Remove leading/trailing spaces and dots
    filename = filename.strip('. ')
    # Limit length to prevent filesystem issues
    if len(filename) > 200:
        filename = filename[:200]
    return filename or 'file'


def normalize_extension(extension: str, default: str = '.jpg') -> str:
    """
    Return a lowercase extension with a leading dot.
    Empty or missing extensions fall back to default.

    Examples:
        "PNG" -> ".png", ".jpeg" -> ".jpeg", "" -> ".jpg"
    """
    extension = (extension or '').strip().lower().lstrip('.')
    # Alphanumerics only, so an extension can't smuggle in separators
    extension = ''.join(c for c in extension if c.isalnum())[:MAX_EXTENSION_LENGTH]
    return f'.{extension}' if extension else default


def extension_from_filename(filename: str, default: str = '.jpg') -> str:
    """Extension of an uploaded file's original name, normalized."""
    return normalize_extension(os.path.splitext(filename or '')[1], default)


def sanitize_id(file_id: str) -> str:
    """Sanitized id, truncated to MAX_ID_LENGTH. The stem of every artifact file name."""
    return sanitize_filename(file_id)[:MAX_ID_LENGTH]


def build_file_name(file_id: str, extension: str) -> str:
    """Create file name: {id}{ext}. Example: ("abc", ".jpg") -> "abc.jpg"."""
    return f"{sanitize_id(file_id)}{extension}"


def matches_id_prefix(filename: str, file_id: str) -> bool:
    """
    True if filename belongs to file_id: the id followed by '.' (exact
    name plus extension) or '-' (suffixed regeneration, e.g. id-1700000000.jpg).
    """
    file_id = sanitize_id(file_id)
    if not filename.startswith(file_id):
        return False
    rest = filename[len(file_id):]
    return rest[:1] in ('.', '-')
