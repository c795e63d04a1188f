"""
File analyzer utilities: format detection from the file name and text
decoding of the raw bytes.
"""
import logging
import os
from typing import Tuple

from wealth_import.models.transaction_file import FileFormat
from wealth_import.utils.import_errors import EmptyInput, UndecodableEncoding, UnsupportedFormat

logger = logging.getLogger(__name__)

PRIMARY_ENCODING = 'utf-8-sig'
DEFAULT_FALLBACK_ENCODING = 'cp1252'


def detect_format_from_extension(filename: str) -> FileFormat:
    """
    Detect file format based on file extension.

    Args:
        filename: Name or path of the file

    Returns:
        FileFormat enum value

    Raises:
        UnsupportedFormat: if the extension maps to no importable format
    """
    _, extension = os.path.splitext(filename)
    extension = extension.lower()[1:] if extension else ""

    format_map = {
        'csv': FileFormat.CSV,
        'ofx': FileFormat.OFX,
        'qfx': FileFormat.QFX,
        'qif': FileFormat.QIF,
    }

    file_format = format_map.get(extension)
    if file_format is None:
        raise UnsupportedFormat(filename)
    return file_format


def file_stem(filename: str) -> str:
    """File name without directory or extension, used to name new accounts."""
    return os.path.splitext(os.path.basename(filename))[0]


def decode_content(content: bytes, fallback_encoding: str = DEFAULT_FALLBACK_ENCODING) -> Tuple[str, str]:
    """
    Decode file bytes, trying UTF-8 (ignoring a byte order mark) and then the
    fallback single-byte encoding.

    Returns:
        Tuple of (text, encoding used)

    Raises:
        EmptyInput: if there are no bytes
        UndecodableEncoding: if neither encoding can decode the bytes
    """
    if not content:
        raise EmptyInput()

    for encoding in (PRIMARY_ENCODING, fallback_encoding):
        try:
            text = content.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            logger.info(f"Content is not valid {encoding}")
            continue
        return text, encoding

    raise UndecodableEncoding(f"{PRIMARY_ENCODING}, {fallback_encoding}")
