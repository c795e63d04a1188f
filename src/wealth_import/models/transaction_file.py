"""
File format model for imported files.
"""
import enum


class FileFormat(str, enum.Enum):
    """Enum for importable file formats"""
    CSV = "csv"
    OFX = "ofx"
    QFX = "qfx"
    QIF = "qif"

    @property
    def is_markup(self) -> bool:
        return self in (FileFormat.OFX, FileFormat.QFX)
