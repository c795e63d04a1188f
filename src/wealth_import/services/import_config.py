"""
Import configuration settings.

Tunable values for the import pipeline. Defaults match the behavior callers
expect; each can be overridden through a WEALTH_IMPORT_* environment variable.
"""
import os
from dataclasses import dataclass


@dataclass
class ImportConfig:
    """Configuration class for file import settings."""

    # Delimited files
    delimiter: str = ','
    date_sample_size: int = 10  # Leading date values collected for format resolution
    date_probe_count: int = 5  # Samples actually tried against each format
    date_match_threshold: int = 3  # Matches needed, capped at the sample count

    # Decoding
    fallback_encoding: str = 'cp1252'

    # Reporting
    max_warnings: int = 50
    progress_interval: int = 100  # Rows between progress callbacks

    # Synthesized accounts and records
    default_institution: str = "Imported"
    default_currency: str = "USD"
    unknown_payee: str = "Unknown"

    @classmethod
    def from_environment(cls) -> 'ImportConfig':
        """
        Create configuration from environment variables with fallback to defaults.

        Environment variables:
        - WEALTH_IMPORT_DELIMITER
        - WEALTH_IMPORT_DATE_SAMPLE_SIZE
        - WEALTH_IMPORT_DATE_PROBE_COUNT
        - WEALTH_IMPORT_DATE_MATCH_THRESHOLD
        - WEALTH_IMPORT_FALLBACK_ENCODING
        - WEALTH_IMPORT_MAX_WARNINGS
        - WEALTH_IMPORT_PROGRESS_INTERVAL
        - WEALTH_IMPORT_DEFAULT_INSTITUTION
        - WEALTH_IMPORT_DEFAULT_CURRENCY
        - WEALTH_IMPORT_UNKNOWN_PAYEE
        """
        return cls(
            delimiter=os.getenv('WEALTH_IMPORT_DELIMITER', ','),
            date_sample_size=int(os.getenv('WEALTH_IMPORT_DATE_SAMPLE_SIZE', 10)),
            date_probe_count=int(os.getenv('WEALTH_IMPORT_DATE_PROBE_COUNT', 5)),
            date_match_threshold=int(os.getenv('WEALTH_IMPORT_DATE_MATCH_THRESHOLD', 3)),
            fallback_encoding=os.getenv('WEALTH_IMPORT_FALLBACK_ENCODING', 'cp1252'),
            max_warnings=int(os.getenv('WEALTH_IMPORT_MAX_WARNINGS', 50)),
            progress_interval=int(os.getenv('WEALTH_IMPORT_PROGRESS_INTERVAL', 100)),
            default_institution=os.getenv('WEALTH_IMPORT_DEFAULT_INSTITUTION', "Imported"),
            default_currency=os.getenv('WEALTH_IMPORT_DEFAULT_CURRENCY', "USD"),
            unknown_payee=os.getenv('WEALTH_IMPORT_UNKNOWN_PAYEE', "Unknown"),
        )
