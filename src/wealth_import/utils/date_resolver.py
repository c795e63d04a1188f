"""
Date format resolution for delimited files.

DATE_FORMATS is an ordered decision table: resolution accepts the first
format (in list order) that parses enough of the leading samples, so earlier
entries win ties. Ambiguous dd/mm vs mm/dd samples therefore resolve to the
US convention unless a sample rules it out.
"""
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from wealth_import.utils.import_errors import MalformedDate

logger = logging.getLogger(__name__)

# (label, strptime pattern) in priority order
DATE_FORMATS: List[Tuple[str, str]] = [
    ("iso", "%Y-%m-%d"),
    ("us_slash", "%m/%d/%Y"),
    ("us_slash_short_year", "%m/%d/%y"),
    ("us_dash", "%m-%d-%Y"),
    ("eu_slash", "%d/%m/%Y"),
    ("eu_dash", "%d-%m-%Y"),
    ("eu_slash_short_year", "%d/%m/%y"),
    ("dotted", "%d.%m.%Y"),
    ("iso_slash", "%Y/%m/%d"),
    ("compact", "%Y%m%d"),
    ("month_abbr", "%b %d, %Y"),
    ("month_name", "%B %d, %Y"),
    ("day_month_abbr", "%d %b %Y"),
    ("iso_timestamp", "%Y-%m-%dT%H:%M:%S"),
    ("timestamp", "%Y-%m-%d %H:%M:%S"),
]

DATE_PATTERNS: List[str] = [pattern for _, pattern in DATE_FORMATS]

DEFAULT_SAMPLE_SIZE = 10
DEFAULT_PROBE_COUNT = 5
DEFAULT_MATCH_THRESHOLD = 3


def try_parse_date(raw: str, pattern: str) -> Optional[date]:
    """Parse `raw` with a single strptime pattern, or return None."""
    try:
        return datetime.strptime(raw.strip(), pattern).date()
    except ValueError:
        return None


def resolve_date_format(samples: Sequence[str],
                        probe_count: int = DEFAULT_PROBE_COUNT,
                        threshold: int = DEFAULT_MATCH_THRESHOLD) -> Optional[str]:
    """
    Pick the date format for a column from a few raw samples.

    For each candidate in DATE_FORMATS order, count how many of the first
    `probe_count` samples parse; accept the first candidate whose count
    reaches min(threshold, number of samples).

    Args:
        samples: Raw date strings, typically the first 10 of the column
        probe_count: How many leading samples are actually tried
        threshold: Match count needed when there are at least that many samples

    Returns:
        A strptime pattern from DATE_FORMATS, or None if nothing qualifies
    """
    cleaned = [s.strip() for s in samples if s and s.strip()]
    if not cleaned:
        logger.warning("No date samples to resolve a format from")
        return None

    required = min(threshold, len(cleaned))
    probes = cleaned[:probe_count]

    for label, pattern in DATE_FORMATS:
        matches = sum(1 for sample in probes if try_parse_date(sample, pattern) is not None)
        if matches >= required:
            logger.info(f"Resolved date format '{pattern}' ({label}) from samples {probes}")
            return pattern

    logger.warning(f"Could not resolve a date format from samples {probes}")
    return None


def parse_date(raw: str, preferred_format: Optional[str] = None) -> date:
    """
    Parse a single date, trying the resolved format first and then every
    candidate in DATE_FORMATS order.

    Raises:
        MalformedDate: if no format parses the value
    """
    value = (raw or '').strip()
    if value:
        if preferred_format:
            parsed = try_parse_date(value, preferred_format)
            if parsed is not None:
                return parsed
        for pattern in DATE_PATTERNS:
            if pattern == preferred_format:
                continue
            parsed = try_parse_date(value, pattern)
            if parsed is not None:
                return parsed
    raise MalformedDate(raw)
