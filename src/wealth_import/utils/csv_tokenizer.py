"""
Delimited text tokenizer.

Splits raw text into rows of trimmed fields. A double quote toggles the
"inside quoted field" state and is not kept in the output; while inside
quotes the delimiter is literal field content. Doubled quotes are not
unescaped: each one toggles the state, so `"a ""b"" c"` reads as `a b c`.
"""
import logging
import re
from typing import List, Tuple

from wealth_import.utils.import_errors import EmptyInput

logger = logging.getLogger(__name__)

QUOTE_CHAR = '"'
LINE_BREAK = re.compile(r'\r\n|\r|\n')


def split_lines(text: str) -> List[str]:
    """Split on CR, LF or CRLF, trim each line and drop blank ones."""
    return [line.strip() for line in LINE_BREAK.split(text) if line.strip()]


def parse_line(line: str, delimiter: str = ',') -> List[str]:
    """Split one line into trimmed fields, honouring double-quote toggling."""
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == QUOTE_CHAR:
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append(''.join(current).strip())
            current = []
        else:
            current.append(char)

    fields.append(''.join(current).strip())
    return fields


def fit_row(row: List[str], width: int) -> List[str]:
    """Pad a row with empty strings or truncate it to `width` fields."""
    if len(row) < width:
        return row + [''] * (width - len(row))
    return row[:width]


def tokenize(text: str, delimiter: str = ',', has_header: bool = True) -> Tuple[List[str], List[List[str]]]:
    """
    Tokenize delimited text into a header and data rows.

    Every data row is padded or truncated to the header width so a ragged
    row never aborts the file. When `has_header` is False, headers are
    synthesized as "Column 1", "Column 2", ... from the first row's width.

    Raises:
        EmptyInput: if the text has no non-blank lines
    """
    lines = split_lines(text)
    if not lines:
        raise EmptyInput()

    if has_header:
        headers = parse_line(lines[0], delimiter)
        data_lines = lines[1:]
    else:
        first = parse_line(lines[0], delimiter)
        headers = [f"Column {i + 1}" for i in range(len(first))]
        data_lines = lines

    rows: List[List[str]] = []
    ragged = 0
    for line in data_lines:
        row = parse_line(line, delimiter)
        if len(row) != len(headers):
            ragged += 1
            row = fit_row(row, len(headers))
        rows.append(row)

    if ragged:
        logger.info(f"Adjusted {ragged} row(s) whose field count differed from the header ({len(headers)})")
    logger.debug(f"Tokenized {len(rows)} data rows with headers: {headers}")
    return headers, rows


def quote_field(value: str, delimiter: str = ',') -> str:
    """Quote a field if it contains the delimiter. Quote characters are dropped."""
    value = value.replace(QUOTE_CHAR, '')
    if delimiter in value:
        return QUOTE_CHAR + value + QUOTE_CHAR
    return value


def join_row(fields: List[str], delimiter: str = ',') -> str:
    """
    Inverse of `parse_line` for fields without quote characters. The
    tokenizer has no quote escape, so quotes inside a field do not survive.
    """
    return delimiter.join(quote_field(field, delimiter) for field in fields)
