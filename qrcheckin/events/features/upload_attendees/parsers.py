"""Read uploaded attendee lists (CSV or Excel) into header-normalised rows."""

import csv
import io
import re
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from qrcheckin.events.dtos import InvalidUploadError, UnsupportedUploadError

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx",)

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_header(header: object) -> str:
    """'Adult-Vegetarian ' -> 'adult_vegetarian'."""
    return _NON_ALNUM.sub("_", str(header or "").strip().lower()).strip("_")


def _cell_to_str(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_csv(content: bytes) -> list[dict[str, str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidUploadError("CSV file must be UTF-8 encoded") from e

    reader = csv.reader(io.StringIO(text))
    return _rows_from_table(list(reader))


def parse_excel(content: bytes) -> list[dict[str, str]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError) as e:
        raise InvalidUploadError(f"Could not read Excel file: {e}") from e

    try:
        worksheet = workbook.worksheets[0]
        table = [[_cell_to_str(cell) for cell in row] for row in worksheet.iter_rows(values_only=True)]
    finally:
        workbook.close()
    return _rows_from_table(table)


def _rows_from_table(table: list[list[str]]) -> list[dict[str, str]]:
    # the first non-empty line is the header
    while table and not any(cell.strip() for cell in table[0]):
        table.pop(0)
    if not table:
        raise InvalidUploadError("No data found in file")

    headers = [normalize_header(cell) for cell in table[0]]
    rows = []
    for values in table[1:]:
        if not any(value.strip() for value in values):
            continue
        rows.append(
            {
                header: value.strip()
                for header, value in zip(headers, values)
                if header
            }
        )
    if not rows:
        raise InvalidUploadError("No data found in file")
    return rows


def parse_upload(filename: str, content: bytes) -> list[dict[str, str]]:
    """
    Parse an uploaded attendee list.

    Returns one dict per non-empty data row, keyed by normalised header.
    Raises UnsupportedUploadError for unknown file types and InvalidUploadError
    for files that cannot be read.
    """
    lowered = (filename or "").lower()
    if lowered.endswith(CSV_EXTENSIONS):
        return parse_csv(content)
    if lowered.endswith(EXCEL_EXTENSIONS):
        return parse_excel(content)
    raise UnsupportedUploadError("Invalid file type. Use CSV or Excel.")
