"""Excel results parsing utilities."""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import openpyxl

logger = logging.getLogger('golfpoints.excel_parser')


def parse_header(cell_value: Any) -> str:
    """Header text for a cell; blank headers become ''."""
    if cell_value is None:
        return ''
    return str(cell_value).strip()


def read_score_rows(filepath: Union[str, Path], sheet_name: Optional[str] = None) -> list[dict[str, Any]]:
    """
    Read tournament results from an Excel file.

    The first row holds the headers; every later row becomes a dict of
    header -> cell value. Rows with no values are skipped, as are
    columns without a header. Header naming is left to the normalizer.

    Args:
        filepath: Path to the .xlsx file
        sheet_name: Sheet to read (default: the active sheet)

    Returns:
        List of raw row dicts, in sheet order
    """
    wb = openpyxl.load_workbook(filepath, read_only=True, data_only=True)
    try:
        ws = wb[sheet_name] if sheet_name else wb.active
        rows = ws.iter_rows(values_only=True)

        header_row = next(rows, None)
        if header_row is None:
            logger.warning(f'No header row in {filepath}')
            return []
        headers = [parse_header(value) for value in header_row]

        records = []
        for values in rows:
            if all(value is None or (isinstance(value, str) and not value.strip()) for value in values):
                continue
            record = {
                header: value
                for header, value in zip(headers, values)
                if header
            }
            records.append(record)
    finally:
        wb.close()

    logger.info(f'Read {len(records)} rows from {filepath}')
    return records
