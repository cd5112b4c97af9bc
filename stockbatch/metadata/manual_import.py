# Stock Batch Metadata
# Copyright (C) 2025 Riiicil
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

# stockbatch/metadata/manual_import.py
"""
Manual mode: turn an existing metadata CSV into the record shape the AI path
produces, so tagging and renaming do not care where the metadata came from.

Each normalized record carries the value under every marketplace's column
name at once (Freepik's lower-cased filename and category included), so any
marketplace's field lookups find what they need.
"""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

from stockbatch.metadata.csv_exporter import write_marketplace_csv
from stockbatch.utils.errors import CsvFormatError, ManualRecordError
from stockbatch.utils.file_utils import read_csv_records
from stockbatch.utils.logging import log_message

FILENAME_ALIASES = ("Filename", "filename")
TITLE_ALIASES = ("Document_Title_For_Exif", "Title", "title")
DESCRIPTION_ALIASES = ("Long_Description_For_Exif", "description")
KEYWORDS_ALIASES = ("Keywords", "keywords", "tags")
CATEGORY_ALIASES = ("Category", "category")

MISSING_REQUIRED_MESSAGE = 'CSV for manual mode must contain at least "Filename" and "Title" columns.'


def _first_value(row: Mapping[str, str], aliases: Sequence[str]) -> Optional[str]:
    for alias in aliases:
        value = row.get(alias)
        if value:
            return value
    return None


def normalize_row(row: Mapping[str, str], row_number: int = 1) -> Dict[str, str]:
    filename = _first_value(row, FILENAME_ALIASES)
    title = _first_value(row, TITLE_ALIASES)
    if not filename or not title:
        raise ManualRecordError(
            f"{MISSING_REQUIRED_MESSAGE} (row {row_number})",
            {"row": row_number},
        )
    description = _first_value(row, DESCRIPTION_ALIASES) or ""
    keywords = _first_value(row, KEYWORDS_ALIASES) or ""
    category = _first_value(row, CATEGORY_ALIASES) or ""

    return {
        "Filename": filename,
        "filename": filename.lower(),
        "Document_Title_For_Exif": title,
        "Long_Description_For_Exif": description,
        "Keywords": keywords,
        "tags": keywords,
        "Shutterstock_Platform_Title": title,
        "Freepik_Platform_Title": title,
        "AdobeStock_Platform_Title": title,
        "Title": title,
        "Description": description,
        "Category": category,
        "category": category.lower(),
        "Categories": category,
        "Editorial": "",
        "Mature Content": "",
        "Illustration": "",
    }


def parse_manual_csv(csv_text: str) -> List[Dict[str, str]]:
    try:
        _, rows = read_csv_records(csv_text)
    except CsvFormatError as e:
        raise ManualRecordError(f"CSV data is empty or invalid. {e.message}", e.details) from e
    if not rows:
        raise ManualRecordError("CSV data is empty or invalid.")
    return [normalize_row(row, index) for index, row in enumerate(rows, start=1)]


def normalize_manual_records(csv_text: str, working_dir: str, marketplace: str) -> List[Dict[str, str]]:
    records = parse_manual_csv(csv_text)
    log_message(f"Normalized {len(records)} manual metadata record(s)")
    csv_path, _ = write_marketplace_csv(working_dir, marketplace, records)
    if csv_path is None:
        log_message(f"No CSV mapping for marketplace '{marketplace}', upload CSV skipped", "warning")
    return records
