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

# stockbatch/utils/file_utils.py
import csv
import io
import os
import re

from stockbatch.utils.errors import CsvFormatError
from stockbatch.utils.logging import log_message

SUPPORTED_ASSET_EXTENSIONS = ('.eps', '.jpg', '.jpeg', '.png', '.svg')
PROCESSED_FILES_DIR = "Processed_Files"

_DIGIT_RUN = re.compile(r'(\d+)')
_TRAILING_EXTENSION = re.compile(r'\.[^/.]+$')
_RESERVED_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')


def natural_sort_key(name):
    # Split on digit runs so "file10" sorts after "file9".
    return [int(part) if part.isdigit() else part.lower() for part in _DIGIT_RUN.split(name)]


def list_asset_files(directory):
    files = [
        f for f in os.listdir(directory)
        if os.path.isfile(os.path.join(directory, f))
        and os.path.splitext(f)[1].lower() in SUPPORTED_ASSET_EXTENSIONS
    ]
    files.sort(key=natural_sort_key)
    return files


def strip_extension(filename):
    return _TRAILING_EXTENSION.sub('', filename or '')


def sanitize_filename(filename_base):
    sanitized = _RESERVED_FILENAME_CHARS.sub('-', filename_base or '')
    sanitized = re.sub(r'\s+', ' ', sanitized)
    return sanitized.strip()


def _is_blank_row(row):
    return not row or (len(row) == 1 and not row[0].strip())


def read_csv_records(text, trim=False):
    """Parse header-having CSV text into (header, records).

    Blank lines are skipped. A row whose field count differs from the header
    raises CsvFormatError, as does broken quoting.
    """
    if text is None:
        return [], []
    if text.startswith('\ufeff'):
        text = text[1:]

    header = None
    records = []
    reader = csv.reader(io.StringIO(text), strict=True)
    try:
        for row in reader:
            if _is_blank_row(row):
                continue
            if trim:
                row = [value.strip() for value in row]
            if header is None:
                header = row
                continue
            if len(row) != len(header):
                raise CsvFormatError(
                    f"Invalid record length: expected {len(header)} fields, got {len(row)} on line {reader.line_num}",
                    {"line": reader.line_num},
                )
            records.append(dict(zip(header, row)))
    except csv.Error as e:
        raise CsvFormatError(f"{e} (line {reader.line_num})", {"line": reader.line_num}) from e

    return header or [], records


def write_csv_records(csv_path, header, records):
    csv_dir = os.path.dirname(csv_path)
    if csv_dir:
        os.makedirs(csv_dir, exist_ok=True)
    with open(csv_path, 'w', newline='', encoding='utf-8') as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=list(header), restval='', extrasaction='ignore')
        writer.writeheader()
        for record in records:
            writer.writerow(record)
    log_message(f"Wrote {len(records)} row(s) to {os.path.basename(csv_path)}", "debug")
    return csv_path
