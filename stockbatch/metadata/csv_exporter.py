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

# stockbatch/metadata/csv_exporter.py
import os

from stockbatch.metadata.marketplaces import conform_records, get_schema, schema_headers
from stockbatch.utils.file_utils import write_csv_records
from stockbatch.utils.logging import log_message

RAW_OUTPUT_DIR = "CSV_Raw_AI_Output"
RAW_OUTPUT_FILENAME = "raw_ai_output.csv"
PROCESSED_OUTPUT_DIR = "CSV_Processed_Output"


def marketplace_csv_filename(marketplace):
    return f"{marketplace}_metadata_for_upload.csv"


def raw_csv_path(working_dir):
    return os.path.join(working_dir, RAW_OUTPUT_DIR, RAW_OUTPUT_FILENAME)


def marketplace_csv_path(working_dir, marketplace):
    return os.path.join(working_dir, PROCESSED_OUTPUT_DIR, marketplace_csv_filename(marketplace))


def write_raw_ai_csv(working_dir, header, records):
    csv_path = raw_csv_path(working_dir)
    write_csv_records(csv_path, header, records)
    log_message(f"Raw AI output saved ({len(records)} rows)")
    return csv_path


def write_marketplace_csv(working_dir, marketplace, records, fallback_header=None):
    """Project records through the marketplace schema and write the upload CSV.

    Without a registered schema the records are written unchanged under
    fallback_header; with neither, nothing is written and None is returned.
    """
    schema = get_schema(marketplace)
    if schema is not None:
        header = schema_headers(schema)
        rows = conform_records(records, schema)
    elif fallback_header is not None:
        log_message(f"No CSV mapping for marketplace '{marketplace}', writing records unchanged", "warning")
        header = list(fallback_header)
        rows = [dict(record) for record in records]
    else:
        return None, []

    csv_path = marketplace_csv_path(working_dir, marketplace)
    write_csv_records(csv_path, header, rows)
    log_message(f"Created {os.path.basename(csv_path)} ({len(rows)} rows)")
    return csv_path, rows
