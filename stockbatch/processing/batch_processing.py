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

# stockbatch/processing/batch_processing.py
import os
import shutil
from typing import NamedTuple, Optional

from stockbatch.metadata.exif_writer import sanitize_exif_argument
from stockbatch.metadata.marketplaces import get_field_selection
from stockbatch.utils.errors import RecordCountMismatchError
from stockbatch.utils.file_utils import PROCESSED_FILES_DIR, list_asset_files, sanitize_filename, strip_extension
from stockbatch.utils.logging import log_message

STATUS_PROCESSED = "processed"
STATUS_COPIED = "copied_without_metadata"
STATUS_FAILED = "failed"


class FileResult(NamedTuple):
    original_name: str
    output_name: str
    status: str
    error: Optional[str] = None


class TaggingFields(NamedTuple):
    title: str
    description: str
    keywords: str
    filename_base: str


def _noop_status(message):
    return None


def extract_tagging_fields(record, marketplace):
    selection = get_field_selection(marketplace)
    return TaggingFields(
        record.get(selection.title) or "",
        record.get(selection.description) or "",
        record.get(selection.keywords) or "",
        record.get(selection.filename) or "",
    )


def build_output_filename(filename_base, target_extension, fallback_base=""):
    safe_name = sanitize_filename(strip_extension(filename_base))
    if not safe_name:
        safe_name = sanitize_filename(fallback_base)
    return f"{safe_name}.{target_extension.lstrip('.')}"


def tag_and_rename_files(working_dir, records, target_extension, marketplace, tagger, status_callback=None):
    """Embed record i into file i, then move it into Processed_Files under its new name.

    Files are paired with records by natural sort order only, so the counts
    must match exactly. A file that cannot be tagged is copied untagged and
    the batch continues.
    """
    send_status = status_callback or _noop_status
    files = list_asset_files(working_dir)
    if len(files) != len(records):
        raise RecordCountMismatchError(len(files), len(records))

    output_dir = os.path.join(working_dir, PROCESSED_FILES_DIR)
    os.makedirs(output_dir, exist_ok=True)

    results = []
    total = len(files)
    for index, (original_name, record) in enumerate(zip(files, records), start=1):
        send_status(f"Processing file {index} of {total}: {original_name}")
        fields = extract_tagging_fields(record, marketplace)
        new_name = build_output_filename(fields.filename_base, target_extension, os.path.splitext(original_name)[0])
        original_path = os.path.join(working_dir, original_name)
        new_path = os.path.join(output_dir, new_name)
        if os.path.exists(new_path):
            log_message(f"{new_name} already exists in output and will be replaced", "warning")

        try:
            tagger(
                original_path,
                sanitize_exif_argument(fields.title),
                sanitize_exif_argument(fields.description),
                sanitize_exif_argument(fields.keywords),
            )
            send_status(f"Metadata injected into {original_name}")
            shutil.move(original_path, new_path)
            send_status(f"Renamed to {new_name}")
            results.append(FileResult(original_name, new_name, STATUS_PROCESSED))
        except Exception as e:
            log_message(f"Failed to process {original_name}: {e}", "error")
            send_status(f"Warning: Could not fully process {original_name}.")
            try:
                shutil.copy2(original_path, new_path)
                results.append(FileResult(original_name, new_name, STATUS_COPIED, str(e)))
            except OSError as copy_error:
                log_message(f"Failed to copy {original_name}: {copy_error}", "error")
                results.append(FileResult(original_name, new_name, STATUS_FAILED, str(copy_error)))

    processed = sum(1 for r in results if r.status == STATUS_PROCESSED)
    log_message(f"Tagging finished: {processed}/{total} file(s) tagged", "success" if processed == total else "warning")
    return results
