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

# stockbatch/processing/status.py
import math
import re

STATUS_STARTED = "Processing started..."
STATUS_SCRATCH_CREATED = "Created temporary directory..."
STATUS_EXTRACTED = "Successfully extracted source files."
STATUS_CONSTRUCTING = "Constructing prompts..."
STATUS_CALLING_AI = "Calling Gemini AI... This may take a moment."
STATUS_PARSING = "Parsing AI response and creating CSVs..."
STATUS_MANUAL_MODE = "Processing in Manual Mode..."
STATUS_READING_CSV_FILE = "Reading from provided CSV file..."
STATUS_READING_CSV_TEXT = "Reading from pasted CSV data..."
STATUS_CREATING_MARKETPLACE_CSV = "Creating marketplace CSV..."
STATUS_PACKING = "Creating final zip archive..."

# Checked in order; the first matching prefix wins.
_PROGRESS_STEPS = (
    (STATUS_STARTED, 5),
    (STATUS_SCRATCH_CREATED, 10),
    (STATUS_EXTRACTED, 20),
    (STATUS_CONSTRUCTING, 25),
    (STATUS_MANUAL_MODE, 25),
    (STATUS_CALLING_AI, 30),
    (STATUS_READING_CSV_FILE, 30),
    (STATUS_READING_CSV_TEXT, 30),
    (STATUS_PARSING, 60),
    ("Successfully parsed", 60),
    (STATUS_CREATING_MARKETPLACE_CSV, 60),
    (STATUS_PACKING, 95),
    ("Success!", 100),
)

_FILE_PROGRESS = re.compile(r"^Processing file (\d+) of (\d+)")


def records_parsed_status(count):
    return f"Successfully parsed {count} records from CSV."


def success_status(output_path):
    return f"Success! Final zip file saved to: {output_path}"


def error_status(message):
    return f"Error: {message}"


def is_error_status(message):
    return message.startswith("Error:")


def is_success_status(message):
    return message.startswith("Success!")


def estimate_progress(message):
    """Map a status line to a rough completion percentage, 0 when unknown."""
    match = _FILE_PROGRESS.match(message)
    if match:
        index, total = int(match.group(1)), int(match.group(2))
        if total <= 0:
            return 60
        return 60 + math.floor(min(index, total) / total * 30)
    for prefix, percent in _PROGRESS_STEPS:
        if message.startswith(prefix):
            return percent
    return 0
