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

# stockbatch/metadata/reconciler.py
from __future__ import annotations

import re
from typing import Dict, List, NamedTuple

from stockbatch.metadata.csv_exporter import write_marketplace_csv, write_raw_ai_csv
from stockbatch.utils.errors import CsvFormatError, MalformedResponseError
from stockbatch.utils.file_utils import read_csv_records
from stockbatch.utils.logging import log_message

REMEDIATION_HINT = "Please try with fewer prompts or a more powerful model (e.g., gemini-2.5-pro)."

_CODE_FENCE = re.compile(r'^```[\w-]*[ \t]*\n(.*?)\n?```$', re.DOTALL)


class ReconciledMetadata(NamedTuple):
    raw_records: List[Dict[str, str]]
    conformed_rows: List[Dict[str, str]]


def strip_code_fence(text: str) -> str:
    """Remove a single markdown code fence wrapped around the whole response."""
    stripped = (text or "").strip()
    match = _CODE_FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


def parse_ai_response(response_text: str):
    try:
        header, records = read_csv_records(strip_code_fence(response_text), trim=True)
    except CsvFormatError as e:
        raise MalformedResponseError(
            f"AI-generated CSV is malformed. Error: {e.message}. {REMEDIATION_HINT}",
            e.details,
        ) from e
    if not records:
        raise MalformedResponseError("AI response could not be parsed or was empty.")
    return header, records


def reconcile_ai_response(response_text: str, working_dir: str, marketplace: str) -> ReconciledMetadata:
    header, records = parse_ai_response(response_text)
    log_message(f"Parsed {len(records)} metadata row(s) from AI response (columns: {', '.join(header)})")

    write_raw_ai_csv(working_dir, header, records)
    _, conformed = write_marketplace_csv(working_dir, marketplace, records, fallback_header=header)
    return ReconciledMetadata(records, conformed)
