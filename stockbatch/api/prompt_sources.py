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

# stockbatch/api/prompt_sources.py
from __future__ import annotations

import os
import time
from typing import NamedTuple, Optional, Tuple

from stockbatch.api.prompt_parser import parse_prompts
from stockbatch.utils.errors import CsvFormatError, InputError, MissingColumnError, NoPromptsError
from stockbatch.utils.file_utils import read_csv_records, write_csv_records
from stockbatch.utils.logging import log_message

PROMPT_TEXT_COLUMN = "Prompt Text"


class PromptSet(NamedTuple):
    prompts: Tuple[str, ...]
    count: int


def _read_text_file(path: str) -> str:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise InputError(f"Prompt file '{path}' is not valid UTF-8 text: {e}", {"path": path}) from e
    except OSError as e:
        raise InputError(f"Could not read prompt file '{path}': {e}", {"path": path}) from e


def _prompts_from_csv(csv_text: str):
    try:
        header, records = read_csv_records(csv_text)
    except CsvFormatError as e:
        raise InputError(f"Prompt CSV is invalid: {e.message}") from e
    column = next((name for name in header if name.lower() == PROMPT_TEXT_COLUMN.lower()), None)
    if column is None:
        raise MissingColumnError(PROMPT_TEXT_COLUMN)
    return [record[column] for record in records]


def resolve_prompts(
    inline_text: Optional[str] = None,
    text_file_path: Optional[str] = None,
    csv_file_path: Optional[str] = None,
) -> PromptSet:
    """Build the prompt list from the first source supplied.

    Priority is inline text, then a text file, then a CSV file with a
    "Prompt Text" column. CSV values are used as-is.
    """
    if inline_text:
        prompts = parse_prompts(inline_text)
        source = "inline text"
    elif text_file_path:
        prompts = parse_prompts(_read_text_file(text_file_path))
        source = os.path.basename(text_file_path)
    elif csv_file_path:
        prompts = _prompts_from_csv(_read_text_file(csv_file_path))
        source = os.path.basename(csv_file_path)
    else:
        prompts = []
        source = "nothing"

    if not prompts:
        raise NoPromptsError()
    log_message(f"Resolved {len(prompts)} prompt(s) from {source}")
    return PromptSet(tuple(prompts), len(prompts))


def default_converted_csv_name() -> str:
    return f"converted_prompts_{int(time.time() * 1000)}.csv"


def convert_txt_to_csv(txt_path: str, csv_path: Optional[str] = None) -> Tuple[str, int]:
    """Write the prompts of a text file to a one-column "Prompt Text" CSV."""
    prompts = parse_prompts(_read_text_file(txt_path))
    log_message(f"Parsed {len(prompts)} prompt(s) from {os.path.basename(txt_path)}")
    if csv_path is None:
        csv_path = os.path.join(os.path.dirname(os.path.abspath(txt_path)), default_converted_csv_name())
    write_csv_records(csv_path, [PROMPT_TEXT_COLUMN], [{PROMPT_TEXT_COLUMN: p} for p in prompts])
    return csv_path, len(prompts)
