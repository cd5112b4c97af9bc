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

# stockbatch/api/prompt_parser.py
import re

NUMBERED_LINE_PATTERN = re.compile(r'^\s*\d+\.\s*')
_NUMBERED_ANYWHERE = re.compile(r'^\s*\d+\.\s*', re.MULTILINE)
_BLANK_LINE_SPLIT = re.compile(r'\n\s*\n')
_NEWLINE_RUN = re.compile(r'\n{2,}')


def _close_block(lines, prompts):
    if not lines:
        return
    block = _NEWLINE_RUN.sub('\n', '\n'.join(lines)).strip()
    if block:
        prompts.append(block)


def parse_prompts(raw_text):
    """Split prompt text into individual prompts.

    Text without any "<n>." line is read as paragraphs separated by blank
    lines. As soon as one numbered line exists, every numbered line opens a
    new prompt and the lines below it (blank lines inside the body included)
    belong to that prompt.
    """
    cleaned = (raw_text or '').replace('\r\n', '\n').replace('\r', '\n').strip()
    if not cleaned:
        return []

    if not _NUMBERED_ANYWHERE.search(cleaned):
        blocks = (block.strip() for block in _BLANK_LINE_SPLIT.split(cleaned))
        return [block for block in blocks if block]

    prompts = []
    current = []
    for line in cleaned.split('\n'):
        if NUMBERED_LINE_PATTERN.match(line):
            _close_block(current, prompts)
            current = [line]
        elif line.strip():
            current.append(line)
        elif current:
            current.append('')
    _close_block(current, prompts)
    return prompts
