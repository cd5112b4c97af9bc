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

# stockbatch/metadata/exif_writer.py
import os
import re
import subprocess

from stockbatch.utils.errors import TaggingError
from stockbatch.utils.logging import log_message
from stockbatch.utils.system_checks import creation_flags, find_exiftool

EXIFTOOL_TIMEOUT = 30
KEYWORD_SEPARATOR = ","

_DISALLOWED_ARG_CHARS = re.compile(r'[^a-zA-Z0-9\s.,!?-]')


def sanitize_exif_argument(value):
    # Lossy on purpose: anything outside the allow-list is dropped.
    if not isinstance(value, str):
        return ""
    return _DISALLOWED_ARG_CHARS.sub('', value)


def build_exiftool_command(exiftool_path, file_path, title, description, keywords):
    title = sanitize_exif_argument(title)
    description = sanitize_exif_argument(description)
    keywords = sanitize_exif_argument(keywords)
    return [
        exiftool_path,
        "-overwrite_original",
        f"-XMP-dc:Title={title}",
        f"-IPTC:ObjectName={title}",
        f"-XMP-dc:Description={description}",
        f"-IPTC:Caption-Abstract={description}",
        "-sep", KEYWORD_SEPARATOR,
        f"-IPTC:Keywords={keywords}",
        f"-XMP-dc:Subject={keywords}",
        file_path,
    ]


class ExifToolTagger:
    """Writes title, description and keywords into a file in place."""

    def __init__(self, exiftool_path=None, timeout=EXIFTOOL_TIMEOUT):
        self.exiftool_path = exiftool_path
        self.timeout = timeout

    def resolve(self):
        if not self.exiftool_path:
            self.exiftool_path = find_exiftool()
        return self.exiftool_path

    def __call__(self, file_path, title, description, keywords):
        command = build_exiftool_command(self.resolve(), file_path, title, description, keywords)
        basename = os.path.basename(file_path)
        try:
            result = subprocess.run(command, check=False, capture_output=True, text=True,
                                    encoding='utf-8', errors='replace', timeout=self.timeout,
                                    creationflags=creation_flags())
        except subprocess.TimeoutExpired as e:
            raise TaggingError(f"ExifTool timed out after {self.timeout}s on {basename}") from e
        except OSError as e:
            raise TaggingError(f"ExifTool could not be started for {basename}: {e}") from e

        if result.returncode != 0:
            raise TaggingError(
                f"ExifTool failed on {basename} (Code: {result.returncode}): {result.stderr.strip()}",
                {"returncode": result.returncode},
            )
        if result.stderr.strip():
            log_message(f"ExifTool warning for {basename}: {result.stderr.strip()}", "warning")
        log_message(f"Metadata written to {basename}", "debug")
