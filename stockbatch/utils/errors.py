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

# stockbatch/utils/errors.py
"""
Exception classes for the metadata pipeline.

Fatal errors fall into three families (input, upstream, integrity) and all
abort a run. TaggingError is the per-file family: the tagging loop catches
it and carries on with the next file.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class StockBatchError(Exception):
    """Base exception for every error raised by the package."""

    kind = "internal"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "kind": self.kind,
                "type": type(self).__name__,
                "message": self.message,
                "details": self.details,
            }
        }


class CsvFormatError(StockBatchError):
    """A CSV table could not be read (bad quoting, ragged rows)."""


# Input errors

class InputError(StockBatchError):
    kind = "input"


class NoPromptsError(InputError):
    def __init__(self, message: str = "No valid prompts found."):
        super().__init__(message)


class MissingColumnError(InputError):
    def __init__(self, column: str, message: Optional[str] = None):
        self.column = column
        super().__init__(
            message or f'CSV file must contain a "{column}" column.',
            {"column": column},
        )


class ManualRecordError(InputError):
    pass


class TemplateNotFoundError(InputError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Master prompt file not found at: {path}", {"path": path})


class UnsupportedPlatformError(InputError):
    def __init__(self, platform_name: str):
        self.platform_name = platform_name
        super().__init__(
            f"Unsupported platform: {platform_name}. ExifTool cannot be located.",
            {"platform": platform_name},
        )


class ExifToolNotFoundError(InputError):
    def __init__(self, message: str = "ExifTool not found. Please install ExifTool or set EXIFTOOL_PATH."):
        super().__init__(message)


class UnknownMarketplaceError(InputError):
    def __init__(self, marketplace: str, known):
        self.marketplace = marketplace
        super().__init__(
            f"Unknown marketplace '{marketplace}'. Expected one of: {', '.join(known)}.",
            {"marketplace": marketplace},
        )


# Upstream-service errors

class UpstreamError(StockBatchError):
    kind = "upstream"


class GenerationError(UpstreamError):
    pass


class MalformedResponseError(UpstreamError):
    pass


class ArchiveError(UpstreamError):
    pass


# Per-file errors

class TaggingError(StockBatchError):
    kind = "per_file"


# Integrity errors

class RecordCountMismatchError(StockBatchError):
    kind = "integrity"

    def __init__(self, file_count: int, record_count: int):
        self.file_count = file_count
        self.record_count = record_count
        super().__init__(
            f"File count ({file_count}) and metadata count ({record_count}) mismatch.",
            {"file_count": file_count, "record_count": record_count},
        )
