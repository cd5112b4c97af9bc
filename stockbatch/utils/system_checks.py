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

# stockbatch/utils/system_checks.py
import os
import platform
import shutil
import stat
import subprocess
import sys

from stockbatch.utils.errors import ExifToolNotFoundError, UnsupportedPlatformError
from stockbatch.utils.logging import log_message

SUPPORTED_SYSTEMS = ("Windows", "Darwin", "Linux")
MACOS_EXIFTOOL_PATHS = ("/opt/homebrew/bin/exiftool", "/usr/local/bin/exiftool")


def creation_flags():
    return subprocess.CREATE_NO_WINDOW if platform.system() == "Windows" else 0


def _get_base_dir():
    if getattr(sys, 'frozen', False):
        return getattr(sys, '_MEIPASS', os.path.dirname(sys.executable))
    script_dir = os.path.dirname(os.path.abspath(__file__))
    return os.path.dirname(os.path.dirname(script_dir))


def _bundled_exiftool_path(system_name, base_dir):
    vendor_dir = os.path.join(base_dir, "vendor")
    if system_name == "Windows":
        return os.path.join(vendor_dir, "exiftool-win", "exiftool.exe")
    if system_name == "Darwin":
        return os.path.join(vendor_dir, "exiftool-mac", "exiftool")
    return None


def _ensure_executable(path):
    try:
        if not os.access(path, os.X_OK):
            mode = os.stat(path).st_mode
            os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        log_message(f"Could not mark {path} executable: {e}", "warning")


def exiftool_version(path):
    try:
        result = subprocess.run([path, "-ver"], check=True, capture_output=True, text=True,
                                timeout=15, creationflags=creation_flags())
        return result.stdout.strip()
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
        log_message(f"ExifTool candidate failed: {path} - {e}", "debug")
        return None


def find_exiftool(explicit_path=None, base_dir=None):
    """Locate a working ExifTool executable.

    Order: explicit path or EXIFTOOL_PATH, the bundled vendor copy, the usual
    Homebrew locations on macOS, then PATH.
    """
    system_name = platform.system()
    if system_name not in SUPPORTED_SYSTEMS:
        raise UnsupportedPlatformError(system_name)

    candidates = []
    explicit_path = explicit_path or os.environ.get("EXIFTOOL_PATH")
    if explicit_path:
        candidates.append(explicit_path)

    bundled = _bundled_exiftool_path(system_name, base_dir or _get_base_dir())
    if bundled and os.path.exists(bundled):
        if system_name == "Darwin":
            _ensure_executable(bundled)
        candidates.append(bundled)
    elif bundled:
        log_message(f"Bundled ExifTool not found at: {bundled}", "debug")

    if system_name == "Darwin":
        candidates.extend(p for p in MACOS_EXIFTOOL_PATHS if os.path.exists(p))

    on_path = shutil.which("exiftool")
    if on_path:
        candidates.append(on_path)

    for candidate in candidates:
        version = exiftool_version(candidate)
        if version:
            log_message(f"Using ExifTool at: {candidate} (version: {version})")
            return candidate

    raise ExifToolNotFoundError()
