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

# stockbatch/utils/archive.py
import io
import os
import shutil
import tempfile
import zipfile

from stockbatch.utils.errors import ArchiveError
from stockbatch.utils.logging import log_message

SCRATCH_DIR_PREFIX = "metadata-generator-"


def create_scratch_dir(base_dir=None):
    scratch_dir = tempfile.mkdtemp(prefix=SCRATCH_DIR_PREFIX, dir=base_dir)
    log_message(f"Scratch directory created: {scratch_dir}", "debug")
    return scratch_dir


def remove_scratch_dir(scratch_dir):
    if not scratch_dir or not os.path.exists(scratch_dir):
        return
    shutil.rmtree(scratch_dir, ignore_errors=True)
    if os.path.exists(scratch_dir):
        log_message(f"Scratch directory could not be fully removed: {scratch_dir}", "warning")
    else:
        log_message("Cleaned up scratch directory", "debug")


def _safe_member_path(dest_dir, member_name):
    dest_root = os.path.realpath(dest_dir)
    target = os.path.realpath(os.path.join(dest_root, member_name))
    if target != dest_root and not target.startswith(dest_root + os.sep):
        raise ArchiveError(f"Archive entry escapes the extraction directory: {member_name}")
    return target


def unpack_archive(archive_path, dest_dir):
    if not archive_path or not os.path.isfile(archive_path):
        raise ArchiveError(f"Source archive not found: {archive_path}")
    try:
        with zipfile.ZipFile(archive_path) as zf:
            members = zf.infolist()
            for member in members:
                _safe_member_path(dest_dir, member.filename)
            zf.extractall(dest_dir)
    except zipfile.BadZipFile as e:
        raise ArchiveError(f"Could not read source archive {os.path.basename(archive_path)}: {e}") from e
    except (RuntimeError, NotImplementedError, zipfile.LargeZipFile) as e:
        # encrypted entries and unsupported compression methods
        raise ArchiveError(f"Could not extract source archive {os.path.basename(archive_path)}: {e}") from e
    log_message(f"Extracted {len(members)} entries from {os.path.basename(archive_path)}")
    return dest_dir


def pack_directory(source_dir):
    """Zip the whole directory tree and return the archive bytes."""
    buffer = io.BytesIO()
    file_count = 0
    try:
        with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
            for root, dirs, files in os.walk(source_dir):
                dirs.sort()
                rel_root = os.path.relpath(root, source_dir)
                if rel_root != "." and not files and not dirs:
                    zf.writestr(rel_root.replace(os.sep, "/") + "/", b"")
                for name in sorted(files):
                    full_path = os.path.join(root, name)
                    zf.write(full_path, os.path.relpath(full_path, source_dir).replace(os.sep, "/"))
                    file_count += 1
    except OSError as e:
        raise ArchiveError(f"Could not create output archive: {e}") from e
    log_message(f"Packed {file_count} file(s) into output archive")
    return buffer.getvalue()
