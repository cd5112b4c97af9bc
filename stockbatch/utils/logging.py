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

# stockbatch/utils/logging.py
import logging
import sys
import threading

LOGGER_NAME = "stockbatch"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_logger = logging.getLogger(LOGGER_NAME)
_handler_lock = threading.Lock()
_log_handler = None


def set_log_handler(handler):
    """Register a callable receiving (message, level) for every log_message call.

    Passing None removes the current handler.
    """
    global _log_handler
    with _handler_lock:
        _log_handler = handler


def log_message(message, level="info"):
    level = (level or "info").lower()
    _logger.log(_LEVELS.get(level, logging.INFO), message)
    handler = _log_handler
    if handler is not None:
        try:
            handler(message, level)
        except Exception as e:
            _logger.debug(f"Log handler failed: {e}")


def configure_logging(verbose=False):
    if any(getattr(h, "_stockbatch_console", False) for h in _logger.handlers):
        _logger.setLevel(logging.DEBUG if verbose else logging.INFO)
        return
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", "%H:%M:%S"))
    console._stockbatch_console = True
    _logger.addHandler(console)
    _logger.setLevel(logging.DEBUG if verbose else logging.INFO)
