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

# stockbatch/config/config.py
import json
import os
from datetime import datetime

from dotenv import load_dotenv

from stockbatch.api.gemini_api import DEFAULT_MODEL
from stockbatch.api.prompts import MEDIA_TYPE_2D_VECTORS
from stockbatch.metadata.marketplaces import MARKETPLACE_SHUTTERSTOCK
from stockbatch.utils.logging import log_message

APP_NAME = "Stock Batch Metadata"
CONFIG_FILE = "config.json"
FALLBACK_CONFIG_FILE = "stockbatch_config.json"

DEFAULT_SETTINGS = {
    "gemini_api_key": "",
    "model": DEFAULT_MODEL,
    "marketplace": MARKETPLACE_SHUTTERSTOCK,
    "media_type": MEDIA_TYPE_2D_VECTORS,
    "target_format": "eps",
    "prompts_dir": "",
    "exiftool_path": "",
}

# Environment wins over config.json.
ENV_OVERRIDES = {
    "GEMINI_API_KEY": "gemini_api_key",
    "GEMINI_MODEL": "model",
    "STOCKBATCH_PROMPTS_DIR": "prompts_dir",
    "EXIFTOOL_PATH": "exiftool_path",
    "STOCKBATCH_MARKETPLACE": "marketplace",
    "STOCKBATCH_MEDIA_TYPE": "media_type",
}


def get_config_path():
    if os.name == 'nt':
        documents_path = os.path.join(os.environ.get('USERPROFILE', ''), 'Documents')
        if os.path.exists(documents_path):
            return os.path.join(documents_path, APP_NAME, CONFIG_FILE)
    return os.path.join(os.path.expanduser("~"), ".config", "stockbatch", CONFIG_FILE)


def _read_config_file(config_path):
    if not os.path.exists(config_path):
        log_message(f"No configuration file at {config_path}, using defaults", "debug")
        return {}
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        log_message(f"Could not read configuration file {config_path}: {e}", "warning")
        return {}
    if not isinstance(data, dict):
        log_message(f"Ignoring configuration file {config_path}: expected a JSON object", "warning")
        return {}
    return data


def read_saved_settings(config_path=None):
    """Defaults plus config.json only, without environment overrides."""
    settings = dict(DEFAULT_SETTINGS)
    file_settings = _read_config_file(config_path or get_config_path())
    settings.update({k: v for k, v in file_settings.items() if k in DEFAULT_SETTINGS})
    return settings


def load_settings(config_path=None, dotenv_path=None):
    """Defaults, then config.json, then environment variables (.env included)."""
    load_dotenv(dotenv_path=dotenv_path)
    settings = read_saved_settings(config_path)

    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            settings[key] = value

    if settings["gemini_api_key"]:
        log_message(f"Gemini API key loaded (...{settings['gemini_api_key'][-5:]})", "debug")
    return settings


def save_settings(settings, config_path=None):
    config_path = config_path or get_config_path()
    data = {k: settings.get(k, v) for k, v in DEFAULT_SETTINGS.items()}
    data["last_saved"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")

    try:
        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            json_data = json.dumps(data, indent=4)
            f.write(json_data)
        log_message(f"Settings saved to {config_path} ({len(json_data)} bytes)")
        return config_path
    except PermissionError as pe:
        log_message(f"Error permission: {pe}", "error")
        alt_path = os.path.join(os.getcwd(), FALLBACK_CONFIG_FILE)
        log_message(f"Trying to write to alternative location: {alt_path}", "warning")
        with open(alt_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=4)
        log_message("Settings saved to alternative location")
        return alt_path
