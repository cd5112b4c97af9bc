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

# stockbatch/api/prompts.py
from __future__ import annotations

import os
import re
from typing import Mapping, Optional, Sequence

from stockbatch.api.prompt_sources import resolve_prompts
from stockbatch.utils.errors import TemplateNotFoundError
from stockbatch.utils.logging import log_message

PLACEHOLDER_PROMPTS_LIST = "GRAPHICS_PROMPTS_LIST"
PLACEHOLDER_START_NUMBER = "START_FILE_NUMBER"
PLACEHOLDER_END_NUMBER = "END_FILE_NUMBER"

MEDIA_TYPE_2D_VECTORS = "2D_Vectors"
MEDIA_TYPE_3D_RENDERS = "3D_Renders"

MEDIA_TYPES = (MEDIA_TYPE_2D_VECTORS, MEDIA_TYPE_3D_RENDERS)

BUNDLED_TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")


def render_template(template: str, bindings: Mapping[str, object]) -> str:
    """Replace every {{KEY}} in the template with str(bindings[KEY])."""
    rendered = template
    for key, value in bindings.items():
        rendered = re.sub(r'\{\{' + re.escape(key) + r'\}\}', lambda _m: str(value), rendered)
    return rendered


def compose_master_prompt(template_text: str, prompts: Sequence[str], start_index: int = 1) -> str:
    count = len(prompts)
    return render_template(template_text, {
        PLACEHOLDER_PROMPTS_LIST: "\n".join(prompts),
        PLACEHOLDER_START_NUMBER: start_index,
        PLACEHOLDER_END_NUMBER: start_index + count - 1,
    })


def template_path(media_type: str, marketplace: str, prompts_dir: Optional[str] = None) -> str:
    return os.path.join(prompts_dir or BUNDLED_TEMPLATES_DIR, media_type, f"{marketplace}.txt")


def load_master_prompt(
    media_type: str,
    marketplace: str,
    custom_prompt: Optional[str] = None,
    use_custom: bool = False,
    prompts_dir: Optional[str] = None,
) -> str:
    if use_custom and custom_prompt:
        log_message("Using custom master prompt")
        return custom_prompt

    prompt_path = template_path(media_type, marketplace, prompts_dir)
    if not os.path.exists(prompt_path):
        bundled_path = template_path(media_type, marketplace)
        if prompts_dir and os.path.exists(bundled_path):
            log_message(f"Master prompt not in {prompts_dir}, using bundled template", "warning")
            prompt_path = bundled_path
        else:
            raise TemplateNotFoundError(prompt_path)

    with open(prompt_path, 'r', encoding='utf-8') as f:
        template = f.read()
    log_message(f"Loaded master prompt {media_type}/{marketplace}.txt", "debug")
    return template


def export_master_prompt(
    media_type: str,
    marketplace: str,
    inline_text: Optional[str] = None,
    text_file_path: Optional[str] = None,
    csv_file_path: Optional[str] = None,
    custom_prompt: Optional[str] = None,
    use_custom: bool = False,
    prompts_dir: Optional[str] = None,
) -> str:
    prompt_set = resolve_prompts(inline_text, text_file_path, csv_file_path)
    template = load_master_prompt(media_type, marketplace, custom_prompt, use_custom, prompts_dir)
    return compose_master_prompt(template, prompt_set.prompts)


def master_prompt_packet_name(marketplace: str) -> str:
    return f"master_prompt_packet_{re.sub(r'[^a-zA-Z0-9]', '_', marketplace).lower()}.txt"
