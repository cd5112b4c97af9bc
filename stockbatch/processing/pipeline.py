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

# stockbatch/processing/pipeline.py
"""
One batch run from source archive to tagged output archive.

AI mode:     unpack -> resolve prompts -> compose -> generate -> reconcile -> tag -> pack
Manual mode: unpack -> read metadata CSV -> normalize -> tag -> pack

Every run owns a fresh scratch directory that is removed whether the run
finishes or fails. Status lines are sent to the status callback in order;
a fatal error becomes a single "Error: <message>" line.
"""
from __future__ import annotations

import enum
import os
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from stockbatch.api.gemini_api import DEFAULT_MODEL, make_generator
from stockbatch.api.prompt_sources import resolve_prompts
from stockbatch.api.prompts import MEDIA_TYPE_2D_VECTORS, compose_master_prompt, load_master_prompt
from stockbatch.metadata.exif_writer import ExifToolTagger
from stockbatch.metadata.manual_import import normalize_manual_records
from stockbatch.metadata.reconciler import reconcile_ai_response
from stockbatch.processing import status as st
from stockbatch.processing.batch_processing import FileResult, tag_and_rename_files
from stockbatch.utils.archive import create_scratch_dir, pack_directory, remove_scratch_dir, unpack_archive
from stockbatch.utils.errors import InputError, StockBatchError
from stockbatch.utils.logging import log_message

MODE_AI = "ai"
MODE_MANUAL = "manual"
MODES = (MODE_AI, MODE_MANUAL)

MISSING_API_KEY_MESSAGE = "Gemini API Key not provided and not found in a .env file."
SAVE_CANCELLED_STATUS = "Save operation cancelled."


class PipelineState(enum.Enum):
    IDLE = "Idle"
    UNPACKING = "Unpacking"
    RESOLVING_PROMPTS = "ResolvingPrompts"
    COMPOSING = "Composing"
    GENERATING = "Generating"
    RECONCILING = "Reconciling"
    READING_MANUAL_CSV = "ReadingManualCsv"
    NORMALIZING = "Normalizing"
    TAGGING = "Tagging"
    PACKING = "Packing"
    DONE = "Done"
    FAILED = "Failed"


@dataclass
class PipelineRequest:
    source_zip: str
    marketplace: str
    mode: str = MODE_AI
    media_type: str = MEDIA_TYPE_2D_VECTORS
    target_format: str = "eps"
    prompts_text: Optional[str] = None
    prompts_file: Optional[str] = None
    prompts_csv: Optional[str] = None
    custom_master_prompt: Optional[str] = None
    use_custom_master_prompt: bool = False
    metadata_csv_path: Optional[str] = None
    metadata_csv_text: Optional[str] = None
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    output_path: Optional[str] = None
    prompts_dir: Optional[str] = None


@dataclass
class PipelineResult:
    state: PipelineState
    output_path: Optional[str] = None
    file_results: List[FileResult] = field(default_factory=list)
    error: Optional[StockBatchError] = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE


def default_output_name() -> str:
    return f"processed_metadata_{int(time.time() * 1000)}.zip"


def _read_manual_csv_file(path: str) -> str:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise InputError(f"Metadata CSV '{path}' is not valid UTF-8 text: {e}", {"path": path}) from e
    except OSError as e:
        raise InputError(f"Could not read metadata CSV '{path}': {e}", {"path": path}) from e


class MetadataPipeline:
    """Runs batches with injectable collaborators.

    generator(prompt_text, model_id) -> str and tagger(file_path, title,
    description, keywords) default to Gemini and ExifTool. choose_output_path,
    when given, receives the default archive name and returns the path to
    save to, or None to cancel the save.
    """

    def __init__(
        self,
        generator: Optional[Callable[[str, str], str]] = None,
        tagger: Optional[Callable[[str, str, str, str], None]] = None,
        status_callback: Optional[Callable[[str], None]] = None,
        unpack: Callable[[str, str], object] = unpack_archive,
        pack: Callable[[str], bytes] = pack_directory,
        choose_output_path: Optional[Callable[[str], Optional[str]]] = None,
        scratch_base_dir: Optional[str] = None,
    ):
        self.generator = generator
        self.tagger = tagger
        self.status_callback = status_callback
        self.unpack = unpack
        self.pack = pack
        self.choose_output_path = choose_output_path
        self.scratch_base_dir = scratch_base_dir
        self.state = PipelineState.IDLE

    def _send_status(self, message: str):
        log_message(message, "error" if st.is_error_status(message) else "info")
        if self.status_callback:
            self.status_callback(message)

    def _enter(self, state: PipelineState):
        log_message(f"Pipeline state: {self.state.value} -> {state.value}", "debug")
        self.state = state

    def _validate(self, request: PipelineRequest):
        if request.mode not in MODES:
            raise InputError(f"Unknown mode '{request.mode}'. Expected one of: {', '.join(MODES)}.")
        if not request.source_zip:
            raise InputError("No source zip file provided.")
        if request.mode == MODE_AI and self.generator is None and not request.api_key:
            raise InputError(MISSING_API_KEY_MESSAGE)
        if request.mode == MODE_MANUAL and not (request.metadata_csv_path or request.metadata_csv_text):
            raise InputError("Manual mode requires a metadata CSV file or pasted CSV data.")

    def _generate_records(self, request: PipelineRequest, working_dir: str):
        self._enter(PipelineState.RESOLVING_PROMPTS)
        self._send_status(st.STATUS_CONSTRUCTING)
        prompt_set = resolve_prompts(request.prompts_text, request.prompts_file, request.prompts_csv)

        self._enter(PipelineState.COMPOSING)
        template = load_master_prompt(request.media_type, request.marketplace, request.custom_master_prompt,
                                      request.use_custom_master_prompt, request.prompts_dir)
        master_prompt = compose_master_prompt(template, prompt_set.prompts)

        self._enter(PipelineState.GENERATING)
        self._send_status(st.STATUS_CALLING_AI)
        generator = self.generator or make_generator(request.api_key)
        response_text = generator(master_prompt, request.model or DEFAULT_MODEL)

        self._enter(PipelineState.RECONCILING)
        self._send_status(st.STATUS_PARSING)
        return reconcile_ai_response(response_text, working_dir, request.marketplace).raw_records

    def _manual_records(self, request: PipelineRequest, working_dir: str):
        self._enter(PipelineState.READING_MANUAL_CSV)
        self._send_status(st.STATUS_MANUAL_MODE)
        if request.metadata_csv_path:
            self._send_status(st.STATUS_READING_CSV_FILE)
            csv_text = _read_manual_csv_file(request.metadata_csv_path)
        else:
            self._send_status(st.STATUS_READING_CSV_TEXT)
            csv_text = request.metadata_csv_text

        self._enter(PipelineState.NORMALIZING)
        records = normalize_manual_records(csv_text, working_dir, request.marketplace)
        self._send_status(st.records_parsed_status(len(records)))
        self._send_status(st.STATUS_CREATING_MARKETPLACE_CSV)
        return records

    def _save_archive(self, request: PipelineRequest, archive_bytes: bytes) -> Optional[str]:
        output_path = request.output_path
        if not output_path and self.choose_output_path:
            output_path = self.choose_output_path(default_output_name())
            if not output_path:
                return None
        output_path = output_path or os.path.join(os.getcwd(), default_output_name())
        output_dir = os.path.dirname(os.path.abspath(output_path))
        try:
            os.makedirs(output_dir, exist_ok=True)
            with open(output_path, 'wb') as f:
                f.write(archive_bytes)
        except OSError as e:
            raise InputError(f"Could not write output archive '{output_path}': {e}", {"path": output_path}) from e
        return output_path

    def run(self, request: PipelineRequest) -> PipelineResult:
        self.state = PipelineState.IDLE
        scratch_dir = None
        result = PipelineResult(PipelineState.IDLE)
        self._send_status(st.STATUS_STARTED)
        try:
            self._validate(request)

            self._enter(PipelineState.UNPACKING)
            scratch_dir = create_scratch_dir(self.scratch_base_dir)
            self._send_status(st.STATUS_SCRATCH_CREATED)
            self.unpack(request.source_zip, scratch_dir)
            self._send_status(st.STATUS_EXTRACTED)

            if request.mode == MODE_AI:
                records = self._generate_records(request, scratch_dir)
            else:
                records = self._manual_records(request, scratch_dir)

            self._enter(PipelineState.TAGGING)
            tagger = self.tagger or ExifToolTagger()
            resolve = getattr(tagger, "resolve", None)
            if callable(resolve):
                resolve()
            result.file_results = tag_and_rename_files(scratch_dir, records, request.target_format,
                                                       request.marketplace, tagger, self._send_status)

            self._enter(PipelineState.PACKING)
            self._send_status(st.STATUS_PACKING)
            archive_bytes = self.pack(scratch_dir)
            result.output_path = self._save_archive(request, archive_bytes)
            if result.output_path:
                self._send_status(st.success_status(result.output_path))
            else:
                self._send_status(SAVE_CANCELLED_STATUS)

            self._enter(PipelineState.DONE)
        except StockBatchError as e:
            self._enter(PipelineState.FAILED)
            result.error = e
            self._send_status(st.error_status(e.message))
        except OSError as e:
            self._enter(PipelineState.FAILED)
            result.error = StockBatchError(str(e), {"errno": e.errno})
            self._send_status(st.error_status(str(e)))
        except Exception as e:
            log_message(f"Unexpected {type(e).__name__} during batch run: {e}", "error")
            self._enter(PipelineState.FAILED)
            result.error = StockBatchError(str(e) or type(e).__name__)
            self._send_status(st.error_status(result.error.message))
        finally:
            remove_scratch_dir(scratch_dir)
        result.state = self.state
        return result