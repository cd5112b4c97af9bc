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

# stockbatch/cli.py
"""Command-line entry point: run a batch, convert prompt text files, export master prompts, edit settings."""

import argparse
import os
import sys

from stockbatch.api.gemini_api import GEMINI_MODELS
from stockbatch.api.prompt_sources import convert_txt_to_csv
from stockbatch.api.prompts import MEDIA_TYPES, export_master_prompt, master_prompt_packet_name
from stockbatch.config.config import DEFAULT_SETTINGS, load_settings, read_saved_settings, save_settings
from stockbatch.metadata.exif_writer import ExifToolTagger
from stockbatch.metadata.marketplaces import SUPPORTED_MARKETPLACES, validate_marketplace
from stockbatch.processing.pipeline import MODE_AI, MODES, MetadataPipeline, PipelineRequest
from stockbatch.processing.status import estimate_progress
from stockbatch.utils.errors import InputError, StockBatchError, UnknownMarketplaceError
from stockbatch.utils.logging import configure_logging


def _marketplace_arg(value):
    try:
        return validate_marketplace(value)
    except UnknownMarketplaceError as e:
        raise argparse.ArgumentTypeError(e.message) from e


def _read_optional_file(path):
    if not path:
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise InputError(f"'{path}' is not valid UTF-8 text: {e}", {"path": path}) from e


def print_status(message):
    print(f"[{estimate_progress(message):3d}%] {message}", flush=True)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="stockbatch",
        description="Generate, embed and package stock marketplace metadata for batches of graphic assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # AI mode with numbered prompts
  stockbatch run --source-zip icons.zip --marketplace adobe_stock --prompts-file prompts.txt

  # Manual mode from an existing metadata CSV
  stockbatch run --source-zip icons.zip --marketplace freepik --mode manual --metadata-csv meta.csv

  # Prepare a prompt CSV or a master prompt for another tool
  stockbatch convert-txt prompts.txt
  stockbatch export-prompt --marketplace vecteezy --prompts-file prompts.txt

  # Remember defaults between runs
  stockbatch config --set marketplace=freepik --set target_format=jpg
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", help="Path to config.json (default: per-user config directory)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run = subparsers.add_parser("run", help="Process a zip of assets into a tagged, renamed output zip")
    run.add_argument("--source-zip", required=True, help="Zip archive with the asset files")
    run.add_argument("--mode", choices=MODES, default=MODE_AI, help="Metadata source (default: ai)")
    run.add_argument("--marketplace", type=_marketplace_arg, help=f"One of: {', '.join(SUPPORTED_MARKETPLACES)}")
    run.add_argument("--media-type", choices=MEDIA_TYPES, help="Master prompt family")
    run.add_argument("--target-format", help="Extension for renamed files (e.g. eps, jpg)")
    _add_prompt_source_args(run)
    run.add_argument("--metadata-csv", help="Metadata CSV for manual mode")
    run.add_argument("--api-key", help="Gemini API key (default: GEMINI_API_KEY / .env / config)")
    run.add_argument("--model", help=f"Gemini model (known: {', '.join(GEMINI_MODELS)})")
    run.add_argument("--output", help="Where to write the output zip")

    convert = subparsers.add_parser("convert-txt", help="Convert a prompt text file into a 'Prompt Text' CSV")
    convert.add_argument("txt_path", help="Prompt text file")
    convert.add_argument("--output", help="CSV path (default: converted_prompts_<timestamp>.csv next to the input)")

    export = subparsers.add_parser("export-prompt", help="Write the composed master prompt without calling the AI")
    export.add_argument("--marketplace", type=_marketplace_arg, help=f"One of: {', '.join(SUPPORTED_MARKETPLACES)}")
    export.add_argument("--media-type", choices=MEDIA_TYPES, help="Master prompt family")
    _add_prompt_source_args(export)
    export.add_argument("--output", help="Text file path (default: master_prompt_packet_<marketplace>.txt)")

    config = subparsers.add_parser("config", help="Show the effective settings or update the saved config file")
    config.add_argument("--set", dest="assignments", action="append", default=[], metavar="KEY=VALUE",
                        help=f"Save a setting (keys: {', '.join(DEFAULT_SETTINGS)})")
    return parser


def _add_prompt_source_args(subparser):
    subparser.add_argument("--prompts", help="Prompt text given inline")
    subparser.add_argument("--prompts-file", help="Prompt text file (numbered or paragraph separated)")
    subparser.add_argument("--prompts-csv", help="CSV with a 'Prompt Text' column")
    subparser.add_argument("--custom-master-prompt-file", help="Use this master prompt template instead of the bundled one")
    subparser.add_argument("--prompts-dir", help="Directory with <media type>/<marketplace>.txt templates")


def _run_command(args, settings):
    custom_prompt = _read_optional_file(args.custom_master_prompt_file)
    request = PipelineRequest(
        source_zip=args.source_zip,
        marketplace=args.marketplace or settings["marketplace"],
        mode=args.mode,
        media_type=args.media_type or settings["media_type"],
        target_format=args.target_format or settings["target_format"],
        prompts_text=args.prompts,
        prompts_file=args.prompts_file,
        prompts_csv=args.prompts_csv,
        custom_master_prompt=custom_prompt,
        use_custom_master_prompt=bool(custom_prompt),
        metadata_csv_path=args.metadata_csv,
        api_key=args.api_key or settings["gemini_api_key"],
        model=args.model or settings["model"],
        output_path=args.output,
        prompts_dir=args.prompts_dir or settings["prompts_dir"] or None,
    )
    tagger = ExifToolTagger(settings["exiftool_path"] or None)
    result = MetadataPipeline(tagger=tagger, status_callback=print_status).run(request)
    return 0 if result.succeeded else 1


def _convert_command(args, settings):
    csv_path, count = convert_txt_to_csv(args.txt_path, args.output)
    print(f"Wrote {count} prompt(s) to {csv_path}")
    return 0


def _export_command(args, settings):
    marketplace = args.marketplace or settings["marketplace"]
    custom_prompt = _read_optional_file(args.custom_master_prompt_file)
    master_prompt = export_master_prompt(
        args.media_type or settings["media_type"],
        marketplace,
        inline_text=args.prompts,
        text_file_path=args.prompts_file,
        csv_file_path=args.prompts_csv,
        custom_prompt=custom_prompt,
        use_custom=bool(custom_prompt),
        prompts_dir=args.prompts_dir or settings["prompts_dir"] or None,
    )
    output_path = args.output or os.path.join(os.getcwd(), master_prompt_packet_name(marketplace))
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(master_prompt)
    print(f"Master prompt saved to: {output_path}")
    return 0


def _parse_assignment(assignment):
    key, sep, value = assignment.partition("=")
    key = key.strip()
    if not sep or key not in DEFAULT_SETTINGS:
        raise InputError(f"Invalid setting '{assignment}'. Use KEY=VALUE with KEY one of: {', '.join(DEFAULT_SETTINGS)}.")
    return key, value.strip()


def _config_command(args, settings):
    if not args.assignments:
        for key, value in settings.items():
            if key == "gemini_api_key" and value:
                value = f"...{value[-5:]}"
            print(f"{key} = {value}")
        return 0

    updates = dict(_parse_assignment(a) for a in args.assignments)
    saved = read_saved_settings(args.config)
    saved.update(updates)
    config_path = save_settings(saved, args.config)
    print(f"Saved {len(updates)} setting(s) to {config_path}")
    return 0


COMMANDS = {
    "run": _run_command,
    "convert-txt": _convert_command,
    "export-prompt": _export_command,
    "config": _config_command,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)
    settings = load_settings(args.config)

    try:
        return COMMANDS[args.command](args, settings)
    except StockBatchError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
