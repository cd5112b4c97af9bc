"""End-to-end pipeline runs with fake generation and tagging."""

import os
import zipfile

import pytest

from stockbatch.processing.pipeline import (
    MISSING_API_KEY_MESSAGE,
    SAVE_CANCELLED_STATUS,
    MetadataPipeline,
    PipelineRequest,
    PipelineState,
)
from stockbatch.utils.errors import ArchiveError, GenerationError, InputError

VECTEEZY_RESPONSE = (
    "Filename,Title,Description,Keywords\n"
    "sun-icon,Sun icon,A bright sun,\"sun,icon\"\n"
    "moon-icon,Moon icon,A crescent moon,\"moon,icon\"\n"
)


@pytest.fixture
def scratch_base(tmp_path):
    base = tmp_path / "scratch"
    base.mkdir()
    return base


def _ai_request(zip_path, output_path, **overrides):
    values = dict(
        source_zip=str(zip_path),
        marketplace="vecteezy",
        prompts_text="1. A sun\n2. A moon",
        api_key="test-key-12345",
        model="gemini-2.5-flash",
        output_path=str(output_path) if output_path else None,
    )
    values.update(overrides)
    return PipelineRequest(**values)


def test_ai_run_produces_archive(tmp_path, scratch_base, make_zip, make_generator, fake_tagger) -> None:
    zip_path = make_zip(["img2.eps", "img1.eps"])
    generator = make_generator(VECTEEZY_RESPONSE)
    statuses = []
    pipeline = MetadataPipeline(generator=generator, tagger=fake_tagger, status_callback=statuses.append,
                                scratch_base_dir=str(scratch_base))

    result = pipeline.run(_ai_request(zip_path, tmp_path / "out" / "result.zip"))

    assert result.state is PipelineState.DONE
    assert result.succeeded
    prompt_text, model_id = generator.calls[0]
    assert "1. A sun\n2. A moon" in prompt_text
    assert model_id == "gemini-2.5-flash"
    assert [call[0] for call in fake_tagger.calls] == ["img1.eps", "img2.eps"]

    with zipfile.ZipFile(result.output_path) as zf:
        names = set(zf.namelist())
    assert "Processed_Files/sun-icon.eps" in names
    assert "Processed_Files/moon-icon.eps" in names
    assert "CSV_Raw_AI_Output/raw_ai_output.csv" in names
    assert "CSV_Processed_Output/vecteezy_metadata_for_upload.csv" in names

    assert statuses[:5] == [
        "Processing started...",
        "Created temporary directory...",
        "Successfully extracted source files.",
        "Constructing prompts...",
        "Calling Gemini AI... This may take a moment.",
    ]
    assert "Parsing AI response and creating CSVs..." in statuses
    assert statuses[-2] == "Creating final zip archive..."
    assert statuses[-1] == f"Success! Final zip file saved to: {result.output_path}"
    assert os.listdir(scratch_base) == []


def test_manual_run_from_pasted_csv(tmp_path, scratch_base, make_zip, fake_tagger) -> None:
    zip_path = make_zip(["a.eps", "b.eps"])
    statuses = []
    request = PipelineRequest(
        source_zip=str(zip_path),
        marketplace="adobe_stock",
        mode="manual",
        target_format="jpg",
        metadata_csv_text="Filename,Title,Keywords\nfirst,First,one\nsecond,Second,two\n",
        output_path=str(tmp_path / "manual.zip"),
    )
    result = MetadataPipeline(tagger=fake_tagger, status_callback=statuses.append,
                              scratch_base_dir=str(scratch_base)).run(request)

    assert result.succeeded
    assert [r.output_name for r in result.file_results] == ["first.jpg", "second.jpg"]
    assert "Processing in Manual Mode..." in statuses
    assert "Reading from pasted CSV data..." in statuses
    assert "Successfully parsed 2 records from CSV." in statuses
    assert "Creating marketplace CSV..." in statuses
    assert fake_tagger.calls[0][1:] == ("First", "", "one")


def test_manual_run_from_csv_file(tmp_path, scratch_base, make_zip, fake_tagger) -> None:
    zip_path = make_zip(["a.eps"])
    csv_file = tmp_path / "meta.csv"
    csv_file.write_text("Filename,Title\nfirst,First\n", encoding="utf-8")
    statuses = []
    request = PipelineRequest(source_zip=str(zip_path), marketplace="shutterstock", mode="manual",
                              metadata_csv_path=str(csv_file), output_path=str(tmp_path / "o.zip"))
    result = MetadataPipeline(tagger=fake_tagger, status_callback=statuses.append,
                              scratch_base_dir=str(scratch_base)).run(request)
    assert result.succeeded
    assert "Reading from provided CSV file..." in statuses


def test_count_mismatch_fails_and_cleans_up(tmp_path, scratch_base, make_zip, make_generator, fake_tagger) -> None:
    zip_path = make_zip([f"f{i}.eps" for i in range(1, 4)])
    statuses = []
    pipeline = MetadataPipeline(generator=make_generator(VECTEEZY_RESPONSE), tagger=fake_tagger,
                                status_callback=statuses.append, scratch_base_dir=str(scratch_base))

    result = pipeline.run(_ai_request(zip_path, tmp_path / "never.zip"))

    assert result.state is PipelineState.FAILED
    assert statuses[-1] == "Error: File count (3) and metadata count (2) mismatch."
    assert not (tmp_path / "never.zip").exists()
    assert os.listdir(scratch_base) == []
    assert fake_tagger.calls == []


def test_generation_error_is_fatal(tmp_path, scratch_base, make_zip, make_generator, fake_tagger) -> None:
    zip_path = make_zip(["a.eps"])
    statuses = []
    generator = make_generator(error=GenerationError("API key not valid."))
    result = MetadataPipeline(generator=generator, tagger=fake_tagger, status_callback=statuses.append,
                              scratch_base_dir=str(scratch_base)).run(_ai_request(zip_path, tmp_path / "o.zip"))
    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, GenerationError)
    assert statuses[-1] == "Error: API key not valid."
    assert os.listdir(scratch_base) == []


def test_missing_api_key(tmp_path, make_zip, fake_tagger) -> None:
    zip_path = make_zip(["a.eps"])
    statuses = []
    result = MetadataPipeline(tagger=fake_tagger, status_callback=statuses.append).run(
        _ai_request(zip_path, tmp_path / "o.zip", api_key=None))
    assert result.state is PipelineState.FAILED
    assert statuses == ["Processing started...", f"Error: {MISSING_API_KEY_MESSAGE}"]


def test_no_prompts_is_fatal(tmp_path, scratch_base, make_zip, make_generator, fake_tagger) -> None:
    zip_path = make_zip(["a.eps"])
    statuses = []
    generator = make_generator(VECTEEZY_RESPONSE)
    result = MetadataPipeline(generator=generator, tagger=fake_tagger, status_callback=statuses.append,
                              scratch_base_dir=str(scratch_base)).run(
        _ai_request(zip_path, tmp_path / "o.zip", prompts_text="   "))
    assert result.state is PipelineState.FAILED
    assert statuses[-1] == "Error: No valid prompts found."
    assert generator.calls == []


def test_bad_archive(tmp_path, scratch_base, make_generator, fake_tagger) -> None:
    bad_zip = tmp_path / "bad.zip"
    bad_zip.write_bytes(b"not a zip")
    statuses = []
    result = MetadataPipeline(generator=make_generator(VECTEEZY_RESPONSE), tagger=fake_tagger,
                              status_callback=statuses.append, scratch_base_dir=str(scratch_base)).run(
        _ai_request(bad_zip, tmp_path / "o.zip"))
    assert result.state is PipelineState.FAILED
    assert statuses[-1].startswith("Error: Could not read source archive")
    assert os.listdir(scratch_base) == []


def test_undecodable_manual_csv_is_fatal(tmp_path, scratch_base, make_zip, fake_tagger) -> None:
    zip_path = make_zip(["a.eps"])
    csv_file = tmp_path / "meta.csv"
    csv_file.write_bytes(b"Filename,Title\nfirst,Caf\xe9\n")
    statuses = []
    request = PipelineRequest(source_zip=str(zip_path), marketplace="shutterstock", mode="manual",
                              metadata_csv_path=str(csv_file), output_path=str(tmp_path / "o.zip"))
    result = MetadataPipeline(tagger=fake_tagger, status_callback=statuses.append,
                              scratch_base_dir=str(scratch_base)).run(request)
    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, InputError)
    assert statuses[-1].startswith(f"Error: Metadata CSV '{csv_file}' is not valid UTF-8 text")
    assert fake_tagger.calls == []
    assert os.listdir(scratch_base) == []


def test_encrypted_archive_is_fatal(tmp_path, scratch_base, make_encrypted_zip, make_generator, fake_tagger) -> None:
    zip_path = make_encrypted_zip(["a.eps"])
    statuses = []
    result = MetadataPipeline(generator=make_generator(VECTEEZY_RESPONSE), tagger=fake_tagger,
                              status_callback=statuses.append, scratch_base_dir=str(scratch_base)).run(
        _ai_request(zip_path, tmp_path / "o.zip"))
    assert result.state is PipelineState.FAILED
    assert isinstance(result.error, ArchiveError)
    assert statuses[-1].startswith("Error: Could not extract source archive encrypted.zip")
    assert os.listdir(scratch_base) == []


def test_unexpected_exception_still_fails_cleanly(tmp_path, scratch_base, make_zip, make_generator,
                                                  fake_tagger) -> None:
    def broken_unpack(archive_path, dest_dir):
        raise ValueError("unexpected archive layout")

    statuses = []
    pipeline = MetadataPipeline(generator=make_generator(VECTEEZY_RESPONSE), tagger=fake_tagger,
                                status_callback=statuses.append, unpack=broken_unpack,
                                scratch_base_dir=str(scratch_base))
    result = pipeline.run(_ai_request(make_zip(["a.eps"]), tmp_path / "o.zip"))
    assert result.state is PipelineState.FAILED
    assert pipeline.state is PipelineState.FAILED
    assert result.error.message == "unexpected archive layout"
    assert statuses[-1] == "Error: unexpected archive layout"
    assert os.listdir(scratch_base) == []


def test_save_cancelled(tmp_path, scratch_base, make_zip, make_generator, fake_tagger) -> None:
    zip_path = make_zip(["img1.eps", "img2.eps"])
    statuses = []
    pipeline = MetadataPipeline(generator=make_generator(VECTEEZY_RESPONSE), tagger=fake_tagger,
                                status_callback=statuses.append, choose_output_path=lambda default_name: None,
                                scratch_base_dir=str(scratch_base))
    result = pipeline.run(_ai_request(zip_path, None))
    assert result.state is PipelineState.DONE
    assert result.output_path is None
    assert statuses[-1] == SAVE_CANCELLED_STATUS


def test_tagging_failure_still_packs(tmp_path, scratch_base, make_zip, make_generator, make_tagger) -> None:
    zip_path = make_zip(["img1.eps", "img2.eps"])
    tagger = make_tagger(fail_on={"img1.eps"})
    result = MetadataPipeline(generator=make_generator(VECTEEZY_RESPONSE), tagger=tagger,
                              scratch_base_dir=str(scratch_base)).run(_ai_request(zip_path, tmp_path / "o.zip"))
    assert result.succeeded
    with zipfile.ZipFile(result.output_path) as zf:
        names = set(zf.namelist())
    assert "Processed_Files/sun-icon.eps" in names
    assert "img1.eps" in names
