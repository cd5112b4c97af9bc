"""Shared fixtures: fake tagging and generation collaborators, zip builders."""

import os
import zipfile

import pytest

from stockbatch.utils.errors import TaggingError


class FakeTagger:
    """Records every call; raises TaggingError for file names in fail_on."""

    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.calls = []

    def __call__(self, file_path, title, description, keywords):
        name = os.path.basename(file_path)
        self.calls.append((name, title, description, keywords))
        if name in self.fail_on:
            raise TaggingError(f"ExifTool failed on {name}")


class FakeGenerator:
    def __init__(self, response_text="", error=None):
        self.response_text = response_text
        self.error = error
        self.calls = []

    def __call__(self, prompt_text, model_id):
        self.calls.append((prompt_text, model_id))
        if self.error is not None:
            raise self.error
        return self.response_text


@pytest.fixture
def fake_tagger():
    return FakeTagger()


@pytest.fixture
def make_assets(tmp_path):
    """Create empty asset files in a directory and return the directory."""
    def _make(names, directory=None):
        target = directory or tmp_path / "assets"
        target.mkdir(parents=True, exist_ok=True)
        for name in names:
            (target / name).write_bytes(b"%!PS-Adobe-3.0 EPSF-3.0\n")
        return target
    return _make


@pytest.fixture
def make_zip(tmp_path):
    """Build a source zip holding the given file names."""
    def _make(names, zip_name="source.zip"):
        zip_path = tmp_path / zip_name
        with zipfile.ZipFile(zip_path, "w") as zf:
            for name in names:
                zf.writestr(name, b"%!PS-Adobe-3.0 EPSF-3.0\n")
        return zip_path
    return _make


@pytest.fixture
def make_tagger():
    return FakeTagger


@pytest.fixture
def make_generator():
    return FakeGenerator


@pytest.fixture
def make_encrypted_zip(make_zip):
    """Build a source zip whose entries are flagged as password protected."""
    def _make(names, zip_name="encrypted.zip"):
        zip_path = make_zip(names, zip_name)
        data = bytearray(zip_path.read_bytes())
        for signature, flag_offset in ((b"PK\x03\x04", 6), (b"PK\x01\x02", 8)):
            start = data.find(signature)
            while start != -1:
                data[start + flag_offset] |= 0x01
                start = data.find(signature, start + 4)
        zip_path.write_bytes(bytes(data))
        return zip_path
    return _make
