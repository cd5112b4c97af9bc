"""Tests for manual-mode metadata normalization."""

import csv

import pytest

from stockbatch.metadata.csv_exporter import marketplace_csv_path
from stockbatch.metadata.manual_import import (
    MISSING_REQUIRED_MESSAGE,
    normalize_manual_records,
    normalize_row,
    parse_manual_csv,
)
from stockbatch.utils.errors import ManualRecordError


class TestNormalizeRow:
    def test_every_alias_is_populated(self) -> None:
        record = normalize_row({"Filename": "Sun-Icon", "Title": "Sun icon", "Keywords": "sun", "Category": "Nature"})
        assert record["Filename"] == "Sun-Icon"
        assert record["filename"] == "sun-icon"
        for key in ("Document_Title_For_Exif", "Shutterstock_Platform_Title", "Freepik_Platform_Title",
                    "AdobeStock_Platform_Title", "Title"):
            assert record[key] == "Sun icon"
        assert record["Keywords"] == record["tags"] == "sun"
        assert record["Category"] == record["Categories"] == "Nature"
        assert record["category"] == "nature"
        assert record["Editorial"] == record["Mature Content"] == record["Illustration"] == ""

    def test_alias_priority(self) -> None:
        record = normalize_row({
            "filename": "b",
            "Filename": "a",
            "title": "t3",
            "Document_Title_For_Exif": "t1",
            "description": "d2",
            "Long_Description_For_Exif": "d1",
            "tags": "k3",
        })
        assert record["Filename"] == "a"
        assert record["Title"] == "t1"
        assert record["Description"] == "d1"
        assert record["Keywords"] == "k3"

    def test_empty_alias_falls_through(self) -> None:
        record = normalize_row({"Filename": "", "filename": "x", "Title": "", "title": "y"})
        assert record["Filename"] == "x"
        assert record["Title"] == "y"

    def test_missing_category_is_blank(self) -> None:
        record = normalize_row({"Filename": "a", "Title": "b"})
        assert record["Category"] == ""
        assert record["category"] == ""
        assert record["Description"] == ""

    def test_missing_title(self) -> None:
        with pytest.raises(ManualRecordError) as exc_info:
            normalize_row({"Filename": "a"}, row_number=3)
        assert exc_info.value.message == f"{MISSING_REQUIRED_MESSAGE} (row 3)"


class TestParseManualCsv:
    def test_stops_at_first_bad_row(self) -> None:
        text = "Filename,Title\na,A\nb,\nc,\n"
        with pytest.raises(ManualRecordError, match=r"\(row 2\)"):
            parse_manual_csv(text)

    def test_empty_csv(self) -> None:
        with pytest.raises(ManualRecordError, match="CSV data is empty or invalid."):
            parse_manual_csv("Filename,Title\n")

    def test_bom_is_ignored(self) -> None:
        records = parse_manual_csv("\ufeffFilename,Title\na,A\n")
        assert records[0]["Filename"] == "a"


def test_writes_conformed_csv_without_category(tmp_path) -> None:
    text = "Filename,Title,Keywords\nsun-icon,Sun icon,\"sun,icon\"\nmoon-icon,Moon icon,moon\n"
    records = normalize_manual_records(text, str(tmp_path), "adobe_stock")

    assert len(records) == 2
    with open(marketplace_csv_path(str(tmp_path), "adobe_stock"), newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows == [
        ["Filename", "Title", "Keywords", "Category"],
        ["sun-icon", "Sun icon", "sun,icon", ""],
        ["moon-icon", "Moon icon", "moon", ""],
    ]


def test_freepik_upload_uses_lower_case_aliases(tmp_path) -> None:
    text = "Filename,Title,Category\nSun-Icon,Sun,Icons\n"
    normalize_manual_records(text, str(tmp_path), "freepik")
    with open(marketplace_csv_path(str(tmp_path), "freepik"), newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[1] == ["sun-icon", "Sun", "", "icons"]
