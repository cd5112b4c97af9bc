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

# stockbatch/metadata/marketplaces.py
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from stockbatch.utils.errors import UnknownMarketplaceError

MARKETPLACE_SHUTTERSTOCK = "shutterstock"
MARKETPLACE_FREEPIK = "freepik"
MARKETPLACE_ADOBE_STOCK = "adobe_stock"
MARKETPLACE_VECTEEZY = "vecteezy"


class FieldMapping(NamedTuple):
    source: str
    target: str


class FieldSelection(NamedTuple):
    """Record fields that feed the embedded metadata and the new filename."""
    title: str
    description: str
    keywords: str
    filename: str


def _schema(*pairs: Tuple[str, str]) -> Tuple[FieldMapping, ...]:
    return tuple(FieldMapping(source, target) for source, target in pairs)


# CSV columns each marketplace expects in its upload file, in upload order.
MARKETPLACE_CSV_MAPPING: Mapping[str, Tuple[FieldMapping, ...]] = MappingProxyType({
    MARKETPLACE_SHUTTERSTOCK: _schema(
        ("Filename", "Filename"),
        ("Shutterstock_Platform_Title", "Description"),
        ("Keywords", "Keywords"),
        ("Categories", "Categories"),
        ("Editorial", "Editorial"),
        ("Mature Content", "Mature Content"),
        ("Illustration", "Illustration"),
    ),
    MARKETPLACE_FREEPIK: _schema(
        ("filename", "File name"),
        ("Freepik_Platform_Title", "Title"),
        ("tags", "Keywords"),
        ("category", "Category"),
    ),
    MARKETPLACE_ADOBE_STOCK: _schema(
        ("Filename", "Filename"),
        ("AdobeStock_Platform_Title", "Title"),
        ("Keywords", "Keywords"),
        ("Category", "Category"),
    ),
    MARKETPLACE_VECTEEZY: _schema(
        ("Filename", "Filename"),
        ("Title", "Title"),
        ("Description", "Description"),
        ("Keywords", "Keywords"),
    ),
})

# Which record fields are embedded into the file and used for renaming. The
# long description is embedded but never uploaded in the marketplace CSV.
MARKETPLACE_FIELD_SELECTION: Mapping[str, FieldSelection] = MappingProxyType({
    MARKETPLACE_SHUTTERSTOCK: FieldSelection(
        "Shutterstock_Platform_Title", "Long_Description_For_Exif", "Keywords", "Filename"),
    MARKETPLACE_FREEPIK: FieldSelection(
        "Freepik_Platform_Title", "Long_Description_For_Exif", "tags", "filename"),
    MARKETPLACE_ADOBE_STOCK: FieldSelection(
        "AdobeStock_Platform_Title", "Long_Description_For_Exif", "Keywords", "Filename"),
    MARKETPLACE_VECTEEZY: FieldSelection(
        "Title", "Description", "Keywords", "Filename"),
})

DEFAULT_FIELD_SELECTION = FieldSelection("Title", "Description", "Keywords", "Filename")

SUPPORTED_MARKETPLACES = tuple(MARKETPLACE_CSV_MAPPING.keys())


def get_schema(marketplace: str) -> Optional[Tuple[FieldMapping, ...]]:
    return MARKETPLACE_CSV_MAPPING.get(marketplace)


def get_field_selection(marketplace: str) -> FieldSelection:
    return MARKETPLACE_FIELD_SELECTION.get(marketplace, DEFAULT_FIELD_SELECTION)


def validate_marketplace(marketplace: str) -> str:
    if marketplace not in MARKETPLACE_CSV_MAPPING:
        raise UnknownMarketplaceError(marketplace, SUPPORTED_MARKETPLACES)
    return marketplace


def schema_headers(schema: Iterable[FieldMapping]) -> List[str]:
    return [mapping.target for mapping in schema]


def conform_record(record: Mapping[str, str], schema: Iterable[FieldMapping]) -> Dict[str, str]:
    conformed = {}
    for mapping in schema:
        value = record.get(mapping.source)
        conformed[mapping.target] = value if value is not None else ""
    return conformed


def conform_records(records: Iterable[Mapping[str, str]], schema: Iterable[FieldMapping]) -> List[Dict[str, str]]:
    schema = tuple(schema)
    return [conform_record(record, schema) for record in records]
