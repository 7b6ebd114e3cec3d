import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import domain  # noqa: E402
from app.domain import PathKey  # noqa: E402
from app.resources import (  # noqa: E402
    INVARIANT_LOCALE,
    ResourceEntry,
    ResourceMerger,
    ResourceTable,
    locale_from_filename,
    merge,
    storage_location_for,
)


def test_locale_from_filename():
    assert locale_from_filename("/base/en.json", "en") == ""
    assert locale_from_filename("/base/fr.json", "en") == "fr"
    assert locale_from_filename("/base/sub/.de.json", "en") == "de"
    assert locale_from_filename("en-GB.json", "en") == "-GB"
    assert locale_from_filename("fr.json", "") == "fr"


def test_storage_location_hint():
    assert storage_location_for("shop", PathKey.parse("home.title"), sep="/") == "shop/home"
    assert storage_location_for("shop", PathKey.parse("footer"), sep="/") == "shop"
    # project name dots become separators too, but only for nested keys
    assert storage_location_for("my.shop", PathKey.parse("a.b"), sep="\\") == "my\\shop\\a"
    assert storage_location_for("my.shop", PathKey.parse("a"), sep="\\") == "my.shop"


def test_merge_two_locale_files():
    table = merge(
        "site",
        [
            ("en", [(PathKey.parse("greet"), "Hello")]),
            ("fr", [(PathKey.parse("greet"), "Bonjour")]),
        ],
    )
    assert table.names() == ["greet"]
    assert table["greet"].texts == {"en": "Hello", "fr": "Bonjour"}


def test_invariant_file_flattened_from_nested_document():
    tree = domain.from_json({"a": {"b": "X"}, "c": "Y"})
    locale = locale_from_filename("en.json", "en")

    merger = ResourceMerger("site", sep="/")
    merger.add_file(locale, domain.flatten(tree))

    table = merger.table
    assert table.names() == ["a.b", "c"]
    assert table["a.b"].texts == {INVARIANT_LOCALE: "X"}
    assert table["c"].texts == {INVARIANT_LOCALE: "Y"}
    assert table["a.b"].storage_location == "site/a"
    assert table["c"].storage_location == "site"


def test_merger_overwrites_same_locale_and_keeps_partial_entries():
    merger = ResourceMerger("site", sep="/")
    merger.add_file("", [(PathKey.parse("a"), "1"), (PathKey.parse("b"), "2")])
    merger.add_file("de", [(PathKey.parse("a"), "eins"), (PathKey.parse("c"), "drei")])
    merger.add_file("de", [(PathKey.parse("a"), "EINS")])

    table = merger.table
    assert table.names() == ["a", "b", "c"]
    assert table["a"].texts == {"": "1", "de": "EINS"}
    assert table["b"].texts == {"": "2"}
    # not filtered here; the caller decides
    assert "c" in table
    assert [e.name for e in table.incomplete()] == ["c"]
    assert [e.name for e in table.complete()] == ["a", "b"]


def test_resource_table_preserves_insertion_order():
    table = ResourceTable(ResourceEntry(key=PathKey.parse(k)) for k in ["z", "a.b", "m"])
    assert [e.name for e in table] == ["z", "a.b", "m"]
    assert len(table) == 3
    assert table.get("missing") is None
