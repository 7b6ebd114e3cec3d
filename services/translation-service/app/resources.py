from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from .domain import SEPARATOR, PathKey

# The invariant (locale-agnostic) text is stored under the empty locale code.
INVARIANT_LOCALE = ""


def storage_location_for(project_name: str, key: PathKey, sep: str = os.sep) -> str:
    """
    Grouping hint for a resource, e.g. `shop` + `home.title` -> `shop/home`.

    Single-segment keys are grouped under the project name as-is.
    """
    if not key.is_nested:
        return project_name
    return f"{project_name}{SEPARATOR}{key.first}".replace(SEPARATOR, sep)


def locale_from_filename(filename: str, project_locale: str) -> str:
    """
    Derive the locale code of a translation file.

    `en.json` with project locale `en` is the invariant file (""), `fr.json`
    is `fr`. A leading "." is ignored and every occurrence of the project
    locale is removed, so `en-GB.json` under project locale `en` becomes `-GB`.
    """
    name = os.path.basename(filename)
    dot = name.rfind(".")
    if dot >= 0:
        name = name[:dot]
    name = name.lstrip(".")
    if project_locale:
        name = name.replace(project_locale, "")
    return name


@dataclass
class ResourceEntry:
    key: PathKey
    storage_location: str = ""
    texts: dict[str, str] = field(default_factory=dict)  # locale -> text; "" is the invariant locale

    @property
    def name(self) -> str:
        return str(self.key)

    @property
    def is_complete(self) -> bool:
        return INVARIANT_LOCALE in self.texts

    def get_locale_text(self, locale: str) -> str | None:
        return self.texts.get(locale)

    def set_locale_text(self, locale: str, text: str) -> None:
        self.texts[locale] = text


class ResourceTable:
    """Resource name -> entry, in first-seen order."""

    def __init__(self, entries: Iterable[ResourceEntry] = ()) -> None:
        self._entries: dict[str, ResourceEntry] = {}
        for e in entries:
            self._entries[e.name] = e

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ResourceEntry]:
        return iter(self._entries.values())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __getitem__(self, name: str) -> ResourceEntry:
        return self._entries[name]

    def get(self, name: str) -> ResourceEntry | None:
        return self._entries.get(name)

    def add(self, entry: ResourceEntry) -> ResourceEntry:
        self._entries[entry.name] = entry
        return entry

    def names(self) -> list[str]:
        return list(self._entries)

    def complete(self) -> list[ResourceEntry]:
        return [e for e in self._entries.values() if e.is_complete]

    def incomplete(self) -> list[ResourceEntry]:
        return [e for e in self._entries.values() if not e.is_complete]


class ResourceMerger:
    """
    Collects the flattened pairs of every locale file of one project.

    Later files overwrite earlier ones for the same (key, locale). Nothing is
    filtered here; incomplete entries are left for the caller to discard.
    """

    def __init__(self, project_name: str, sep: str = os.sep) -> None:
        self.project_name = project_name
        self._sep = sep
        self._table = ResourceTable()

    def add(self, key: PathKey, locale: str, text: str) -> ResourceEntry:
        entry = self._table.get(str(key))
        if entry is None:
            entry = self._table.add(
                ResourceEntry(key=key, storage_location=storage_location_for(self.project_name, key, self._sep))
            )
        entry.set_locale_text(locale, text)
        return entry

    def add_file(self, locale: str, pairs: Iterable[tuple[PathKey, str]]) -> int:
        count = 0
        for key, text in pairs:
            self.add(key, locale, text)
            count += 1
        return count

    @property
    def table(self) -> ResourceTable:
        return self._table


def merge(project_name: str, files: Iterable[tuple[str, Iterable[tuple[PathKey, str]]]]) -> ResourceTable:
    """`files` yields (locale, pairs) per locale file."""
    merger = ResourceMerger(project_name)
    for locale, pairs in files:
        merger.add_file(locale, pairs)
    return merger.table
