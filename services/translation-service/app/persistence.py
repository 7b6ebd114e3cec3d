from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Literal

from . import domain
from .resources import INVARIANT_LOCALE, ResourceEntry, ResourceMerger, ResourceTable, locale_from_filename

STORAGE_LOCATION = os.getenv("NGX_STORAGE_LOCATION", "i18n")
SOLUTION_PATH = os.getenv("NGX_SOLUTION_PATH", "") or os.getcwd()

logger = logging.getLogger(__name__)

ResultStatus = Literal["success", "error"]


@dataclass
class ResultItem:
    file_name: str
    project_name: str
    result: ResultStatus = "success"
    message: str | None = None


ResultCallback = Callable[[ResultItem], None]


def _base_message(exc: BaseException) -> str:
    while exc.__cause__ is not None or exc.__context__ is not None:
        exc = exc.__cause__ or exc.__context__
    if isinstance(exc, OSError) and exc.strerror:
        return exc.strerror
    return str(exc)


def read_tree(path: str) -> domain.ObjectNode:
    with open(path, "r", encoding="utf-8-sig") as f:
        try:
            data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise domain.ResourceFormatError(f"{path}: {e}") from e
    return domain.from_json(data)


def write_tree(path: str, tree: domain.ObjectNode) -> None:
    # Encode before opening so an unencodable text never truncates an existing file.
    data = json.dumps(domain.to_json(tree), indent=2, ensure_ascii=False).encode("utf-8")
    with open(path, "wb") as f:
        f.write(data)


class NgxTranslateProvider:
    """
    Reads and writes ngx-translate JSON files below a base directory.

    Export isolates failures per file and reports them through the result
    callback. Import is all-or-nothing: the first unreadable or malformed file
    aborts the batch.
    """

    name = "Ngx-Translate JSON Resources Provider"
    description = "JSON Resources Provider for ngx-translate JSON files."
    storage_location_user_text = "Base Directory where language files are located"
    storage_type = "directory"

    def __init__(self, storage_location: str | None = None, solution_path: str | None = None) -> None:
        self.storage_location = storage_location or STORAGE_LOCATION
        self.solution_path = solution_path or SOLUTION_PATH

    @property
    def storage_location(self) -> str:
        return self._storage_location

    @storage_location.setter
    def storage_location(self, value: str) -> None:
        if not value or not value.strip():
            raise ValueError("storage_location must not be empty")
        self._storage_location = value

    def base_directory(self) -> str:
        base = self._storage_location
        if not os.path.isabs(base):
            base = os.path.abspath(os.path.join(self.solution_path, base))
        return base

    def output_filename(self, locale: str, project_locale: str) -> str:
        stem = project_locale if not locale.strip() else locale
        return os.path.join(self.base_directory(), f"{stem}.json").replace("..", ".")

    # ----------------------------
    # Export
    # ----------------------------

    @staticmethod
    def build_locale_tree(resources: Iterable[ResourceEntry], locale: str) -> domain.TreeBuilder:
        lookup = INVARIANT_LOCALE if not locale.strip() else locale
        builder = domain.TreeBuilder()
        for res in resources:
            builder.add(res.key, res.get_locale_text(lookup) or "")
        return builder

    def export_resource_strings(
        self,
        project_name: str,
        project_locale: str,
        locales_to_export: Iterable[str],
        resources: Iterable[ResourceEntry],
        result_callback: ResultCallback | None = None,
    ) -> list[ResultItem]:
        resources = list(resources)
        results: list[ResultItem] = []

        def _report(item: ResultItem) -> None:
            results.append(item)
            if result_callback is not None:
                result_callback(item)

        file_cache: dict[str, domain.ObjectNode] = {}
        failed: set[str] = set()

        for locale in locales_to_export:
            filename = self.output_filename(locale, project_locale)
            if filename in file_cache or filename in failed:
                if filename not in failed:
                    failed.add(filename)
                    logger.warning("Export %s: %s requested more than once", project_name, filename)
                    _report(
                        ResultItem(
                            file_name=filename,
                            project_name=project_name,
                            result="error",
                            message=f"Duplicate output file for locale {locale!r}",
                        )
                    )
                continue

            builder = self.build_locale_tree(resources, locale)
            if builder.dropped:
                logger.info(
                    "Export %s: %d key(s) dropped for %s: %s",
                    project_name,
                    len(builder.dropped),
                    filename,
                    ", ".join(str(k) for k in builder.dropped),
                )
            file_cache[filename] = builder.build()

        for filename, tree in file_cache.items():
            try:
                write_tree(filename, tree)
            except (OSError, ValueError) as e:
                failed.add(filename)
                logger.warning("Export %s: writing %s failed: %s", project_name, filename, e)
                _report(
                    ResultItem(file_name=filename, project_name=project_name, result="error", message=_base_message(e))
                )
                continue
            _report(ResultItem(file_name=filename, project_name=project_name))

        logger.info("Export %s: %d file(s), %d failed", project_name, len(file_cache), len(failed))
        return results

    # ----------------------------
    # Import
    # ----------------------------

    def iter_locale_files(self) -> Iterator[str]:
        base = self.base_directory()
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames.sort()
            for fn in sorted(filenames):
                if fn.lower().endswith(".json"):
                    yield os.path.join(dirpath, fn)

    def import_resource_strings(self, project_name: str, project_locale: str) -> ResourceTable:
        base = self.base_directory()
        if not os.path.isdir(base):
            raise FileNotFoundError(f"Base directory not found: {base}")

        merger = ResourceMerger(project_name)
        files = 0
        for path in self.iter_locale_files():
            locale = locale_from_filename(path, project_locale)
            tree = read_tree(path)
            merger.add_file(locale, domain.flatten(tree))
            files += 1

        table = merger.table
        logger.info("Import %s: %d resource(s) from %d file(s)", project_name, len(table), files)
        return table
