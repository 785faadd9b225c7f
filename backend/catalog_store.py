"""
Multi-semester catalog store and its JSON file format.

A CatalogStore is an immutable snapshot: merge() builds and returns a new
store, so readers holding the old snapshot never see a half-merged state.
The file format is a JSON array of semester catalogs. A JSON object keyed
by semesterId is also accepted on read, with each semester either flat or
nested as the field-of-study tree; nested entries are flattened on load.
"""

from __future__ import annotations

import json
import os
import sys
import tempfile

from catalog_builder import catalog_from_topic_tree
from errors import InvalidCatalogFileError


def merge_catalog(catalog: dict, catalogs) -> list[dict]:
    """
    Return a new list with `catalog` merged in by semesterId.

    An existing entry with the same semesterId is replaced at its current
    position; otherwise the catalog is appended. Last write wins.
    """
    merged = list(catalogs)
    target = catalog.get("semesterId")
    for i, existing in enumerate(merged):
        if existing.get("semesterId") == target:
            merged[i] = catalog
            return merged
    merged.append(catalog)
    return merged


class CatalogStore:
    """Ordered, semesterId-unique collection of semester catalogs."""

    def __init__(self, catalogs=()):
        unique: list[dict] = []
        for catalog in catalogs:
            unique = merge_catalog(catalog, unique)
        self._catalogs = tuple(unique)
        self._by_id = {c.get("semesterId"): c for c in self._catalogs}

    @property
    def catalogs(self) -> tuple:
        return self._catalogs

    def semester_ids(self) -> list[str]:
        return [c.get("semesterId") for c in self._catalogs]

    def get(self, semester_id: str):
        return self._by_id.get(semester_id)

    def merge(self, catalog: dict) -> "CatalogStore":
        return CatalogStore(merge_catalog(catalog, self._catalogs))

    def __len__(self) -> int:
        return len(self._catalogs)

    def __iter__(self):
        return iter(self._catalogs)

    def __contains__(self, semester_id) -> bool:
        return semester_id in self._by_id

    def __eq__(self, other) -> bool:
        if not isinstance(other, CatalogStore):
            return NotImplemented
        return list(self._catalogs) == list(other._catalogs)

    def __repr__(self) -> str:
        return f"CatalogStore({self.semester_ids()!r})"


# ── Serialization ──────────────────────────────────────────────────────────────

def dump_catalogs(store: CatalogStore) -> str:
    return json.dumps(list(store.catalogs), indent=2, ensure_ascii=False)


def _is_topic_tree(entry: dict) -> bool:
    """True when fieldsOfStudy holds nested {deptAbbr, courses} objects instead of flat pairs."""
    fields = entry.get("fieldsOfStudy")
    if not isinstance(fields, list):
        return False
    return any(
        isinstance(fos, dict) and "Dept-Abbr" not in fos and ("deptAbbr" in fos or "courses" in fos)
        for fos in fields
    )


def _entry_from_payload(key: str, entry: dict) -> dict:
    if _is_topic_tree(entry):
        try:
            return catalog_from_topic_tree(str(entry.get("semesterId") or key), entry)
        except ValueError as exc:
            raise InvalidCatalogFileError(f"Semester entry '{key}': {exc}") from exc
    return entry


def _catalogs_from_payload(payload) -> list[dict]:
    if isinstance(payload, list):
        catalogs = [
            _entry_from_payload(str(c.get("semesterId") or ""), c) if isinstance(c, dict) else c
            for c in payload
        ]
    elif isinstance(payload, dict):
        # Single-object variant: {"20259": {...}, "20262": {...}}, flat or nested
        catalogs = []
        for key, value in payload.items():
            if not isinstance(value, dict):
                raise InvalidCatalogFileError(f"Semester entry '{key}' is not an object")
            entry = dict(value)
            entry.setdefault("semesterId", key)
            catalogs.append(_entry_from_payload(key, entry))
    else:
        raise InvalidCatalogFileError("Catalog file must hold a JSON array or object")

    for i, catalog in enumerate(catalogs):
        if not isinstance(catalog, dict) or not catalog.get("semesterId"):
            raise InvalidCatalogFileError(f"Catalog entry #{i} has no semesterId")
    return catalogs


def load_catalogs(text: str) -> CatalogStore:
    """Parse catalog file text. Raises InvalidCatalogFileError on bad JSON or shape."""
    try:
        payload = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise InvalidCatalogFileError(f"Catalog file is not valid JSON: {exc}") from exc
    return CatalogStore(_catalogs_from_payload(payload))


# ── File I/O ───────────────────────────────────────────────────────────────────

def read_store(path: str) -> CatalogStore:
    """Read a catalog file. Raises FileNotFoundError or InvalidCatalogFileError."""
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return load_catalogs(text)


def read_existing_store(path: str) -> CatalogStore:
    """Read the merge target of an ingestion; a missing or invalid file counts as empty."""
    try:
        return read_store(path)
    except FileNotFoundError:
        print(f"[INFO] No existing catalog at {path}. Creating a new file.")
    except (InvalidCatalogFileError, UnicodeDecodeError) as exc:
        print(
            f"[WARN] No valid existing data found in {path} ({exc}). It will be overwritten.",
            file=sys.stderr,
        )
    return CatalogStore()


def write_store(store: CatalogStore, path: str) -> None:
    """Write the store as JSON, replacing `path` atomically."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(prefix=".catalog-", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(dump_catalogs(store))
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
