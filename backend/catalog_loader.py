import sys
import pandas as pd
from catalog_store import CatalogStore, read_store


def _courses_frame(catalog: dict) -> pd.DataFrame:
    """Flat course rows of one semester as a DataFrame (only the columns the checks use)."""
    columns = ["semesterId", "Dept-Abbr", "Course Nbr", "Unique"]
    rows = catalog.get("courses") or []
    if not rows:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(rows)
    for col in columns:
        if col not in df.columns:
            df[col] = ""
    return df[columns].fillna("").astype(str)


def check_catalog_integrity(store: CatalogStore) -> list[str]:
    """
    Run startup data integrity checks and return warning lines.

    Nothing is rejected: the report is trusted as-is, these only surface
    oddities worth a look (orphan departments, repeated unique numbers,
    rows filed under the wrong semester).
    """
    warnings: list[str] = []
    for catalog in store:
        sid = catalog.get("semesterId")
        df = _courses_frame(catalog)
        if df.empty:
            warnings.append(f"Semester {sid} has no course rows")
            continue

        known = {fos.get("Dept-Abbr") for fos in catalog.get("fieldsOfStudy", [])}
        orphaned = sorted(set(df["Dept-Abbr"]) - known - {""})
        if orphaned:
            warnings.append(
                f"Semester {sid}: {len(orphaned)} Dept-Abbr value(s) missing from fieldsOfStudy: {orphaned}"
            )

        # Cross-listed pairs may legitimately share a unique number.
        uniques = df.loc[df["Unique"] != "", "Unique"]
        dupes = sorted(uniques[uniques.duplicated()].unique().tolist())
        if dupes:
            warnings.append(
                f"Semester {sid}: {len(dupes)} unique number(s) appear on more than one row"
            )

        misfiled = int((df["semesterId"] != str(sid)).sum())
        if misfiled:
            warnings.append(f"Semester {sid}: {misfiled} row(s) carry a different semesterId")
    return warnings


def catalog_summary(store: CatalogStore) -> list[dict]:
    """Per-semester counts: fields of study, distinct courses, sections."""
    summary = []
    for catalog in store:
        df = _courses_frame(catalog)
        distinct_courses = 0 if df.empty else len(df.drop_duplicates(["Dept-Abbr", "Course Nbr"]))
        summary.append({
            "semesterId": catalog.get("semesterId"),
            "semesterName": catalog.get("semesterName", ""),
            "reportDate": catalog.get("reportDate"),
            "fieldsOfStudy": len(catalog.get("fieldsOfStudy", [])),
            "courses": distinct_courses,
            "sections": int(len(df)),
        })
    return summary


def load_catalog(path: str) -> CatalogStore:
    """Load the catalog file to serve. Raises on missing file or invalid content."""
    store = read_store(path)
    for line in check_catalog_integrity(store):
        print(f"[WARN] {line}", file=sys.stderr)
    return store
