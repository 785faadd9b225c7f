"""
Reader for the tab-delimited "Report of all active classes" export.

The report starts with a few metadata lines, then a header row beginning with
"Year", then one tab-delimited data row per class section:

    Report of all active classes for 20259 as of 04/02/2025 at 00:19:30.1
    Year<TAB>Semester<TAB>Dept-Abbr<TAB>...
    2025<TAB>9<TAB>C S<TAB>Computer Science<TAB>439H<TAB>...

Parsing is best-effort: unreadable metadata and short or broken rows are
logged and skipped, never raised to the caller.
"""

from __future__ import annotations

import re
import sys
from datetime import datetime

from errors import MetadataParseError, RowParseError

REPORT_DATE_PREFIX = "Report of all active classes for"
HEADER_PREFIX = "Year"

REPORT_DATE_RE = re.compile(r'^Report of all active classes for \d+ as of (.+) at (.+)$')
DATE_RE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')
TIME_RE = re.compile(r'^(\d{1,2}):(\d{1,2}):(\d{1,2}(?:\.\d+)?)$')

# Rows shorter than this are noise (page footers, wrapped text).
MIN_FIELDS = 15

# Fixed column order of the report, positions 0..20.
RAW_COLUMNS = (
    "year",
    "semester",
    "deptAbbr",
    "deptName",
    "courseNbr",
    "topic",
    "unique",
    "constSectNbr",
    "title",
    "crsDesc",
    "instructor",
    "days",
    "from",
    "to",
    "building",
    "room",
    "maxEnrollment",
    "seatsTaken",
    "totalXListings",
    "xListPointer",
    "xListings",
)


def split_lines(text: str) -> list[str]:
    """Split report text into lines, tolerating CR/LF line endings."""
    if not text:
        return []
    return [line.rstrip("\r") for line in text.split("\n")]


def parse_report_date(line: str) -> datetime:
    """
    Parse 'Report of all active classes for 20259 as of 04/02/2025 at 00:19:30.1'.

    Raises MetadataParseError when the line or any date/time component
    does not match.
    """
    match = REPORT_DATE_RE.match(line.strip())
    if not match:
        raise MetadataParseError(f"Failed to parse report date and time from line: {line}")

    date_part = match.group(1).strip()
    time_part = match.group(2).strip()
    date_match = DATE_RE.match(date_part)
    time_match = TIME_RE.match(time_part)
    if not date_match or not time_match:
        raise MetadataParseError(f"Failed to parse date/time components from line: {line}")

    month, day, year = (int(g) for g in date_match.groups())
    hour = int(time_match.group(1))
    minute = int(time_match.group(2))
    seconds = float(time_match.group(3))
    whole_seconds = int(seconds)
    micros = int(round((seconds - whole_seconds) * 1_000_000))
    if micros >= 1_000_000:
        micros = 999_999
    try:
        return datetime(year, month, day, hour, minute, whole_seconds, micros)
    except ValueError as exc:
        raise MetadataParseError(f"Invalid report date/time in line: {line} ({exc})") from exc


def extract_metadata(text: str, now: datetime | None = None) -> dict:
    """
    Locate the report timestamp and the first data line.

    Returns {"report_date": datetime, "data_start": int}. When no report
    line parses, report_date is `now` (the extraction start time). When no
    header line exists, data_start stays 0 and the whole file is read as data.
    """
    report_date = now or datetime.now()
    found_date = False
    data_start = 0

    for i, raw_line in enumerate(split_lines(text)):
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith(REPORT_DATE_PREFIX) and not found_date:
            try:
                report_date = parse_report_date(line)
                found_date = True
            except MetadataParseError as exc:
                print(f"[WARN] {exc}", file=sys.stderr)
                continue

        if line.startswith(HEADER_PREFIX):
            data_start = i + 1
            break

    return {"report_date": report_date, "data_start": data_start}


def _parse_int(value: str, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_optional_int(value: str) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def map_fields(fields: list[str]) -> dict:
    """Map positional report fields to a raw row dict. Missing trailing columns become ''."""
    values = [f.strip() for f in fields]
    row = {
        name: (values[pos] if pos < len(values) else "")
        for pos, name in enumerate(RAW_COLUMNS)
    }
    row["maxEnrollment"] = _parse_int(row["maxEnrollment"])
    row["seatsTaken"] = _parse_int(row["seatsTaken"])
    row["totalXListings"] = _parse_optional_int(row["totalXListings"])
    return row


def extract_rows(text: str, data_start: int = 0) -> list[dict]:
    """Read every data row from `data_start` on, skipping blank, short and broken lines."""
    rows: list[dict] = []
    lines = split_lines(text)
    for i in range(data_start, len(lines)):
        line = lines[i].strip()
        if not line:
            continue

        fields = line.split("\t")
        if len(fields) < MIN_FIELDS:
            continue

        try:
            rows.append(map_fields(fields))
        except Exception as exc:
            err = RowParseError(i + 1, line, exc)
            print(f"[WARN] {err}", file=sys.stderr)
            print(f"[WARN]   cause: {exc!r}", file=sys.stderr)
    return rows


def parse_report(text: str, now: datetime | None = None) -> tuple[datetime, list[dict]]:
    """Run metadata and row extraction over one report. Returns (report_date, raw_rows)."""
    meta = extract_metadata(text, now=now)
    rows = extract_rows(text, meta["data_start"])
    return meta["report_date"], rows
