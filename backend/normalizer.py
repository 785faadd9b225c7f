from datetime import datetime

SEMESTER_NAMES = {
    "2": "Spring",
    "6": "Summer",
    "9": "Fall",
}

SUMMER_SEMESTER_CODE = "6"

# F = first session, S = second session, N = nine week, W = whole summer
SUMMER_SESSION_CODES = ("F", "S", "N", "W")


def semester_id(year: str, semester_code: str) -> str:
    """'2025', '9' → '20259'."""
    return f"{year}{semester_code}"


def semester_name(year: str, semester_code: str) -> str:
    """'2025', '2' → 'Spring 2025'. Unknown codes give ''."""
    term = SEMESTER_NAMES.get(semester_code)
    if term is None:
        return ""
    return f"{term} {year}"


def split_summer_session(course_nbr: str, semester_code: str) -> tuple[str, str]:
    """
    Strip the summer session prefix from a course number.

    Returns (session, cleaned_course_nbr). Only summer reports carry the
    prefix, so 'F408D' in a Fall report stays 'F408D' with no session.
    """
    if semester_code != SUMMER_SEMESTER_CODE or not course_nbr:
        return "", course_nbr or ""
    first = course_nbr[0]
    if first in SUMMER_SESSION_CODES:
        return first, course_nbr[1:]
    return "", course_nbr


def parse_xlistings(raw) -> list[str]:
    """'50801, 50802,  50803' → ['50801', '50802', '50803']. Blank → []."""
    if isinstance(raw, (list, tuple)):
        raw = ",".join(str(token) for token in raw)
    if not raw or not str(raw).strip():
        return []
    return [token.strip() for token in str(raw).split(",") if token.strip()]


def format_report_date(report_date) -> str:
    """datetime → ISO-8601 with milliseconds. Already-serialized strings pass through."""
    if isinstance(report_date, str):
        return report_date
    return report_date.isoformat(timespec="milliseconds")


def normalize_row(raw: dict, year: str, semester_code: str, report_date: datetime) -> dict:
    """
    Turn one raw report row into a course entry.

    `year` and `semester_code` are the report-level values taken from the
    first parsed row; every row in a report belongs to the same semester.
    Missing optional strings become '' (never None); only
    'Total X-listings' may be None.
    """
    session, course_nbr = split_summer_session(raw.get("courseNbr") or "", semester_code)
    dept_abbr = raw.get("deptAbbr") or ""
    title = raw.get("title") or ""

    return {
        "reportDate": format_report_date(report_date),
        "Year": year,
        "Semester": semester_code,
        "semesterId": semester_id(year, semester_code),
        "semesterName": semester_name(year, semester_code),
        "Dept-Abbr": dept_abbr,
        "Dept-Name": raw.get("deptName") or "",
        "Course Nbr": course_nbr,
        "fullCourseNumber": f"{dept_abbr} {course_nbr}",
        "fullCourseName": f"{dept_abbr} {course_nbr} - {title}",
        "summerSession": session,
        "Topic": raw.get("topic") or "",
        "Unique": raw.get("unique") or "",
        "Const Sect Nbr": raw.get("constSectNbr") or "",
        "Title": title,
        "Crs Desc": raw.get("crsDesc") or "",
        "Instructor": raw.get("instructor") or "",
        "Days": raw.get("days") or "",
        "From": raw.get("from") or "",
        "To": raw.get("to") or "",
        "Building": raw.get("building") or "",
        "Room": raw.get("room") or "",
        "Max Enrollment": raw.get("maxEnrollment", 0),
        "Seats Taken": raw.get("seatsTaken", 0),
        "Total X-listings": raw.get("totalXListings"),
        "X-List Pointer": raw.get("xListPointer") or "",
        "X-Listings": parse_xlistings(raw.get("xListings")),
    }
