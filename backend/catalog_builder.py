"""
Fold parsed report rows into one semester catalog.

The flat `courses` list is the only stored shape. The nested
field-of-study → course → topic → section tree is rebuilt on demand by
build_topic_tree() so there is a single source of truth.
"""

from __future__ import annotations

from datetime import datetime

from errors import NoDataError
from normalizer import format_report_date, normalize_row, semester_id, semester_name
from report_parser import parse_report


def collect_fields_of_study(courses: list[dict]) -> list[dict]:
    """Unique Dept-Abbr → Dept-Name pairs in first-seen order. The first name seen wins."""
    seen: dict[str, dict] = {}
    for course in courses:
        abbr = course.get("Dept-Abbr", "")
        if abbr and abbr not in seen:
            seen[abbr] = {"Dept-Abbr": abbr, "Dept-Name": course.get("Dept-Name", "")}
    return list(seen.values())


def build_semester_catalog(rows: list[dict], report_date: datetime) -> dict:
    """
    Build a semester catalog from raw rows of a single report.

    Year and semester code come from the first row. Raises NoDataError
    when `rows` is empty.
    """
    if not rows:
        raise NoDataError("No course data found in the file")

    year = rows[0].get("year", "")
    code = rows[0].get("semester", "")
    courses = [normalize_row(row, year, code, report_date) for row in rows]

    return {
        "reportDate": format_report_date(report_date),
        "Year": year,
        "Semester": code,
        "semesterId": semester_id(year, code),
        "semesterName": semester_name(year, code),
        "fieldsOfStudy": collect_fields_of_study(courses),
        "courses": courses,
    }


def build_catalog_from_report(text: str, now: datetime | None = None) -> dict:
    """Parse report text and build its semester catalog in one step."""
    report_date, rows = parse_report(text, now=now)
    return build_semester_catalog(rows, report_date)


def topic_key(course: dict) -> str:
    return f"{course.get('Topic', '')}:{course.get('Title', '')}:{course.get('Crs Desc', '')}"


def _section_from_course(course: dict) -> dict:
    return {
        "uniqueNumber": course.get("Unique", ""),
        "constSectNbr": course.get("Const Sect Nbr", ""),
        "instructor": course.get("Instructor", ""),
        "days": course.get("Days", ""),
        "from": course.get("From", ""),
        "to": course.get("To", ""),
        "building": course.get("Building", ""),
        "room": course.get("Room", ""),
        "maxEnrollment": course.get("Max Enrollment", 0),
        "seatsTaken": course.get("Seats Taken", 0),
        "totalXListings": course.get("Total X-listings"),
        "xListPointer": course.get("X-List Pointer", ""),
        "xListings": list(course.get("X-Listings") or []),
    }


def build_topic_tree(catalog: dict) -> list[dict]:
    """
    Group a catalog's flat rows into fields of study → courses → topics → sections.

    Grouping keys are Dept-Abbr, the cleaned Course Nbr, and the
    'Topic:Title:Crs Desc' composite, so two topics that differ only in
    description stay separate. Every row becomes its own section, even
    when unique numbers repeat. Department names follow fieldsOfStudy.
    """
    dept_names = {
        fos.get("Dept-Abbr"): fos.get("Dept-Name", "")
        for fos in catalog.get("fieldsOfStudy", [])
    }
    fields: dict[str, dict] = {}
    course_index: dict[tuple[str, str], dict] = {}
    topic_index: dict[tuple[str, str, str], dict] = {}

    for row in catalog.get("courses", []):
        abbr = row.get("Dept-Abbr", "")
        fos = fields.get(abbr)
        if fos is None:
            fos = {
                "deptAbbr": abbr,
                "deptName": dept_names.get(abbr, row.get("Dept-Name", "")),
                "courses": [],
            }
            fields[abbr] = fos

        course_nbr = row.get("Course Nbr", "")
        course = course_index.get((abbr, course_nbr))
        if course is None:
            course = {"courseNumber": course_nbr, "topics": []}
            fos["courses"].append(course)
            course_index[(abbr, course_nbr)] = course

        key = topic_key(row)
        topic = topic_index.get((abbr, course_nbr, key))
        if topic is None:
            topic = {
                "topicNumber": row.get("Topic", ""),
                "title": row.get("Title", ""),
                "courseDescription": row.get("Crs Desc", ""),
                "sections": [],
            }
            course["topics"].append(topic)
            topic_index[(abbr, course_nbr, key)] = topic

        topic["sections"].append(_section_from_course(row))

    return list(fields.values())


_SECTION_ROW_KEYS = {
    "uniqueNumber": "unique",
    "constSectNbr": "constSectNbr",
    "instructor": "instructor",
    "days": "days",
    "from": "from",
    "to": "to",
    "building": "building",
    "room": "room",
    "maxEnrollment": "maxEnrollment",
    "seatsTaken": "seatsTaken",
    "totalXListings": "totalXListings",
    "xListPointer": "xListPointer",
    "xListings": "xListings",
}


def catalog_from_topic_tree(key: str, entry: dict) -> dict:
    """
    Flatten a nested semester entry back into the stored catalog shape.

    `entry` holds `fieldsOfStudy` as the tree build_topic_tree() produces:
    deptAbbr/deptName → courses → topics → sections. Every section becomes
    one course row, so build_topic_tree() on the result gives the tree back.
    Year and Semester fall back to the semesterId key ('20252' → '2025', '2').
    Raises ValueError when a level is not the expected list of objects.
    """
    year = str(entry.get("Year") or key[:4])
    code = str(entry.get("Semester") or key[4:])
    report_date = entry.get("reportDate") or ""

    fields_of_study: list[dict] = []
    seen: set[str] = set()
    courses: list[dict] = []
    for fos in _objects(entry.get("fieldsOfStudy"), "fieldsOfStudy"):
        abbr = fos.get("deptAbbr") or ""
        dept_name = fos.get("deptName") or ""
        if abbr and abbr not in seen:
            seen.add(abbr)
            fields_of_study.append({"Dept-Abbr": abbr, "Dept-Name": dept_name})

        for course in _objects(fos.get("courses"), f"courses of '{abbr}'"):
            course_nbr = course.get("courseNumber") or ""
            for topic in _objects(course.get("topics"), f"topics of '{abbr} {course_nbr}'"):
                for section in _objects(topic.get("sections"), "sections"):
                    raw = {
                        "deptAbbr": abbr,
                        "deptName": dept_name,
                        "courseNbr": course_nbr,
                        "topic": topic.get("topicNumber"),
                        "title": topic.get("title"),
                        "crsDesc": topic.get("courseDescription"),
                    }
                    for tree_key, row_key in _SECTION_ROW_KEYS.items():
                        if tree_key in section:
                            raw[row_key] = section[tree_key]
                    row = normalize_row(raw, year, code, report_date)
                    # Tree course numbers are already cleaned; the session prefix is gone.
                    title = row["Title"]
                    row.update({
                        "Course Nbr": course_nbr,
                        "fullCourseNumber": f"{abbr} {course_nbr}",
                        "fullCourseName": f"{abbr} {course_nbr} - {title}",
                        "summerSession": "",
                    })
                    courses.append(row)

    return {
        "reportDate": format_report_date(report_date),
        "Year": year,
        "Semester": code,
        "semesterId": key,
        "semesterName": entry.get("semesterName") or semester_name(year, code),
        "fieldsOfStudy": fields_of_study,
        "courses": courses,
    }


def _objects(value, label: str) -> list[dict]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise ValueError(f"{label} must be a list of objects")
    return value
