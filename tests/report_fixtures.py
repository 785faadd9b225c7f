"""
Shared helpers for building report text in tests.

- report_row(): one tab-delimited data line with overridable columns
- build_report(): metadata line + header + data lines
- SAMPLE_REPORT: a small Fall 2025 report used across test modules
"""

from report_parser import RAW_COLUMNS

REPORT_LINE = "Report of all active classes for 20259 as of 04/02/2025 at 00:19:30.1"
HEADER_LINE = "\t".join([
    "Year", "Semester", "Dept-Abbr", "Dept-Name", "Course Nbr", "Topic", "Unique",
    "Const Sect Nbr", "Title", "Crs Desc", "Instructor", "Days", "From", "To",
    "Building", "Room", "Max Enrollment", "Seats Taken", "Total X-listings",
    "X-List Pointer", "X-Listings",
])

DEFAULTS = {
    "year": "2025",
    "semester": "9",
    "deptAbbr": "C S",
    "deptName": "Computer Science",
    "courseNbr": "439H",
    "topic": "0",
    "unique": "50885",
    "constSectNbr": "100352",
    "title": "PRINCIPLES OF COMPUTER SYS-C S",
    "crsDesc": "",
    "instructor": "DOE, J",
    "days": "TTH",
    "from": "1100",
    "to": "1230",
    "building": "GDC",
    "room": "1.302",
    "maxEnrollment": "30",
    "seatsTaken": "25",
    "totalXListings": "",
    "xListPointer": "",
    "xListings": "",
}


def report_row(**overrides) -> str:
    values = dict(DEFAULTS)
    values.update(overrides)
    return "\t".join(str(values[name]) for name in RAW_COLUMNS)


def build_report(*rows: str, report_line: str | None = REPORT_LINE, header: bool = True) -> str:
    lines = []
    if report_line is not None:
        lines.append(report_line)
        lines.append("")
    if header:
        lines.append(HEADER_LINE)
    lines.extend(rows)
    return "\n".join(lines) + "\n"


SAMPLE_REPORT = build_report(
    report_row(),
    report_row(unique="50890", constSectNbr="100353", instructor="SCOTT, M", days="MWF"),
    report_row(
        courseNbr="378", topic="0", unique="50900", constSectNbr="100360",
        title="CLOUD COMPUTING", totalXListings="1", xListPointer="50900",
        xListings="50901",
    ),
    report_row(
        courseNbr="378", topic="13", unique="50905", constSectNbr="100361",
        title="SYMBOLIC PROGRAMMING",
    ),
    report_row(
        deptAbbr="M", deptName="Mathematics", courseNbr="408D", unique="53500",
        constSectNbr="100400", title="SEQUENCES, SERIES, AND MULTIVARIABLE CALCULUS",
        maxEnrollment="", seatsTaken="n/a",
    ),
)
