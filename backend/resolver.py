"""
Path lookups over a CatalogStore snapshot.

Two resolvers share one failure policy:

  FlatResolver   [semester, fieldOfStudy, course, unique]
  TreeResolver   [semester, fieldOfStudy, course, topic, section]

Every lookup returns a LookupResult. A miss names the first path segment
that failed and resolution stops there. Resolvers only read the store.

The two differ at depth one: FlatResolver.resolve([semester]) returns the
semester object without its courses, while TreeResolver.resolve([semester])
returns that semester's fields of study, matching the nested document where
a semester holds nothing but its fields. Topic numbers can repeat within a
course when descriptions differ, so tree topic and section lookups search
every topic carrying the number.
"""

from __future__ import annotations

from catalog_builder import build_topic_tree
from catalog_store import CatalogStore

SEGMENT_ERROR_CODES = {
    "semester": "SEMESTER_NOT_FOUND",
    "fieldOfStudy": "FIELD_OF_STUDY_NOT_FOUND",
    "course": "COURSE_NOT_FOUND",
    "topic": "TOPIC_NOT_FOUND",
    "section": "SECTION_NOT_FOUND",
}


class LookupResult:
    """Either a found value or a not-found tagged with the failing path segment."""

    def __init__(self, ok: bool, value=None, segment: str | None = None,
                 key: str | None = None, message: str = ""):
        self.ok = ok
        self.value = value
        self.segment = segment
        self.key = key
        self.message = message

    @classmethod
    def found(cls, value) -> "LookupResult":
        return cls(True, value=value)

    @classmethod
    def not_found(cls, segment: str, key: str, message: str) -> "LookupResult":
        return cls(False, segment=segment, key=key, message=message)

    @property
    def error_code(self) -> str | None:
        if self.ok:
            return None
        return SEGMENT_ERROR_CODES[self.segment]

    def __bool__(self) -> bool:
        return self.ok

    def __repr__(self) -> str:
        if self.ok:
            return f"LookupResult.found({self.value!r})"
        return f"LookupResult.not_found({self.segment!r}, {self.key!r})"


def _semester_missing(semester: str) -> LookupResult:
    return LookupResult.not_found("semester", semester, f"Semester '{semester}' not found")


def _field_missing(field_of_study: str, semester: str) -> LookupResult:
    return LookupResult.not_found(
        "fieldOfStudy",
        field_of_study,
        f"Field of study '{field_of_study}' not found in semester '{semester}'",
    )


def _course_missing(course_nbr: str, field_of_study: str) -> LookupResult:
    return LookupResult.not_found(
        "course", course_nbr, f"Course '{course_nbr}' not found in '{field_of_study}'"
    )


class _BaseResolver:
    def __init__(self, store: CatalogStore):
        self.store = store

    def list_semesters(self) -> list[str]:
        return self.store.semester_ids()

    def get_semester(self, semester: str) -> LookupResult:
        """Semester catalog without its course rows."""
        catalog = self.store.get(semester)
        if catalog is None:
            return _semester_missing(semester)
        return LookupResult.found({k: v for k, v in catalog.items() if k != "courses"})

    def list_fields_of_study(self, semester: str) -> LookupResult:
        catalog = self.store.get(semester)
        if catalog is None:
            return _semester_missing(semester)
        return LookupResult.found([
            {"deptAbbr": fos.get("Dept-Abbr", ""), "deptName": fos.get("Dept-Name", "")}
            for fos in catalog.get("fieldsOfStudy", [])
        ])

    def _resolve_field(self, semester: str, field_of_study: str):
        """Return (catalog, None) or (None, LookupResult miss)."""
        catalog = self.store.get(semester)
        if catalog is None:
            return None, _semester_missing(semester)
        known = any(
            fos.get("Dept-Abbr") == field_of_study
            for fos in catalog.get("fieldsOfStudy", [])
        )
        if not known:
            return None, _field_missing(field_of_study, semester)
        return catalog, None


class FlatResolver(_BaseResolver):
    """Lookups over the flat course-row list of each semester."""

    def list_courses(self, semester: str, field_of_study: str) -> LookupResult:
        catalog, miss = self._resolve_field(semester, field_of_study)
        if miss is not None:
            return miss
        return LookupResult.found([
            c for c in catalog.get("courses", []) if c.get("Dept-Abbr") == field_of_study
        ])

    def get_course(self, semester: str, field_of_study: str, course_nbr: str) -> LookupResult:
        catalog, miss = self._resolve_field(semester, field_of_study)
        if miss is not None:
            return miss
        rows = [
            c for c in catalog.get("courses", [])
            if c.get("Dept-Abbr") == field_of_study and c.get("Course Nbr") == course_nbr
        ]
        if not rows:
            return _course_missing(course_nbr, field_of_study)
        return LookupResult.found(rows)

    def get_section(self, semester: str, field_of_study: str, course_nbr: str,
                    unique: str) -> LookupResult:
        """All rows with this unique number. Cross-listed pairs can repeat a number."""
        course = self.get_course(semester, field_of_study, course_nbr)
        if not course:
            return course
        rows = [c for c in course.value if c.get("Unique") == unique]
        if not rows:
            return LookupResult.not_found(
                "section",
                unique,
                f"Section '{unique}' not found in course '{field_of_study} {course_nbr}'",
            )
        return LookupResult.found(rows)

    def resolve(self, path) -> LookupResult:
        """Resolve [semester, fieldOfStudy?, course?, unique?]."""
        path = list(path)
        if not path:
            return LookupResult.found(self.list_semesters())
        if len(path) == 1:
            return self.get_semester(*path)
        if len(path) == 2:
            return self.list_courses(*path)
        if len(path) == 3:
            return self.get_course(*path)
        if len(path) == 4:
            return self.get_section(*path)
        raise ValueError(f"Flat lookup path has at most 4 segments, got {len(path)}")


class TreeResolver(_BaseResolver):
    """Lookups over the field-of-study → course → topic → section projection."""

    def __init__(self, store: CatalogStore):
        super().__init__(store)
        self._trees: dict[str, list[dict]] = {}

    def _tree(self, semester: str) -> list[dict]:
        tree = self._trees.get(semester)
        if tree is None:
            tree = build_topic_tree(self.store.get(semester))
            self._trees[semester] = tree
        return tree

    def _find_field(self, semester: str, field_of_study: str):
        _, miss = self._resolve_field(semester, field_of_study)
        if miss is not None:
            return None, miss
        for fos in self._tree(semester):
            if fos["deptAbbr"] == field_of_study:
                return fos, None
        # Listed in fieldsOfStudy but no rows: an empty department.
        return {"deptAbbr": field_of_study, "courses": []}, None

    def _find_course(self, semester: str, field_of_study: str, course_nbr: str):
        fos, miss = self._find_field(semester, field_of_study)
        if miss is not None:
            return None, miss
        for course in fos["courses"]:
            if course["courseNumber"] == course_nbr:
                return course, None
        return None, _course_missing(course_nbr, field_of_study)

    def _find_topics(self, semester: str, field_of_study: str, course_nbr: str, topic: str):
        """Every topic of the course numbered `topic`; numbers repeat when descriptions differ."""
        course, miss = self._find_course(semester, field_of_study, course_nbr)
        if miss is not None:
            return None, miss
        entries = [entry for entry in course["topics"] if entry["topicNumber"] == topic]
        if not entries:
            return None, LookupResult.not_found(
                "topic", topic, f"Topic '{topic}' not found in course '{course_nbr}'"
            )
        return entries, None

    def list_courses(self, semester: str, field_of_study: str) -> LookupResult:
        fos, miss = self._find_field(semester, field_of_study)
        if miss is not None:
            return miss
        return LookupResult.found([c["courseNumber"] for c in fos["courses"]])

    def get_course(self, semester: str, field_of_study: str, course_nbr: str) -> LookupResult:
        course, miss = self._find_course(semester, field_of_study, course_nbr)
        if miss is not None:
            return miss
        return LookupResult.found([
            {"topicNumber": t["topicNumber"], "topicTitle": t["title"]}
            for t in course["topics"]
        ])

    def get_topic(self, semester: str, field_of_study: str, course_nbr: str,
                  topic: str) -> LookupResult:
        entries, miss = self._find_topics(semester, field_of_study, course_nbr, topic)
        if miss is not None:
            return miss
        return LookupResult.found([
            {"uniqueNumber": s["uniqueNumber"]} for entry in entries for s in entry["sections"]
        ])

    def get_section(self, semester: str, field_of_study: str, course_nbr: str,
                    topic: str, unique: str) -> LookupResult:
        entries, miss = self._find_topics(semester, field_of_study, course_nbr, topic)
        if miss is not None:
            return miss
        for entry in entries:
            for section in entry["sections"]:
                if section["uniqueNumber"] == unique:
                    return LookupResult.found(section)
        return LookupResult.not_found(
            "section", unique, f"Section '{unique}' not found in topic '{topic}'"
        )

    def resolve(self, path) -> LookupResult:
        """Resolve [semester, fieldOfStudy?, course?, topic?, section?]."""
        path = list(path)
        if not path:
            return LookupResult.found(self.list_semesters())
        if len(path) == 1:
            return self.list_fields_of_study(*path)
        if len(path) == 2:
            return self.list_courses(*path)
        if len(path) == 3:
            return self.get_course(*path)
        if len(path) == 4:
            return self.get_topic(*path)
        if len(path) == 5:
            return self.get_section(*path)
        raise ValueError(f"Tree lookup path has at most 5 segments, got {len(path)}")
