import os
import sys
import time
import threading
from datetime import datetime

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from markupsafe import escape
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from catalog_loader import catalog_summary, load_catalog
from catalog_store import CatalogStore
from resolver import FlatResolver, TreeResolver

load_dotenv()

API_VERSION = "1.0.0"

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
API_DOCS_PATH = os.path.join(BACKEND_DIR, "api_docs.md")
_DEFAULT_CATALOG_PATH = os.path.join(PROJECT_ROOT, "data", "catalog.json")


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int, minimum: int = 1) -> int:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, int(raw))
    except (TypeError, ValueError):
        return default


def resolve_catalog_path(raw: str | None = None) -> str:
    """CATALOG_PATH (or `raw`) made absolute; relative paths hang off the project root."""
    value = raw if raw is not None else os.environ.get("CATALOG_PATH")
    if not value:
        return _DEFAULT_CATALOG_PATH
    if not os.path.isabs(value):
        return os.path.join(PROJECT_ROOT, value)
    return value


DEFAULT_PORT = 3000
_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)


def _file_mtime(path: str | None):
    if not path:
        return None
    try:
        return os.path.getmtime(path)
    except OSError:
        return None


class CatalogHolder:
    """
    Owns the catalog snapshot served by one app.

    Readers take `snapshot()` once per request and keep using it. A reload
    builds a complete new store first and then swaps the reference under
    a lock, so a request never sees a half-loaded catalog.
    """

    def __init__(self, store: CatalogStore, path: str | None = None, mtime=None):
        self.path = path
        self._lock = threading.Lock()
        self._mtime = mtime
        self._set(store)

    def _set(self, store: CatalogStore) -> None:
        self._snapshot = (store, FlatResolver(store), TreeResolver(store))

    def snapshot(self):
        return self._snapshot

    @property
    def store(self) -> CatalogStore:
        return self._snapshot[0]

    def reload_if_changed(self, force: bool = False) -> bool:
        """
        Hot-reload the catalog when its file changes on disk.

        Returns True when a reload occurred, else False. A failed reload
        keeps the previous snapshot.
        """
        if not self.path:
            return False

        candidate_mtime = _file_mtime(self.path)
        if not force:
            if candidate_mtime is None:
                return False
            if self._mtime is not None and candidate_mtime <= self._mtime:
                return False

        with self._lock:
            latest_mtime = _file_mtime(self.path)
            if not force:
                if latest_mtime is None:
                    return False
                if self._mtime is not None and latest_mtime <= self._mtime:
                    return False

            try:
                new_store = load_catalog(self.path)
            except Exception as exc:
                print(f"[WARN] Catalog reload failed; keeping previous catalog: {exc}", file=sys.stderr)
                return False

            self._set(new_store)
            self._mtime = latest_mtime if latest_mtime is not None else candidate_mtime
            print(f"[OK] Reloaded {len(new_store)} semester(s) from {self.path}")
            return True


def _error_response(error_code: str, message: str, status: int, **extra):
    error = {"error_code": error_code, "message": message}
    error.update(extra)
    return jsonify({"mode": "error", "error": error}), status


def _lookup_response(result):
    if result.ok:
        return jsonify(result.value)
    return _error_response(
        result.error_code,
        result.message,
        404,
        segment=result.segment,
        key=result.key,
    )


def _format_last_updated(report_date: str) -> str:
    try:
        return datetime.fromisoformat(report_date).strftime("%b %d, %Y, %I:%M %p")
    except (TypeError, ValueError):
        return str(report_date or "unknown")


ENDPOINTS_TEXT = """\
- GET /docs                                                API documentation in HTML format
- GET /semesters                                           List all available semesters
- GET /semesters/:semester                                 Get details for a specific semester
- GET /semesters/:semester/:fieldOfStudy                   List all courses in a field of study
- GET /semesters/:semester/:fieldOfStudy/:course           Get all sections of a specific course
- GET /semesters/:semester/:fieldOfStudy/:course/:section  Get details for a specific section
- GET /tree/:semester                                      List fields of study in a semester
- GET /tree/:semester/:fieldOfStudy/:course/:topic/:section  Same lookups grouped by topic"""


def _root_text(store: CatalogStore) -> str:
    lines = []
    for row in catalog_summary(store):
        name = row["semesterName"] or row["semesterId"]
        lines.append(
            f"- {name} ({row['semesterId']}): Last updated {_format_last_updated(row['reportDate'])}"
        )
    semesters = "\n".join(lines) if lines else "- (none loaded)"
    return (
        "\nWelcome to the Course Listings API!\n\n"
        f"Available Semesters:\n{semesters}\n\n"
        "This API provides access to course listings data with the following endpoints:\n\n"
        f"{ENDPOINTS_TEXT}\n\n"
        "For complete documentation, visit the /docs endpoint.\n"
    )


def _docs_html() -> str:
    try:
        with open(API_DOCS_PATH, "r", encoding="utf-8") as f:
            markdown = f.read()
    except OSError:
        markdown = "# Course Listings API\n\nDocumentation file is missing."
    return f"""<!DOCTYPE html>
<html>
  <head>
    <title>Course Listings API Documentation</title>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
  </head>
  <body>
    <div id="content"></div>
    <script type="text/markdown" id="api-docs">{escape(markdown)}</script>
    <script src="https://cdn.jsdelivr.net/npm/marked/marked.min.js"></script>
    <script>
      var source = document.getElementById('api-docs').textContent;
      document.getElementById('content').innerHTML = marked.parse(source);
    </script>
  </body>
</html>"""


def create_app(catalog_path: str | None = None, store: CatalogStore | None = None) -> Flask:
    """
    Build the API app around one catalog.

    Pass `store` to serve an in-memory snapshot, or `catalog_path` to load
    (and hot-reload) a catalog file. Loading errors propagate to the caller.
    """
    if store is None:
        if catalog_path is None:
            raise ValueError("create_app needs a catalog_path or a store")
        store = load_catalog(catalog_path)
    holder = CatalogHolder(store, path=catalog_path, mtime=_file_mtime(catalog_path))

    app = Flask(__name__)
    app.url_map.strict_slashes = False
    app.extensions["catalog"] = holder

    # -- Request hooks ---------------------------------------------------------
    @app.before_request
    def _refresh_catalog():
        g._request_start_time = time.perf_counter()
        try:
            holder.reload_if_changed()
        except Exception as exc:
            print(f"[WARN] Catalog reload check failed: {exc}", file=sys.stderr)
        g._snapshot = holder.snapshot()

    @app.after_request
    def _add_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "same-origin"

        started = getattr(g, "_request_start_time", None)
        if started is not None:
            duration_ms = (time.perf_counter() - started) * 1000.0
            if duration_ms >= _SLOW_REQUEST_LOG_MS:
                endpoint = request.endpoint or "unknown"
                print(
                    f"[SLOW] {request.method} {request.path} "
                    f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
                )
        return response

    @app.errorhandler(404)
    def _not_found(_e):
        return _error_response("NOT_FOUND", f"{request.path} not found", 404)

    @app.errorhandler(Exception)
    def _unexpected_error(e):
        if isinstance(e, HTTPException):
            return _error_response(e.name.upper().replace(" ", "_"), e.description or e.name, e.code)
        print(f"[ERROR] {request.method} {request.path}: {e!r}", file=sys.stderr)
        return _error_response("SERVER_ERROR", "An unexpected server error occurred.", 500)

    def _flat() -> FlatResolver:
        return g._snapshot[1]

    def _tree() -> TreeResolver:
        return g._snapshot[2]

    # -- Routes ----------------------------------------------------------------
    @app.route("/health", methods=["GET"])
    def health_endpoint():
        return jsonify({
            "status": "ok",
            "version": API_VERSION,
            "semesters": len(g._snapshot[0]),
        })

    @app.route("/")
    def index():
        return _root_text(g._snapshot[0]), 200, {"Content-Type": "text/plain; charset=utf-8"}

    @app.route("/docs")
    def docs():
        return _docs_html(), 200, {"Content-Type": "text/html; charset=utf-8"}

    @app.route("/semesters", methods=["GET"])
    def list_semesters():
        return jsonify(_flat().list_semesters())

    @app.route("/semesters/<semester>", methods=["GET"])
    def get_semester(semester):
        return _lookup_response(_flat().get_semester(semester))

    @app.route("/semesters/<semester>/<field_of_study>", methods=["GET"])
    def list_courses(semester, field_of_study):
        return _lookup_response(_flat().list_courses(semester, field_of_study))

    @app.route("/semesters/<semester>/<field_of_study>/<course>", methods=["GET"])
    def get_course(semester, field_of_study, course):
        return _lookup_response(_flat().get_course(semester, field_of_study, course))

    @app.route("/semesters/<semester>/<field_of_study>/<course>/<section>", methods=["GET"])
    def get_section(semester, field_of_study, course, section):
        return _lookup_response(_flat().get_section(semester, field_of_study, course, section))

    # -- Topic-grouped view ------------------------------------------------------
    @app.route("/tree", methods=["GET"])
    def tree_semesters():
        return jsonify(_tree().list_semesters())

    @app.route("/tree/<semester>", methods=["GET"])
    @app.route("/tree/<semester>/<field_of_study>", methods=["GET"])
    @app.route("/tree/<semester>/<field_of_study>/<course>", methods=["GET"])
    @app.route("/tree/<semester>/<field_of_study>/<course>/<topic>", methods=["GET"])
    @app.route("/tree/<semester>/<field_of_study>/<course>/<topic>/<section>", methods=["GET"])
    def tree_lookup(semester, field_of_study=None, course=None, topic=None, section=None):
        path = [p for p in (semester, field_of_study, course, topic, section) if p is not None]
        return _lookup_response(_tree().resolve(path))

    return app


def serve(catalog_path: str, port: int | None = None) -> int:
    """Load `catalog_path` and run the development server. Returns an exit code."""
    catalog_path = os.path.abspath(catalog_path)
    if not os.path.isfile(catalog_path):
        print(f"[FATAL] Catalog file not found: {catalog_path}", file=sys.stderr)
        return 1
    try:
        app = create_app(catalog_path=catalog_path)
    except Exception as exc:
        print(f"[FATAL] Failed to load catalog: {exc}", file=sys.stderr)
        return 1

    print(f"[OK] Loaded {len(app.extensions['catalog'].store)} semester(s) from {catalog_path}")
    port = port or _env_int("PORT", DEFAULT_PORT)
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug, use_reloader=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(serve(resolve_catalog_path()))
