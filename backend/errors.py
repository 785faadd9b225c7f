"""Error taxonomy for report ingestion and catalog files."""


class CatalogError(Exception):
    """Base class for ingestion and catalog file errors."""


class MetadataParseError(CatalogError):
    """The report-date line could not be parsed. Recovered by the parser."""


class RowParseError(CatalogError):
    """A single data row could not be mapped. The row is skipped."""

    def __init__(self, line_number: int, line: str, cause: Exception | None = None):
        self.line_number = line_number
        self.line = line
        self.cause = cause
        super().__init__(f"Error parsing line {line_number}: {line}")


class NoDataError(CatalogError):
    """No data rows survived extraction, so no catalog can be built."""


class InvalidCatalogFileError(CatalogError):
    """A catalog file exists but is not a valid serialized catalog."""
