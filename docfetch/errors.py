"""Error taxonomy for a document fetch run.

Every failure a run can hit is one of these; the pipeline catches them at the
outermost scope and turns them into a ``FetchResult``.
"""


class DocFetchError(Exception):
    """Base class for all docfetch failures."""


class BrowserEnvironmentError(DocFetchError):
    """Host platform could not be detected or the browser could not be installed."""


class NavigationError(DocFetchError):
    """Warm-up navigation failed or timed out."""


class FetchError(DocFetchError):
    """In-page fetch failed, returned a non-ok status or an invalid byte sequence."""


class SaveError(DocFetchError, OSError):
    """Writing the fetched document to disk failed."""
