"""
Exceptions raised by the showcase pipeline.

Capture errors carry a ``retryable`` flag that the worker pool uses to decide
between re-queuing a task and reporting it as terminally failed.
"""


class ShowcaseError(Exception):
    """Base exception for showcase generation errors."""


class DiscoveryError(ShowcaseError):
    """The entry page could not be loaded or yielded no routes."""


class CaptureError(ShowcaseError):
    """A single capture task failed."""

    retryable = False


class NavigationTimeout(CaptureError):
    """Navigation or the whole task exceeded its time budget."""

    retryable = True


class RenderSurfaceCrash(CaptureError):
    """The browser page or process died while a task was running."""

    retryable = True


class SelectorNotFound(CaptureError):
    """The component selector never resolved in the DOM."""


class RecorderStartError(CaptureError):
    """Video recording could not be started for a page."""


class RenderSurfaceLaunchFailure(ShowcaseError):
    """A browser process could not be launched; no worker can proceed."""


class AssemblyError(ShowcaseError):
    """Recorded segments could not be merged into the showcase video."""


class MergeMarkerError(ShowcaseError):
    """Section markers in a document are malformed."""

    def __init__(self, message: str, document: str) -> None:
        super().__init__(message)
        self.document = document


class ComponentConfigError(ShowcaseError):
    """The component configuration file is missing or invalid."""
