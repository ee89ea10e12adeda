"""API module exposing the connectivity status over HTTP."""

from newsdesk.api.models import StatusResponse

__all__ = ["StatusResponse"]
