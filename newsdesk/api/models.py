"""API response models."""

from pydantic import BaseModel, Field

from newsdesk.connectivity import ConnectivityStatus
from newsdesk.notices import Notice


class StatusResponse(BaseModel):
    """Connectivity status plus the banner a page should show for it."""

    connectivity: ConnectivityStatus = Field(description="Latest probe result")
    banner: Notice | None = Field(default=None, description="Banner to show, if any")
    probing: bool = Field(description="Whether the periodic prober is running")
