"""Notice models describing what a widget shows instead of its content.

These are plain data for a renderer: a title, a description, which visual
variant to use and whether to offer a retry action.
"""

from enum import Enum

from pydantic import BaseModel, Field

from newsdesk.connectivity import ConnectivityPhase, ConnectivityStatus
from newsdesk.data_state import FailureKind, FetchState


class NoticeVariant(str, Enum):
    """Visual variant of a notice."""

    ERROR = "error"
    EMPTY = "empty"
    DATABASE = "database"


DEFAULT_TITLES = {
    NoticeVariant.ERROR: "Something Went Wrong",
    NoticeVariant.EMPTY: "No Data Found",
    NoticeVariant.DATABASE: "Database Connection Error",
}

DEFAULT_DESCRIPTIONS = {
    NoticeVariant.ERROR: "We couldn't load this content. Please try again.",
    NoticeVariant.EMPTY: "There are no items to display at this time.",
    NoticeVariant.DATABASE: "Unable to connect to the database. Please try again later.",
}


class Notice(BaseModel):
    """A message shown in place of widget content."""

    variant: NoticeVariant = Field(description="Visual variant")
    title: str = Field(description="Headline")
    description: str = Field(description="Explanatory text")
    retry: bool = Field(default=False, description="Whether to offer a retry action")


def make_notice(
    variant: NoticeVariant,
    title: str | None = None,
    description: str | None = None,
) -> Notice:
    """Build a notice, filling in the variant's default texts."""
    return Notice(
        variant=variant,
        title=title or DEFAULT_TITLES[variant],
        description=description or DEFAULT_DESCRIPTIONS[variant],
        retry=variant is not NoticeVariant.EMPTY,
    )


def connectivity_banner(status: ConnectivityStatus) -> Notice | None:
    """Banner for the top of the page, or None while checking or healthy."""
    if status.phase is not ConnectivityPhase.UNREACHABLE:
        return None
    return make_notice(NoticeVariant.DATABASE, description=status.message)


def notice_for_state(state: FetchState, title: str | None = None) -> Notice | None:
    """Notice for a widget's fetch state.

    Args:
        state: The widget's current state.
        title: Widget-specific title, e.g. "No Sports Articles".

    Returns:
        None while loading or ready, otherwise the notice to show.
    """
    if state.is_empty:
        return make_notice(NoticeVariant.EMPTY, title, state.empty_message)
    if state.is_error:
        variant = (
            NoticeVariant.DATABASE
            if state.failure is FailureKind.CONNECTIVITY
            else NoticeVariant.ERROR
        )
        return make_notice(variant, title, state.error_message)
    return None
