"""Data-loading layer for the news site front-end."""

from newsdesk.connectivity import ConnectivityPhase, ConnectivityProber, ConnectivityStatus
from newsdesk.data_state import (
    DataStateMachine,
    FailureKind,
    FetchOptions,
    FetchPhase,
    FetchState,
)
from newsdesk.news_client import NewsAPIClient
from newsdesk.utils import format_date, format_date_relative, slugify, truncate_text
from newsdesk.widgets import WIDGET_FACTORIES, WidgetArgumentError, WidgetSource, build_widget

__all__ = [
    "ConnectivityPhase",
    "ConnectivityProber",
    "ConnectivityStatus",
    "DataStateMachine",
    "FailureKind",
    "FetchOptions",
    "FetchPhase",
    "FetchState",
    "NewsAPIClient",
    "WIDGET_FACTORIES",
    "WidgetArgumentError",
    "WidgetSource",
    "build_widget",
    "format_date",
    "format_date_relative",
    "slugify",
    "truncate_text",
]
