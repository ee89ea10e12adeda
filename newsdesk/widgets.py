"""Data sources for the site's widgets.

Each factory pairs a NewsAPIClient fetch operation with the FetchOptions the
widget binds it with: its fallback messages and the values that force a
re-fetch when they change.
"""

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from newsdesk.data_state import DataStateMachine, FetchOperation, FetchOptions
from newsdesk.news_client import NewsAPIClient


class WidgetArgumentError(ValueError):
    """Raised when a widget is built with missing or unsupported arguments."""


@dataclass
class WidgetSource:
    """A fetch operation plus the options a widget binds it with."""

    name: str
    fetch_operation: FetchOperation
    options: FetchOptions

    def bind(self, machine: DataStateMachine) -> None:
        """Bind this source to a state machine."""
        machine.bind(self.fetch_operation, self.options)


def category_section(client: NewsAPIClient, slug: str, name: str | None = None) -> WidgetSource:
    name = name or slug.replace("-", " ").title()
    return WidgetSource(
        name="category-section",
        fetch_operation=client.category_articles(slug),
        options=FetchOptions(
            initial_data=[],
            empty_message=f"No articles found in {name} category",
            dependencies=(slug,),
        ),
    )


def breaking_news_ticker(client: NewsAPIClient, limit: int | None = None) -> WidgetSource:
    return WidgetSource(
        name="breaking-news",
        fetch_operation=client.breaking_news(limit),
        options=FetchOptions(
            initial_data=[],
            empty_message="No breaking news found",
            error_message="Failed to fetch breaking news",
            dependencies=(limit,),
        ),
    )


def hero_slider(client: NewsAPIClient, limit: int | None = None) -> WidgetSource:
    return WidgetSource(
        name="hero-slider",
        fetch_operation=client.featured_articles(limit),
        options=FetchOptions(
            initial_data=[],
            empty_message="No featured articles found",
            error_message="Failed to fetch featured articles",
            dependencies=(limit,),
        ),
    )


def popular_news(client: NewsAPIClient, limit: int = 5) -> WidgetSource:
    return WidgetSource(
        name="popular-news",
        fetch_operation=client.popular_articles(limit),
        options=FetchOptions(
            initial_data=[],
            empty_message="No popular articles found",
            error_message="Failed to fetch popular articles",
            dependencies=(limit,),
        ),
    )


def related_articles(
    client: NewsAPIClient, article_id: int, category_id: int, limit: int = 3
) -> WidgetSource:
    return WidgetSource(
        name="related-articles",
        fetch_operation=client.related_articles(article_id, category_id, limit),
        options=FetchOptions(
            initial_data=[],
            empty_message="No related articles found",
            error_message="Failed to fetch related articles",
            dependencies=(article_id, category_id, limit),
        ),
    )


def comment_list(client: NewsAPIClient, article_id: int) -> WidgetSource:
    return WidgetSource(
        name="comment-list",
        fetch_operation=client.article_comments(article_id),
        options=FetchOptions(
            initial_data=[],
            empty_message="No comments yet. Be the first to comment!",
            dependencies=(article_id,),
        ),
    )


def categories_widget(client: NewsAPIClient) -> WidgetSource:
    return WidgetSource(
        name="categories",
        fetch_operation=client.categories(),
        options=FetchOptions(initial_data=[], empty_message="No categories found"),
    )


def top_subscribers(client: NewsAPIClient) -> WidgetSource:
    return WidgetSource(
        name="top-subscribers",
        fetch_operation=client.top_commenters(),
        options=FetchOptions(initial_data=[], empty_message="No subscribers yet"),
    )


WIDGET_FACTORIES: dict[str, Callable[..., WidgetSource]] = {
    "breaking-news": breaking_news_ticker,
    "categories": categories_widget,
    "category-section": category_section,
    "comment-list": comment_list,
    "hero-slider": hero_slider,
    "popular-news": popular_news,
    "related-articles": related_articles,
    "top-subscribers": top_subscribers,
}


def build_widget(client: NewsAPIClient, name: str, **arguments: Any) -> WidgetSource:
    """Build a widget source by name.

    Args:
        client: API client the fetch operation is built from.
        name: Key of WIDGET_FACTORIES, e.g. "breaking-news".
        **arguments: Factory arguments. Entries whose value is None are dropped.

    Raises:
        KeyError: If the widget name is unknown.
        WidgetArgumentError: If a required argument is missing or one is not
            accepted by the widget.
    """
    factory = WIDGET_FACTORIES[name]
    arguments = {key: value for key, value in arguments.items() if value is not None}
    try:
        inspect.signature(factory).bind(client, **arguments)
    except TypeError as e:
        raise WidgetArgumentError(f"Invalid arguments for widget {name!r}: {e}") from e
    return factory(client, **arguments)
