"""Tests for the news API client and widget data sources."""

import asyncio
import inspect

import httpx
import pytest

from newsdesk import widgets
from newsdesk.data_state import DataStateMachine, FetchPhase
from newsdesk.news_client import NewsAPIClient


class RecordingTransport:
    """Mock transport recording requests and answering with a fixed payload."""

    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def run_fetch(operation):
    async def scenario():
        return await operation()

    return asyncio.run(scenario())


class TestNewsAPIClient:
    """Test URL and query construction."""

    def test_client_initialization(self):
        """Explicit base URLs lose their trailing slash."""
        client = NewsAPIClient(base_url="http://news.example/")

        assert client.base_url == "http://news.example"

    def test_client_default_url(self):
        """The base URL comes from settings by default."""
        client = NewsAPIClient()

        assert client.base_url == "http://news.test"

    def test_category_articles_request(self, test_settings):
        """Category slugs go into the path, limits into the query."""
        transport = RecordingTransport([])
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        run_fetch(client.category_articles("sports", limit=4))

        request = transport.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/articles/category/sports"
        assert request.url.params["limit"] == "4"

    def test_none_params_are_dropped(self, test_settings):
        """Unset optional parameters are not sent."""
        transport = RecordingTransport([])
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        run_fetch(client.popular_articles())

        request = transport.requests[0]
        assert request.url.path == "/api/articles/popular"
        assert "limit" not in request.url.params

    def test_related_articles_sends_category_id(self, test_settings):
        """Related articles carry the categoryId the server requires."""
        transport = RecordingTransport([])
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        run_fetch(client.related_articles(42, category_id=7, limit=3))

        request = transport.requests[0]
        assert request.url.path == "/api/articles/related/42"
        assert request.url.params["categoryId"] == "7"
        assert request.url.params["limit"] == "3"

    def test_article_filters(self, test_settings):
        """Article listing passes category and search filters."""
        transport = RecordingTransport([])
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        run_fetch(client.articles(category="world", search="election"))

        params = transport.requests[0].url.params
        assert params["category"] == "world"
        assert params["search"] == "election"

    def test_each_call_issues_a_new_request(self, test_settings):
        """A fetch operation can be run repeatedly."""
        transport = RecordingTransport({"id": 1})
        client = NewsAPIClient(client=transport.client(), settings=test_settings)
        operation = client.article(1)

        async def scenario():
            await operation()
            await operation()

        asyncio.run(scenario())

        assert len(transport.requests) == 2
        assert transport.requests[0].url == "http://news.test/api/articles/1"


class TestWidgetSources:
    """Test widget bindings end to end."""

    def test_category_section_options(self):
        """Category sections re-fetch when the slug changes."""
        source = widgets.category_section(NewsAPIClient(), "sports", "Sports")

        assert source.options.dependencies == ("sports",)
        assert source.options.empty_message == "No articles found in Sports category"
        assert source.options.initial_data == []

    def test_related_articles_dependencies(self):
        """Related articles depend on article, category and limit."""
        source = widgets.related_articles(NewsAPIClient(), 5, 2)

        assert source.options.dependencies == (5, 2, 3)

    def test_breaking_news_ready(self, make_prober, test_settings):
        """A populated response makes the ticker ready."""
        transport = RecordingTransport([{"id": 1, "title": "Storm warning"}])
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        async def scenario():
            machine = DataStateMachine(make_prober())
            widgets.breaking_news_ticker(client).bind(machine)
            return await machine.wait_until_settled()

        state = asyncio.run(scenario())

        assert state.phase is FetchPhase.READY
        assert state.data[0]["title"] == "Storm warning"
        assert transport.requests[0].url.path == "/api/articles/breaking"

    def test_server_empty_message_wins(self, make_prober, test_settings):
        """The server's own empty message overrides the widget default."""
        transport = RecordingTransport(
            {"status": "empty", "message": "No popular articles found", "data": []}
        )
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        async def scenario():
            machine = DataStateMachine(make_prober())
            widgets.popular_news(client).bind(machine)
            return await machine.wait_until_settled()

        state = asyncio.run(scenario())

        assert state.is_empty
        assert state.empty_message == "No popular articles found"
        assert state.data == []

    def test_comment_list_error(self, make_prober, test_settings):
        """Server errors surface the server's message."""
        transport = RecordingTransport({"message": "Article not found"}, status_code=404)
        client = NewsAPIClient(client=transport.client(), settings=test_settings)

        async def scenario():
            machine = DataStateMachine(make_prober())
            widgets.comment_list(client, 99).bind(machine)
            return await machine.wait_until_settled()

        state = asyncio.run(scenario())

        assert state.is_error
        assert state.error_message == "Article not found"
        assert transport.requests[0].url.path == "/api/articles/99/comments"

    def test_build_widget_by_name(self):
        """Widgets are looked up by name and unset arguments are dropped."""
        source = widgets.build_widget(
            NewsAPIClient(), "category-section", slug="tech-news", article_id=None
        )

        assert source.name == "category-section"
        assert source.options.empty_message == "No articles found in Tech News category"

    def test_every_registered_factory_names_itself(self):
        """Registry keys match the names of the sources they build."""
        client = NewsAPIClient()
        arguments = {"slug": "sports", "article_id": 1, "category_id": 2}

        for name, factory in widgets.WIDGET_FACTORIES.items():
            accepted = {
                key: value
                for key, value in arguments.items()
                if key in inspect.signature(factory).parameters
            }
            assert widgets.build_widget(client, name, **accepted).name == name

    def test_build_widget_rejects_missing_arguments(self):
        """Missing required arguments raise before any fetch is built."""
        with pytest.raises(widgets.WidgetArgumentError, match="related-articles"):
            widgets.build_widget(NewsAPIClient(), "related-articles", article_id=5)

    def test_build_widget_rejects_unknown_arguments(self):
        """Arguments a widget does not take are rejected."""
        with pytest.raises(widgets.WidgetArgumentError):
            widgets.build_widget(NewsAPIClient(), "categories", limit=3)

    def test_build_widget_unknown_name(self):
        """Unknown widget names raise KeyError."""
        with pytest.raises(KeyError):
            widgets.build_widget(NewsAPIClient(), "weather")
