"""
Tests for WikiService page listing.

A real WikiClient is used with only its transport (_send) mocked, so the
tests see the same response objects, headers included, as production code.
"""

import pytest
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import Mock

from azure.devops.v7_1.wiki.wiki_client import WikiClient
from requests.structures import CaseInsensitiveDict

from ado_mcp.errors import PaginationLimitError, WorkItemNotFoundError
from ado_mcp.services.wiki_service import (
    PAGES_BATCH_LOCATION_ID,
    WikiService,
    normalize_page_values,
    split_pages_response,
)
from ado_mcp.validation import ValidationError


def page(page_id, path, view_stats=None):
    return SimpleNamespace(id=page_id, path=path, view_stats=view_stats)


def page_json(page_id, path, view_stats=None):
    data = {'id': page_id, 'path': path}
    if view_stats is not None:
        data['viewStats'] = view_stats
    return data


def pages_response(pages, token=None):
    """Raw getPagesBatch response as returned by the SDK transport"""
    headers = CaseInsensitiveDict({'Transfer-Encoding': 'chunked'})
    if token:
        headers['X-MS-ContinuationToken'] = token
    response = Mock(headers=headers)
    response.json.return_value = {'count': len(pages), 'value': pages}
    return response


@pytest.fixture
def wiki_client():
    client = WikiClient(base_url="https://dev.azure.com/org")
    client._send = Mock()
    return client


@pytest.fixture
def service(wiki_client):
    auth = Mock()
    auth.get_client.return_value = wiki_client
    return WikiService(auth, "Proj")


class TestNormalizePageValues:
    """Test normalize_page_values."""

    def test_list(self):
        assert normalize_page_values([1, 2]) == [1, 2]

    def test_tuple(self):
        assert normalize_page_values((1, 2)) == [1, 2]

    def test_none(self):
        assert normalize_page_values(None) == []

    def test_generator(self):
        assert normalize_page_values(x for x in range(3)) == [0, 1, 2]

    def test_callable(self):
        assert normalize_page_values(lambda: iter(["a", "b"])) == ["a", "b"]

    def test_failing_callable_yields_empty(self):
        def broken():
            raise RuntimeError("lazy load failed")

        assert normalize_page_values(broken) == []

    def test_non_iterable_yields_empty(self):
        assert normalize_page_values(42) == []


class TestSplitPagesResponse:
    """Test split_pages_response against SDK responses."""

    def test_pages_and_token(self, wiki_client):
        pages, token = split_pages_response(
            wiki_client,
            pages_response([page_json(1, "/A"), page_json(2, "/B")], "next")
        )

        assert [p.path for p in pages] == ["/A", "/B"]
        assert token == "next"

    def test_no_token_header(self, wiki_client):
        pages, token = split_pages_response(wiki_client, pages_response([page_json(1, "/A")]))

        assert len(pages) == 1
        assert token is None

    def test_empty_batch(self, wiki_client):
        assert split_pages_response(wiki_client, pages_response([])) == ([], None)


class TestListPages:
    """Test WikiService.list_pages."""

    @pytest.mark.asyncio
    async def test_follows_continuation_header(self, service, wiki_client):
        wiki_client._send.side_effect = [
            pages_response([page_json(1, "/A"), page_json(2, "/A/B")], "t1"),
            pages_response([page_json(3, "/C")], "t2"),
            pages_response([page_json(4, "/D")]),
        ]

        pages = await service.list_pages("MyWiki")

        assert wiki_client._send.call_count == 3
        assert len(pages) == 4
        assert [p['path'] for p in pages] == ["/A", "/A/B", "/C", "/D"]

    @pytest.mark.asyncio
    async def test_request_shape(self, service, wiki_client):
        wiki_client._send.side_effect = [
            pages_response([page_json(1, "/A")], "t1"),
            pages_response([]),
        ]

        await service.list_pages("Proj.wiki")

        first, second = wiki_client._send.call_args_list
        assert first.kwargs['http_method'] == 'POST'
        assert first.kwargs['location_id'] == PAGES_BATCH_LOCATION_ID
        assert first.kwargs['route_values'] == {'project': "Proj", 'wikiIdentifier': "Proj.wiki"}
        assert first.kwargs['content'] == {'top': 100}
        assert second.kwargs['content'] == {'continuationToken': "t1", 'top': 100}

    @pytest.mark.asyncio
    async def test_view_stats_formatted(self, service, wiki_client):
        wiki_client._send.return_value = pages_response([
            page_json(9, "/Home", [{'day': "2024-05-01T00:00:00Z", 'count': 4}])
        ])

        pages = await service.list_pages("Proj.wiki")

        assert pages[0]['id'] == 9
        assert pages[0]['view_stats'][0]['count'] == 4
        assert pages[0]['view_stats'][0]['day'].startswith("2024-05-01T00:00:00")

    @pytest.mark.asyncio
    async def test_empty_wiki(self, service, wiki_client):
        wiki_client._send.return_value = pages_response([])

        assert await service.list_pages("Proj.wiki") == []
        assert wiki_client._send.call_count == 1

    @pytest.mark.asyncio
    async def test_pagination_limit(self, service, wiki_client):
        wiki_client._send.side_effect = lambda **kwargs: pages_response([page_json(1, "/A")], "again")

        with pytest.raises(PaginationLimitError) as exc_info:
            await service.list_pages("Proj.wiki", max_requests=3)

        assert wiki_client._send.call_count == 3
        assert exc_info.value.max_requests == 3
        assert exc_info.value.items_collected == 3

    @pytest.mark.asyncio
    async def test_last_allowed_request_without_token_succeeds(self, service, wiki_client):
        wiki_client._send.side_effect = [
            pages_response([page_json(1, "/A")], "t1"),
            pages_response([page_json(2, "/B")]),
        ]

        pages = await service.list_pages("Proj.wiki", max_requests=2)

        assert len(pages) == 2

    @pytest.mark.asyncio
    async def test_sdk_error_mapped(self, service, wiki_client):
        error = Exception("wiki not found")
        error.status_code = 404
        wiki_client._send.side_effect = error

        with pytest.raises(WorkItemNotFoundError):
            await service.list_pages("Missing.wiki")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("wiki_id", ["", "   ", None, "a/b"])
    async def test_invalid_wiki_id(self, service, wiki_client, wiki_id):
        with pytest.raises(ValidationError):
            await service.list_pages(wiki_id)
        wiki_client._send.assert_not_called()


class TestFormatPage:
    """Test WikiService._format_page."""

    def test_object_with_view_stats(self):
        stats = [SimpleNamespace(day=datetime(2024, 5, 1), count=4)]
        formatted = WikiService._format_page(page(9, "/Home", stats))

        assert formatted == {
            'id': 9,
            'path': "/Home",
            'view_stats': [{'day': "2024-05-01T00:00:00", 'count': 4}]
        }

    def test_object_without_view_stats(self):
        assert WikiService._format_page(page(1, "/"))['view_stats'] == []

    def test_dict_page(self):
        formatted = WikiService._format_page({'id': 2, 'path': "/X", 'viewStats': [{'count': 1}]})
        assert formatted == {'id': 2, 'path': "/X", 'view_stats': [{'count': 1}]}

    def test_lazy_client(self, service, wiki_client):
        assert service._wiki_client is None
        assert service.wiki_client is wiki_client
        assert service.wiki_client is wiki_client
        service.auth.get_client.assert_called_once_with('wiki')
