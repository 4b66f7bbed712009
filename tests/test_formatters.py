"""
Tests for tool response shaping and the result models behind it.
"""

from ado_mcp.errors import TransientError
from ado_mcp.formatters import (
    format_bulk_create_result,
    format_bulk_create_failure,
    format_wiki_page_list,
)
from ado_mcp.models import CreationResult, BulkCreateSummary


def make_results():
    return [
        CreationResult(type="Epic", id=1, title="E", created=True, url="u/1"),
        CreationResult(type="Feature", id=2, title="F", parent_type="Epic", parent_url="u/1",
                       created=True, url="u/2", error="[400] link rejected"),
        CreationResult(type="Feature", id=42, title="Existing", parent_type="Epic", parent_url="u/1",
                       url="u/42"),
        CreationResult(type="Task", title=None, parent_type="Feature", parent_url="u/2",
                       error="Missing title for new Task"),
    ]


class TestBulkCreateSummary:
    """Test summary counts."""

    def test_counts(self):
        summary = BulkCreateSummary.from_results(make_results())

        assert summary.total == 4
        assert summary.created == 1
        assert summary.linked == 1
        assert summary.failed == 2
        assert summary.created + summary.linked + summary.failed == summary.total

    def test_errors_match_failed_results(self):
        summary = BulkCreateSummary.from_results(make_results())

        assert summary.errors == [
            {'type': "Feature", 'title': "F", 'error': "[400] link rejected"},
            {'type': "Task", 'title': None, 'error': "Missing title for new Task"},
        ]

    def test_empty(self):
        assert BulkCreateSummary.from_results([]).to_dict() == {
            'total': 0, 'created': 0, 'linked': 0, 'failed': 0, 'errors': []
        }


class TestFormatBulkCreateResult:
    """Test format_bulk_create_result."""

    def test_shape(self):
        response = format_bulk_create_result(make_results())

        assert set(response) == {'summary', 'results'}
        assert response['summary']['total'] == len(response['results']) == 4
        assert response['results'][1] == {
            'type': "Feature",
            'id': 2,
            'title': "F",
            'parentType': "Epic",
            'parentUrl': "u/1",
            'created': True,
            'url': "u/2",
            'error': "[400] link rejected",
        }

    def test_root_has_no_parent(self):
        root = format_bulk_create_result(make_results())['results'][0]
        assert root['parentType'] is None
        assert root['parentUrl'] is None


class TestFormatBulkCreateFailure:
    """Test format_bulk_create_failure."""

    def test_shape(self):
        response = format_bulk_create_failure(TransientError(status_code=503))

        assert response['results'] == []
        assert response['summary']['failed'] == 1
        assert response['summary']['created'] == 0
        assert response['summary']['errors'] == [{
            'type': "BULK_CREATE",
            'title': "Bulk Create Failed",
            'error': str(TransientError(status_code=503)),
        }]

    def test_empty_message_uses_class_name(self):
        response = format_bulk_create_failure(RuntimeError())
        assert response['summary']['errors'][0]['error'] == "RuntimeError"


class TestFormatWikiPageList:
    """Test format_wiki_page_list."""

    def test_shape(self):
        pages = [{'id': 1, 'path': "/", 'view_stats': []}]
        assert format_wiki_page_list("Proj.wiki", pages) == {
            'wiki_id': "Proj.wiki",
            'count': 1,
            'pages': pages,
        }
