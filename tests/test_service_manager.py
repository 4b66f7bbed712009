"""
Unit tests for ServiceManager module.

Tests multi-project service management, lazy loading, caching, and statistics.
"""

import pytest
from unittest.mock import Mock, patch
from ado_mcp.service_manager import ServiceManager
from ado_mcp.auth import AzureDevOpsAuth
from ado_mcp.validation import ValidationError


@pytest.fixture
def auth():
    auth = Mock(spec=AzureDevOpsAuth)
    auth.connection = Mock()  # Simulate initialized auth
    return auth


class TestServiceManagerInitialization:
    """Test ServiceManager initialization."""

    def test_initialization_with_auth_and_default_project(self, auth):
        """Test creating ServiceManager with auth and default project."""
        manager = ServiceManager(auth, default_project="TestProject")

        assert manager.auth == auth
        assert manager.default_project == "TestProject"
        assert len(manager._workitem_services) == 0
        assert len(manager._wiki_services) == 0

    def test_initialization_without_default_project(self, auth):
        """Test creating ServiceManager without default project."""
        manager = ServiceManager(auth)

        assert manager.default_project is None

    def test_initialization_requires_initialized_auth(self):
        """Test that ServiceManager requires initialized auth."""
        auth = Mock(spec=AzureDevOpsAuth)
        auth.connection = None

        with pytest.raises(ValueError, match="initialized AzureDevOpsAuth"):
            ServiceManager(auth)

    def test_initialization_requires_auth_parameter(self):
        """Test that ServiceManager requires auth parameter."""
        with pytest.raises(ValueError, match="initialized AzureDevOpsAuth"):
            ServiceManager(None)


class TestServiceManagerWorkItemService:
    """Test ServiceManager work item service management."""

    def test_get_workitem_service_creates_new_instance(self, auth):
        """Test getting work item service creates new instance."""
        manager = ServiceManager(auth, default_project="DefaultProject")

        with patch('ado_mcp.service_manager.WorkItemService') as MockService:
            mock_instance = Mock()
            MockService.return_value = mock_instance

            service = manager.get_workitem_service("TestProject")

            MockService.assert_called_once_with(auth, "TestProject")
            assert service == mock_instance
            assert "TestProject" in manager._workitem_services
            assert manager._service_creation_count == 1

    def test_get_workitem_service_returns_cached_instance(self, auth):
        """Test getting work item service returns cached instance."""
        manager = ServiceManager(auth)

        with patch('ado_mcp.service_manager.WorkItemService') as MockService:
            MockService.return_value = Mock()

            first = manager.get_workitem_service("TestProject")
            second = manager.get_workitem_service("TestProject")

            MockService.assert_called_once()
            assert first is second
            assert manager._cache_hit_count == 1

    def test_get_workitem_service_uses_default_project(self, auth):
        """Test default project is used when none is given."""
        manager = ServiceManager(auth, default_project="DefaultProject")

        with patch('ado_mcp.service_manager.WorkItemService') as MockService:
            manager.get_workitem_service()
            manager.get_workitem_service("   ")

            MockService.assert_called_once_with(auth, "DefaultProject")

    def test_project_name_is_stripped(self, auth):
        manager = ServiceManager(auth)

        with patch('ado_mcp.service_manager.WorkItemService') as MockService:
            manager.get_workitem_service("  Padded  ")

            MockService.assert_called_once_with(auth, "Padded")

    def test_get_workitem_service_without_project_raises(self, auth):
        """Test missing project and default raises ValidationError."""
        manager = ServiceManager(auth)

        with pytest.raises(ValidationError, match="Project name is required"):
            manager.get_workitem_service()


class TestServiceManagerWikiService:
    """Test ServiceManager wiki service management."""

    def test_get_wiki_service_creates_and_caches(self, auth):
        manager = ServiceManager(auth, default_project="DefaultProject")

        with patch('ado_mcp.service_manager.WikiService') as MockService:
            MockService.return_value = Mock()

            first = manager.get_wiki_service()
            second = manager.get_wiki_service("DefaultProject")

            MockService.assert_called_once_with(auth, "DefaultProject")
            assert first is second

    def test_wiki_and_workitem_services_are_separate(self, auth):
        manager = ServiceManager(auth)

        with patch('ado_mcp.service_manager.WikiService') as MockWiki, \
             patch('ado_mcp.service_manager.WorkItemService') as MockWorkItem:
            manager.get_wiki_service("P")
            manager.get_workitem_service("P")

            MockWiki.assert_called_once_with(auth, "P")
            MockWorkItem.assert_called_once_with(auth, "P")
            assert manager.get_loaded_projects() == ["P"]


class TestServiceManagerStatistics:
    """Test ServiceManager statistics and cleanup."""

    def test_statistics(self, auth):
        manager = ServiceManager(auth, default_project="A")

        with patch('ado_mcp.service_manager.WorkItemService'), \
             patch('ado_mcp.service_manager.WikiService'):
            manager.get_workitem_service("A")
            manager.get_workitem_service("A")
            manager.get_workitem_service("B")
            manager.get_wiki_service("A")

        stats = manager.get_statistics()

        assert stats["loaded_projects"] == 2
        assert stats["workitem_services"] == 2
        assert stats["wiki_services"] == 1
        assert stats["total_services"] == 3
        assert stats["service_creations"] == 3
        assert stats["cache_hits"] == 1
        assert stats["cache_hit_rate_percent"] == 25.0
        assert stats["default_project"] == "A"

    def test_statistics_empty(self, auth):
        stats = ServiceManager(auth).get_statistics()

        assert stats["total_services"] == 0
        assert stats["cache_hit_rate_percent"] == 0.0

    def test_clear_project_services(self, auth):
        manager = ServiceManager(auth)

        with patch('ado_mcp.service_manager.WorkItemService'), \
             patch('ado_mcp.service_manager.WikiService'):
            manager.get_workitem_service("A")
            manager.get_wiki_service("A")
            manager.get_workitem_service("B")

        manager.clear_project_services("A")

        assert manager.get_loaded_projects() == ["B"]

    def test_clear_all_services(self, auth):
        manager = ServiceManager(auth)

        with patch('ado_mcp.service_manager.WorkItemService'):
            manager.get_workitem_service("A")

        manager.clear_all_services()

        assert manager.get_loaded_projects() == []

    def test_repr(self, auth):
        manager = ServiceManager(auth, default_project="A")
        assert repr(manager) == "ServiceManager(projects=0, services=0, default='A')"
