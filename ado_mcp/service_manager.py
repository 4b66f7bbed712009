"""
Service Manager for handling multiple Azure DevOps projects
Lazily creates one work item and one wiki service per project
"""
from typing import Dict, List, Optional, Any

from .services.wiki_service import WikiService
from .services.workitem_service import WorkItemService
from .auth import AzureDevOpsAuth
from .validation import ValidationError


class ServiceManager:
    """
    Manages service instances for multiple Azure DevOps projects

    - Single authentication instance shared across all projects
    - Services created on first access and reused afterwards
    - Optional default project for calls that omit one

    Example:
        auth = AzureDevOpsAuth(org_url)
        await auth.initialize()

        manager = ServiceManager(auth, default_project="AI-Proj")
        workitems = manager.get_workitem_service()
        wiki = manager.get_wiki_service("Marketing-Proj")
    """

    def __init__(self, auth: AzureDevOpsAuth, default_project: Optional[str] = None):
        """
        Args:
            auth: Initialized AzureDevOpsAuth instance
            default_project: Project used when a call does not name one
        """
        if not auth or not auth.connection:
            raise ValueError(
                "ServiceManager requires an initialized AzureDevOpsAuth instance. "
                "Call auth.initialize() before creating ServiceManager."
            )

        self.auth = auth
        self.default_project = default_project

        self._workitem_services: Dict[str, WorkItemService] = {}
        self._wiki_services: Dict[str, WikiService] = {}

        self._service_creation_count = 0
        self._cache_hit_count = 0

    def get_workitem_service(self, project: Optional[str] = None) -> WorkItemService:
        """
        Get or create the WorkItemService for a project

        Raises:
            ValidationError: If no project specified and no default set
        """
        return self._get_or_create(self._workitem_services, WorkItemService, project)

    def get_wiki_service(self, project: Optional[str] = None) -> WikiService:
        """
        Get or create the WikiService for a project

        Raises:
            ValidationError: If no project specified and no default set
        """
        return self._get_or_create(self._wiki_services, WikiService, project)

    def _get_or_create(self, services: Dict[str, Any], service_class, project: Optional[str]):
        project = self._resolve_project(project)

        if project in services:
            self._cache_hit_count += 1
            return services[project]

        service = service_class(self.auth, project)
        services[project] = service
        self._service_creation_count += 1
        return service

    def _resolve_project(self, project: Optional[str]) -> str:
        if project and project.strip():
            return project.strip()

        if self.default_project:
            return self.default_project

        raise ValidationError(
            "Project name is required. Either specify project parameter or set "
            "AZURE_DEVOPS_PROJECT environment variable as default.",
            field='project'
        )

    def get_loaded_projects(self) -> List[str]:
        """Projects that have at least one service instance"""
        return sorted(set(self._workitem_services) | set(self._wiki_services))

    def clear_project_services(self, project: str) -> None:
        self._workitem_services.pop(project, None)
        self._wiki_services.pop(project, None)

    def clear_all_services(self) -> None:
        self._workitem_services.clear()
        self._wiki_services.clear()

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get service manager statistics

        Returns:
            Dictionary with loaded_projects, workitem_services, wiki_services,
            total_services, service_creations, cache_hits,
            cache_hit_rate_percent and default_project
        """
        total_requests = self._service_creation_count + self._cache_hit_count
        cache_hit_rate = (
            (self._cache_hit_count / total_requests * 100)
            if total_requests > 0 else 0.0
        )

        return {
            "loaded_projects": len(self.get_loaded_projects()),
            "workitem_services": len(self._workitem_services),
            "wiki_services": len(self._wiki_services),
            "total_services": len(self._workitem_services) + len(self._wiki_services),
            "service_creations": self._service_creation_count,
            "cache_hits": self._cache_hit_count,
            "cache_hit_rate_percent": round(cache_hit_rate, 2),
            "default_project": self.default_project
        }

    def __repr__(self) -> str:
        stats = self.get_statistics()
        return (
            f"ServiceManager(projects={stats['loaded_projects']}, "
            f"services={stats['total_services']}, "
            f"default='{self.default_project}')"
        )
