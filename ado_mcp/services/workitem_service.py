"""
Work Item service for Azure DevOps operations
Provides the create / get / link calls the hierarchy engine is built on
"""
import asyncio
import logging
from datetime import datetime
from typing import List, Dict, Any, Optional

from azure.devops.v7_1.work_item_tracking.models import JsonPatchOperation

from ..constants import (
    FieldNames,
    LinkTypes,
    BulkLimits,
    RequestDefaults,
    field_path,
)
from ..decorators import azure_devops_operation, log_execution, validate_work_item_id
from ..errors import RateLimitError
from ..models import WorkItemSpec, CreationResult
from ..validation import (
    validate_batch_size,
    validate_link_type,
    validate_work_item_fields,
    validate_work_item_type,
    ValidationError,
)
from .hierarchy import BulkHierarchyCreator

logger = logging.getLogger(__name__)


class WorkItemService:
    """Service for work item creation, lookup and hierarchy linking"""

    def __init__(self, auth, project: str):
        """
        Initialize work item service

        Args:
            auth: AzureDevOpsAuth instance
            project: Azure DevOps project name
        """
        self.auth = auth
        self.project = project
        self._wit_client = None

    @property
    def wit_client(self):
        """Lazy load work item tracking client"""
        if not self._wit_client:
            self._wit_client = self.auth.get_client('work_item_tracking')
        return self._wit_client

    # A 5xx can arrive after the item was committed; only throttling is retried
    @azure_devops_operation(
        timeout_seconds=RequestDefaults.TIMEOUT_SECONDS,
        max_retries=RequestDefaults.MAX_RETRIES,
        retryable=(RateLimitError,)
    )
    async def create_work_item(
        self,
        work_item_type: str,
        fields: Dict[str, Any],
        project: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create a work item from a field mapping

        Args:
            work_item_type: Type name (Epic, Feature, User Story, Task, ...)
            fields: Field reference name -> value; must include System.Title
            project: Target project (defaults to this service's project)

        Returns:
            Created work item, formatted

        Raises:
            ValidationError: If the type or any field is invalid
        """
        work_item_type = validate_work_item_type(work_item_type)
        fields = validate_work_item_fields(fields)

        if not fields.get(FieldNames.TITLE):
            raise ValidationError(f"Missing title for new {work_item_type}", field=FieldNames.TITLE)

        patch_document = [
            JsonPatchOperation(op='add', path=field_path(name), value=value)
            for name, value in fields.items()
        ]

        created_item = await asyncio.to_thread(
            self.wit_client.create_work_item,
            document=patch_document,
            project=project or self.project,
            type=work_item_type
        )

        logger.debug(f"Created {work_item_type} {created_item.id} in {project or self.project}")
        return self._format_work_item(created_item)

    @validate_work_item_id
    @azure_devops_operation(
        timeout_seconds=RequestDefaults.TIMEOUT_SECONDS,
        max_retries=RequestDefaults.MAX_RETRIES
    )
    async def get_work_item(self, work_item_id: int) -> Dict[str, Any]:
        """
        Get a work item by ID

        Raises:
            WorkItemNotFoundError: If the work item does not exist
        """
        work_item = await asyncio.to_thread(
            self.wit_client.get_work_item,
            id=work_item_id
        )
        return self._format_work_item(work_item)

    @azure_devops_operation(
        timeout_seconds=RequestDefaults.TIMEOUT_SECONDS,
        max_retries=RequestDefaults.MAX_RETRIES
    )
    async def link_work_items_by_url(
        self,
        parent_url: str,
        child_id: int,
        link_type: str = LinkTypes.HIERARCHY_REVERSE
    ) -> Dict[str, Any]:
        """
        Add a relation on the child pointing at parent_url

        With the default Hierarchy-Reverse link type the work item at
        parent_url becomes the parent of child_id.

        Args:
            parent_url: Full API URL of the parent work item
            child_id: ID of the work item that receives the relation
            link_type: Relation type reference name

        Returns:
            Updated child work item
        """
        validate_link_type(link_type)
        if not parent_url:
            raise ValidationError("Parent URL cannot be empty", field='parent_url')

        patch_document = [
            JsonPatchOperation(
                op='add',
                path='/relations/-',
                value={
                    'rel': link_type,
                    'url': parent_url
                }
            )
        ]

        updated_item = await asyncio.to_thread(
            self.wit_client.update_work_item,
            document=patch_document,
            id=child_id,
            project=self.project
        )
        return self._format_work_item(updated_item)

    @log_execution(level=logging.INFO)
    async def bulk_create_work_items(
        self,
        items: List[WorkItemSpec],
        batch_size: int = BulkLimits.DEFAULT_BATCH_SIZE
    ) -> List[CreationResult]:
        """
        Create (or link) a forest of work items in this service's project

        Args:
            items: Parsed WorkItemSpec roots
            batch_size: Siblings processed concurrently, clamped to
                BulkLimits.MAX_BATCH_SIZE

        Returns:
            One CreationResult per node, in completion order
        """
        batch_size = validate_batch_size(batch_size, maximum=BulkLimits.MAX_BATCH_SIZE)
        creator = BulkHierarchyCreator(self)
        return await creator.create(self.project, items, batch_size)

    def _format_work_item(self, wi) -> Dict[str, Any]:
        """Format work item for response"""
        fields = wi.fields or {}

        return {
            'id': wi.id,
            'rev': wi.rev,
            'title': fields.get(FieldNames.TITLE),
            'state': fields.get(FieldNames.STATE),
            'work_item_type': fields.get(FieldNames.WORK_ITEM_TYPE),
            'assigned_to': self._format_identity(fields.get(FieldNames.ASSIGNED_TO)),
            'url': wi.url,
            'fields': {key: self._format_value(value) for key, value in fields.items()}
        }

    @staticmethod
    def _format_identity(identity) -> Optional[str]:
        """Format identity field"""
        if not identity:
            return None
        if isinstance(identity, dict):
            return identity.get('displayName') or identity.get('uniqueName')
        return str(identity)

    @staticmethod
    def _format_value(value):
        if isinstance(value, datetime):
            return value.isoformat()
        return value
