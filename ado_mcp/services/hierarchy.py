"""
Hierarchical bulk creation of work items.

BulkHierarchyCreator walks a forest of WorkItemSpec trees level by level.
Siblings are processed in batches of at most batch_size concurrent tasks;
each node is created (or looked up, when it carries an id), linked under its
parent, and recorded as one CreationResult. A failing node is recorded with
its error and never stops its siblings or the rest of the forest.

The client passed in needs three coroutine methods:

    create_work_item(work_item_type=, fields=, project=) -> {'id', 'url', ...}
    get_work_item(work_item_id=) -> {'id', 'url', 'title', ...}
    link_work_items_by_url(parent_url, child_id, link_type) -> Any

WorkItemService provides them against the Azure DevOps SDK.
"""
import asyncio
import logging
from typing import List, Optional

from ..constants import FieldNames, LinkTypes
from ..log_sanitizer import describe_error
from ..models import WorkItemSpec, CreationResult
from ..validation import validate_batch_size, ValidationError

logger = logging.getLogger(__name__)


class BulkHierarchyCreator:
    """Create or link a tree of work items with bounded sibling concurrency"""

    def __init__(self, client, link_type: str = LinkTypes.HIERARCHY_REVERSE):
        self.client = client
        self.link_type = link_type

    async def create(
        self,
        project: str,
        items: List[WorkItemSpec],
        batch_size: int
    ) -> List[CreationResult]:
        """
        Materialize every node of items in project.

        Args:
            project: Project passed through to every creation call
            items: Root nodes; roots are not linked to anything
            batch_size: Maximum siblings in flight at once (no upper bound
                is enforced here)

        Returns:
            One CreationResult per input node across all depths, in the
            order each node finished. Failed nodes carry error.

        Raises:
            ValidationError: If batch_size is not a positive integer
        """
        batch_size = validate_batch_size(batch_size)
        results: List[CreationResult] = []

        await self._create_level(project, items, None, None, batch_size, results)

        failed = sum(1 for r in results if not r.succeeded)
        logger.info(
            f"Bulk creation in {project} finished: {len(results)} nodes, {failed} failed"
        )
        return results

    async def _create_level(
        self,
        project: str,
        items: List[WorkItemSpec],
        parent_url: Optional[str],
        parent_type: Optional[str],
        batch_size: int,
        results: List[CreationResult]
    ) -> None:
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            await asyncio.gather(*(
                self._create_node(project, item, parent_url, parent_type, batch_size, results)
                for item in batch
            ))

    async def _create_node(
        self,
        project: str,
        item: WorkItemSpec,
        parent_url: Optional[str],
        parent_type: Optional[str],
        batch_size: int,
        results: List[CreationResult]
    ) -> None:
        result = CreationResult(
            type=item.type,
            id=item.id,
            title=item.title,
            parent_type=parent_type,
            parent_url=parent_url
        )

        try:
            if item.is_existing:
                existing = await self.client.get_work_item(work_item_id=item.id)
                result.url = existing.get('url')
                result.title = existing.get('title') or item.title
            else:
                if not item.title:
                    raise ValidationError(f"Missing title for new {item.type}", field='title')

                fields = {FieldNames.TITLE: item.title, **item.fields}
                created = await self.client.create_work_item(
                    work_item_type=item.type,
                    fields=fields,
                    project=project
                )
                result.id = created.get('id')
                result.url = created.get('url')
                result.created = True

            if parent_url:
                await self.client.link_work_items_by_url(parent_url, result.id, self.link_type)
        except Exception as e:
            result.error = describe_error(e)
            logger.warning(f"{item.type} '{result.title or result.id}' failed: {result.error}")

        results.append(result)

        if not item.children:
            return

        if result.url:
            await self._create_level(project, item.children, result.url, item.type, batch_size, results)
        else:
            self._skip_children(item, result, results)

    def _skip_children(
        self,
        parent: WorkItemSpec,
        parent_result: CreationResult,
        results: List[CreationResult]
    ) -> None:
        """Record an error result for every descendant of an unresolved parent"""
        label = parent_result.title or parent_result.id
        message = f"Skipped: parent {parent.type} '{label}' could not be resolved"

        for child in parent.children:
            child_result = CreationResult(
                type=child.type,
                id=child.id,
                title=child.title,
                parent_type=parent.type,
                error=message
            )
            results.append(child_result)
            if child.children:
                self._skip_children(child, child_result, results)
