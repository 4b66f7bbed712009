"""
Wiki service for Azure DevOps operations
Lists every page of a wiki by following getPagesBatch continuation tokens
"""
import asyncio
import logging
from typing import List, Dict, Any, Optional, Tuple

from azure.devops.v7_1.wiki.models import WikiPagesBatchRequest

from ..constants import WikiLimits, RequestDefaults
from ..decorators import azure_devops_operation
from ..errors import PaginationLimitError
from ..validation import validate_wiki_identifier

logger = logging.getLogger(__name__)

# Pages Batch resource of the wiki area (POST .../wikis/{id}/pagesbatch)
PAGES_BATCH_LOCATION_ID = '71323c46-2592-4398-8771-ced73dd87207'
PAGES_BATCH_API_VERSION = '7.1-preview.1'


def normalize_page_values(values: Any) -> List[Any]:
    """
    Turn whatever a page batch carries into a concrete list.

    Accepts a list or tuple, any other iterable, or a zero-argument callable
    returning an iterable. None, or a value that cannot be materialized,
    yields an empty list rather than failing the listing.
    """
    if values is None:
        return []
    if isinstance(values, (list, tuple)):
        return list(values)

    try:
        if callable(values):
            return list(values())
        return list(values)
    except Exception as e:
        logger.warning(f"Could not read wiki page batch values, treating as empty: {e}")
        return []


def split_pages_response(client, response) -> Tuple[List[Any], Optional[str]]:
    """
    Return (pages, continuation_token) from a raw getPagesBatch response.

    WikiClient.get_pages_batch drops the X-MS-ContinuationToken header, so
    the raw response is read here with the client's own helpers.
    """
    continuation_token = client._get_continuation_token(response) or None
    values = normalize_page_values(client._unwrap_collection(response))
    return client._deserialize('[WikiPageDetail]', values), continuation_token


class WikiService:
    """Service for wiki page listing"""

    def __init__(self, auth, project: str):
        """
        Initialize wiki service

        Args:
            auth: AzureDevOpsAuth instance
            project: Azure DevOps project name
        """
        self.auth = auth
        self.project = project
        self._wiki_client = None

    @property
    def wiki_client(self):
        """Lazy load wiki client"""
        if not self._wiki_client:
            self._wiki_client = self.auth.get_client('wiki')
        return self._wiki_client

    @azure_devops_operation(
        timeout_seconds=RequestDefaults.TIMEOUT_SECONDS,
        max_retries=RequestDefaults.MAX_RETRIES
    )
    async def _fetch_pages_batch(
        self,
        wiki_id: str,
        continuation_token: Optional[str] = None,
        top: int = WikiLimits.PAGE_BATCH_TOP
    ) -> Tuple[List[Any], Optional[str]]:
        request = WikiPagesBatchRequest(continuation_token=continuation_token, top=top)
        return await asyncio.to_thread(self._post_pages_batch, wiki_id, request)

    def _post_pages_batch(
        self,
        wiki_id: str,
        request: WikiPagesBatchRequest
    ) -> Tuple[List[Any], Optional[str]]:
        """Same request as WikiClient.get_pages_batch, keeping the response headers"""
        client = self.wiki_client
        route_values = {
            'project': client._serialize.url('project', self.project, 'str'),
            'wikiIdentifier': client._serialize.url('wiki_identifier', wiki_id, 'str')
        }
        response = client._send(
            http_method='POST',
            location_id=PAGES_BATCH_LOCATION_ID,
            version=PAGES_BATCH_API_VERSION,
            route_values=route_values,
            content=client._serialize.body(request, 'WikiPagesBatchRequest')
        )
        return split_pages_response(client, response)

    async def list_pages(
        self,
        wiki_id: str,
        max_requests: int = WikiLimits.MAX_BATCH_REQUESTS
    ) -> List[Dict[str, Any]]:
        """
        List all pages of a wiki as a flat list

        Args:
            wiki_id: Wiki name or ID
            max_requests: Maximum getPagesBatch calls before giving up

        Returns:
            Formatted pages in server order

        Raises:
            PaginationLimitError: If the server still returns a continuation
                token after max_requests calls
        """
        wiki_id = validate_wiki_identifier(wiki_id)

        all_pages: List[Dict[str, Any]] = []
        continuation_token = None
        requests_made = 0

        while True:
            if requests_made >= max_requests:
                raise PaginationLimitError(max_requests=max_requests, items_collected=len(all_pages))

            pages, continuation_token = await self._fetch_pages_batch(wiki_id, continuation_token)
            requests_made += 1
            all_pages.extend(self._format_page(page) for page in pages)

            if not continuation_token:
                break

        logger.info(
            f"Listed {len(all_pages)} pages of wiki {wiki_id} in {self.project} "
            f"({requests_made} requests)"
        )
        return all_pages

    @staticmethod
    def _format_page(page) -> Dict[str, Any]:
        """Format a WikiPageDetail (or equivalent dict) for response"""
        if isinstance(page, dict):
            return {
                'id': page.get('id'),
                'path': page.get('path'),
                'view_stats': page.get('view_stats') or page.get('viewStats') or []
            }

        return {
            'id': getattr(page, 'id', None),
            'path': getattr(page, 'path', None),
            'view_stats': [
                {
                    'day': stat.day.isoformat() if hasattr(stat.day, 'isoformat') else stat.day,
                    'count': stat.count
                }
                for stat in (getattr(page, 'view_stats', None) or [])
            ]
        }
