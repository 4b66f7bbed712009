"""
Response shaping for MCP tool results
"""
from typing import List, Dict, Any

from .log_sanitizer import describe_error
from .models import CreationResult, BulkCreateSummary


def format_bulk_create_result(results: List[CreationResult]) -> Dict[str, Any]:
    """Summary and per-node results, with the summary computed from the results"""
    return {
        'summary': BulkCreateSummary.from_results(results).to_dict(),
        'results': [r.to_dict() for r in results]
    }


def format_bulk_create_failure(error: BaseException) -> Dict[str, Any]:
    """Result shape for a bulk run that failed as a whole"""
    summary = BulkCreateSummary(
        total=0,
        created=0,
        linked=0,
        failed=1,
        errors=[{
            'type': 'BULK_CREATE',
            'title': 'Bulk Create Failed',
            'error': describe_error(error)
        }]
    )
    return {'summary': summary.to_dict(), 'results': []}


def format_wiki_page_list(wiki_id: str, pages: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        'wiki_id': wiki_id,
        'count': len(pages),
        'pages': pages
    }
