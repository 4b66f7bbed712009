"""
Azure DevOps Hierarchy MCP Server
MCP server for bulk hierarchical work item creation and wiki page listing
"""
from fastmcp import FastMCP, Context
from typing import Optional, List, Dict, Any
import logging
import os
import sys
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from dotenv import load_dotenv

from .auth import AzureDevOpsAuth
from .constants import BulkLimits
from .formatters import (
    format_bulk_create_result,
    format_bulk_create_failure,
    format_wiki_page_list,
)
from .log_sanitizer import safe_log_error
from .service_manager import ServiceManager
from .validation import parse_work_item_specs, ValidationError

logger = logging.getLogger(__name__)

SERVICE_NAME = "Azure DevOps Hierarchy Manager"
SERVICE_VERSION = "1.0.0"

# Initialized during lifespan startup
_auth = None
_service_manager = None


def get_org_url() -> Optional[str]:
    """Organization URL from AZURE_DEVOPS_ORG_URL, falling back to AZURE_ORG_URL"""
    return os.getenv("AZURE_DEVOPS_ORG_URL") or os.getenv("AZURE_ORG_URL")


@asynccontextmanager
async def lifespan(app):
    """Authenticate and build the service manager on startup"""
    global _auth, _service_manager

    load_dotenv()

    org_url = get_org_url()
    default_project = os.getenv("AZURE_DEVOPS_PROJECT")

    if not org_url:
        raise ValueError(
            "Missing required environment variable: AZURE_DEVOPS_ORG_URL"
        )

    _auth = AzureDevOpsAuth(org_url)
    await _auth.initialize()

    _service_manager = ServiceManager(_auth, default_project=default_project)

    yield

    await _auth.close()


mcp = FastMCP(
    name=SERVICE_NAME,
    lifespan=lifespan
)


# ============================================================================
# TOOLS
# ============================================================================

@mcp.tool()
async def bulk_create_work_items(
    items: List[Dict[str, Any]],
    project: Optional[str] = None,
    batch_size: int = BulkLimits.DEFAULT_BATCH_SIZE,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Bulk create work items with hierarchical parent/child relationships.

    Each item is created (or, when it has an id, looked up) and linked under
    its parent; children are processed after their parent. A failing item is
    reported in the results and does not stop the others.

    Args:
        items: List of work item objects, each containing:
            - type: Work item type (required, e.g. "Epic", "Feature", "Task")
            - id: Existing work item ID to link instead of creating
            - title: Title (required when creating)
            - fields: Additional field values, e.g. {"System.Description": "..."}
            - children: Child work items with the same structure
        project: Azure DevOps project name. If None, uses default project.
        batch_size: Sibling items processed in parallel (default: 3, max: 10)

    Returns:
        Dictionary with summary (total, created, linked, failed, errors)
        and one result per item (type, id, title, parentType, parentUrl,
        created, url, error)

    Example:
        items = [
            {"type": "Epic", "title": "Epic 1", "children": [
                {"type": "Feature", "title": "Feature A", "children": [
                    {"type": "User Story", "title": "Story 1", "children": [
                        {"type": "Task", "title": "Task X"},
                        {"type": "Task", "title": "Task Y"}
                    ]}
                ]}
            ]},
            {"type": "Epic", "id": 1234, "children": [{"type": "Feature", "title": "Feature B"}]}
        ]
    """
    specs = parse_work_item_specs(items)
    workitem_service = _service_manager.get_workitem_service(project)
    total = sum(spec.count_nodes() for spec in specs)

    await ctx.info(f"Bulk creating {total} work items in project: {workitem_service.project}...")

    try:
        results = await workitem_service.bulk_create_work_items(specs, batch_size=batch_size)
    except ValidationError:
        raise
    except Exception as e:
        logger.error(safe_log_error(e, "Bulk create failed"), exc_info=True)
        await ctx.error(f"Bulk create failed: {e}")
        return format_bulk_create_failure(e)

    response = format_bulk_create_result(results)
    summary = response['summary']
    await ctx.info(
        f"Created {summary['created']}, linked {summary['linked']}, "
        f"failed {summary['failed']} of {summary['total']} work items"
    )
    return response


@mcp.tool()
async def list_wiki_pages(
    wiki_id: str,
    project: Optional[str] = None,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    List all pages in a wiki as a flat list.

    Args:
        wiki_id: Wiki name or ID
        project: Azure DevOps project name. If None, uses default project.

    Returns:
        Dictionary with wiki_id, count and pages (id, path, view_stats)
    """
    wiki_service = _service_manager.get_wiki_service(project)
    await ctx.info(f"Listing pages of wiki {wiki_id} in project: {wiki_service.project}...")

    pages = await wiki_service.list_pages(wiki_id)

    await ctx.info(f"Found {len(pages)} wiki pages")
    return format_wiki_page_list(wiki_id, pages)


# ============================================================================
# MONITORING TOOLS
# ============================================================================

@mcp.tool()
async def health_check(ctx: Context = None) -> Dict[str, Any]:
    """
    Get server health status for monitoring.

    Returns:
        Dictionary with health status, authentication info, and version
    """
    auth_info = _auth.get_auth_info() if _auth else {}

    return {
        "status": "healthy" if auth_info.get("authenticated") else "unhealthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "authenticated": bool(auth_info.get("authenticated")),
        "auth_method": auth_info.get("method"),
        "organization": auth_info.get("organization_url"),
        "auth_failure_stats": _auth.get_auth_failure_stats() if _auth else {}
    }


@mcp.tool()
async def get_service_statistics(ctx: Context = None) -> Dict[str, Any]:
    """
    Get service manager statistics and loaded projects.
    """
    if not _service_manager:
        return {"error": "Service manager not initialized"}

    return {
        "service_manager": _service_manager.get_statistics(),
        "loaded_projects": _service_manager.get_loaded_projects(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


def configure_logging() -> None:
    """Log to stderr; stdout carries the STDIO transport"""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr
    )


def main() -> None:
    """Run the server over STDIO or streamable HTTP (MCP_TRANSPORT)"""
    load_dotenv()
    configure_logging()

    transport_mode = os.getenv("MCP_TRANSPORT", "http").lower()

    if transport_mode == "stdio":
        logger.info("Starting MCP server in STDIO mode")
        mcp.run()
    else:
        port = int(os.getenv("PORT", 8000))
        logger.info(f"Starting MCP server with HTTP streaming on http://localhost:{port}/mcp")
        mcp.run(transport="streamable-http", port=port, host="0.0.0.0")


if __name__ == "__main__":
    main()
