"""
Constants for Azure DevOps hierarchy and wiki operations.
"""


# ============================================================================
# Field Reference Names
# ============================================================================

class FieldNames:
    """Azure DevOps field reference names used by this server."""

    ID = "System.Id"
    TITLE = "System.Title"
    STATE = "System.State"
    WORK_ITEM_TYPE = "System.WorkItemType"
    DESCRIPTION = "System.Description"
    ASSIGNED_TO = "System.AssignedTo"
    AREA_PATH = "System.AreaPath"
    ITERATION_PATH = "System.IterationPath"
    TAGS = "System.Tags"

    PRIORITY = "Microsoft.VSTS.Common.Priority"
    SEVERITY = "Microsoft.VSTS.Common.Severity"
    ACCEPTANCE_CRITERIA = "Microsoft.VSTS.Common.AcceptanceCriteria"
    BUSINESS_VALUE = "Microsoft.VSTS.Common.BusinessValue"
    STACK_RANK = "Microsoft.VSTS.Common.StackRank"
    BACKLOG_PRIORITY = "Microsoft.VSTS.Common.BacklogPriority"

    REMAINING_WORK = "Microsoft.VSTS.Scheduling.RemainingWork"
    COMPLETED_WORK = "Microsoft.VSTS.Scheduling.CompletedWork"
    ORIGINAL_ESTIMATE = "Microsoft.VSTS.Scheduling.OriginalEstimate"
    STORY_POINTS = "Microsoft.VSTS.Scheduling.StoryPoints"
    EFFORT = "Microsoft.VSTS.Scheduling.Effort"
    SIZE = "Microsoft.VSTS.Scheduling.Size"

    REPRO_STEPS = "Microsoft.VSTS.TCM.ReproSteps"


# Fields that hold HTML and are screened for script content
HTML_FIELDS = frozenset({
    FieldNames.DESCRIPTION,
    FieldNames.ACCEPTANCE_CRITERIA,
    FieldNames.REPRO_STEPS,
})

# Fields that must be non-negative numbers
NUMERIC_FIELDS = frozenset({
    FieldNames.REMAINING_WORK,
    FieldNames.COMPLETED_WORK,
    FieldNames.ORIGINAL_ESTIMATE,
    FieldNames.STORY_POINTS,
    FieldNames.EFFORT,
    FieldNames.SIZE,
    FieldNames.BUSINESS_VALUE,
    FieldNames.STACK_RANK,
    FieldNames.BACKLOG_PRIORITY,
})


# ============================================================================
# Link Types
# ============================================================================

class LinkTypes:
    """Work item link types."""

    # Hierarchy-Reverse on the child points at its parent
    HIERARCHY_FORWARD = "System.LinkTypes.Hierarchy-Forward"
    HIERARCHY_REVERSE = "System.LinkTypes.Hierarchy-Reverse"

    RELATED = "System.LinkTypes.Related"
    DEPENDENCY_FORWARD = "System.LinkTypes.Dependency-Forward"
    DEPENDENCY_REVERSE = "System.LinkTypes.Dependency-Reverse"
    DUPLICATE_FORWARD = "System.LinkTypes.Duplicate-Forward"
    DUPLICATE_REVERSE = "System.LinkTypes.Duplicate-Reverse"


ALLOWED_LINK_TYPES = frozenset({
    LinkTypes.HIERARCHY_FORWARD,
    LinkTypes.HIERARCHY_REVERSE,
    LinkTypes.RELATED,
    LinkTypes.DEPENDENCY_FORWARD,
    LinkTypes.DEPENDENCY_REVERSE,
    LinkTypes.DUPLICATE_FORWARD,
    LinkTypes.DUPLICATE_REVERSE,
})


# ============================================================================
# Limits
# ============================================================================

class BulkLimits:
    """Limits for hierarchical bulk creation."""

    # Siblings processed concurrently when the caller does not say
    DEFAULT_BATCH_SIZE = 3

    # Upper bound applied by the tool layer
    MAX_BATCH_SIZE = 10

    # Deepest tree accepted at the boundary (Epic > Feature > Story > Task is 4)
    MAX_DEPTH = 10

    # Total nodes accepted in one call
    MAX_NODES = 500


class WikiLimits:
    """Limits for wiki page listing."""

    # Pages requested per getPagesBatch call (API maximum is 100)
    PAGE_BATCH_TOP = 100

    # getPagesBatch calls before giving up on a listing
    MAX_BATCH_REQUESTS = 500


class RequestDefaults:
    """Per-call defaults for Azure DevOps operations."""

    TIMEOUT_SECONDS = 30
    MAX_RETRIES = 3
    BASE_DELAY_SECONDS = 1.0


def field_path(field_name: str) -> str:
    """Return the JSON-patch path for a field reference name."""
    if field_name.startswith('/fields/'):
        return field_name
    return f'/fields/{field_name}'
