"""
Data models for hierarchical work item creation and wiki listing
"""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


@dataclass
class WorkItemSpec:
    """One node of a work item tree to create or link"""
    type: str
    id: Optional[int] = None
    title: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)
    children: List['WorkItemSpec'] = field(default_factory=list)

    @property
    def is_existing(self) -> bool:
        return self.id is not None

    def count_nodes(self) -> int:
        """Number of nodes in this subtree, including this one"""
        return 1 + sum(child.count_nodes() for child in self.children)


@dataclass
class CreationResult:
    """Outcome of processing a single WorkItemSpec node"""
    type: str
    id: Optional[int] = None
    title: Optional[str] = None
    parent_type: Optional[str] = None
    parent_url: Optional[str] = None
    created: bool = False
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'id': self.id,
            'title': self.title,
            'parentType': self.parent_type,
            'parentUrl': self.parent_url,
            'created': self.created,
            'url': self.url,
            'error': self.error,
        }


@dataclass
class BulkCreateSummary:
    """Counts derived from a list of CreationResult"""
    total: int
    created: int
    linked: int
    failed: int
    errors: List[Dict[str, Any]]

    @classmethod
    def from_results(cls, results: List[CreationResult]) -> 'BulkCreateSummary':
        failed = [r for r in results if not r.succeeded]
        return cls(
            total=len(results),
            created=sum(1 for r in results if r.succeeded and r.created),
            linked=sum(1 for r in results if r.succeeded and not r.created),
            failed=len(failed),
            errors=[
                {'type': r.type, 'title': r.title, 'error': r.error}
                for r in failed
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'created': self.created,
            'linked': self.linked,
            'failed': self.failed,
            'errors': list(self.errors),
        }
