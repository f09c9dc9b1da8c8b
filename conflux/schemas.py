"""Request and response shapes shared by the HTTP API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from conflux.errors import ValidationError

T = TypeVar("T")


@dataclass
class ApiResponse(Generic[T]):
    """Envelope of every API reply."""

    success: bool
    data: Optional[T] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T, message: Optional[str] = None) -> "ApiResponse[T]":
        """A successful reply carrying data and an optional message."""
        return cls(success=True, data=data, message=message)

    @classmethod
    def failure(cls, error: str) -> "ApiResponse[T]":
        """A failed reply carrying an error description."""
        return cls(success=False, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "data": self.data,
            "message": self.message,
            "error": self.error,
        }


@dataclass
class PaginationParams:
    """Page number (from 1) and page size of a listing."""

    page: Optional[int] = 1
    page_size: Optional[int] = 20


@dataclass
class PaginatedResponse(Generic[T]):
    """One page of a listing."""

    items: List[T]
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def create(cls, items: List[T], page: int, page_size: int, total: int) -> "PaginatedResponse[T]":
        """Build a page, working out how many pages the total spans."""
        if page_size <= 0:
            raise ValidationError(f"page_size must be positive, got {page_size}")
        total_pages = -(-total // page_size)
        return cls(list(items), page, page_size, total, total_pages)


@dataclass
class HealthResponse:
    """Reply of a health probe."""

    status: str
    timestamp: str
    version: Optional[str] = None
    details: Optional[Any] = None


@dataclass
class NodeInfo:
    """A member of the cluster."""

    id: int
    address: str
    status: str
    is_leader: bool
    last_heartbeat: Optional[datetime] = None


@dataclass
class AddNodeRequest:
    """Request to add a node to the cluster."""

    node_id: int
    address: str


@dataclass
class RemoveNodeRequest:
    """Request to remove a node from the cluster."""

    node_id: int
    force: Optional[bool] = field(default=None)