"""
Persisted State Models

Pydantic models for the list snapshot written to the state store.
"""

from pydantic import BaseModel, Field

from sitemap_request_list.models.request import Request, RequestState
from sitemap_request_list.models.sitemap import SourceDescriptor, SourceStatus

SNAPSHOT_VERSION = 1


class RequestSnapshot(BaseModel):
    """Serialized pending or in-progress request"""

    id: str
    url: str
    unique_key: str
    source_url: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    retry_count: int = Field(default=0, ge=0)

    @classmethod
    def from_request(cls, request: Request) -> "RequestSnapshot":
        return cls(
            id=request.id,
            url=request.url,
            unique_key=request.unique_key,
            source_url=request.source_url,
            metadata=dict(request.metadata),
            retry_count=request.retry_count,
        )

    def to_request(self) -> Request:
        return Request(
            id=self.id,
            url=self.url,
            unique_key=self.unique_key,
            state=RequestState.PENDING,
            source_url=self.source_url,
            metadata=dict(self.metadata),
            retry_count=self.retry_count,
        )


class SourceSnapshot(BaseModel):
    """Serialized frontier entry"""

    url: str
    status: SourceStatus
    parent_url: str | None = None
    error: str | None = None
    items_found: int = Field(default=0, ge=0)

    @classmethod
    def from_descriptor(cls, descriptor: SourceDescriptor) -> "SourceSnapshot":
        return cls(
            url=descriptor.url,
            status=descriptor.status,
            parent_url=descriptor.parent_url,
            error=descriptor.error,
            items_found=descriptor.items_found,
        )


class ListStateSnapshot(BaseModel):
    """Everything needed to resume a sitemap request list"""

    version: int = SNAPSHOT_VERSION
    pending: list[RequestSnapshot] = Field(default_factory=list)
    in_progress: list[RequestSnapshot] = Field(default_factory=list)
    handled_count: int = Field(default=0, ge=0)
    handled_unique_keys: list[str] = Field(default_factory=list)
    sources: list[SourceSnapshot] = Field(default_factory=list)
