# models/bulk.py

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, computed_field


class BulkFailure(BaseModel):
    """Enough detail to retry just this item."""
    id: str
    error: str
    error_type: str


class BulkSummary(BaseModel):
    total: int
    successful: int
    failed: int


class BulkOperationResult(BaseModel):
    """
    Accumulator for a sequential batch. The summary is always derived from
    the two lists, never kept as separate counters.
    """
    successful: List[str] = Field(default_factory=list)
    failed: List[BulkFailure] = Field(default_factory=list)
    cancelled: bool = False
    not_processed: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def summary(self) -> BulkSummary:
        return BulkSummary(
            total=len(self.successful) + len(self.failed),
            successful=len(self.successful),
            failed=len(self.failed),
        )

    def record_success(self, item_id: str):
        self.successful.append(item_id)

    def record_failure(self, item_id: str, error: Exception):
        self.failed.append(
            BulkFailure(
                id=item_id,
                error=getattr(error, "message", None) or str(error),
                error_type=type(error).__name__,
            )
        )

    @property
    def failed_ids(self) -> List[str]:
        return [f.id for f in self.failed]


class BulkOperationParams(BaseModel):
    tier: Optional[str] = None
    expires_at: Optional[datetime] = None
    actor_id: Optional[str] = None


class BulkOperationRequest(BaseModel):
    user_ids: List[str]
    operation: str
    params: BulkOperationParams = Field(default_factory=BulkOperationParams)
