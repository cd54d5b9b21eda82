"""
API Models

Request/response schemas for the HTTP surface. Search output reuses the
core ``SearchResponse`` model directly.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    """
    Documentation search request.
    """
    query: str = Field(..., min_length=1)
    version: Optional[str] = None
    limit: int = Field(default=10, ge=1, le=100)

    model_config = ConfigDict(extra="forbid")


class VersionEntry(BaseModel):
    version: str
    title: str
    aliases: List[str] = Field(default_factory=list)


class CacheStatsResponse(BaseModel):
    size: int = Field(..., ge=0)
    max_size: int = Field(..., alias="maxSize")
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    evictions: int = Field(..., ge=0)
    memory_usage_mb: float = Field(..., alias="memoryUsageMB")
    max_memory_mb: float = Field(..., alias="maxMemoryMB")
    hit_rate: float = Field(..., ge=0.0, le=1.0, alias="hitRate")

    model_config = ConfigDict(populate_by_name=True)


class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    """
    status: Literal["ok", "cleared"]
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")
