"""
Version Data Models

Canonical representations of one entry of a site's ``versions.json``
manifest and of the outcome of resolving a requested version string.
"""

from __future__ import annotations

from typing import FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_VERSION = "default"
LATEST_VERSION = "latest"


class VersionInfo(BaseModel):
    """
    A single published version of a documentation site.
    """

    version: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    aliases: FrozenSet[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(frozen=True)


class VersionResolution(BaseModel):
    """
    Result of resolving a requested version against a site.

    ``resolved`` is the canonical version identifier used both as a cache
    key component and as the URL path segment; non-versioned sites always
    resolve to ``"default"``.
    """

    valid: bool
    resolved: str
    is_default: bool = False
    available: Optional[List[VersionInfo]] = None
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)
