"""
Catalog data models: live channels, VOD movies, series and bouquets.
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class UpstreamSource(BaseModel):
    """One playable origin URL for a channel."""
    url: str
    quality: Optional[str] = None


class Channel(BaseModel):
    """Live TV channel as held in the catalog."""
    id: str  # UUID
    name: str
    category: Optional[str] = None
    logo_url: Optional[str] = None
    epg_id: Optional[str] = None
    upstream_sources: list[UpstreamSource] = Field(default_factory=list)
    active: bool = True
    created_at: Optional[datetime] = None

    @property
    def primary_source(self) -> Optional[UpstreamSource]:
        """First listed upstream, the one playback resolves to."""
        if not self.upstream_sources:
            return None
        return self.upstream_sources[0]


class Movie(BaseModel):
    """VOD title."""
    id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    poster_url: Optional[str] = None
    year: Optional[int] = None
    genre: Optional[str] = None
    rating: Optional[float] = None
    duration_minutes: Optional[int] = None
    container_extension: str = "mp4"
    active: bool = True
    created_at: Optional[datetime] = None


class Series(BaseModel):
    """TV series header; episodes are not modelled."""
    id: str
    title: str
    category: Optional[str] = None
    description: Optional[str] = None
    poster_url: Optional[str] = None
    year: Optional[int] = None
    genre: Optional[str] = None
    rating: Optional[float] = None
    seasons: int = 0
    episodes: int = 0
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Bouquet(BaseModel):
    """Named channel grouping."""
    id: str
    name: str
    channel_ids: list[str] = Field(default_factory=list)
    sort_order: int = 0
    is_adult: bool = False
