"""
Subscriber, package and entitlement models.
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class Subscriber(BaseModel):
    """Account allowed to use the Xtream API."""
    id: str
    username: str
    api_password: Optional[str] = None
    status: str = "active"  # active, suspended, banned, inactive
    max_connections: int = 1
    is_trial: bool = False
    trial_expires_at: Optional[datetime] = None
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"


class Package(BaseModel):
    """Commercial package an entitlement refers to."""
    id: str
    name: str
    concurrent_limit: int = 1
    features: dict = Field(default_factory=dict)


class Entitlement(BaseModel):
    """Subscription linking a subscriber to a package for a validity window."""
    id: str
    subscriber_id: str
    package_id: Optional[str] = None
    status: str = "active"  # active, expired, suspended
    start_date: Optional[datetime] = None
    end_date: datetime


class AuthContext(BaseModel):
    """Result of a successful credential and entitlement check."""
    subscriber: Subscriber
    entitlement: Entitlement
    package: Optional[Package] = None

    @property
    def max_connections(self) -> int:
        if self.package is not None:
            return self.package.concurrent_limit
        return self.subscriber.max_connections


class SessionRecord(BaseModel):
    """Append-only log entry written when a live stream is resolved."""
    subscriber_id: str
    channel_id: str
    client_ip: str
    user_agent: Optional[str] = None
    started_at: datetime
