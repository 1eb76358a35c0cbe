"""
Database Models for Shrinkly

This module defines the SQLModel database schemas for:
- User: Owner of links (peripheral, referenced as the owner scope only)
- Link: Mapping between a short code and its destination URL
- AnalyticsEvent: One row per successful redirect, for analytics

Design Decisions:
- AnalyticsEvent is append-only and stored in its own table so it can be
  partitioned or moved independently of the link lookup path
- short_code is denormalized onto AnalyticsEvent for fast per-code queries
- clicks is denormalized onto Link and only changed by an atomic UPDATE
- link_id is not a database-enforced foreign key so events can outlive
  their link when the cascade policy retains them
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlmodel import Field, SQLModel

from shrinkly.core.dates import utcnow


class LinkStatus(str, Enum):
    """Lifecycle status of a link."""
    active = "active"
    inactive = "inactive"


class DeviceType(str, Enum):
    """Device classes recorded on analytics events."""
    mobile = "mobile"
    tablet = "tablet"
    desktop = "desktop"
    unknown = "unknown"


class User(SQLModel, table=True):
    """Link owner. Authentication and profile data live outside this service."""
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True, index=True))
    name: Optional[str] = Field(default=None, sa_column=Column(String(100), nullable=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False)
    )


class Link(SQLModel, table=True):
    """
    Short link.

    Fields:
    - short_code: Unique, immutable once assigned (random code or custom slug)
    - original_url: Destination of the redirect
    - clicks: Monotonic counter, incremented only by LinkResolver
    - status: active or inactive; inactive links answer 403
    - user_id: Optional owner; anonymous links have none
    """
    __tablename__ = "links"
    # Ids are never reused, so retained events of a deleted link stay orphaned
    __table_args__ = {"sqlite_autoincrement": True}

    id: Optional[int] = Field(default=None, primary_key=True)
    short_code: str = Field(
        sa_column=Column(String(50), nullable=False, unique=True, index=True),
        max_length=50
    )
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    custom_slug: Optional[str] = Field(default=None, sa_column=Column(String(50), nullable=True))
    domain: str = Field(sa_column=Column(String(255), nullable=False))
    clicks: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    status: str = Field(
        default=LinkStatus.active.value,
        sa_column=Column(String(16), nullable=False, default=LinkStatus.active.value, index=True)
    )
    tags: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    user_id: Optional[int] = Field(default=None, sa_column=Column(Integer, nullable=True, index=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, index=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False)
    )

    @property
    def short_url(self) -> str:
        return f"{self.domain}/{self.short_code}"


class AnalyticsEvent(SQLModel, table=True):
    """
    One recorded click.

    Rows are immutable once written. country/city hold "Unknown" unless a
    geo resolver is configured.
    """
    __tablename__ = "analytics_events"
    __table_args__ = (
        Index("ix_analytics_events_link_id_clicked_at", "link_id", "clicked_at"),
        Index("ix_analytics_events_short_code_clicked_at", "short_code", "clicked_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    short_code: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    ip: str = Field(default="", sa_column=Column(String(45), nullable=False, default=""))  # IPv6 max length
    user_agent: str = Field(default="", sa_column=Column(String(500), nullable=False, default=""))
    device: str = Field(
        default=DeviceType.unknown.value,
        sa_column=Column(String(16), nullable=False, default=DeviceType.unknown.value)
    )
    browser: str = Field(default="unknown", sa_column=Column(String(100), nullable=False, default="unknown"))
    os: str = Field(default="unknown", sa_column=Column(String(100), nullable=False, default="unknown"))
    country: str = Field(default="Unknown", sa_column=Column(String(100), nullable=False, default="Unknown"))
    city: str = Field(default="Unknown", sa_column=Column(String(100), nullable=False, default="Unknown"))
    referrer: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    referrer_domain: str = Field(
        default="direct",
        sa_column=Column(String(255), nullable=False, default="direct")
    )
    is_qr_scan: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    clicked_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime, nullable=False, index=True)
    )
