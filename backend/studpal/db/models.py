"""
SQLAlchemy 2.0 Models for StudPal.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys and proper relationship definitions.
Column types are kept dialect-neutral (Uuid, JSON, CHECK constraints instead
of native enums) so the schema runs on PostgreSQL in production and SQLite
in tests.
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from studpal.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class MaterialType(str, PyEnum):
    """Kind of study material."""

    NOTE = "note"
    PDF = "pdf"
    LINK = "link"


class Priority(str, PyEnum):
    """Priority shared by materials and events."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EventType(str, PyEnum):
    """Calendar event category."""

    DEADLINE = "deadline"
    EXAM = "exam"
    MEETING = "meeting"
    OTHER = "other"


class NotificationKind(str, PyEnum):
    EVENT_REMINDER = "event_reminder"
    GROUP_JOIN = "group_join"


class GroupRole(str, PyEnum):
    OWNER = "owner"
    MEMBER = "member"


# Placeholders written when a profile is provisioned before onboarding
PROFILE_PLACEHOLDER_MAJOR = "undeclared"
PROFILE_PLACEHOLDER_YEAR = "unspecified"


def _timestamp(**kwargs) -> Mapped[datetime]:
    return mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False, **kwargs
    )


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """
    Core user account.

    Decoupled from auth providers - users can have multiple auth_identities
    linked to one account. Study preferences live in UserProfile.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, index=True, nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = _timestamp()
    updated_at: Mapped[datetime] = _timestamp(onupdate=utcnow)

    # Relationships
    auth_identities: Mapped[list["AuthIdentity"]] = relationship(
        "AuthIdentity", back_populates="user", cascade="all, delete-orphan"
    )
    profile: Mapped[Optional["UserProfile"]] = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class AuthIdentity(Base):
    """
    OAuth provider identity linked to a user.

    Does NOT store OAuth access/refresh tokens - we only verify id_tokens at login.
    """

    __tablename__ = "auth_identities"
    __table_args__ = (
        UniqueConstraint("provider", "provider_user_id", name="unique_provider_identity"),
        Index("idx_auth_identities_provider_lookup", "provider", "provider_user_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    provider: Mapped[str] = mapped_column(String(50), nullable=False)  # 'google'
    provider_user_id: Mapped[str] = mapped_column(String(255), nullable=False)  # Provider's 'sub' claim
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # For audit
    created_at: Mapped[datetime] = _timestamp()
    last_login_at: Mapped[datetime] = _timestamp()

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="auth_identities")


class UserProfile(Base):
    """
    Per-user study profile (1:1 with users).

    Created either by onboarding or lazily, with placeholder major/year,
    the first time a user creates a material.
    """

    __tablename__ = "user_profiles"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    major: Mapped[str] = mapped_column(String(50), nullable=False, default=PROFILE_PLACEHOLDER_MAJOR)
    academic_year: Mapped[str] = mapped_column(
        String(50), nullable=False, default=PROFILE_PLACEHOLDER_YEAR
    )
    onboarded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _timestamp()
    updated_at: Mapped[datetime] = _timestamp(onupdate=utcnow)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="profile")


class Material(Base):
    """
    User-owned study material: a note, a PDF, or a link.

    Exactly one of content/url/file_id is populated, chosen by type.
    Tags are stored as ordered child rows so they can be filtered in SQL.
    """

    __tablename__ = "materials"
    __table_args__ = (
        Index("idx_materials_user_created_at", "user_id", "created_at"),
        Index("idx_materials_user_type", "user_id", "type"),
        Index("idx_materials_user_title", "user_id", "title"),
        CheckConstraint("type IN ('note', 'pdf', 'link')", name="valid_material_type"),
        CheckConstraint("priority IN ('high', 'medium', 'low')", name="valid_material_priority"),
        CheckConstraint(
            "(type = 'note' AND content IS NOT NULL AND url IS NULL AND file_id IS NULL)"
            " OR (type = 'link' AND url IS NOT NULL AND content IS NULL AND file_id IS NULL)"
            " OR (type = 'pdf' AND file_id IS NOT NULL AND content IS NULL AND url IS NULL)",
            name="material_payload_matches_type",
        ),
        CheckConstraint("file_size IS NULL OR file_size >= 0", name="valid_file_size"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # note
    url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)  # link
    file_id: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)  # pdf (S3 key)
    file_size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default=Priority.MEDIUM.value)
    created_at: Mapped[datetime] = _timestamp()
    updated_at: Mapped[datetime] = _timestamp(onupdate=utcnow)

    # Relationships
    tag_links: Mapped[list["MaterialTag"]] = relationship(
        "MaterialTag",
        back_populates="material",
        cascade="all, delete-orphan",
        order_by="MaterialTag.position",
        lazy="selectin",
    )

    @property
    def tags(self) -> list[str]:
        return [link.name for link in self.tag_links]


class MaterialTag(Base):
    """A tag attached to a material, in first-occurrence order."""

    __tablename__ = "material_tags"
    __table_args__ = (
        UniqueConstraint("material_id", "name", name="unique_material_tag"),
        Index("idx_material_tags_name", "name"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    material_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("materials.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    material: Mapped["Material"] = relationship("Material", back_populates="tag_links")


class Tag(Base):
    """
    Per-user tag catalogue.

    Denormalized convenience entity: count is advisory and maintained
    best-effort as materials are tagged and untagged.
    """

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="unique_user_tag"),
        Index("idx_tags_user_count", "user_id", "count"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(7), nullable=True)  # Hex color
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = _timestamp()


class Event(Base):
    """Calendar event (deadline, exam, meeting)."""

    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_user_start", "user_id", "start_at"),
        Index("idx_events_user_end", "user_id", "end_at"),
        CheckConstraint("end_at IS NULL OR end_at >= start_at", name="valid_event_range"),
        CheckConstraint(
            "type IN ('deadline', 'exam', 'meeting', 'other')", name="valid_event_type"
        ),
        CheckConstraint("priority IN ('high', 'medium', 'low')", name="valid_event_priority"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=EventType.DEADLINE.value)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default=Priority.MEDIUM.value)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_online: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    meeting_url: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    reminders: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)  # minutes before start
    created_at: Mapped[datetime] = _timestamp()
    updated_at: Mapped[datetime] = _timestamp(onupdate=utcnow)


class Notification(Base):
    """In-app notification: event reminder or group activity."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notifications_user_scheduled", "user_id", "scheduled_for"),
        Index("idx_notifications_event_id", "event_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    event_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=True
    )
    group_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=True
    )
    reminder_offset_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    scheduled_for: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _timestamp()


class StudyGroup(Base):
    """Study group with chat and shared files."""

    __tablename__ = "study_groups"
    __table_args__ = (Index("idx_study_groups_created_at", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = _timestamp()


class GroupMember(Base):
    """Membership of a user in a study group."""

    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("user_id", "group_id", name="unique_group_member"),
        CheckConstraint("role IN ('owner', 'member')", name="valid_group_role"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=GroupRole.MEMBER.value)
    joined_at: Mapped[datetime] = _timestamp()


class GroupMessage(Base):
    """Chat message posted to a study group."""

    __tablename__ = "group_messages"
    __table_args__ = (Index("idx_group_messages_group_created", "group_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = _timestamp()

    author: Mapped["User"] = relationship("User", lazy="joined")

    @property
    def author_name(self) -> str:
        return self.author.name


class SharedFile(Base):
    """File shared with a study group; bytes live in object storage."""

    __tablename__ = "shared_files"
    __table_args__ = (
        Index("idx_shared_files_group_created", "group_id", "created_at"),
        CheckConstraint("file_size >= 0", name="valid_shared_file_size"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    group_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("study_groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    file_id: Mapped[str] = mapped_column(String(512), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = _timestamp()
