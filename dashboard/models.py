# Copyright (c) 2026 Mohammed Hassan. All rights reserved.
# Proprietary and confidential. Unauthorized copying, modification, distribution, or use is prohibited.

from sqlalchemy import (
    Column, Integer, String, Text, Date, DateTime, JSON, ForeignKey, Boolean,
    Table, CheckConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

ROLES = ("admin", "editor", "viewer")
USER_STATUSES = ("active", "inactive", "pending")
COMPANY_STATUSES = ("active", "inactive")
CONTENT_TYPES = ("video", "article", "gallery", "event")
CONTENT_STATUSES = ("published", "draft", "scheduled", "review")
INSIGHT_CATEGORIES = ("Content", "Audience", "Engagement", "Conversion")
METRIC_FIELDS = ("views", "likes", "comments", "shares")

def _one_of(column: str, values: tuple[str, ...], name: str) -> CheckConstraint:
    allowed = ", ".join(f"'{v}'" for v in values)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)

# Junction tables: composite PK of both parents, cascade on either side.
persona_platforms = Table(
    "persona_platforms",
    Base.metadata,
    Column("persona_id", Integer, ForeignKey("personas.id", ondelete="CASCADE"), primary_key=True),
    Column("platform_id", Integer, ForeignKey("platforms.id", ondelete="CASCADE"), primary_key=True),
)

persona_interests = Table(
    "persona_interests",
    Base.metadata,
    Column("persona_id", Integer, ForeignKey("personas.id", ondelete="CASCADE"), primary_key=True),
    Column("interest_id", Integer, ForeignKey("interests.id", ondelete="CASCADE"), primary_key=True),
)

content_personas = Table(
    "content_personas",
    Base.metadata,
    Column("content_id", Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True),
    Column("persona_id", Integer, ForeignKey("personas.id", ondelete="CASCADE"), primary_key=True),
)

content_platforms = Table(
    "content_platforms",
    Base.metadata,
    Column("content_id", Integer, ForeignKey("content.id", ondelete="CASCADE"), primary_key=True),
    Column("platform_id", Integer, ForeignKey("platforms.id", ondelete="CASCADE"), primary_key=True),
)

class Company(Base):
    __tablename__ = "companies"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    industry = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    logo_url = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="company", passive_deletes=True)
    personas = relationship("Persona", back_populates="company", passive_deletes=True)

    __table_args__ = (_one_of("status", COMPANY_STATUSES, "ck_companies_status"),)

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(100), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="viewer")
    status = Column(String(20), nullable=False, default="pending")
    department = Column(String(100), nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="users")
    content = relationship("Content", back_populates="author")

    __table_args__ = (
        _one_of("role", ROLES, "ck_users_role"),
        _one_of("status", USER_STATUSES, "ck_users_status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

class Content(Base):
    __tablename__ = "content"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="draft", index=True)
    content_url = Column(String(255), nullable=True)
    thumbnail_url = Column(String(255), nullable=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_date = Column(DateTime(timezone=True), nullable=True)
    publish_date = Column(DateTime(timezone=True), nullable=True)

    # Engagement counters only ever grow
    views = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    comments = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    author = relationship("User", back_populates="content")
    personas = relationship(
        "Persona", secondary=content_personas, back_populates="content", passive_deletes=True
    )
    platforms = relationship(
        "Platform", secondary=content_platforms, back_populates="content", passive_deletes=True
    )

    __table_args__ = (
        _one_of("type", CONTENT_TYPES, "ck_content_type"),
        _one_of("status", CONTENT_STATUSES, "ck_content_status"),
        *(CheckConstraint(f"{m} >= 0", name=f"ck_content_{m}_non_negative") for m in METRIC_FIELDS),
    )

class Persona(Base):
    __tablename__ = "personas"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    age_range = Column(String(50), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    company = relationship("Company", back_populates="personas")
    platforms = relationship(
        "Platform", secondary=persona_platforms, back_populates="personas", passive_deletes=True
    )
    interests = relationship(
        "Interest", secondary=persona_interests, back_populates="personas", passive_deletes=True
    )
    content = relationship(
        "Content", secondary=content_personas, back_populates="personas", passive_deletes=True
    )

    @property
    def content_count(self) -> int:
        return len(self.content)

class Platform(Base):
    __tablename__ = "platforms"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    personas = relationship(
        "Persona", secondary=persona_platforms, back_populates="platforms", passive_deletes=True
    )
    content = relationship(
        "Content", secondary=content_platforms, back_populates="platforms", passive_deletes=True
    )

class Interest(Base):
    __tablename__ = "interests"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    personas = relationship(
        "Persona", secondary=persona_interests, back_populates="interests", passive_deletes=True
    )

class Insight(Base):
    __tablename__ = "insights"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    platform = Column(String(100), nullable=True)
    trend = Column(String(100), nullable=True)
    image_url = Column(String(255), nullable=True)
    actionable = Column(Boolean, nullable=False, default=False)
    category = Column(String(20), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    author = relationship("User")
    company = relationship("Company")

    __table_args__ = (_one_of("category", INSIGHT_CATEGORIES, "ck_insights_category"),)
