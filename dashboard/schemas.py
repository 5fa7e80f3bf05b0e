import datetime as dt
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

RoleName = Literal["admin", "editor", "viewer"]
UserStatus = Literal["active", "inactive", "pending"]
CompanyStatus = Literal["active", "inactive"]
ContentType = Literal["video", "article", "gallery", "event"]
ContentStatus = Literal["published", "draft", "scheduled", "review"]
InsightCategory = Literal["Content", "Audience", "Engagement", "Conversion"]

class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

# --- auth ---

class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class RegisterIn(BaseModel):
    name: str = Field(min_length=3)
    email: EmailStr
    password: str = Field(min_length=6)
    role: RoleName = "viewer"
    department: str | None = None

class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)

# --- users ---

class UserOut(OrmModel):
    id: int
    name: str
    email: str
    role: RoleName
    status: UserStatus
    department: str | None = None
    company_id: int | None = None
    last_login: datetime | None = None
    created_at: datetime | None = None

class LoginOut(BaseModel):
    token: str
    user: UserOut

class UserCreate(BaseModel):
    name: str = Field(min_length=3)
    email: EmailStr
    password: str | None = Field(default=None, min_length=6)
    role: RoleName
    department: str | None = None
    company_id: int | None = Field(default=None, ge=1)
    status: UserStatus = "pending"

class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3)
    email: EmailStr | None = None
    role: RoleName | None = None
    department: str | None = None
    company_id: int | None = Field(default=None, ge=1)
    status: UserStatus | None = None

class ResetPasswordIn(BaseModel):
    password: str | None = Field(default=None, min_length=6)

class ResetPasswordOut(BaseModel):
    message: str
    # only set when the password was generated server-side
    password: str | None = None

class UserStats(BaseModel):
    total_users: int
    active_users: int
    pending_users: int
    inactive_users: int
    admin_users: int
    editor_users: int
    viewer_users: int

# --- companies ---

class CompanyCreate(BaseModel):
    name: str = Field(min_length=2)
    description: str | None = None
    industry: str | None = None
    website: str | None = None
    logo_url: str | None = None
    status: CompanyStatus = "active"

class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2)
    description: str | None = None
    industry: str | None = None
    website: str | None = None
    logo_url: str | None = None
    status: CompanyStatus | None = None

class CompanyOut(OrmModel):
    id: int
    name: str
    description: str | None = None
    industry: str | None = None
    website: str | None = None
    logo_url: str | None = None
    status: CompanyStatus
    created_at: datetime | None = None

# --- targeting reference data ---

class PlatformOut(OrmModel):
    id: int
    name: str

class InterestOut(OrmModel):
    id: int
    name: str

class PersonaRef(OrmModel):
    id: int
    name: str

class PersonaCreate(BaseModel):
    name: str = Field(min_length=3)
    description: str | None = None
    age_range: str | None = None
    company_id: int | None = Field(default=None, ge=1)
    active: bool = True
    platforms: list[str] = Field(default_factory=list)
    interests: list[str] = Field(default_factory=list)

class PersonaUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3)
    description: str | None = None
    age_range: str | None = None
    company_id: int | None = Field(default=None, ge=1)
    active: bool | None = None
    # None leaves the links alone, [] removes them all
    platforms: list[str] | None = None
    interests: list[str] | None = None

class PersonaOut(OrmModel):
    id: int
    name: str
    description: str | None = None
    age_range: str | None = None
    active: bool
    company_id: int | None = None
    platforms: list[PlatformOut] = Field(default_factory=list)
    interests: list[InterestOut] = Field(default_factory=list)
    content_count: int = 0

# --- content ---

class ContentCreate(BaseModel):
    title: str = Field(min_length=3)
    description: str | None = None
    type: ContentType
    status: ContentStatus = "draft"
    content_url: str | None = None
    thumbnail_url: str | None = None
    scheduled_date: datetime | None = None
    personas: list[int] = Field(default_factory=list)
    platforms: list[int] = Field(default_factory=list)

class ContentUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3)
    description: str | None = None
    type: ContentType | None = None
    status: ContentStatus | None = None
    content_url: str | None = None
    thumbnail_url: str | None = None
    scheduled_date: datetime | None = None
    personas: list[int] | None = None
    platforms: list[int] | None = None

class ContentOut(OrmModel):
    id: int
    title: str
    description: str | None = None
    type: ContentType
    status: ContentStatus
    content_url: str | None = None
    thumbnail_url: str | None = None
    author_id: int
    scheduled_date: datetime | None = None
    publish_date: datetime | None = None
    views: int
    likes: int
    comments: int
    shares: int
    personas: list[PersonaRef] = Field(default_factory=list)
    platforms: list[PlatformOut] = Field(default_factory=list)
    created_at: datetime | None = None

class MetricsIn(BaseModel):
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)

class EngagementIn(BaseModel):
    type: Literal["view", "like", "comment", "share"]

# --- insights ---

class InsightCreate(BaseModel):
    title: str = Field(min_length=3)
    description: str | None = None
    content: str | None = None
    date: dt.date
    platform: str | None = None
    trend: str | None = None
    image_url: str | None = None
    actionable: bool = False
    category: InsightCategory | None = None
    tags: list[str] = Field(default_factory=list)
    company_id: int | None = Field(default=None, ge=1)

class InsightUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=3)
    description: str | None = None
    content: str | None = None
    date: dt.date | None = None
    platform: str | None = None
    trend: str | None = None
    image_url: str | None = None
    actionable: bool | None = None
    category: InsightCategory | None = None
    tags: list[str] | None = None
    company_id: int | None = Field(default=None, ge=1)

class InsightOut(OrmModel):
    id: int
    title: str
    description: str | None = None
    content: str | None = None
    date: dt.date
    platform: str | None = None
    trend: str | None = None
    image_url: str | None = None
    actionable: bool
    category: InsightCategory | None = None
    tags: list[str] = Field(default_factory=list)
    author_id: int | None = None
    company_id: int | None = None
    created_at: datetime | None = None
