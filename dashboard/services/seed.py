"""One-shot, idempotent database bootstrap.

Creates the schema and the baseline rows: the default company, one admin
account, the platform and interest reference lists, one sample persona with
its platform/interest links, and a couple of sample insights. Running it
again changes nothing.

The whole run uses a single connection. Rows with a unique natural key
(users.email, platforms.name, interests.name) are written with an atomic
INSERT ... ON CONFLICT DO NOTHING, so two runs racing each other cannot
duplicate them. Rows without one (company, persona, insights) rely on the
existence check; on PostgreSQL the run holds a session advisory lock so
concurrent runs are serialized.
"""

import logging
import sys
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import date
from typing import Callable

from sqlalchemy import Table, func, insert, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ..config import settings
from ..db import create_db_engine
from ..errors import SeedStepFailure
from ..logging_setup import log_event, setup_logging
from ..models import (
    Base, Company, Insight, Interest, Persona, Platform, User,
    persona_interests, persona_platforms,
)
from ..security.auth import get_password_hash

logger = logging.getLogger(__name__)

PLATFORMS = ("Instagram", "TikTok", "YouTube", "Website", "LinkedIn", "Facebook")
INTERESTS = ("Yoga", "Running", "Fitness", "Mindfulness", "Outdoor", "Wellness", "Sustainability")

DEFAULT_COMPANY = {
    "name": "Lululemon",
    "description": "Athletic apparel and accessories company",
    "industry": "Retail/Fashion",
    "website": "https://lululemon.com",
    "status": "active",
}

SAMPLE_PERSONA = {
    "name": "Mindful Movers (Gen Z)",
    "description": "Health-conscious Gen Z focused on mindfulness and movement",
    "age_range": "18-24",
    "active": True,
}
SAMPLE_PERSONA_PLATFORMS = ("Instagram", "TikTok")
SAMPLE_PERSONA_INTERESTS = ("Yoga", "Mindfulness", "Sustainability")

SAMPLE_INSIGHTS = (
    {
        "title": "Gen Z Content Trends Q2 2025",
        "description": "Analysis of top-performing content patterns across platforms",
        "content": "<h2>Key Findings</h2><p>Gen Z audiences are increasingly engaging with authentic, unfiltered content that showcases real experiences...</p>",
        "date": date(2025, 5, 15),
        "platform": "Cross-platform",
        "trend": "+27% engagement vs. Q1",
        "actionable": True,
        "category": "Content",
        "tags": ["gen-z", "trends", "social-media"],
    },
    {
        "title": "Athleticwear Video Performance",
        "description": "How video product demos are outperforming static images",
        "content": "<h2>Video Performance Metrics</h2><p>Product demonstration videos show 45% higher engagement rates...</p>",
        "date": date(2025, 5, 12),
        "platform": "Instagram",
        "trend": "+45% view completion rate",
        "actionable": True,
        "category": "Content",
        "tags": ["video", "product-demo", "instagram"],
    },
)

# arbitrary, stable across processes
SEED_LOCK_KEY = 0x5EED_DA5B

@dataclass
class AdminAccount:
    email: str
    password: str
    name: str = "Admin User"
    department: str = "IT"

    @classmethod
    def from_settings(cls) -> "AdminAccount":
        return cls(email=settings.admin_email, password=settings.admin_password, name=settings.admin_name)

@dataclass
class SeedReport:
    """Rows created by one run. All zeros means the run was a no-op."""
    companies: int = 0
    users: int = 0
    platforms: int = 0
    interests: int = 0
    personas: int = 0
    persona_platforms: int = 0
    persona_interests: int = 0
    insights: int = 0

    @property
    def total(self) -> int:
        return sum(asdict(self).values())

    def as_dict(self) -> dict[str, int]:
        return asdict(self)

def _insert_if_absent(conn: Connection, table: Table, values: dict, conflict_columns: list[str]) -> bool:
    """Insert one row unless its unique key already exists. True if a row was written."""
    dialect = conn.dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(table).values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    elif dialect == "sqlite":
        stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    else:
        exists = select(func.count()).select_from(table).where(
            *(table.c[col] == values[col] for col in conflict_columns)
        )
        if conn.execute(exists).scalar_one():
            return False
        stmt = insert(table).values(**values)
    return conn.execute(stmt).rowcount == 1

def _id_by_name(conn: Connection, table: Table, name: str) -> int | None:
    return conn.execute(select(table.c.id).where(table.c.name == name)).scalar()

def _seed_company(conn: Connection, admin: AdminAccount, report: SeedReport) -> None:
    companies = Company.__table__
    if _id_by_name(conn, companies, DEFAULT_COMPANY["name"]) is None:
        conn.execute(insert(companies).values(**DEFAULT_COMPANY))
        report.companies += 1
        logger.info("Default company created")

def _seed_admin(conn: Connection, admin: AdminAccount, report: SeedReport) -> None:
    users = User.__table__
    existing = conn.execute(select(users.c.id).where(users.c.email == admin.email)).scalar()
    if existing is not None:
        return
    values = {
        "name": admin.name,
        "email": admin.email,
        "password_hash": get_password_hash(admin.password),
        "role": "admin",
        "status": "active",
        "department": admin.department,
        "company_id": _id_by_name(conn, Company.__table__, DEFAULT_COMPANY["name"]),
    }
    if _insert_if_absent(conn, users, values, ["email"]):
        report.users += 1
        logger.info(f"Admin user {admin.email} created")

def _seed_platforms(conn: Connection, admin: AdminAccount, report: SeedReport) -> None:
    for name in PLATFORMS:
        if _insert_if_absent(conn, Platform.__table__, {"name": name}, ["name"]):
            report.platforms += 1

def _seed_interests(conn: Connection, admin: AdminAccount, report: SeedReport) -> None:
    for name in INTERESTS:
        if _insert_if_absent(conn, Interest.__table__, {"name": name}, ["name"]):
            report.interests += 1

def _seed_sample_persona(conn: Connection, admin: AdminAccount, report: SeedReport) -> None:
    personas = Persona.__table__
    if _id_by_name(conn, personas, SAMPLE_PERSONA["name"]) is not None:
        # links of an existing persona are left as they are
        return

    persona_id = conn.execute(insert(personas).values(**SAMPLE_PERSONA)).inserted_primary_key[0]
    report.personas += 1

    for name in SAMPLE_PERSONA_PLATFORMS:
        platform_id = _id_by_name(conn, Platform.__table__, name)
        if platform_id is None:
            raise LookupError(f"Platform '{name}' missing; platforms must be seeded first")
        if _insert_if_absent(conn, persona_platforms, {"persona_id": persona_id, "platform_id": platform_id}, ["persona_id", "platform_id"]):
            report.persona_platforms += 1

    for name in SAMPLE_PERSONA_INTERESTS:
        interest_id = _id_by_name(conn, Interest.__table__, name)
        if interest_id is None:
            raise LookupError(f"Interest '{name}' missing; interests must be seeded first")
        if _insert_if_absent(conn, persona_interests, {"persona_id": persona_id, "interest_id": interest_id}, ["persona_id", "interest_id"]):
            report.persona_interests += 1

    logger.info("Initial persona created")

def _seed_sample_insights(conn: Connection, admin: AdminAccount, report: SeedReport) -> None:
    insights = Insight.__table__
    marker = SAMPLE_INSIGHTS[0]["title"]
    if conn.execute(select(insights.c.id).where(insights.c.title == marker)).scalar() is not None:
        return
    for insight in SAMPLE_INSIGHTS:
        conn.execute(insert(insights).values(**insight))
        report.insights += 1
    logger.info("Sample insights created")

# Order matters: the persona step resolves platform/interest ids by name.
SEED_STEPS: tuple[tuple[str, Callable[[Connection, AdminAccount, SeedReport], None]], ...] = (
    ("company", _seed_company),
    ("admin_user", _seed_admin),
    ("platforms", _seed_platforms),
    ("interests", _seed_interests),
    ("sample_persona", _seed_sample_persona),
    ("sample_insights", _seed_sample_insights),
)

def create_schema(conn: Connection) -> None:
    Base.metadata.create_all(conn)
    conn.commit()

@contextmanager
def seed_lock(conn: Connection):
    """Serialize seed runs for the lifetime of the block (PostgreSQL advisory lock)."""
    if conn.dialect.name != "postgresql":
        yield
        return

    conn.execute(text("SELECT pg_advisory_lock(:key)"), {"key": SEED_LOCK_KEY})
    conn.commit()
    try:
        yield
    finally:
        try:
            conn.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": SEED_LOCK_KEY})
            conn.commit()
        except SQLAlchemyError as e:
            # the lock dies with the connection, which is about to be closed
            logger.warning(f"Could not release seed lock: {e}")

def seed_database(conn: Connection, admin: AdminAccount | None = None) -> SeedReport:
    """Run every seed step in order, each in its own transaction.

    A failing step raises SeedStepFailure and the remaining steps are skipped.
    Steps already committed stay; the next run completes the rest.
    """
    admin = admin or AdminAccount.from_settings()
    report = SeedReport()
    if conn.in_transaction():
        conn.commit()
    for name, step in SEED_STEPS:
        log_event("seed_step_start", step=name)
        try:
            with conn.begin():
                step(conn, admin, report)
        except Exception as exc:
            raise SeedStepFailure(name, exc) from exc
        log_event("seed_step_done", step=name)
    return report

def run_seed(engine: Engine, admin: AdminAccount | None = None) -> SeedReport:
    with engine.connect() as conn:
        create_schema(conn)
        with seed_lock(conn):
            return seed_database(conn, admin)

def run_setup(engine: Engine | None = None, admin: AdminAccount | None = None) -> int:
    """Provision the database once and report an exit code (0 ok, 1 failed).

    When no engine is given one is built from settings and disposed before
    returning, whatever the outcome.
    """
    owns_engine = engine is None
    try:
        if owns_engine:
            engine = create_db_engine(settings.database_url, retries=settings.db_connect_retries)
        report = run_seed(engine, admin)
        log_event("seed_complete", **report.as_dict())
        return 0
    except SeedStepFailure as e:
        log_event("seed_failed", level="error", step=e.step, error=str(e.cause))
        return 1
    except SQLAlchemyError as e:
        log_event("seed_failed", level="error", step="connection", error=str(e))
        return 1
    finally:
        if owns_engine and engine is not None:
            engine.dispose()
        log_event("seed_connection_closed")

def main() -> None:
    setup_logging()
    sys.exit(run_setup())
