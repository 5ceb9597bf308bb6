"""
Database configuration and connection management.

This module provides:
- SQLAlchemy Core table definitions for the prompt library
- Engine and session factory construction (owned by the app lifespan)
- A FastAPI dependency yielding one session per request
- Test database support (TEST_DATABASE_URL, in-memory SQLite)
"""
from typing import Optional, Generator
from datetime import datetime, timezone
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Index, UniqueConstraint, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi import Request
import logging
import os

from promptlib.core.config import Settings, settings

logger = logging.getLogger("promptlib")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour


def utc_now():
    """Timezone-aware UTC now for SQLAlchemy defaults."""
    return datetime.now(timezone.utc)


def get_database_url(settings_obj: Optional[Settings] = None) -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return (settings_obj or settings).DATABASE_URL


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Build a SQLAlchemy engine.

    SQLite URLs share a single connection (StaticPool) so in-memory databases
    survive across sessions; everything else gets a QueuePool.
    """
    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to an engine."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI-friendly DB dependency that yields a Session and closes it.

    The session factory is created once by the application lifespan and
    stored on `app.state`. Services commit their own writes.
    """
    SessionLocal = request.app.state.session_factory
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_all_tables(engine: Engine) -> None:
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    metadata.create_all(bind=engine)


def check_connection(engine: Engine) -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# User profiles (identity provider mirror + admin flag)
user_profiles = Table(
    'user_profiles',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('email', String(255), nullable=True),
    Column('display_name', Text, nullable=True),
    Column('is_admin', Boolean, nullable=False, default=False),
    Column('last_login_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
    Index('idx_user_profiles_created_at', 'created_at'),
)

# Curated prompt catalog
prompts = Table(
    'prompts',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('title', Text, nullable=False),
    Column('content', Text, nullable=False),
    Column('category', String(50), nullable=False, index=True),
    Column('use_case', JSON, nullable=True),
    Column('tags', JSON, nullable=True),
    Column('usage', Text, nullable=True),
    Column('example', Text, nullable=True),
    Column('is_premium', Boolean, nullable=False, default=False),
    Column('plan_type', String(20), nullable=True),  # legacy rows only carry is_premium
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
    Index('idx_prompts_created_at', 'created_at'),
)

# Editorial articles (news, tips)
articles = Table(
    'articles',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('title', Text, nullable=False),
    Column('content', Text, nullable=False),
    Column('excerpt', Text, nullable=True),
    Column('category', String(20), nullable=False),
    Column('tags', JSON, nullable=True),
    Column('author', String(200), nullable=True),
    Column('thumbnail_url', Text, nullable=True),
    Column('is_published', Boolean, nullable=False, default=False),
    Column('published_at', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
    Index('idx_articles_published', 'is_published', 'published_at'),
)

# Favorited prompt ids per user
user_favorites = Table(
    'user_favorites',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('prompt_id', String(100), nullable=False),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    UniqueConstraint('user_id', 'prompt_id', name='uq_user_favorites_user_prompt'),
)

# User-authored prompts
custom_prompts = Table(
    'custom_prompts',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('title', Text, nullable=False),
    Column('content', Text, nullable=False),
    Column('category', String(50), nullable=False),
    Column('use_case', JSON, nullable=True),
    Column('tags', JSON, nullable=True),
    Column('usage', Text, nullable=True),
    Column('example', Text, nullable=True),
    Column('is_public', Boolean, nullable=False, default=False),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
    Index('idx_custom_prompts_user_created', 'user_id', 'created_at'),
)

# Favorite folders
user_folders = Table(
    'user_folders',
    metadata,
    Column('id', String(100), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('name', String(200), nullable=False),
    Column('prompt_ids', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
    UniqueConstraint('user_id', 'name', name='uq_user_folders_user_name'),
)

# Per-user serialized blobs keyed by namespace (prompt_history, search_history)
user_blobs = Table(
    'user_blobs',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False),
    Column('namespace', String(100), nullable=False),
    Column('payload', Text, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
    UniqueConstraint('user_id', 'namespace', name='uq_user_blobs_user_namespace'),
)

# Server-side copy events (admin KPIs, global popularity)
copy_logs = Table(
    'copy_logs',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=True, index=True),
    Column('prompt_id', String(100), nullable=False, index=True),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False, index=True),
)

# Subscription mirror (payment processor is the source of truth)
user_subscriptions = Table(
    'user_subscriptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, unique=True, index=True),
    Column('stripe_customer_id', String(100), nullable=True, index=True),
    Column('stripe_subscription_id', String(100), nullable=True, index=True),
    Column('plan_type', String(20), nullable=False, default='free'),
    Column('status', String(20), nullable=False, default='inactive', index=True),  # active, inactive, canceled, past_due
    Column('current_period_start', DateTime(timezone=True), nullable=True),
    Column('current_period_end', DateTime(timezone=True), nullable=True),
    Column('created_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('updated_at', DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False),
)

# Billing events (webhook idempotency)
billing_events = Table(
    'billing_events',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('stripe_event_id', String(100), nullable=False, unique=True, index=True),
    Column('event_type', String(100), nullable=False, index=True),
    Column('received_at', DateTime(timezone=True), default=utc_now, nullable=False),
    Column('payload_hash', String(64), nullable=False),  # SHA256 hash for deduplication
    Column('processed', Boolean, nullable=False, default=False, index=True),
    Column('processed_at', DateTime(timezone=True), nullable=True),
    Column('error', Text, nullable=True),
)
