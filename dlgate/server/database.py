"""
Relational tables for license records and download audit entries.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import BigInteger, Date, Float, Integer, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


class LicenseRow(Base):
    __tablename__ = "licenses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    organization: Mapped[str] = mapped_column(String, nullable=False)
    license_type: Mapped[str] = mapped_column(String, nullable=False)
    expiry: Mapped[date] = mapped_column(Date, nullable=False)
    products: Mapped[str] = mapped_column(Text, default="")  # comma-separated
    support_email: Mapped[Optional[str]] = mapped_column(String)


class DownloadAuditRow(Base):
    __tablename__ = "download_audit"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    file_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    client_id: Mapped[str] = mapped_column(String, nullable=False)
    source_ip: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    user_agent: Mapped[Optional[str]] = mapped_column(Text)
    issued_at: Mapped[float] = mapped_column(Float, nullable=False)
    request_id: Mapped[str] = mapped_column(String, nullable=False)
    license_key: Mapped[str] = mapped_column(String, nullable=False)


def build_session_factory(database_url: str, timeout: float = 5.0) -> sessionmaker:
    """Create the engine, ensure tables exist and return a session factory."""
    kwargs: dict = {}
    if database_url.startswith("sqlite"):
        # Busy timeout for concurrent writers; sessions are used from worker threads
        kwargs["connect_args"] = {"timeout": timeout, "check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
