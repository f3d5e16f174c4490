from __future__ import annotations
from datetime import datetime
from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from apiforge.db.session import Base


class ProjectRow(Base):
    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    framework: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)
    database: Mapped[str | None] = mapped_column(String(20), nullable=True, index=True)

    specification: Mapped[str] = mapped_column(Text, nullable=False)
    version_ledger: Mapped[str] = mapped_column(Text, nullable=False)
    current_output: Mapped[str | None] = mapped_column(Text, nullable=True)
    deployment_history: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
