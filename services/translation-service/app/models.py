from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class StringResource(Base):
    """
    One localized text of a resource.

    Notes:
    - `locale` is "" for the invariant text; a resource without that row is
      incomplete and never stored by an import.
    - `position` keeps the order resources were first seen so exports and
      bundles stay diffable.
    """

    __tablename__ = "string_resources"
    __table_args__ = (UniqueConstraint("project", "name", "locale", name="uq_string_resource_project_name_locale"),)

    id: Mapped[str] = mapped_column(String, primary_key=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)

    project: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String, index=True)  # dotted key, e.g. home.title
    locale: Mapped[str] = mapped_column(String, default="")
    text: Mapped[str] = mapped_column(Text, default="")

    storage_location: Mapped[str] = mapped_column(String, default="")
    position: Mapped[int] = mapped_column(default=0)
