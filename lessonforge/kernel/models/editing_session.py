"""
Persisted editing-session snapshots.
"""

from typing import Any, Dict

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from lessonforge.kernel.models.base import Base, RowIdMixin, TimestampMixin


class EditingSessionRow(Base, RowIdMixin, TimestampMixin):
    __tablename__ = "editing_sessions"

    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    state: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
