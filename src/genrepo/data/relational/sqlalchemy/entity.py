# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Declarative base and capability mixins for SQLAlchemy entities.

The mixins are conveniences: any mapped class exposing the same attribute
names gets the same soft-delete and audit behaviour.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, String, false
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for genrepo entities."""


class SoftDeleteMixin:
    """Adds ``is_deleted`` and ``deleted_at`` for soft-delete support."""

    __abstract__ = True

    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, server_default=false(), nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None, nullable=True)


class CreationAuditMixin:
    """Adds ``created_at`` / ``created_by``."""

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )
    created_by: Mapped[str | None] = mapped_column(String(255), default=None)


class UpdateAuditMixin:
    """Adds ``updated_at`` / ``updated_by``."""

    __abstract__ = True

    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None, nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(255), default=None)


class DeletionAuditMixin(SoftDeleteMixin):
    """Soft delete plus ``deleted_by``."""

    __abstract__ = True

    deleted_by: Mapped[str | None] = mapped_column(String(255), default=None)


class AuditedEntity(CreationAuditMixin, UpdateAuditMixin, DeletionAuditMixin, Base):
    """Base entity with a UUID primary key and every audit capability.

    Entities inheriting from this class are soft-deletable and carry creation,
    update and deletion metadata.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True,
        default=uuid.uuid4,
    )
