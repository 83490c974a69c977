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
"""SQLAlchemy data access adapter — default repository implementation."""

from genrepo.data.relational.sqlalchemy.bulk import SqlAlchemyBulkExecutor
from genrepo.data.relational.sqlalchemy.entity import (
    AuditedEntity,
    Base,
    CreationAuditMixin,
    DeletionAuditMixin,
    SoftDeleteMixin,
    UpdateAuditMixin,
)
from genrepo.data.relational.sqlalchemy.evaluator import SpecificationEvaluator, order_by_property_name
from genrepo.data.relational.sqlalchemy.paging import to_paged_result
from genrepo.data.relational.sqlalchemy.repository import Repository
from genrepo.data.relational.sqlalchemy.soft_delete import apply_soft_delete_filter, only_deleted_filter
from genrepo.data.relational.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork

__all__ = [
    "AuditedEntity",
    "Base",
    "CreationAuditMixin",
    "DeletionAuditMixin",
    "Repository",
    "SoftDeleteMixin",
    "SpecificationEvaluator",
    "SqlAlchemyBulkExecutor",
    "SqlAlchemyUnitOfWork",
    "UpdateAuditMixin",
    "apply_soft_delete_filter",
    "only_deleted_filter",
    "order_by_property_name",
    "to_paged_result",
]
