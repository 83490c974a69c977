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
"""genrepo data — specifications, paging, auditing and bulk orchestration.

Adapter-neutral pieces live here; the SQLAlchemy adapter is in
:mod:`genrepo.data.relational.sqlalchemy`.
"""

from genrepo.data.auditing import apply_creation_audit, apply_deletion_audit, apply_modification_audit
from genrepo.data.bulk import (
    BulkMode,
    BulkOperationOrchestrator,
    BulkOptions,
    BulkResult,
    DefaultBulkConfigProvider,
    PropertiesBulkConfigProvider,
    bulk_config_provider_from,
)
from genrepo.data.capabilities import (
    CreationAuditable,
    DeletionAuditable,
    EntityCapabilities,
    SoftDeletable,
    UpdateAuditable,
    capabilities_of,
)
from genrepo.data.page import PagedResult
from genrepo.data.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, validate_paging
from genrepo.data.ports.outbound import (
    BulkConfigProvider,
    BulkExecutorPort,
    DiagnosticsLogger,
    TransactionPort,
    UnitOfWorkPort,
)
from genrepo.data.projection import projection
from genrepo.data.specification import Specification
from genrepo.data.transaction import TransactionTemplate

__all__ = [
    # Specification
    "Specification",
    # Paging
    "PagedResult",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "validate_paging",
    "projection",
    # Capabilities and auditing
    "SoftDeletable",
    "CreationAuditable",
    "UpdateAuditable",
    "DeletionAuditable",
    "EntityCapabilities",
    "capabilities_of",
    "apply_creation_audit",
    "apply_modification_audit",
    "apply_deletion_audit",
    # Bulk
    "BulkMode",
    "BulkOperationOrchestrator",
    "BulkOptions",
    "BulkResult",
    "DefaultBulkConfigProvider",
    "PropertiesBulkConfigProvider",
    "bulk_config_provider_from",
    # Transactions
    "TransactionTemplate",
    # Ports
    "BulkConfigProvider",
    "BulkExecutorPort",
    "DiagnosticsLogger",
    "TransactionPort",
    "UnitOfWorkPort",
]
