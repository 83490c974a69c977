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
"""Data-access configuration properties."""

from __future__ import annotations

from dataclasses import dataclass

from genrepo.core.config import config_properties


@config_properties(prefix="genrepo.data.bulk")
@dataclass
class BulkProperties:
    """Configuration for native bulk execution (genrepo.data.bulk.*).

    When ``enabled`` is false no bulk configuration provider is built and
    repositories fall back to batched unit-of-work staging.
    """

    enabled: bool = True
    batch_size: int = 1000
    set_output_identity: bool = True
    preserve_insert_order: bool = True
    tracking_entities: bool = False


@config_properties(prefix="genrepo.data.transaction")
@dataclass
class TransactionProperties:
    """Configuration for the transaction wrapper (genrepo.data.transaction.*)."""

    propagate_errors: bool = False
