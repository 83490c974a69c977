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
"""Run a sequence of operations inside one storage transaction."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from genrepo.config.properties.data import TransactionProperties
from genrepo.core.config import Config
from genrepo.data.ports.outbound import UnitOfWorkPort
from genrepo.kernel.exceptions import require_not_none

logger = logging.getLogger(__name__)


class TransactionTemplate:
    """Begin, run, commit; roll back on failure.

    After a rollback the failure is logged and then either swallowed
    (``propagate_errors=False``, the default) or re-raised. Callers that
    rely on the template for error visibility must enable propagation.
Cancellation rolls back and is always re-raised.

    Usage::

        template = TransactionTemplate(unit_of_work, propagate_errors=True)

        async def work() -> None:
            await repo.add(order)
            await repo.save_changes()

        await template.run_in_transaction(work)
    """

    def __init__(self, unit_of_work: UnitOfWorkPort[Any], *, propagate_errors: bool = False) -> None:
        self._unit_of_work = unit_of_work
        self._propagate_errors = propagate_errors

    @classmethod
    def from_config(cls, unit_of_work: UnitOfWorkPort[Any], config: Config) -> TransactionTemplate:
        properties = config.bind(TransactionProperties)
        return cls(unit_of_work, propagate_errors=properties.propagate_errors)

    @property
    def propagate_errors(self) -> bool:
        return self._propagate_errors

    async def run_in_transaction(self, operations: Callable[[], Awaitable[Any]]) -> None:
        require_not_none(operations, "operations")
        transaction = await self._unit_of_work.begin()
        try:
            await operations()
            await transaction.commit()
        except BaseException as exc:
            await transaction.rollback()
            if self._propagate_errors or not isinstance(exc, Exception):
                raise
            logger.warning("Transaction rolled back; failure suppressed", exc_info=True)
