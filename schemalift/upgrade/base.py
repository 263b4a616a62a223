"""Upgrade script contract and the context handed to every script."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from schemalift.config import SchemaliftSettings
    from schemalift.db import Database


@dataclass
class UpgradeContext:
    """Dependencies available to an upgrade script.

    ``db`` is always the live connection. Anything a given release's scripts
    need beyond the well-known fields is passed by name in ``services``.
    """

    db: Database
    scope: str = "core"
    version: str = ""
    settings: SchemaliftSettings | None = None
    logger: Any = None
    services: dict[str, Any] = field(default_factory=dict)

    def service(self, name: str) -> Any:
        try:
            return self.services[name]
        except KeyError:
            raise KeyError(
                f"Upgrade context for {self.scope} has no service {name!r}"
            ) from None

    def with_services(self, **services: Any) -> UpgradeContext:
        return replace(self, services={**self.services, **services})


class BaseUpgradeScript(ABC):
    """Base class for per-version upgrade scripts.

    A script module exports a subclass named ``Upgrade``::

        class Upgrade(BaseUpgradeScript):
            version = "1.3.0"

            async def execute(self, context):
                await context.db.execute("UPDATE users SET nickname = 'admin' ...")
    """

    version: str = ""

    @property
    def logger(self):
        return structlog.get_logger().bind(upgrade_script=self.version)

    @abstractmethod
    async def execute(self, context: UpgradeContext) -> None:
        """Run the data transformation for this version."""
