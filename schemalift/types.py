"""Core types shared across all schemalift subsystems."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field

from schemalift.exceptions import ExtensionUpgradeError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Version detection ────────────────────────────────────────────────────────


class VersionInfo(BaseModel):
    """Result of comparing the deployed build with the persisted markers."""

    scope: str = "core"
    current: str
    installed: str | None = None
    needs_upgrade: bool = False
    upgrade_versions: list[str] = Field(default_factory=list)


class VersionMarker(BaseModel):
    """Proof that one version's migrations and upgrade script both completed."""

    version: str
    upgraded_at: datetime = Field(default_factory=utcnow)
    description: str = ""


# ── Migrations ───────────────────────────────────────────────────────────────


class MigrationUnit(BaseModel):
    """A single migration file discovered in a catalog directory."""

    name: str
    version: str
    sequence: int
    description: str = ""
    path: Path

    @property
    def kind(self) -> str:
        return self.path.suffix.lstrip(".")


class LedgerEntry(BaseModel):
    id: int
    name: str
    version: str
    sequence: int
    executed_at: datetime


# ── Upgrade lifecycle ────────────────────────────────────────────────────────


class UpgradeState(str, Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    MIGRATING = "migrating"
    RUNNING_SCRIPT = "running_script"
    MARKING_COMPLETE = "marking_complete"
    DONE = "done"
    FAILED = "failed"


# ── Extensions ───────────────────────────────────────────────────────────────


class ExtensionKind(str, Enum):
    APPLICATION = "application"
    FUNCTIONAL = "functional"


class ExtensionRegistration(BaseModel):
    identifier: str
    enabled: bool = False
    build_ready: bool = False
    kind: ExtensionKind = ExtensionKind.APPLICATION

    model_config = {"frozen": True}


class UpgradeReport(BaseModel):
    """Aggregate outcome of one orchestrator pass over the enabled extensions."""

    upgraded: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def upgraded_count(self) -> int:
        return len(self.upgraded)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> None:
        """Raise ExtensionUpgradeError if any extension failed."""
        if self.failed:
            raise ExtensionUpgradeError(
                f"{len(self.failed)} extension(s) failed to upgrade: "
                + ", ".join(self.failed),
                failed=dict(self.errors),
            )
