"""Core package for the shadowvault project."""

from .catalog import ARTIFACTS, get_artifact
from .cli import app, run
from .config import ConfigError, Settings, load_config
from .errors import (
    KnowledgeStoreNotFoundError,
    LinkError,
    ProbeError,
    ResolutionError,
    ShadowVaultError,
    VaultReadError,
)
from .health import build_report
from .models import (
    ArtifactResult,
    ArtifactSpec,
    HealthReport,
    HealthStatus,
    LinkState,
    ProjectIdentity,
    ReconcileAction,
    ReconcileReport,
)
from .reconciler import Reconciler
from .resolver import resolve
from .vault import Vault

__all__ = [
    "ARTIFACTS",
    "get_artifact",
    "ConfigError",
    "Settings",
    "load_config",
    "ShadowVaultError",
    "ResolutionError",
    "ProbeError",
    "LinkError",
    "VaultReadError",
    "KnowledgeStoreNotFoundError",
    "ArtifactResult",
    "ArtifactSpec",
    "HealthReport",
    "HealthStatus",
    "LinkState",
    "ProjectIdentity",
    "ReconcileAction",
    "ReconcileReport",
    "Reconciler",
    "Vault",
    "build_report",
    "resolve",
    "app",
    "run",
]
