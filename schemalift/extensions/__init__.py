"""Extension registry, schema namespaces and the extension upgrade orchestrator."""

from schemalift.extensions.orchestrator import ExtensionUpgradeOrchestrator
from schemalift.extensions.registry import ExtensionRegistry, is_extension_ready
from schemalift.extensions.schema import SchemaProvisioner, schema_name

__all__ = [
    "ExtensionRegistry",
    "ExtensionUpgradeOrchestrator",
    "SchemaProvisioner",
    "is_extension_ready",
    "schema_name",
]
