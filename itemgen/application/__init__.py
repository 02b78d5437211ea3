"""Application layer module.

Contains application services (use cases) that orchestrate
domain logic and infrastructure through the storage ports.
"""

from itemgen.application.ports import CatalogPorts
from itemgen.application.reconciliation_service import (
    ReconciliationService,
    get_reconciliation_service,
)
from itemgen.application.regeneration_service import (
    RegenerationOrchestrator,
    RegenerationResult,
    get_regeneration_orchestrator,
)

__all__ = [
    "CatalogPorts",
    "ReconciliationService",
    "get_reconciliation_service",
    "RegenerationOrchestrator",
    "RegenerationResult",
    "get_regeneration_orchestrator",
]
