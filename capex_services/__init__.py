"""
Services layer: the remote list store boundary and the operations built on it.
"""

from capex_services.list_client import ListClient, SharePointListClient
from capex_services.project_service import ProjectService
from capex_services.structure_orchestrator import (
    StructureCounts,
    StructureOrchestrator,
    StructureSaveResult,
)

__all__ = [
    "ListClient",
    "ProjectService",
    "SharePointListClient",
    "StructureCounts",
    "StructureOrchestrator",
    "StructureSaveResult",
]
