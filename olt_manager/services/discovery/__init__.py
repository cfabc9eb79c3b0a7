from .enrichment import EnrichmentJob, EnrichmentWorker
from .fingerprint import compute_fingerprint
from .manager import DiscoveryManager
from .stores import SqlDiscoveryRunStore, SqlOltRegistry, SqlOnuRepository

__all__ = [
    "EnrichmentJob",
    "EnrichmentWorker",
    "compute_fingerprint",
    "DiscoveryManager",
    "SqlDiscoveryRunStore",
    "SqlOltRegistry",
    "SqlOnuRepository",
]
