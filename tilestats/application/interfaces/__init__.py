"""Application interfaces (ports): data store, tile config, and cache protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from tilestats.infrastructure or tilestats.api.
"""

from tilestats.application.interfaces.services import (
    ICacheService,
    IStatsDataStore,
    ITileConfigLoader,
    ITileStatsCache,
)

__all__ = ["ICacheService", "IStatsDataStore", "ITileConfigLoader", "ITileStatsCache"]
