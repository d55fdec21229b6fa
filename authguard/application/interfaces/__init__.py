"""Application interfaces (ports): unit of work and service protocols.

Define contracts for infrastructure implementations (DIP).
No runtime imports from authguard.infrastructure.
"""

from authguard.application.interfaces.repositories import IRepositories, IUnitOfWork
from authguard.application.interfaces.services import (
    ICacheService,
    IPermissionResolver,
    ITokenBlacklist,
)

__all__ = [
    "ICacheService",
    "IPermissionResolver",
    "IRepositories",
    "ITokenBlacklist",
    "IUnitOfWork",
]
