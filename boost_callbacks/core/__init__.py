"""
Core types shared by all callbacks: collaborator protocols, training
context and configuration.
"""

from .context import CVResult, Fold, TrainingContext
from .protocols import Booster

__all__ = [
    "Booster",
    "CVResult",
    "Fold",
    "TrainingContext",
]
