"""
Combat resolution modules.

Ranged attacks are checked for move-exclusion, range band and line-of-sight;
melee attacks only for adjacency. Both share the damage model in base.
"""

from .base import CombatResolver, CombatReport
from .ranged import RangedCombat
from .melee import MeleeCombat

__all__ = [
    "CombatResolver",
    "CombatReport",
    "RangedCombat",
    "MeleeCombat",
]
