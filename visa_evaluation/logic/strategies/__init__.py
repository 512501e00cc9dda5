"""
Scoring Strategies

One strategy per application mode, registered by mode name.
`BaseStrategy` doubles as the generic fallback.
"""

from typing import Dict, Type

from ..constants import Mode
from .base import BaseStrategy
from .change import ChangeStrategy
from .extension import ExtensionStrategy
from .new_application import NewApplicationStrategy

STRATEGY_REGISTRY: Dict[str, Type[BaseStrategy]] = {
    Mode.NEW.value: NewApplicationStrategy,
    Mode.EXTENSION.value: ExtensionStrategy,
    Mode.CHANGE.value: ChangeStrategy,
}

FALLBACK_STRATEGY: Type[BaseStrategy] = BaseStrategy

__all__ = [
    "STRATEGY_REGISTRY",
    "FALLBACK_STRATEGY",
    "BaseStrategy",
    "NewApplicationStrategy",
    "ExtensionStrategy",
    "ChangeStrategy",
]
