"""
modloader core - Primitives the loader is built from.

This package contains:
- StatefulItems: Tri-state store for in-flight module work
- Pipeline: Sequential composition of asynchronous stages
- EventBus: Diagnostic notifications for hosts
- Utils: Awaiting and glob matching helpers
"""

from modloader.core.events import EventBus
from modloader.core.pipeline import Pipeline
from modloader.core.stateful import ItemState, StatefulItems

__all__ = ["EventBus", "ItemState", "Pipeline", "StatefulItems"]
