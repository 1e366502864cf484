"""
Collectors: producers of upload candidates
"""

from .base import Collector, CollectResult
from .directory import DirectoryCollector
from .paste import PasteCollector
from .registry import CollectorRegistry
from .selection import SelectionCollector

__all__ = [
    'Collector',
    'CollectResult',
    'CollectorRegistry',
    'DirectoryCollector',
    'PasteCollector',
    'SelectionCollector',
]
