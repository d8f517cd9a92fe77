"""
Data models for tensionchart.

Import models explicitly from their modules:
    from tensionchart.models.base import Area, Vision, Reality, Tension, Action, ItemTable
    from tensionchart.models.store import ItemStore, ItemRef, ItemLocation
    from tensionchart.models.files import ChartFile, ConfigFile
"""

from .base import Action, ActionStatus, Area, ItemTable, Reality, Tension, TensionStatus, Vision
from .store import ItemLocation, ItemRef, ItemStore
