"""
Database package initialization.
"""

from inspi_db.database.mongodb import database, MongoDB
from inspi_db.database.store import AggregationStore, IndexStore, MotorStore

__all__ = ['database', 'MongoDB', 'AggregationStore', 'IndexStore', 'MotorStore']
