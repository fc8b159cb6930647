"""
Adapters layer - Storage integrations (JSON files, KV REST database).
"""

from .json_store import JsonFileStore
from .kv_rest_client import KVRestStore
from .schedule_store import ScheduleStore

__all__ = ["JsonFileStore", "KVRestStore", "ScheduleStore"]
