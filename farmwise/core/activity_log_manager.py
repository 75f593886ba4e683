# farmwise/core/activity_log_manager.py

from typing import List, Optional
from .models import HistoryItem
from .store import DurableStore

class ActivityLogManager:
    """Handles the newest-first activity log of analyses and planting plans."""
    def __init__(self, store: DurableStore):
        self.store = store

    def add(self, *items: HistoryItem):
        # newest first: the last item given ends up on top
        self.store.write_history(list(reversed(items)) + self.store.history)
        for item in items:
            print(f"---ACTIVITY LOG: Added {item.type} entry '{item.summary}'---")

    def list(self, limit: Optional[int] = None) -> List[HistoryItem]:
        items = list(self.store.history)
        return items[:limit] if limit is not None else items

    def clear(self):
        count = len(self.store.history)
        self.store.write_history([])
        print(f"---ACTIVITY LOG: Cleared {count} entries---")
