# farmwise/core/preference_manager.py

from .models import Preferences
from .store import DurableStore

class PreferenceManager:
    """Reads and flips the persisted UI flags."""
    def __init__(self, store: DurableStore):
        self.store = store

    @property
    def preferences(self) -> Preferences:
        return self.store.preferences

    def set_dark_mode(self, enabled: bool):
        self.store.write_preferences(self.store.preferences.model_copy(update={"dark_mode": enabled}))

    def toggle_dark_mode(self) -> bool:
        self.set_dark_mode(not self.store.preferences.dark_mode)
        return self.store.preferences.dark_mode

    def set_authenticated(self, authenticated: bool):
        self.store.write_preferences(self.store.preferences.model_copy(update={"authenticated": authenticated}))
        print(f"---PREFERENCES: authenticated={authenticated}---")
