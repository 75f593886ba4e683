# farmwise/core/reminder_manager.py

import uuid
from datetime import date
from typing import List, Optional

from .errors import InvalidInput
from .models import Reminder
from .store import DurableStore


def new_reminder(title: str, category: str, on: Optional[str] = None) -> Reminder:
    """Creates an incomplete reminder, dated today unless ``on`` is given."""
    if not title or not title.strip():
        raise InvalidInput("Reminder title must not be empty.")
    return Reminder(
        id=uuid.uuid4().hex,
        title=title.strip(),
        category=category,
        date=on or date.today().isoformat(),
        completed=False,
    )


class ReminderManager:
    """Handles creation, completion and deletion of reminders."""
    def __init__(self, store: DurableStore):
        self.store = store

    def insert(self, reminder: Reminder) -> Reminder:
        self.store.write_reminders([reminder] + self.store.reminders)
        print(f"---REMINDERS: Added '{reminder.title}' ({reminder.category}, {reminder.date})---")
        return reminder

    def add(self, title: str, category: str = "Planting", on: Optional[str] = None) -> Reminder:
        return self.insert(new_reminder(title, category, on))

    def toggle(self, reminder_id: str) -> Optional[Reminder]:
        toggled = None
        updated = []
        for r in self.store.reminders:
            if r.id == reminder_id:
                toggled = r.model_copy(update={"completed": not r.completed})
                r = toggled
            updated.append(r)
        if toggled is None:
            print(f"---REMINDERS: No reminder with id {reminder_id}---")
            return None
        self.store.write_reminders(updated)
        print(f"---REMINDERS: '{toggled.title}' completed={toggled.completed}---")
        return toggled

    def delete(self, reminder_id: str) -> bool:
        remaining = [r for r in self.store.reminders if r.id != reminder_id]
        if len(remaining) == len(self.store.reminders):
            return False
        self.store.write_reminders(remaining)
        print(f"---REMINDERS: Deleted reminder {reminder_id}---")
        return True

    def list(self) -> List[Reminder]:
        return list(self.store.reminders)

    def for_display(self) -> List[Reminder]:
        """Incomplete tasks first; stored order is kept within each group."""
        return sorted(self.store.reminders, key=lambda r: r.completed)

    def pending_count(self) -> int:
        return sum(1 for r in self.store.reminders if not r.completed)
