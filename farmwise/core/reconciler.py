# farmwise/core/reconciler.py

"""
Turns validated inference results into store mutations.

The reconciler only describes what has to change; ``FarmWiseSession.apply`` performs the
mutations of one call as a single unit. Nothing here is reached when the upstream request
failed, so a failed request never produces a mutation.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence, Union

from .errors import InvalidInput
from .models import AnalysisResult, CropRecommendation, HistoryItem, Reminder
from .reminder_manager import new_reminder

SLOTS = ("soil", "crop", "recommendations")

SUMMARY_PREFIX = {
    "soil": "Soil Quality",
    "crop": "Crop Health",
}


@dataclass(frozen=True)
class ReplaceSlot:
    slot: str
    value: Any


@dataclass(frozen=True)
class AppendHistory:
    item: HistoryItem


@dataclass(frozen=True)
class CreateReminder:
    reminder: Reminder


Mutation = Union[ReplaceSlot, AppendHistory, CreateReminder]


def _timestamp() -> str:
    return datetime.now().isoformat(timespec="seconds")


class ResultReconciler:
    """Maps (intent kind, validated response) to the mutations it implies."""

    def reconcile(
        self,
        kind: str,
        value: Union[AnalysisResult, Sequence[CropRecommendation]],
        image: Optional[str] = None,
        season: Optional[str] = None,
    ) -> List[Mutation]:
        if kind in SUMMARY_PREFIX:
            if not isinstance(value, AnalysisResult):
                raise TypeError(f"{kind} reconciliation needs an AnalysisResult")
            item = HistoryItem(
                id=uuid.uuid4().hex,
                timestamp=_timestamp(),
                type=kind,
                data=value,
                image=image,
                summary=f"{SUMMARY_PREFIX[kind]}: {value.quality}",
            )
            return [ReplaceSlot(kind, value), AppendHistory(item)]

        if kind == "planner":
            plan = list(value)
            item = HistoryItem(
                id=uuid.uuid4().hex,
                timestamp=_timestamp(),
                type="planner",
                data=plan,
                image=None,
                summary=f"{season} Season Planting Plan",
            )
            return [ReplaceSlot("recommendations", plan), AppendHistory(item)]

        raise InvalidInput(f"Unknown result kind '{kind}'.")

    def accept_recommendation(self, recommendation: CropRecommendation) -> List[Mutation]:
        """A user accepting one planner suggestion becomes a Planting reminder dated today."""
        reminder = new_reminder(f"Start Planting: {recommendation.name}", "Planting")
        return [CreateReminder(reminder)]

    def restore(self, item: HistoryItem) -> List[Mutation]:
        """Reopening a log entry puts its data back in the slot it came from. The log is unchanged."""
        slot = "recommendations" if item.type == "planner" else item.type
        data = list(item.data) if item.type == "planner" else item.data
        return [ReplaceSlot(slot, data)]
