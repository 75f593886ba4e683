# farmwise/session.py

from typing import Iterable, List, Optional

from farmwise.agents.advisor import AdvisorAgent
from farmwise.agents.analysis import AnalysisAgent
from farmwise.agents.outcome import OperationOutcome
from farmwise.agents.planner import SeasonPlannerAgent
from farmwise.core.activity_log_manager import ActivityLogManager
from farmwise.core.errors import StoreWriteFailure
from farmwise.core.inference_client import GeminiClient
from farmwise.core.models import AnalysisResult, ChatTurn, CropRecommendation, HistoryItem
from farmwise.core.preference_manager import PreferenceManager
from farmwise.core.reconciler import SLOTS, AppendHistory, CreateReminder, Mutation, ReplaceSlot, ResultReconciler
from farmwise.core.reminder_manager import ReminderManager
from farmwise.core.request_builder import RequestBuilder
from farmwise.core.store import DurableStore
from farmwise.core.streaming import StreamingAccumulator

REMINDER_FAILED = "Could not save the reminder. Please try again."


class FarmWiseSession:
    """
    The session-scoped state container.

    Holds the "current result" slots, the advisor transcript, the durable store with its
    managers, and one agent per intent. ``apply`` is the single entry point through which
    inference results reach state.
    """

    def __init__(self, store: Optional[DurableStore] = None, client=None, builder: Optional[RequestBuilder] = None):
        self.store = store if store is not None else DurableStore()
        self.client = client if client is not None else GeminiClient()
        self.builder = builder or RequestBuilder()
        self.reconciler = ResultReconciler()

        self.activity_log = ActivityLogManager(self.store)
        self.reminders = ReminderManager(self.store)
        self.preferences = PreferenceManager(self.store)

        self.slots = {"soil": None, "crop": None, "recommendations": []}
        # source image shown next to the soil and crop slots
        self.previews = {"soil": None, "crop": None}
        self.transcript: List[ChatTurn] = []
        self.accumulator = StreamingAccumulator(self.transcript)

        self.analysis = AnalysisAgent(self)
        self.planner = SeasonPlannerAgent(self)
        self.advisor = AdvisorAgent(self)
        print("---FARMWISE SESSION: Ready---")

    @property
    def soil_result(self) -> Optional[AnalysisResult]:
        return self.slots["soil"]

    @property
    def crop_result(self) -> Optional[AnalysisResult]:
        return self.slots["crop"]

    @property
    def recommendations(self) -> List[CropRecommendation]:
        return self.slots["recommendations"]

    def apply(self, mutations: Iterable[Mutation]):
        """
        Applies the mutations of one reconciliation as a unit. Persistence happens first and
        the slots are swapped only once it succeeded, so a failed write changes nothing.
        """
        new_slots = dict(self.slots)
        history, reminders = [], []
        for mutation in mutations:
            if isinstance(mutation, ReplaceSlot):
                if mutation.slot not in SLOTS:
                    raise KeyError(f"Unknown slot '{mutation.slot}'")
                new_slots[mutation.slot] = mutation.value
            elif isinstance(mutation, AppendHistory):
                history.append(mutation.item)
            elif isinstance(mutation, CreateReminder):
                reminders.append(mutation.reminder)
            else:
                raise TypeError(f"Unsupported mutation {mutation!r}")

        if history:
            self.activity_log.add(*history)
        for reminder in reminders:
            self.reminders.insert(reminder)
        self.slots = new_slots

    def accept_recommendation(self, recommendation: CropRecommendation) -> OperationOutcome:
        mutations = self.reconciler.accept_recommendation(recommendation)
        try:
            self.apply(mutations)
        except StoreWriteFailure as e:
            print(f"---FARMWISE SESSION: {type(e).__name__}: {e}---")
            return OperationOutcome.failure(REMINDER_FAILED, e)
        return OperationOutcome.success(mutations[0].reminder)

    def restore(self, item: HistoryItem):
        """Reopens an activity log entry: its data and image become the current result again."""
        self.apply(self.reconciler.restore(item))
        if item.type in self.previews:
            self.previews[item.type] = item.image
        print(f"---FARMWISE SESSION: Reopened '{item.summary}'---")

    def reset_conversation(self):
        """Leaving the advisor drops the transcript; an in-flight turn is failed first."""
        self.accumulator.cancel()
        self.transcript = []
        self.accumulator = StreamingAccumulator(self.transcript)
