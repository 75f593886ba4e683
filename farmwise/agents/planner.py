# farmwise/agents/planner.py

from farmwise.core.errors import FarmWiseError, InvalidInput
from farmwise.core.schema import RECOMMENDATIONS, decode
from .outcome import OperationOutcome

PLANNER_FAILED = "Failed to fetch recommendations. Please try again."

SEASONS = ("Spring", "Summer", "Autumn", "Winter")
DEFAULT_SEASON = "Spring"


class SeasonPlannerAgent:
    """Asks Gemini for 3-5 crops suited to a season and swaps in the new plan."""

    def __init__(self, session):
        self.session = session
        self.busy = False

    def invoke(self, season: str = DEFAULT_SEASON) -> OperationOutcome:
        print(f"---SEASON PLANNER AGENT ({season})---")
        if self.busy:
            error = InvalidInput("A planting plan is already being fetched.")
            print(f"---SEASON PLANNER AGENT: {type(error).__name__}: {error}---")
            return OperationOutcome.failure(PLANNER_FAILED, error)

        self.busy = True
        try:
            request = self.session.builder.recommend(season)
            raw = self.session.client.generate(request)
            plan = decode(raw, RECOMMENDATIONS).unwrap()
            self.session.apply(self.session.reconciler.reconcile("planner", plan, season=season.strip()))
        except FarmWiseError as e:
            print(f"---SEASON PLANNER AGENT: {type(e).__name__}: {e}---")
            return OperationOutcome.failure(PLANNER_FAILED, e)
        finally:
            self.busy = False

        print(f"Planner returned {len(plan)} crops: {', '.join(c.name for c in plan)}")
        return OperationOutcome.success(plan)
