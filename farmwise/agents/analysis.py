# farmwise/agents/analysis.py

from typing import Optional

from farmwise.core.errors import FarmWiseError, InvalidInput
from farmwise.core.schema import ANALYSIS, decode
from .outcome import OperationOutcome

ANALYSIS_FAILED = "Analysis failed. Please check your image clarity."


class AnalysisAgent:
    """
    Scores a soil or crop photo through Gemini and records the result.

    The image must already be a base64 data URI. On success the slot for the kind is replaced
    and one history entry is added; on any failure neither is touched.
    """

    def __init__(self, session):
        self.session = session
        self.busy_kinds = set()

    def is_busy(self, kind: str) -> bool:
        return kind in self.busy_kinds

    def invoke(self, image: Optional[str], kind: str) -> OperationOutcome:
        print(f"---ANALYSIS AGENT ({kind.upper()})---")
        if self.is_busy(kind):
            error = InvalidInput(f"A {kind} analysis is already running.")
            print(f"---ANALYSIS AGENT: {type(error).__name__}: {error}---")
            return OperationOutcome.failure(ANALYSIS_FAILED, error)

        self.busy_kinds.add(kind)
        try:
            request = self.session.builder.analyze(image, kind)
            raw = self.session.client.generate(request)
            result = decode(raw, ANALYSIS).unwrap()
            self.session.apply(self.session.reconciler.reconcile(kind, result, image=image))
            self.session.previews[kind] = image
        except FarmWiseError as e:
            print(f"---ANALYSIS AGENT: {type(e).__name__}: {e}---")
            return OperationOutcome.failure(ANALYSIS_FAILED, e)
        finally:
            self.busy_kinds.discard(kind)

        print(f"Analysis complete: {result.quality} ({result.health_score}/100)")
        return OperationOutcome.success(result)
