# farmwise/agents/advisor.py

from typing import Callable, Optional

from farmwise.core.errors import InvalidInput, TransportFailure
from farmwise.core.models import ChatTurn
from farmwise.core.streaming import FAILURE_PLACEHOLDER, StreamState
from .outcome import OperationOutcome


class AdvisorAgent:
    """
    The free-form FarmWise Advisor chat.

    A user turn is appended, then a pending model turn, then the streamed reply is accumulated
    into it. The transcript lives only in the session; it is never persisted.
    """

    def __init__(self, session):
        self.session = session

    @property
    def is_typing(self) -> bool:
        return self.session.accumulator.in_flight

    def invoke(self, message: str, on_update: Optional[Callable[[str], None]] = None) -> OperationOutcome:
        print("---ADVISOR AGENT---")
        accumulator = self.session.accumulator
        try:
            if accumulator.in_flight:
                raise InvalidInput("Wait for the current reply to finish.")
            # prior turns only; the new message is appended by the builder
            request = self.session.builder.converse(message, list(self.session.transcript))
        except InvalidInput as e:
            print(f"---ADVISOR AGENT: {type(e).__name__}: {e}---")
            return OperationOutcome.failure(FAILURE_PLACEHOLDER, e)

        self.session.transcript.append(ChatTurn(role="user", text=message))
        accumulator.begin()
        try:
            fragments = self.session.client.stream(request)
        except TransportFailure as e:
            print(f"---ADVISOR AGENT: {type(e).__name__}: {e}---")
            accumulator.error = e
            accumulator.fail()
            return OperationOutcome.failure(FAILURE_PLACEHOLDER, e)

        turn = accumulator.consume(fragments, on_update=on_update)
        if accumulator.state is StreamState.FAILED:
            return OperationOutcome.failure(FAILURE_PLACEHOLDER, accumulator.error)

        print(f"Advisor replied with {len(turn.text)} chars")
        return OperationOutcome.success(turn)
