# farmwise/core/streaming.py

from enum import Enum
from typing import Callable, Iterable, List, Optional

from .errors import InvalidInput, TransportFailure
from .models import ChatTurn

FAILURE_PLACEHOLDER = "Service unavailable. Try again later."


class StreamState(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    ACCUMULATING = "accumulating"
    FINALIZED = "finalized"
    FAILED = "failed"


IN_FLIGHT = (StreamState.AWAITING, StreamState.ACCUMULATING)


class StreamingAccumulator:
    """
    Assembles streamed fragments into one model turn of a transcript.

    ``begin`` appends an empty model turn right away so the transcript can render a typing
    state. Fragments are appended to that turn in arrival order. A normal end freezes it; an
    abnormal end swaps the partial text for FAILURE_PLACEHOLDER so truncated output never looks
    complete. Only one turn can be in flight per accumulator.
    """

    def __init__(self, transcript: List[ChatTurn]):
        self.transcript = transcript
        self.state = StreamState.IDLE
        self.turn_index: Optional[int] = None
        self.error: Optional[TransportFailure] = None

    @property
    def in_flight(self) -> bool:
        return self.state in IN_FLIGHT

    @property
    def turn(self) -> Optional[ChatTurn]:
        if self.turn_index is None:
            return None
        return self.transcript[self.turn_index]

    def begin(self) -> ChatTurn:
        if self.in_flight:
            raise InvalidInput("A reply is still being generated.")
        self.transcript.append(ChatTurn(role="model", text=""))
        self.turn_index = len(self.transcript) - 1
        self.error = None
        self.state = StreamState.AWAITING
        return self.turn

    def feed(self, fragment: Optional[str]) -> None:
        if not self.in_flight:
            raise InvalidInput(f"Cannot accept fragments in state '{self.state.value}'.")
        if not fragment:
            return
        self.turn.text += fragment
        self.state = StreamState.ACCUMULATING

    def finish(self) -> ChatTurn:
        if not self.in_flight:
            raise InvalidInput(f"Cannot finalize in state '{self.state.value}'.")
        self.state = StreamState.FINALIZED
        return self.turn

    def fail(self) -> ChatTurn:
        if not self.in_flight:
            raise InvalidInput(f"Cannot fail in state '{self.state.value}'.")
        self.turn.text = FAILURE_PLACEHOLDER
        self.turn.failed = True
        self.state = StreamState.FAILED
        return self.turn

    def cancel(self) -> Optional[ChatTurn]:
        """Ends an in-flight turn through the failure path. No-op otherwise."""
        if not self.in_flight:
            return None
        print("---STREAM: Turn cancelled, finalizing with failure placeholder---")
        return self.fail()

    def consume(
        self,
        fragments: Iterable[Optional[str]],
        on_update: Optional[Callable[[str], None]] = None,
    ) -> ChatTurn:
        """Drives a whole stream into the pending turn; it always ends FINALIZED or FAILED."""
        try:
            for fragment in fragments:
                self.feed(fragment)
                if on_update is not None and fragment:
                    on_update(self.turn.text)
        except TransportFailure as e:
            self.error = e
            print(f"---STREAM: TransportFailure after {len(self.turn.text)} chars: {e}---")
            turn = self.fail()
        except BaseException:
            # also covers KeyboardInterrupt and Streamlit's rerun/stop signals
            self.cancel()
            raise
        else:
            turn = self.finish()

        if on_update is not None:
            on_update(turn.text)
        return turn
