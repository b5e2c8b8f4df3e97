from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


class FeedbackSink(Protocol):
    def play_success(self) -> None: ...

    def play_error(self) -> None: ...

    def play_warning(self) -> None: ...


class NullFeedback:
    def play_success(self) -> None:
        return None

    def play_error(self) -> None:
        return None

    def play_warning(self) -> None:
        return None


@dataclass
class RecordingFeedback:
    signals: list[str] = field(default_factory=list)

    def play_success(self) -> None:
        self.signals.append("success")

    def play_error(self) -> None:
        self.signals.append("error")

    def play_warning(self) -> None:
        self.signals.append("warning")


@dataclass
class SafeFeedback:
    """Fire-and-forget wrapper: sink failures are logged, never raised."""

    sink: FeedbackSink

    def play_success(self) -> None:
        self._fire("success")

    def play_error(self) -> None:
        self._fire("error")

    def play_warning(self) -> None:
        self._fire("warning")

    def _fire(self, signal: str) -> None:
        try:
            getattr(self.sink, f"play_{signal}")()
        except Exception:
            logger.warning("Feedback sink failed to play %s signal", signal, exc_info=True)
