"""
Follow Mode Module - Auto-scroll state machine for the log stream

Handles:
- FOLLOWING / PAUSED states
- Detecting a manual scroll away from the bottom
- Ignoring scrolls the stream performs itself
- Reporting each transition exactly once
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class FollowMode(Enum):
    FOLLOWING = "following"
    PAUSED = "paused"


@dataclass(frozen=True)
class ScrollMetrics:
    """Scroll geometry of the stream viewport, in rows"""
    scroll_top: float
    scroll_height: float
    client_height: float

    @property
    def distance_from_bottom(self) -> float:
        return self.scroll_height - self.scroll_top - self.client_height


class AutoScrollController:
    """
    Decides when the stream follows new entries

    The controller holds no widget references; the stream feeds it scroll
    metrics and asks it whether to pin the viewport to the bottom.
    """

    def __init__(
        self,
        auto_scroll: bool = True,
        pause_threshold: float = 3,
        on_change: Optional[Callable[[bool], None]] = None,
    ):
        """
        Args:
            auto_scroll: Start FOLLOWING when True, PAUSED otherwise
            pause_threshold: Rows from the bottom at which a user scroll pauses
            on_change: Called with the new "following" flag on every transition
        """
        self.mode = FollowMode.FOLLOWING if auto_scroll else FollowMode.PAUSED
        self.pause_threshold = pause_threshold
        self.on_change = on_change
        self.show_scroll_button = False

    @property
    def following(self) -> bool:
        return self.mode is FollowMode.FOLLOWING

    def _transition(self, mode: FollowMode) -> bool:
        if mode is self.mode:
            return False
        self.mode = mode
        if self.on_change is not None:
            self.on_change(self.following)
        return True

    def is_at_bottom(self, metrics: ScrollMetrics) -> bool:
        return metrics.distance_from_bottom < self.pause_threshold

    def should_pin_to_bottom(self) -> bool:
        """Called after the row count changes: pin only while FOLLOWING"""
        return self.following

    def on_scroll(self, metrics: ScrollMetrics, has_rows: bool = True, programmatic: bool = False) -> None:
        """
        React to a scroll position change

        Args:
            metrics: Current scroll geometry
            has_rows: Whether the stream has anything to show
            programmatic: True when the stream moved the viewport itself
        """
        at_bottom = self.is_at_bottom(metrics)
        self.show_scroll_button = has_rows and not at_bottom and not self.following

        if programmatic or at_bottom:
            return
        if self._transition(FollowMode.PAUSED):
            self.show_scroll_button = has_rows

    def pause(self) -> bool:
        return self._transition(FollowMode.PAUSED)

    def resume(self) -> bool:
        """Return to FOLLOWING; the caller scrolls to the bottom"""
        changed = self._transition(FollowMode.FOLLOWING)
        self.show_scroll_button = False
        return changed

    def toggle(self) -> FollowMode:
        """Pause/Resume button: flips the mode and returns the new one"""
        if self.following:
            self.pause()
        else:
            self.resume()
        return self.mode
