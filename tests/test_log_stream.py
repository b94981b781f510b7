"""
Tests for the log stream: truncation, follow mode and the stream widget
"""
from typing import List

import pytest
from textual.app import App, ComposeResult
from textual.widgets import Button, Static

from NLOGS.UI.views.logs.log_stream import LogCanvas, LogStream, buffer_banner, truncate_logs


class TestTruncation:
    """Test the max_logs cap"""

    def test_keeps_last_entries(self, make_entry):
        logs = [make_entry(id="a"), make_entry(id="b"), make_entry(id="c")]
        visible, truncated = truncate_logs(logs, 2)
        assert [entry.id for entry in visible] == ["b", "c"]
        assert truncated

    @pytest.mark.parametrize("length,max_logs", [(0, 5), (5, 5), (3, 5), (12, 5)])
    def test_row_count(self, make_entry, length, max_logs):
        logs = [make_entry() for _ in range(length)]
        visible, truncated = truncate_logs(logs, max_logs)
        assert len(visible) == min(length, max_logs)
        assert visible == logs[-max_logs:]
        assert truncated == (length > max_logs)

    def test_input_not_modified(self, make_entry):
        logs = [make_entry() for _ in range(4)]
        truncate_logs(logs, 2)
        assert len(logs) == 4

    def test_banner_text(self):
        assert buffer_banner(10000) == "Buffer limit reached. Showing last 10,000 logs."


class StreamApp(App):
    """Hosts a single stream and records its follow-mode messages"""

    def __init__(self, max_logs=10000, auto_scroll=True):
        super().__init__()
        self.max_logs = max_logs
        self.auto_scroll = auto_scroll
        self.follow_changes: List[bool] = []

    def compose(self) -> ComposeResult:
        yield LogStream(max_logs=self.max_logs, auto_scroll=self.auto_scroll, id="stream")

    def on_log_stream_auto_scroll_changed(self, event: LogStream.AutoScrollChanged) -> None:
        self.follow_changes.append(event.following)


class TestLogStreamWidget:
    """Pilot tests for the stream widget"""

    @pytest.mark.asyncio
    async def test_empty_state(self):
        app = StreamApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.query_one("#log-stream-empty", Static).display
            assert not app.query_one("#log-stream-canvas", LogCanvas).display
            assert not app.query_one("#log-stream-banner", Static).display

    @pytest.mark.asyncio
    async def test_truncation_banner(self, make_entry):
        app = StreamApp(max_logs=2)
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            logs = [make_entry(id="a"), make_entry(id="b"), make_entry(id="c")]
            stream.set_logs(logs)
            await pilot.pause()

            assert [entry.id for entry in stream.visible_logs] == ["b", "c"]
            assert app.query_one("#log-stream-banner", Static).display
            assert not app.query_one("#log-stream-empty", Static).display
            assert len(logs) == 3

            stream.set_logs(logs[:2])
            await pilot.pause()
            assert not app.query_one("#log-stream-banner", Static).display

    @pytest.mark.asyncio
    async def test_following_pins_to_bottom(self, make_entry):
        app = StreamApp()
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            canvas = app.query_one("#log-stream-canvas", LogCanvas)

            logs = [make_entry(line=f"line {i}") for i in range(200)]
            stream.set_logs(logs)
            await pilot.pause()
            assert canvas.max_scroll_y > 0
            assert canvas.scroll_y == canvas.max_scroll_y

            stream.set_logs(logs + [make_entry(line="one more")])
            await pilot.pause()
            assert canvas.scroll_y == canvas.max_scroll_y
            assert stream.following
            assert app.follow_changes == []

    @pytest.mark.asyncio
    async def test_user_scroll_pauses(self, make_entry):
        app = StreamApp()
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            canvas = app.query_one("#log-stream-canvas", LogCanvas)
            logs = [make_entry(line=f"line {i}") for i in range(200)]
            stream.set_logs(logs)
            await pilot.pause()

            canvas.scroll_to(y=0, animate=False)
            await pilot.pause()
            assert not stream.following
            assert app.follow_changes == [False]
            assert app.query_one("#scroll-bottom-btn", Button).display

            # New rows do not move a paused viewport
            stream.set_logs(logs + [make_entry(line="more")])
            await pilot.pause()
            assert canvas.scroll_y == 0
            assert app.follow_changes == [False]

    @pytest.mark.asyncio
    async def test_toggle_pause_and_resume(self, make_entry):
        app = StreamApp()
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            stream.set_logs([make_entry(line=f"line {i}") for i in range(100)])
            await pilot.pause()

            await pilot.click("#pause-toggle-btn")
            await pilot.pause()
            assert not stream.following
            assert "Resume" in str(app.query_one("#pause-toggle-btn", Button).label)

            # A second click on the same spot would register as a double click
            app.query_one("#pause-toggle-btn", Button).press()
            await pilot.pause()
            assert stream.following
            assert app.follow_changes == [False, True]
            canvas = app.query_one("#log-stream-canvas", LogCanvas)
            assert canvas.scroll_y == canvas.max_scroll_y

    @pytest.mark.asyncio
    async def test_start_paused(self, make_entry):
        app = StreamApp(auto_scroll=False)
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            stream.set_logs([make_entry(line=f"line {i}") for i in range(100)])
            await pilot.pause()
            assert not stream.following
            assert app.query_one("#log-stream-canvas", LogCanvas).scroll_y == 0

    @pytest.mark.asyncio
    async def test_first_render_pins_newest_row(self, make_entry):
        app = StreamApp()
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            canvas = app.query_one("#log-stream-canvas", LogCanvas)
            stream.set_logs([make_entry(line=f"line {i}") for i in range(200)])
            await pilot.pause(0.5)

            assert stream.following
            assert not canvas.show_horizontal_scrollbar
            assert canvas.virtual_size.width <= canvas.scrollable_content_region.width
            assert canvas.scroll_y == canvas.max_scroll_y
            bottom = canvas.scroll_y + canvas.scrollable_content_region.height
            assert bottom >= canvas.virtualizer.total_size()

    @pytest.mark.asyncio
    async def test_large_list_renders_only_the_window(self, make_entry):
        app = StreamApp(max_logs=20000)
        async with app.run_test() as pilot:
            stream = app.query_one("#stream", LogStream)
            canvas = app.query_one("#log-stream-canvas", LogCanvas)
            stream.set_logs([make_entry(line=f"line {i}") for i in range(12000)])
            await pilot.pause(0.3)

            limit = canvas.viewport_height + 2 * canvas.virtualizer.overscan
            assert 0 < len(canvas._strips) <= limit
            assert canvas.virtualizer.count == 12000

            canvas.scroll_to(y=6000, animate=False)
            await pilot.pause(0.3)
            assert len(canvas._strips) <= 2 * limit
