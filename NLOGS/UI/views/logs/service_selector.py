"""
Service Selector Module - Multi-select of services whose logs are shown

Handles:
- Selection summary text ("All Services", a name, or "N services")
- Toggle, select all and clear (always reported as the full new selection)
- Recent services shortcut section
- Dropdown lifetime as an explicit CLOSED / OPEN state
"""
from enum import Enum
from typing import List, Optional, Sequence

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.geometry import Offset
from textual.message import Message
from textual.screen import ModalScreen
from textual.widget import Widget
from textual.widgets import Button, Label

RECENT_LIMIT = 3


class SelectorState(Enum):
    CLOSED = "closed"
    OPEN = "open"


def selection_label(services: Sequence[str], selected: Sequence[str]) -> str:
    """
    Summary text for the selector button

    An empty selection and a selection of every service both read
    "All Services": both mean no service filtering.
    """
    if not selected or set(selected) == set(services):
        return "All Services"
    if len(selected) == 1:
        return selected[0]
    return f"{len(selected)} services"


def toggle_service(selected: Sequence[str], service: str) -> List[str]:
    """Add or remove one service, keeping the order of the rest"""
    if service in selected:
        return [name for name in selected if name != service]
    return list(selected) + [service]


def option_label(service: str, selected: Sequence[str]) -> str:
    mark = "☑" if service in selected else "☐"
    return f"{mark} {service}"


class ServiceDropdown(ModalScreen[None]):
    """
    Open state of the selector

    The screen exists only while the dropdown is open; a click on its
    backdrop or Escape dismisses it, which returns the selector to CLOSED.
    """

    DEFAULT_CSS = """
    ServiceDropdown {
        align: left top;
        background: $background 20%;
    }
    ServiceDropdown #service-dropdown {
        width: 40;
        height: auto;
        max-height: 30;
        border: round $primary;
        background: $surface;
    }
    ServiceDropdown #service-dropdown-header {
        height: auto;
    }
    ServiceDropdown .section-title {
        color: $text-muted;
        padding: 0 1;
    }
    ServiceDropdown .service-option {
        width: 100%;
        min-width: 0;
        border: none;
        height: 1;
        content-align: left middle;
    }
    ServiceDropdown #service-list {
        height: auto;
        max-height: 16;
    }
    """

    BINDINGS = [("escape", "close", "Close")]

    def __init__(self, selector: "ServiceSelector", anchor: Offset = Offset(0, 0), **kwargs):
        super().__init__(**kwargs)
        self.selector = selector
        self.anchor = anchor

    def compose(self) -> ComposeResult:
        selected = self.selector.selected
        with Vertical(id="service-dropdown"):
            with Horizontal(id="service-dropdown-header"):
                yield Label("[bold]Select Services[/bold]", classes="section-title")
                yield Button("All", id="select-all-btn", variant="default")
                yield Button("Clear", id="clear-services-btn", variant="default")

            recent = self.selector.recent[:RECENT_LIMIT]
            if recent:
                yield Label("RECENT", classes="section-title")
                for service in recent:
                    yield Button(
                        option_label(service, selected),
                        name=service,
                        classes="service-option recent-option",
                    )

            with VerticalScroll(id="service-list"):
                for service in self.selector.services:
                    yield Button(option_label(service, selected), name=service, classes="service-option")

    def on_mount(self) -> None:
        self.query_one("#service-dropdown", Vertical).styles.offset = (self.anchor.x, self.anchor.y)

    def refresh_options(self, selected: Sequence[str]) -> None:
        """Update check marks after the selection changed"""
        for button in self.query(".service-option").results(Button):
            button.label = option_label(button.name or "", selected)

    def action_close(self) -> None:
        self.dismiss()

    def on_click(self, event: events.Click) -> None:
        widget, _ = self.get_widget_at(event.screen_x, event.screen_y)
        if widget is self:
            self.dismiss()

    @on(Button.Pressed, ".service-option")
    def handle_option(self, event: Button.Pressed) -> None:
        event.stop()
        self.selector.toggle(event.button.name or "")

    @on(Button.Pressed, "#select-all-btn")
    def handle_select_all(self, event: Button.Pressed) -> None:
        event.stop()
        self.selector.select_all()

    @on(Button.Pressed, "#clear-services-btn")
    def handle_clear(self, event: Button.Pressed) -> None:
        event.stop()
        self.selector.clear()


class ServiceSelector(Widget):
    """
    Button summarising the service selection, opening a dropdown to edit it

    The selection is owned by the parent: changes are reported with
    ``ServiceSelector.Changed`` and the parent writes the result back through
    ``set_selected``.
    """

    DEFAULT_CSS = """
    ServiceSelector {
        width: auto;
        height: auto;
    }
    """

    class Changed(Message):
        """The user asked for a new selection"""

        def __init__(self, selector: "ServiceSelector", services: List[str]) -> None:
            super().__init__()
            self.selector = selector
            self.services = services

        @property
        def control(self) -> "ServiceSelector":
            return self.selector

    def __init__(
        self,
        services: Sequence[str] = (),
        selected: Sequence[str] = (),
        recent: Sequence[str] = (),
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.services: List[str] = list(services)
        self.selected: List[str] = list(selected)
        self.recent: List[str] = list(recent)
        self.state = SelectorState.CLOSED
        self._dropdown: Optional[ServiceDropdown] = None

    def compose(self) -> ComposeResult:
        yield Button(f"{self.label} ▾", id="service-selector-btn")

    @property
    def label(self) -> str:
        return selection_label(self.services, self.selected)

    # Inputs from the parent

    def set_services(self, services: Sequence[str]) -> None:
        self.services = list(services)
        self._refresh()

    def set_selected(self, selected: Sequence[str]) -> None:
        self.selected = list(selected)
        self._refresh()

    def set_recent(self, recent: Sequence[str]) -> None:
        self.recent = list(recent)

    def _refresh(self) -> None:
        for button in self.query("#service-selector-btn").results(Button):
            button.label = f"{self.label} ▾"
        if self._dropdown is not None:
            self._dropdown.refresh_options(self.selected)

    # Outputs

    def _emit(self, services: List[str]) -> None:
        self.post_message(self.Changed(self, services))

    def toggle(self, service: str) -> None:
        self._emit(toggle_service(self.selected, service))

    def select_all(self) -> None:
        self._emit(list(self.services))

    def clear(self) -> None:
        self._emit([])

    # Dropdown state

    def open(self) -> None:
        if self.state is SelectorState.OPEN:
            return
        button = self.query_one("#service-selector-btn", Button)
        anchor = Offset(button.region.x, button.region.bottom)
        self._dropdown = ServiceDropdown(self, anchor)
        self.state = SelectorState.OPEN
        self.app.push_screen(self._dropdown, callback=self._on_dropdown_closed)

    def close(self) -> None:
        if self._dropdown is not None and self.state is SelectorState.OPEN:
            self._dropdown.dismiss()

    def _on_dropdown_closed(self, result: None = None) -> None:
        self.state = SelectorState.CLOSED
        self._dropdown = None

    @on(Button.Pressed, "#service-selector-btn")
    def handle_button(self, event: Button.Pressed) -> None:
        event.stop()
        if self.state is SelectorState.OPEN:
            self.close()
        else:
            self.open()
