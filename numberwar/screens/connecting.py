"""
Connecting Screen - shown while the node is not reachable yet
"""
from textual.app import ComposeResult
from textual.widgets import Header, Footer, Static, LoadingIndicator, Button
from textual.containers import Vertical, Center, Horizontal
from textual.screen import Screen
from textual import on
from rich.text import Text


class ConnectingScreen(Screen):
    """Polls nothing itself; the app reports each health-check attempt"""

    CSS = """
    ConnectingScreen {
        background: $surface;
        align: center middle;
    }

    #connect_box {
        width: 64;
        height: auto;
        border: round $accent;
        padding: 1 2;
    }

    #connect_title {
        width: 100%;
        text-align: center;
        text-style: bold;
        color: $accent;
    }

    #node_url {
        width: 100%;
        text-align: center;
        color: $text-muted;
        margin-bottom: 1;
    }

    #attempt_text {
        width: 100%;
        text-align: center;
    }

    #give_up_row {
        height: auto;
        align: center middle;
        display: none;
    }

    #give_up_row.visible {
        display: block;
    }
    """

    def __init__(self, node_url: str):
        super().__init__()
        self.node_url = node_url

    def compose(self) -> ComposeResult:
        yield Header()
        with Center():
            with Vertical(id="connect_box"):
                yield Static("🎲 Connecting to NumberWar node", id="connect_title")
                yield Static(self.node_url, id="node_url")
                yield LoadingIndicator(id="spinner")
                yield Static("", id="attempt_text")
                with Horizontal(id="give_up_row"):
                    yield Button("Quit", id="quit_btn", variant="error")
        yield Footer()

    def report_attempt(self, attempt: int, total: int) -> None:
        self.query_one("#attempt_text", Static).update(
            Text(f"Node not ready yet ({attempt}/{total})", style="yellow")
        )

    def report_failure(self) -> None:
        self.query_one("#spinner", LoadingIndicator).display = False
        self.query_one("#attempt_text", Static).update(Text("✗ No node answered", style="bold red"))
        self.query_one("#give_up_row").add_class("visible")

    @on(Button.Pressed, "#quit_btn")
    def quit_pressed(self) -> None:
        self.app.exit()
