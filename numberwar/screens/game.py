"""
Game Screen - join, submit and reveal for one account
"""
from textual.app import ComposeResult
from textual.widgets import Header, Footer, Label, Input, Button, Static
from textual.containers import Container, Vertical, Horizontal
from textual.binding import Binding
from textual.screen import Screen
from textual import on
from rich.text import Text

from numberwar.config import GAME_CONFIG
from numberwar.errors import NumberWarError
from numberwar.service.wallet import LocalWallet
from numberwar.session.view import Phase, RoundView

PHASE_LABELS = {
    Phase.IDLE: ("No round yet", "white"),
    Phase.AWAITING_CONFIRMATION: ("Waiting for confirmation...", "yellow"),
    Phase.ACTIVE: ("Round active - pick your number", "cyan"),
    Phase.RESOLVED: ("Round resolved", "green"),
}


def render_value(value, handle, decrypting: bool) -> Text:
    if decrypting:
        return Text("decrypting...", style="yellow")
    if value is not None:
        return Text(str(value), style="bold green")
    if handle.is_sentinel:
        return Text("-", style="dim")
    return Text(f"🔒 {handle.hex()[:10]}...", style="magenta")


class GameScreen(Screen):
    """Main NumberWar screen, redrawn on every controller change"""

    CSS = """
    GameScreen {
        background: $surface;
    }

    #game_container {
        width: 100%;
        height: 1fr;
        align: center middle;
    }

    #game_panel {
        width: 80;
        height: auto;
        background: $panel;
        border: solid $primary;
        padding: 1 2;
    }

    #game_title {
        width: 100%;
        text-align: center;
        color: $warning;
        text-style: bold;
        margin-bottom: 1;
    }

    .row {
        height: auto;
        margin: 0 0 1 0;
    }

    .label {
        width: 18;
        color: $text-muted;
    }

    .value {
        width: 1fr;
    }

    #number_input {
        width: 1fr;
    }

    .button_row {
        height: auto;
        align: center middle;
        margin-top: 1;
    }

    Button {
        margin: 0 1;
    }

    #status_text {
        width: 100%;
        text-align: center;
        color: $warning;
        margin-top: 1;
    }

    #error_text {
        width: 100%;
        text-align: center;
        color: $error;
    }
    """

    BINDINGS = [
        Binding("escape", "app.quit", "Quit"),
        Binding("j", "join", "Join"),
        Binding("r", "refresh", "Refresh"),
    ]

    def __init__(self, controller):
        super().__init__()
        self.controller = controller

    def compose(self) -> ComposeResult:
        yield Header()
        yield Footer()

        low, high = GAME_CONFIG["min_value"], GAME_CONFIG["max_value"]
        with Container(id="game_container"):
            with Vertical(id="game_panel"):
                yield Label("🎲 NumberWar - win when the sum is even", id="game_title")

                with Horizontal(classes="row"):
                    yield Label("Account", classes="label")
                    yield Static("", id="account_text", classes="value")
                with Horizontal(classes="row"):
                    yield Label("Phase", classes="label")
                    yield Static("", id="phase_text", classes="value")
                with Horizontal(classes="row"):
                    yield Label("System number", classes="label")
                    yield Static("", id="system_number_text", classes="value")
                with Horizontal(classes="row"):
                    yield Label("Outcome", classes="label")
                    yield Static("", id="outcome_text", classes="value")

                with Horizontal(classes="row"):
                    yield Input(placeholder=f"Your number ({low}-{high})", id="number_input")
                    yield Button("Submit", id="submit_btn", variant="success")

                with Horizontal(classes="button_row"):
                    yield Button("Join", id="join_btn", variant="primary")
                    yield Button("Reveal number", id="reveal_system_btn")
                    yield Button("Reveal outcome", id="reveal_outcome_btn")
                    yield Button("New wallet", id="new_wallet_btn", variant="warning")

                yield Static("", id="status_text")
                yield Static("", id="error_text")

    def on_mount(self) -> None:
        self.controller.on_change(self.refresh_view)
        self.refresh_view(self.controller.view)
        if self.controller.wallet is not None:
            self.run_worker(self._guarded(self.controller.sync()))

    # ========================================================================
    # Rendering
    # ========================================================================

    def refresh_view(self, view: RoundView) -> None:
        if not self.is_mounted:
            return
        self.query_one("#account_text", Static).update(view.account or "no wallet connected")

        label, style = PHASE_LABELS[view.phase]
        self.query_one("#phase_text", Static).update(Text(label, style=style))

        self.query_one("#system_number_text", Static).update(
            render_value(view.system_number, view.system_number_handle, view.decrypting_system_number)
        )
        outcome = None if view.outcome is None else ("WIN 🎉" if view.outcome else "LOSE")
        self.query_one("#outcome_text", Static).update(
            render_value(outcome, view.outcome_handle, view.decrypting_outcome)
        )

        self.query_one("#status_text", Static).update(view.status)
        self.query_one("#error_text", Static).update(view.error or "")

        self.query_one("#join_btn", Button).disabled = view.busy
        self.query_one("#submit_btn", Button).disabled = view.busy or not view.active_round
        self.query_one("#reveal_system_btn", Button).disabled = view.decrypting_system_number
        self.query_one("#reveal_outcome_btn", Button).disabled = view.decrypting_outcome

    # ========================================================================
    # Actions
    # ========================================================================

    async def _guarded(self, coro):
        # Errors are already on view.error and rendered
        try:
            await coro
        except NumberWarError as e:
            self.notify(e.message, severity="error")

    def action_join(self) -> None:
        self.run_worker(self._guarded(self.controller.join()), group="write")

    def action_refresh(self) -> None:
        self.run_worker(self._guarded(self.controller.sync()), group="sync")

    @on(Button.Pressed, "#join_btn")
    def join_pressed(self) -> None:
        self.action_join()

    @on(Button.Pressed, "#submit_btn")
    @on(Input.Submitted, "#number_input")
    def submit_pressed(self) -> None:
        number_input = self.query_one("#number_input", Input)
        value = number_input.value
        number_input.value = ""
        self.run_worker(self._guarded(self.controller.submit(value)), group="write")

    @on(Button.Pressed, "#reveal_system_btn")
    def reveal_system_pressed(self) -> None:
        self.run_worker(self._guarded(self.controller.reveal_system_number()), group="reveal_system")

    @on(Button.Pressed, "#reveal_outcome_btn")
    def reveal_outcome_pressed(self) -> None:
        self.run_worker(self._guarded(self.controller.reveal_outcome()), group="reveal_outcome")

    @on(Button.Pressed, "#new_wallet_btn")
    def new_wallet_pressed(self) -> None:
        wallet = LocalWallet()
        print(f"[Session] Switched to new wallet {wallet.address}")
        self.controller.set_account(wallet)
