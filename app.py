"""
Main Application - NumberWar TUI
"""
from textual.app import App
import asyncio

from numberwar.config import NETWORK_CONFIG
from numberwar.screens import ConnectingScreen, GameScreen
from numberwar.service.network_client import check_node_health

HEALTH_ATTEMPTS = 15


class NumberWarApp(App):
    """NumberWar TUI over a RoundSessionController"""

    TITLE = "NumberWar"
    SUB_TITLE = "Homomorphic Encryption Edition"

    def __init__(self, controller):
        super().__init__()
        self.controller = controller

    async def on_mount(self) -> None:
        """Wait for the node in a worker so the UI stays responsive"""
        self.run_worker(self._connect(), exclusive=True)

    async def _connect(self) -> None:
        ledger = self.controller.ledger
        connecting = ConnectingScreen(ledger.node_url)
        await self.push_screen(connecting)

        for attempt in range(1, HEALTH_ATTEMPTS + 1):
            if await check_node_health(ledger.node_url, ledger.transport):
                await self.switch_screen(GameScreen(self.controller))
                return
            connecting.report_attempt(attempt, HEALTH_ATTEMPTS)
            await asyncio.sleep(1)

        connecting.report_failure()

    async def on_unmount(self) -> None:
        await self.controller.close()


# ============================================================================
# Entry Point
# ============================================================================

async def run_game_tui(node_url: str = None):
    """Run NumberWar with the configured wallet against `node_url`"""
    from numberwar.cli import build_controller
    from numberwar.service.wallet import LocalWallet

    app = NumberWarApp(build_controller(node_url or NETWORK_CONFIG["node_url"], LocalWallet.from_config()))
    await app.run_async()


if __name__ == "__main__":
    asyncio.run(run_game_tui())
