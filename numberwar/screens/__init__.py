"""
TUI Screens for NumberWar
"""
from .connecting import ConnectingScreen
from .game import GameScreen

__all__ = [
    'ConnectingScreen',
    'GameScreen',
]
