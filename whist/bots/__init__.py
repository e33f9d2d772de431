"""Bot AI players for calling whist.

Available bots:
- RandomBot: Plays random legal calls and cards
- RuleBasedBot: Heuristic play with difficulty levels (easy/medium/hard)

Autopilot drives the bots of a game one move at a time.
"""

from whist.bots.autopilot import ActionKind, Autopilot, BotAction
from whist.bots.base_bot import BaseBot, BotDifficulty
from whist.bots.random_bot import RandomBot
from whist.bots.rule_based_bot import RuleBasedBot

__all__ = [
    "ActionKind",
    "Autopilot",
    "BaseBot",
    "BotAction",
    "BotDifficulty",
    "RandomBot",
    "RuleBasedBot",
]
