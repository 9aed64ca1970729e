"""Race domain services: the session engine and its rules.

Nothing in this package imports Flask. HTTP routes and socket handlers talk
to one ``RaceEngine`` per app and subscribe to its state changes, keeping
transport concerns separated from the race mechanics.
"""

from .engine import RaceEngine
from .exceptions import RaceError
from .models import Game, Identity, Player, RaceSettings
from .scheduler import BackgroundScheduler, ManualScheduler

__all__ = [
    'RaceEngine',
    'RaceError',
    'Game',
    'Identity',
    'Player',
    'RaceSettings',
    'BackgroundScheduler',
    'ManualScheduler',
]
