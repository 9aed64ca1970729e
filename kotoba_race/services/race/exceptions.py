"""Race validation errors.

Raised before any state is touched; the HTTP layer turns them into JSON
errors. Stale timers and duplicate actions are not errors and never raise.
"""


class RaceError(Exception):
    """Base class for every rejected race action."""
    status_code = 400

    def __init__(self, message=None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self):
        return 'Action rejected'


class RaceNotFound(RaceError):
    status_code = 404

    def __init__(self, key):
        self.key = key
        super().__init__(f"Race {key} not found")


class PlayerNotFound(RaceError):
    status_code = 404

    def __init__(self, player_id):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is not in this race")


class NotHost(RaceError):
    status_code = 403

    def default_message(self):
        return 'Only the host may do that'


class RoomFull(RaceError):
    def default_message(self):
        return 'This race room is full'


class RaceAlreadyStarted(RaceError):
    status_code = 403

    def default_message(self):
        return 'This race has already started'


class NotEnoughPlayers(RaceError):
    def __init__(self, required, actual):
        self.required = required
        self.actual = actual
        super().__init__(f"At least {required} players are required to start, got {actual}")


class InsufficientQuestionPool(RaceError):
    def __init__(self, required, available):
        self.required = required
        self.available = available
        super().__init__(f"Not enough questions: need {required}, only {available} available")


class InvalidAction(RaceError):
    pass
