"""Simulated racers.

Bots answer through the same pipeline as humans. Every bot action is a
scheduled callback, so each one re-checks the live race before acting and
quietly gives up if the race has moved on.
"""

import logging
import uuid

from . import constants as C
from .models import Identity


logger = logging.getLogger(__name__)


class BotController:
    def __init__(self, engine, min_delay: float = 1.0, max_delay: float = 8.0,
                 join_delay: float = 2.0, escape_tap_delay: float = 0.4):
        self.engine = engine
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.join_delay = join_delay
        self.escape_tap_delay = escape_tap_delay

    @property
    def rng(self):
        return self.engine.rng

    def make_identity(self, taken_names) -> Identity:
        while True:
            name = f"{self.rng.choice(C.BOT_NAMES)}{self.rng.randint(0, 99)}"
            if name not in taken_names:
                break
        return Identity(
            id=f"bot-{uuid.uuid4().hex[:12]}",
            display_name=name,
            avatar=self.rng.choice(C.BOT_AVATARS),
            role='bot',
        )

    def choose_option(self, question) -> int:
        accuracy = self.rng.uniform(C.BOT_ACCURACY_MIN, C.BOT_ACCURACY_MAX)
        if self.rng.random() < accuracy:
            return question.correct_index
        wrong = [i for i in range(len(question.options)) if i != question.correct_index]
        return self.rng.choice(wrong)

    # --- answering -------------------------------------------------------

    def schedule_answers(self, game) -> int:
        timers = self.engine.timers_for(game.id)
        if timers is None:
            return 0
        scheduled = 0
        for player in game.active_players():
            if not player.is_bot or player.has_answered:
                continue
            delay = self.rng.uniform(self.min_delay, self.max_delay)
            timers.schedule('bots', delay, self.answer, game.id, player.id, game.current_question_index)
            scheduled += 1
        return scheduled

    def answer(self, game_id: str, bot_id: str, question_index: int):
        engine = self.engine
        with engine.lock:
            game = engine.live_game(game_id, (C.ANSWERING,), question_index, reason=f"bot-answer bot={bot_id}")
            if game is None:
                return None
            bot = game.players.get(bot_id)
            if bot is None or bot.has_left or bot.has_answered:
                logger.info(f"[timer-abort] game={game_id} bot={bot_id} already answered or gone")
                return None
            return engine.record_answer(game, bot_id, self.choose_option(game.current_question))

    # --- sinkhole escape -------------------------------------------------

    def schedule_escape(self, game_id: str, bot_id: str) -> None:
        timers = self.engine.timers_for(game_id)
        group = f"escape:{bot_id}"
        if timers is None or timers.pending(group):
            return
        timers.schedule(group, self.escape_tap_delay, self.escape_tap, game_id, bot_id)

    def escape_tap(self, game_id: str, bot_id: str):
        engine = self.engine
        with engine.lock:
            game = engine.live_game(game_id, C.RACING_STATUSES, reason=f"bot-escape bot={bot_id}")
            if game is None:
                return None
            bot = game.players.get(bot_id)
            if bot is None or not bot.is_escaping:
                return game
            game = engine.handle_escape_tap(game_id, bot_id)
            if game is not None and game.players[bot_id].is_escaping:
                self.schedule_escape(game_id, bot_id)
            return game

    # --- lobby auto-fill -------------------------------------------------

    def schedule_autofill(self, game) -> None:
        timers = self.engine.timers_for(game.id)
        if timers is None:
            return
        for n in range(game.settings.bot_count):
            timers.schedule('autofill', self.join_delay * (n + 1), self.autofill, game.id)

    def autofill(self, game_id: str):
        engine = self.engine
        with engine.lock:
            game = engine.live_game(game_id, (C.WAITING,), reason='bot-autofill')
            if game is None:
                return None
            if len(game.active_players()) >= game.settings.max_players:
                return game
            return engine.add_bot(game)
