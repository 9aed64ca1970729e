"""Race session engine.

One ``RaceEngine`` owns every live race of the process. Each operation reads
the current ``Game``, builds the next one and swaps it in under the engine
lock. Timer callbacks re-enter through ``live_game``, which drops them when
the race is gone or has moved past the state they were scheduled for.

Lifecycle::

    waiting -> starting -> question -> answering -> revealing -> question ...
                                    \\-> mystery_box -> answering
    any question-cycle state -> finished
"""

import logging
import random
import threading
import uuid
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional, Union

from . import constants as C
from .bots import BotController
from .exceptions import (
    InvalidAction,
    NotEnoughPlayers,
    NotHost,
    PlayerNotFound,
    RaceAlreadyStarted,
    RaceNotFound,
    RoomFull,
)
from .features import (
    add_to_inventory,
    apply_special_feature,
    place_trap as place_trap_item,
    random_item,
    use_inventory_item,
)
from .models import Game, Identity, Player, RaceSettings, pick_vehicle, vehicles_for
from .questions import build_questions
from .results import compute_results
from .scheduler import ManualScheduler, TimerRegistry
from .scoring import apply_answer, earns_milestone_reward
from .teams import (
    add_member,
    assign_player_to_team as assign_team,
    create_teams,
    remove_member,
    smallest_team_id,
    update_team_scores,
)
from .traps import check_and_trigger, escape_tap, generate_random_trap


logger = logging.getLogger(__name__)

Listener = Callable[[str, Game], None]


class RaceEngine:
    def __init__(self, scheduler=None, rng: Optional[random.Random] = None, clock: Optional[Callable[[], float]] = None,
                 countdown_sec: float = 3, question_intro_sec: float = 2,
                 bot_min_delay: float = 1, bot_max_delay: float = 8, bot_join_delay: float = 2,
                 bot_escape_tap_sec: float = 0.4, escape_taps_required: int = C.ESCAPE_TAPS_REQUIRED,
                 auto_reveal: bool = False, min_players: int = 1, max_players: int = 8):
        self.scheduler = scheduler or ManualScheduler()
        self.rng = rng or random.Random()
        self.clock = clock or self.scheduler.now
        self.countdown_sec = countdown_sec
        self.question_intro_sec = question_intro_sec
        self.escape_taps_required = escape_taps_required
        self.auto_reveal = auto_reveal
        self.min_players = min_players
        self.max_players = max_players
        self.lock = threading.RLock()
        self.games: Dict[str, Game] = {}
        self._codes: Dict[str, str] = {}
        self._timers: Dict[str, TimerRegistry] = {}
        self._listeners: List[Listener] = []
        self.bots = BotController(self, bot_min_delay, bot_max_delay, bot_join_delay, bot_escape_tap_sec)

    @classmethod
    def from_config(cls, config, scheduler, rng=None) -> 'RaceEngine':
        return cls(
            scheduler=scheduler,
            rng=rng,
            countdown_sec=float(config.get('RACE_COUNTDOWN_SEC', 3)),
            question_intro_sec=float(config.get('QUESTION_INTRO_SEC', 2)),
            bot_min_delay=float(config.get('BOT_MIN_DELAY_SEC', 1)),
            bot_max_delay=float(config.get('BOT_MAX_DELAY_SEC', 8)),
            bot_join_delay=float(config.get('BOT_JOIN_DELAY_SEC', 2)),
            bot_escape_tap_sec=float(config.get('BOT_ESCAPE_TAP_SEC', 0.4)),
            escape_taps_required=int(config.get('ESCAPE_TAPS_REQUIRED', C.ESCAPE_TAPS_REQUIRED)),
            auto_reveal=bool(config.get('AUTO_REVEAL_ON_TIMEOUT', False)),
            min_players=int(config.get('MIN_PLAYERS', 1)),
            max_players=int(config.get('MAX_PLAYERS', 8)),
        )

    # ------------------------------------------------------------------
    # Registry plumbing
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def timers_for(self, game_id: str) -> Optional[TimerRegistry]:
        return self._timers.get(game_id)

    def get_game(self, game_id: str) -> Game:
        game = self.games.get(game_id)
        if game is None:
            raise RaceNotFound(game_id)
        return game

    def get_game_by_code(self, code: str) -> Game:
        game_id = self._codes.get(str(code).strip())
        if game_id is None or game_id not in self.games:
            raise RaceNotFound(code)
        return self.games[game_id]

    def list_rooms(self) -> List[Game]:
        return [g for g in self.games.values() if g.status == C.WAITING]

    def get_results(self, game_id: str) -> Optional[Dict]:
        return self.get_game(game_id).results

    def live_game(self, game_id: str, statuses: Iterable[str], question_index: Optional[int] = None,
                  reason: str = 'timer') -> Optional[Game]:
        """Current race if it still matches what a callback expects, else None."""
        game = self.games.get(game_id)
        if game is None:
            logger.info(f"[timer-abort] game={game_id} {reason}: race discarded")
            return None
        if game.status not in statuses:
            logger.info(f"[timer-abort] game={game_id} {reason}: status={game.status}")
            return None
        if question_index is not None and game.current_question_index != question_index:
            logger.info(
                f"[timer-abort] game={game_id} {reason}: question {question_index} != {game.current_question_index}"
            )
            return None
        return game

    def _commit(self, game: Game, event: str) -> Optional[Game]:
        if game.id not in self.games:
            return None
        self.games[game.id] = game
        self._notify(event, game)
        return game

    def _notify(self, event: str, game: Game) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, game)
            except Exception:
                logger.exception(f"[listener-error] game={game.id} event={event}")

    def _schedule(self, game_id: str, group: str, delay: float, callback, *args) -> None:
        timers = self._timers.get(game_id)
        if timers is not None:
            timers.schedule(group, delay, callback, *args)

    def _new_code(self) -> str:
        while True:
            code = str(self.rng.randint(100000, 999999))
            if code not in self._codes:
                return code

    @staticmethod
    def _player(game: Game, player_id: str) -> Player:
        player = game.players.get(player_id)
        if player is None or player.has_left:
            raise PlayerNotFound(player_id)
        return player

    @staticmethod
    def _require_host(game: Game, caller_id: str) -> None:
        if not game.is_host(caller_id):
            raise NotHost()

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    def create_game(self, settings: Union[RaceSettings, Dict], host: Identity, items: List[Dict],
                    vehicle_id: Optional[str] = None) -> Game:
        if not isinstance(settings, RaceSettings):
            settings = RaceSettings.from_dict(settings, min_players=self.min_players, max_players=self.max_players)
        questions = build_questions(
            items,
            settings.question_count,
            settings.time_per_question,
            settings.mystery_box_frequency,
            settings.milestone_frequency,
            self.rng,
        )
        teams = create_teams(settings.team_count) if settings.game_mode == C.TEAM else None
        first_team = next(iter(teams)) if teams else None
        player = Player.join(host, pick_vehicle(settings.race_type, vehicle_id), team_id=first_team)
        if teams:
            teams = add_member(teams, first_team, host.id)

        with self.lock:
            game = Game(
                id=uuid.uuid4().hex,
                code=self._new_code(),
                host_id=host.id,
                settings=settings,
                questions=questions,
                players={host.id: player},
                teams=teams,
                created_at=self.clock(),
            )
            self.games[game.id] = game
            self._codes[game.code] = game.id
            self._timers[game.id] = TimerRegistry(self.scheduler, game.id)
            logger.info(f"[race-create] game={game.id} code={game.code} host={host.id} mode={settings.game_mode}")
            self._notify('created', game)
            if settings.bot_count:
                self.bots.schedule_autofill(game)
            return game

    def _add_player(self, game: Game, identity: Identity, vehicle_id: Optional[str] = None,
                    is_bot: bool = False) -> Game:
        team_id = smallest_team_id(game.teams) if game.teams else None
        player = Player.join(identity, pick_vehicle(game.settings.race_type, vehicle_id), is_bot=is_bot, team_id=team_id)
        game = game.with_player(player)
        if team_id:
            game = replace(game, teams=add_member(game.teams, team_id, player.id))
        return self._commit(game, 'player_joined')

    def join_game(self, code: str, identity: Identity, vehicle_id: Optional[str] = None) -> Game:
        with self.lock:
            game = self.get_game_by_code(code)
            existing = game.players.get(identity.id)
            if existing is not None and not existing.has_left:
                return game
            if game.status != C.WAITING:
                raise RaceAlreadyStarted()
            if len(game.active_players()) >= game.settings.max_players:
                raise RoomFull()
            logger.info(f"[race-join] game={game.id} player={identity.id}")
            return self._add_player(game, identity, vehicle_id)

    def add_bot(self, game: Game) -> Game:
        taken = {p.display_name for p in game.players.values()}
        return self._add_player(game, self.bots.make_identity(taken), is_bot=True)

    def add_bots(self, game_id: str, caller_id: str, count: int = 1) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._require_host(game, caller_id)
            if game.status != C.WAITING:
                raise RaceAlreadyStarted()
            free = game.settings.max_players - len(game.active_players())
            if free <= 0:
                raise RoomFull()
            for _ in range(min(max(1, int(count)), free)):
                game = self.add_bot(game)
            return game

    def select_vehicle(self, game_id: str, player_id: str, vehicle_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            player = self._player(game, player_id)
            if game.status != C.WAITING:
                raise RaceAlreadyStarted()
            vehicle = next((v for v in vehicles_for(game.settings.race_type) if v.id == vehicle_id), None)
            if vehicle is None:
                raise InvalidAction(f"Vehicle {vehicle_id} is not available for {game.settings.race_type} races")
            return self._commit(game.with_player(replace(player, vehicle=vehicle, current_speed=vehicle.base_speed)),
                                'vehicle_selected')

    def assign_player_to_team(self, game_id: str, caller_id: str, player_id: str, team_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._player(game, player_id)
            if not game.teams:
                raise InvalidAction('This race is not in team mode')
            if team_id not in game.teams:
                raise InvalidAction(f"Unknown team {team_id}")
            if caller_id != player_id and not game.is_host(caller_id):
                raise NotHost()
            if game.status != C.WAITING:
                raise RaceAlreadyStarted()
            return self._commit(assign_team(game, player_id, team_id), 'team_assigned')

    def update_team_scores(self, game_id: str) -> Game:
        with self.lock:
            return self._commit(update_team_scores(self.get_game(game_id)), 'teams_updated')

    def leave_game(self, game_id: str, player_id: str) -> Optional[Game]:
        with self.lock:
            game = self.get_game(game_id)
            self._player(game, player_id)
            return self._remove_player(game, player_id, 'player_left')

    def kick_player(self, game_id: str, caller_id: str, target_id: str) -> Optional[Game]:
        with self.lock:
            game = self.get_game(game_id)
            self._require_host(game, caller_id)
            if caller_id == target_id:
                raise InvalidAction('The host cannot kick themselves')
            self._player(game, target_id)
            return self._remove_player(game, target_id, 'player_kicked')

    def _remove_player(self, game: Game, player_id: str, event: str) -> Optional[Game]:
        if game.status == C.WAITING:
            players = {pid: p for pid, p in game.players.items() if pid != player_id}
            game = replace(game, players=players, teams=remove_member(game.teams, player_id))
        else:
            # racers stay on the board so the final standings are complete
            game = game.with_player(replace(game.players[player_id], has_left=True))
        self._timers[game.id].cancel_group(f"escape:{player_id}")

        humans = game.humans()
        if not humans:
            logger.info(f"[race-empty] game={game.id} last player {player_id} left")
            self.discard_game(game.id)
            return None
        if game.host_id == player_id:
            game = replace(game, host_id=humans[0].id)
            logger.info(f"[race-host] game={game.id} host {player_id} -> {humans[0].id}")
        return self._commit(game, event)

    def discard_game(self, game_id: str) -> None:
        with self.lock:
            game = self.games.pop(game_id, None)
            timers = self._timers.pop(game_id, None)
            if timers is not None:
                timers.close()
            if game is None:
                return
            self._codes.pop(game.code, None)
            logger.info(f"[race-discard] game={game_id} code={game.code}")
            self._notify('discarded', game)

    # ------------------------------------------------------------------
    # Race flow
    # ------------------------------------------------------------------

    def start_game(self, game_id: str, caller_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._require_host(game, caller_id)
            if game.status != C.WAITING:
                return game
            count = len(game.active_players())
            if count < game.settings.min_players:
                raise NotEnoughPlayers(game.settings.min_players, count)

            self._timers[game.id].cancel_group('autofill')
            game = self._commit(replace(game, status=C.STARTING, started_at=self.clock()), 'starting')
            logger.info(f"[race-start] game={game.id} players={count} countdown={self.countdown_sec}s")
            self._schedule(game.id, 'countdown', self.countdown_sec, self._countdown_done, game.id)
            return game

    def _countdown_done(self, game_id: str) -> Optional[Game]:
        with self.lock:
            game = self.live_game(game_id, (C.STARTING,), 0, reason='countdown')
            if game is None:
                return None
            return self._show_question(game, 0)

    def _show_question(self, game: Game, index: int) -> Game:
        game = self._commit(
            replace(game, status=C.QUESTION, current_question_index=index, question_start_time=self.clock()),
            'question',
        )
        self._schedule(game.id, 'question', self.question_intro_sec, self._open_question, game.id, index)
        return game

    def _open_question(self, game_id: str, index: int) -> Optional[Game]:
        with self.lock:
            game = self.live_game(game_id, (C.QUESTION,), index, reason='question-intro')
            if game is None:
                return None
            if game.current_question.is_mystery_box:
                return self._commit(replace(game, status=C.MYSTERY_BOX), 'mystery_box')
            return self._enter_answering(game)

    def _enter_answering(self, game: Game) -> Game:
        index = game.current_question_index
        settings = game.settings
        if settings.enable_traps and settings.trap_frequency and (index + 1) % settings.trap_frequency == 0:
            game = replace(game, active_traps=game.active_traps + [generate_random_trap(self.rng)])
        game = self._commit(replace(game, status=C.ANSWERING, question_start_time=self.clock()), 'answering')
        self.bots.schedule_answers(game)
        if self.auto_reveal:
            self._schedule(game.id, 'question', game.current_question.time_limit, self._time_up, game.id, index)
        return game

    def _time_up(self, game_id: str, index: int) -> Optional[Game]:
        with self.lock:
            game = self.live_game(game_id, (C.ANSWERING,), index, reason='time-up')
            if game is None:
                return None
            return self._reveal(game)

    def submit_answer(self, game_id: str, player_id: str, option_index: int) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            player = self._player(game, player_id)
            if game.status != C.ANSWERING or player.has_answered:
                return game
            question = game.current_question
            if not 0 <= int(option_index) < len(question.options):
                raise InvalidAction(f"Answer must be between 0 and {len(question.options) - 1}")
            return self.record_answer(game, player_id, int(option_index))

    def record_answer(self, game: Game, player_id: str, option_index: int) -> Game:
        """Score one answer for the current question. Callers have already
        checked the race is answering and the player has not answered."""
        before = game.players[player_id]
        question = game.current_question
        is_correct = option_index == question.correct_index
        now = self.clock()
        elapsed = max(0.0, now - (game.question_start_time or now))

        player = apply_answer(before, question, is_correct, game.settings.track_length, game.finished_count())
        player = replace(
            player,
            current_answer=option_index,
            answer_time=elapsed,
            total_answer_time=before.total_answer_time + elapsed,
        )
        if earns_milestone_reward(before, question, is_correct):
            player = replace(player, total_points=player.total_points + C.MILESTONE_BONUS_POINTS)
            player = add_to_inventory(player, *random_item(self.rng, game.settings.enable_traps))
        game = game.with_player(player)
        if player.distance > before.distance:
            game = check_and_trigger(game, player_id, before.distance, player.distance,
                                     before.has_shield, self.escape_taps_required)
        game = self._commit(update_team_scores(game), 'answer')
        self._after_effects(game, player_id)
        return game

    def _after_effects(self, game: Game, player_id: str) -> None:
        player = game.players.get(player_id) if game else None
        if player is not None and player.is_bot and player.is_escaping:
            self.bots.schedule_escape(game.id, player_id)

    def reveal_answer(self, game_id: str, caller_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._require_host(game, caller_id)
            if game.status != C.ANSWERING:
                return game
            return self._reveal(game)

    def _reveal(self, game: Game) -> Game:
        timers = self._timers[game.id]
        timers.cancel_group('bots')
        timers.cancel_group('question')
        return self._commit(replace(game, status=C.REVEALING), 'revealed')

    def next_question(self, game_id: str, caller_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._require_host(game, caller_id)
            if game.status not in C.QUESTION_CYCLE_STATUSES:
                return game
            timers = self._timers[game.id]
            timers.cancel_group('bots')
            timers.cancel_group('question')

            racers = game.active_players()
            everyone_finished = bool(racers) and all(p.is_finished for p in racers)
            if everyone_finished or game.is_last_question:
                return self._finish(game)

            players = {
                pid: replace(p, current_answer=None, answer_time=None) for pid, p in game.players.items()
            }
            return self._show_question(replace(game, players=players), game.current_question_index + 1)

    def _finish(self, game: Game) -> Game:
        self._timers[game.id].cancel_all()
        game = update_team_scores(game)
        game = replace(game, status=C.FINISHED, finished_at=self.clock())
        game = replace(game, results=compute_results(game))
        logger.info(
            f"[race-finish] game={game.id} question={game.current_question_index + 1}/{len(game.questions)} "
            f"finished={game.finished_count()}"
        )
        return self._commit(game, 'finished')

    # ------------------------------------------------------------------
    # Mystery boxes, items, traps
    # ------------------------------------------------------------------

    def open_mystery_box(self, game_id: str, player_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._player(game, player_id)
            if game.status != C.MYSTERY_BOX:
                return game
            question = game.current_question
            box = question.mystery_box
            if box is not None and not box.is_opened:
                game = apply_special_feature(game, player_id, box.reward, self.rng, self.escape_taps_required)
                questions = list(game.questions)
                questions[game.current_question_index] = replace(question, mystery_box=replace(box, is_opened=True))
                game = replace(game, questions=questions)
                logger.info(f"[mystery-box] game={game.id} player={player_id} reward={box.reward}")
            return self._enter_answering(update_team_scores(game))

    def use_inventory_item(self, game_id: str, player_id: str, item_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._player(game, player_id)
            if game.status not in C.QUESTION_CYCLE_STATUSES:
                return game
            updated = use_inventory_item(game, player_id, item_id, self.rng, self.escape_taps_required)
            if updated is game:
                return game
            return self._commit(update_team_scores(updated), 'item_used')

    def place_trap(self, game_id: str, player_id: str, trap_type: str, position: float) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._player(game, player_id)
            if game.status not in C.QUESTION_CYCLE_STATUSES:
                return game
            updated = place_trap_item(game, player_id, trap_type, float(position))
            if updated is game:
                return game
            logger.info(f"[trap-place] game={game.id} player={player_id} type={trap_type} position={position}")
            return self._commit(updated, 'trap_placed')

    def spawn_random_trap(self, game_id: str, caller_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            self._require_host(game, caller_id)
            if not game.settings.enable_traps or game.status == C.FINISHED:
                return game
            trap = generate_random_trap(self.rng)
            return self._commit(replace(game, active_traps=game.active_traps + [trap]), 'trap_spawned')

    def handle_escape_tap(self, game_id: str, player_id: str) -> Game:
        with self.lock:
            game = self.get_game(game_id)
            player = self._player(game, player_id)
            if game.status == C.FINISHED or not player.is_escaping:
                return game
            return self._commit(game.with_player(escape_tap(player)), 'escape_tap')
