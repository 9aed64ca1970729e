"""Race value types.

The engine treats these as values: a transition reads the current ``Game``,
builds replacements with ``dataclasses.replace`` and swaps the new ``Game``
into the registry. Nothing outside the engine holds a reference it expects to
see mutated.
"""

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional

from . import constants as C
from .exceptions import InvalidAction


@dataclass(frozen=True)
class Identity:
    """Caller identity supplied by the auth layer."""
    id: str
    display_name: str
    avatar: str = ''
    role: Optional[str] = None


@dataclass(frozen=True)
class Vehicle:
    id: str
    type: str
    name: str
    emoji: str
    base_speed: float
    max_speed: float
    acceleration: float
    unlock_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def vehicles_for(race_type: str) -> List[Vehicle]:
    return [Vehicle(**v) for v in C.VEHICLES if v['type'] == race_type]


def pick_vehicle(race_type: str, vehicle_id: Optional[str] = None) -> Vehicle:
    """Requested vehicle if it belongs to the race type, else the default one."""
    options = vehicles_for(race_type)
    for vehicle in options:
        if vehicle.id == vehicle_id:
            return vehicle
    return options[0]


_SETTING_TYPES = {
    'title': str,
    'race_type': str,
    'track_length': float,
    'question_count': int,
    'time_per_question': int,
    'mystery_box_frequency': int,
    'milestone_frequency': int,
    'max_players': int,
    'min_players': int,
    'jlpt_level': str,
    'game_mode': str,
    'team_count': int,
    'enable_traps': bool,
    'trap_frequency': int,
    'bot_count': int,
}
_TYPE_NAMES = {str: 'a string', float: 'a number', int: 'a whole number', bool: 'true or false'}


@dataclass
class RaceSettings:
    title: str = 'Japanese Race'
    race_type: str = C.BOAT
    track_length: float = 100.0
    question_count: int = 10
    time_per_question: int = 15
    mystery_box_frequency: int = 5
    milestone_frequency: int = 5
    max_players: int = 8
    min_players: int = 1
    jlpt_level: str = 'N5'
    game_mode: str = C.INDIVIDUAL
    team_count: int = 2
    enable_traps: bool = False
    trap_frequency: int = 0
    bot_count: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any], **defaults) -> 'RaceSettings':
        if data is not None and not isinstance(data, dict):
            raise InvalidAction('settings must be an object')
        known = {k: v for k, v in (data or {}).items() if k in cls.__dataclass_fields__ and v is not None}
        settings = cls(**{**defaults, **known})
        settings._coerce()
        settings._validate()
        if settings.enable_traps and not settings.trap_frequency:
            settings.trap_frequency = 3
        if settings.game_mode != C.TEAM:
            settings.team_count = 0
        else:
            settings.team_count = max(2, min(len(C.TEAM_COLOR_KEYS), settings.team_count or 2))
        return settings

    def _coerce(self) -> None:
        for name, kind in _SETTING_TYPES.items():
            value = getattr(self, name)
            try:
                if kind is bool:
                    if isinstance(value, str):
                        value = value.strip().lower() in ('1', 'true', 'yes', 'on')
                    value = bool(value)
                elif kind is str:
                    if not isinstance(value, str):
                        raise TypeError(value)
                    value = value.strip()
                else:
                    if isinstance(value, bool):
                        raise TypeError(value)
                    value = kind(value)
            except (TypeError, ValueError):
                raise InvalidAction(f"{name} must be {_TYPE_NAMES[kind]}")
            setattr(self, name, value)
        self.race_type = self.race_type.lower()
        self.game_mode = self.game_mode.lower()
        self.jlpt_level = self.jlpt_level.upper()

    def _validate(self) -> None:
        if not self.title:
            raise InvalidAction('title is required')
        if self.race_type not in (C.BOAT, C.HORSE):
            raise InvalidAction(f"race_type must be {C.BOAT} or {C.HORSE}")
        if self.game_mode not in (C.INDIVIDUAL, C.TEAM):
            raise InvalidAction(f"game_mode must be {C.INDIVIDUAL} or {C.TEAM}")
        if self.jlpt_level not in C.JLPT_LEVELS:
            raise InvalidAction(f"jlpt_level must be one of {', '.join(C.JLPT_LEVELS)}")
        if not self.track_length > 0:
            raise InvalidAction('track_length must be greater than 0')
        if self.question_count < 1:
            raise InvalidAction('question_count must be at least 1')
        if self.time_per_question < 1:
            raise InvalidAction('time_per_question must be at least 1 second')
        if self.min_players < 1 or self.min_players > self.max_players:
            raise InvalidAction('min_players must be between 1 and max_players')
        for name in ('mystery_box_frequency', 'milestone_frequency', 'trap_frequency', 'bot_count', 'team_count'):
            if getattr(self, name) < 0:
                raise InvalidAction(f"{name} cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MysteryBox:
    difficulty: str
    reward: str
    is_opened: bool = False


@dataclass
class Question:
    id: str
    text: str
    options: List[str]
    correct_index: int
    difficulty: str
    time_limit: int
    speed_bonus: float
    is_mystery_box: bool = False
    is_milestone: bool = False
    mystery_box: Optional[MysteryBox] = None

    def to_dict(self, reveal: bool = True) -> Dict[str, Any]:
        data = asdict(self)
        if not reveal:
            data['correct_index'] = None
            if data['mystery_box']:
                data['mystery_box']['reward'] = None
        return data


@dataclass
class ActiveFeature:
    type: str
    remaining_rounds: int


@dataclass
class ActiveTrapEffect:
    trap_type: str
    remaining_rounds: int
    escape_required: Optional[int] = None
    escape_taps: int = 0


@dataclass
class InventoryItem:
    id: str
    type: str
    category: str
    is_used: bool = False


@dataclass
class Trap:
    id: str
    type: str
    position: float
    placed_by: Optional[str] = None
    is_active: bool = True


@dataclass
class Team:
    id: str
    name: str
    color_key: str
    emoji: str
    members: List[str] = field(default_factory=list)
    total_distance: float = 0.0
    total_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Player:
    id: str
    display_name: str
    avatar: str
    vehicle: Vehicle
    current_speed: float
    role: Optional[str] = None
    is_bot: bool = False
    distance: float = 0.0
    correct_answers: int = 0
    total_answers: int = 0
    streak: int = 0
    active_features: List[ActiveFeature] = field(default_factory=list)
    has_shield: bool = False
    is_frozen: bool = False
    current_answer: Optional[int] = None
    answer_time: Optional[float] = None
    total_answer_time: float = 0.0
    is_finished: bool = False
    finish_position: Optional[int] = None
    total_points: int = 0
    team_id: Optional[str] = None
    trap_effects: List[ActiveTrapEffect] = field(default_factory=list)
    inventory: List[InventoryItem] = field(default_factory=list)
    pending_trap_item_id: Optional[str] = None
    is_escaping: bool = False
    escape_progress: float = 0.0
    has_left: bool = False
    features_used: int = 0
    traps_placed: int = 0
    traps_hit: int = 0

    @classmethod
    def join(cls, identity: Identity, vehicle: Vehicle, is_bot: bool = False,
             team_id: Optional[str] = None) -> 'Player':
        return cls(
            id=identity.id,
            display_name=identity.display_name,
            avatar=identity.avatar,
            role=identity.role,
            vehicle=vehicle,
            current_speed=vehicle.base_speed,
            is_bot=is_bot,
            team_id=team_id,
        )

    def has_feature(self, feature_type: str) -> bool:
        return any(f.type == feature_type for f in self.active_features)

    @property
    def has_answered(self) -> bool:
        return self.current_answer is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def with_derived_flags(player: Player) -> Player:
    """Recompute flags that are pure functions of the effect lists."""
    return replace(player, has_shield=any(f.type == C.SHIELD for f in player.active_features))


def is_immobilized(player: Player) -> bool:
    if any(f.type == C.FREEZE for f in player.active_features):
        return True
    return any(C.TRAPS[e.trap_type]['effect']['immobilize'] for e in player.trap_effects)


@dataclass
class Game:
    id: str
    code: str
    host_id: str
    settings: RaceSettings
    questions: List[Question]
    status: str = C.WAITING
    players: Dict[str, Player] = field(default_factory=dict)
    teams: Optional[Dict[str, Team]] = None
    active_traps: List[Trap] = field(default_factory=list)
    track_zones: List[Dict] = field(default_factory=lambda: list(C.DEFAULT_TRACK_ZONES))
    current_question_index: int = 0
    question_start_time: Optional[float] = None
    created_at: Optional[float] = None
    started_at: Optional[float] = None
    finished_at: Optional[float] = None
    results: Optional[Dict[str, Any]] = None

    @property
    def title(self) -> str:
        return self.settings.title

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index >= len(self.questions) - 1

    def active_players(self) -> List[Player]:
        return [p for p in self.players.values() if not p.has_left]

    def humans(self) -> List[Player]:
        return [p for p in self.active_players() if not p.is_bot]

    def finished_count(self) -> int:
        return sum(1 for p in self.players.values() if p.is_finished)

    def is_host(self, player_id: str) -> bool:
        return self.host_id == player_id

    def with_player(self, player: Player) -> 'Game':
        players = dict(self.players)
        players[player.id] = player
        return replace(self, players=players)

    def to_dict(self) -> Dict[str, Any]:
        reveal = self.status in (C.REVEALING, C.FINISHED)
        current = self.current_question
        return {
            'id': self.id,
            'code': self.code,
            'title': self.title,
            'host_id': self.host_id,
            'status': self.status,
            'settings': self.settings.to_dict(),
            'players': {pid: p.to_dict() for pid, p in self.players.items()},
            'teams': {tid: t.to_dict() for tid, t in self.teams.items()} if self.teams else None,
            'active_traps': [asdict(t) for t in self.active_traps],
            'track_zones': self.track_zones,
            'current_question_index': self.current_question_index,
            'current_question': current.to_dict(reveal=reveal) if current else None,
            'total_questions': len(self.questions),
            'question_start_time': self.question_start_time,
            'created_at': self.created_at,
            'started_at': self.started_at,
            'finished_at': self.finished_at,
            'results': self.results,
        }
