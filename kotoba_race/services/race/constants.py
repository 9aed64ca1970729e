"""Static race catalogues: vehicles, special features, traps, teams, bots."""

from typing import Dict, List


# Game statuses
WAITING = 'waiting'
STARTING = 'starting'
QUESTION = 'question'
ANSWERING = 'answering'
REVEALING = 'revealing'
MYSTERY_BOX = 'mystery_box'
FINISHED = 'finished'

QUESTION_CYCLE_STATUSES = (QUESTION, ANSWERING, REVEALING, MYSTERY_BOX)
RACING_STATUSES = (STARTING,) + QUESTION_CYCLE_STATUSES

INDIVIDUAL = 'individual'
TEAM = 'team'

BOAT = 'boat'
HORSE = 'horse'

JLPT_LEVELS = ('N5', 'N4', 'N3', 'N2', 'N1')

FINISH_LINE = 100.0
# Speed -> distance conversion: distance_gain = (speed / track_length) * DISTANCE_FACTOR
DISTANCE_FACTOR = 2.0
STREAK_BONUS_FROM = 3
STREAK_BONUS_STEP = 0.1
POINTS_PER_SPEED_BONUS = 10

MAX_INVENTORY = 3
MILESTONE_BONUS_POINTS = 50
MILESTONE_SPEED_MULTIPLIER = 2
OPTION_COUNT = 4

SPEED_BONUS_BY_DIFFICULTY = {'easy': 5, 'medium': 8, 'hard': 12}
EASY_SHARE = 0.4
MEDIUM_SHARE = 0.7

TRAP_SPAWN_MIN = 20.0
TRAP_SPAWN_MAX = 80.0
TRAP_PLACE_MIN_OFFSET = 5.0
TRAP_PLACE_MIN = 10.0
TRAP_PLACE_MAX = 95.0
ESCAPE_TAPS_REQUIRED = 10

BOT_ACCURACY_MIN = 0.6
BOT_ACCURACY_MAX = 0.8


VEHICLES: List[Dict] = [
    {'id': 'boat_basic', 'type': BOAT, 'name': 'Wooden Boat', 'emoji': '🚣', 'base_speed': 10, 'max_speed': 50, 'acceleration': 5, 'unlock_points': 0},
    {'id': 'boat_sail', 'type': BOAT, 'name': 'Sailboat', 'emoji': '⛵', 'base_speed': 15, 'max_speed': 60, 'acceleration': 6, 'unlock_points': 100},
    {'id': 'boat_speed', 'type': BOAT, 'name': 'Speedboat', 'emoji': '🚤', 'base_speed': 20, 'max_speed': 80, 'acceleration': 8, 'unlock_points': 300},
    {'id': 'boat_ship', 'type': BOAT, 'name': 'Steamship', 'emoji': '🛳️', 'base_speed': 25, 'max_speed': 100, 'acceleration': 10, 'unlock_points': 500},
    {'id': 'horse_basic', 'type': HORSE, 'name': 'Brown Horse', 'emoji': '🐴', 'base_speed': 15, 'max_speed': 60, 'acceleration': 6, 'unlock_points': 0},
    {'id': 'horse_white', 'type': HORSE, 'name': 'White Horse', 'emoji': '🦄', 'base_speed': 20, 'max_speed': 70, 'acceleration': 7, 'unlock_points': 150},
    {'id': 'horse_race', 'type': HORSE, 'name': 'Racehorse', 'emoji': '🏇', 'base_speed': 25, 'max_speed': 90, 'acceleration': 9, 'unlock_points': 400},
    {'id': 'horse_legend', 'type': HORSE, 'name': 'Pegasus', 'emoji': '🐎', 'base_speed': 30, 'max_speed': 120, 'acceleration': 12, 'unlock_points': 600},
]


# Special features (power-ups). duration=None means instant.
SPEED_BOOST = 'speed_boost'
SHIELD = 'shield'
SLOW_OTHERS = 'slow_others'
DOUBLE_SPEED = 'double_speed'
TELEPORT = 'teleport'
FREEZE = 'freeze'

SPECIAL_FEATURES: Dict[str, Dict] = {
    SPEED_BOOST: {'name': 'Speed Boost', 'description': '+20% speed for 3 rounds', 'emoji': '🚀', 'duration': 3},
    SHIELD: {'name': 'Shield', 'description': 'Immune to negative effects for 2 rounds', 'emoji': '🛡️', 'duration': 2},
    SLOW_OTHERS: {'name': 'Slow Down', 'description': 'Opponents lose 10% speed', 'emoji': '🐌', 'duration': 2},
    DOUBLE_SPEED: {'name': 'Double Speed', 'description': 'Double the next speed gain', 'emoji': '⚡', 'duration': 1},
    TELEPORT: {'name': 'Teleport', 'description': 'Jump 10% of the track', 'emoji': '✨', 'duration': None},
    FREEZE: {'name': 'Freeze', 'description': 'Freeze one opponent for a round', 'emoji': '❄️', 'duration': 1},
}
FEATURE_TYPES = list(SPECIAL_FEATURES)

SPEED_BOOST_MULTIPLIER = 1.2
DOUBLE_SPEED_MULTIPLIER = 2.0
SLOW_OTHERS_FACTOR = 0.9
TELEPORT_DISTANCE = 10.0


# Track hazards
IMPRISONMENT = 'imprisonment'
FREEZE_TRAP = 'freeze'
SINKHOLE = 'sinkhole'

TRAPS: Dict[str, Dict] = {
    IMPRISONMENT: {
        'name': 'Prison', 'emoji': '⛓️', 'description': 'Locked in place for 2 rounds',
        'effect': {'duration': 2, 'immobilize': True, 'escape_required': False},
    },
    FREEZE_TRAP: {
        'name': 'Ice Patch', 'emoji': '🧊', 'description': 'Frozen for 1 round',
        'effect': {'duration': 1, 'immobilize': True, 'escape_required': False},
    },
    SINKHOLE: {
        'name': 'Sinkhole', 'emoji': '🕳️', 'description': 'Tap repeatedly to climb out',
        'effect': {'duration': 3, 'immobilize': True, 'escape_required': True},
    },
}
TRAP_TYPES = list(TRAPS)

POWERUP = 'powerup'
TRAP_ITEM = 'trap'


TEAM_COLORS: Dict[str, Dict] = {
    'red': {'name': 'Red Team', 'color': '#e74c3c', 'emoji': '🔴'},
    'blue': {'name': 'Blue Team', 'color': '#3498db', 'emoji': '🔵'},
    'yellow': {'name': 'Yellow Team', 'color': '#f1c40f', 'emoji': '🟡'},
    'purple': {'name': 'Purple Team', 'color': '#9b59b6', 'emoji': '🟣'},
}
TEAM_COLOR_KEYS = list(TEAM_COLORS)


DEFAULT_TRACK_ZONES: List[Dict] = [
    {'start': 0, 'end': 25, 'name': 'Harbor', 'theme': 'calm'},
    {'start': 25, 'end': 50, 'name': 'Open Water', 'theme': 'waves'},
    {'start': 50, 'end': 75, 'name': 'Storm Belt', 'theme': 'storm'},
    {'start': 75, 'end': 100, 'name': 'Final Stretch', 'theme': 'sunset'},
]


BOT_NAMES = [
    'Sakura', 'Yuki', 'Hana', 'Ryu', 'Kenji', 'Akira', 'Mei', 'Kaito',
    'Sora', 'Haruki', 'Aoi', 'Rin', 'Taro', 'Yuma', 'Hinata', 'Kota',
    'Miku', 'Ren', 'Nana', 'Daiki', 'Emi', 'Takeshi', 'Momo', 'Shin',
    'Ayumi', 'Koji', 'Yui', 'Masa', 'Kira', 'Ken', 'Saki', 'Riko',
]
BOT_AVATARS = ['🤖', '🎭', '🎪', '🎨', '🎯', '🎲', '🎮', '🕹️', '👾', '🦊', '🐱', '🐼']
