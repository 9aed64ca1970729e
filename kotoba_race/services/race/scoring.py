"""Answer scoring and movement.

Pure functions: they take a ``Player`` and return a new one. Human answers
and bot answers both go through ``apply_answer`` so there is one set of
movement rules.
"""

from dataclasses import replace
from typing import List

from . import constants as C
from .models import ActiveFeature, ActiveTrapEffect, Player, Question, with_derived_flags


def speed_gain(player: Player, question: Question, streak: int) -> float:
    gain = float(question.speed_bonus)
    if player.has_feature(C.DOUBLE_SPEED):
        gain *= C.DOUBLE_SPEED_MULTIPLIER
    if player.has_feature(C.SPEED_BOOST):
        gain *= C.SPEED_BOOST_MULTIPLIER
    if streak >= C.STREAK_BONUS_FROM:
        gain *= 1 + C.STREAK_BONUS_STEP * (streak - 2)
    return gain


def distance_gain(speed: float, track_length: float) -> float:
    return (speed / track_length) * C.DISTANCE_FACTOR


def answer_points(question: Question, streak: int) -> int:
    return int(round(question.speed_bonus * C.POINTS_PER_SPEED_BONUS * (1 + streak * C.STREAK_BONUS_STEP)))


def move_to(player: Player, distance: float, finished_count: int) -> Player:
    """Set distance (clamped to the finish line) and record the finish once."""
    distance = max(player.distance, min(C.FINISH_LINE, distance))
    player = replace(player, distance=distance)
    if distance >= C.FINISH_LINE and not player.is_finished:
        player = replace(player, is_finished=True, finish_position=finished_count + 1)
    return player


def tick_features(features: List[ActiveFeature]) -> List[ActiveFeature]:
    ticked = [ActiveFeature(f.type, f.remaining_rounds - 1) for f in features]
    return [f for f in ticked if f.remaining_rounds > 0]


def tick_trap_effects(effects: List[ActiveTrapEffect]) -> List[ActiveTrapEffect]:
    """Round-based expiry. Sinkholes only end through the escape mini-game."""
    remaining = []
    for effect in effects:
        if C.TRAPS[effect.trap_type]['effect']['escape_required']:
            remaining.append(effect)
            continue
        if effect.remaining_rounds - 1 > 0:
            remaining.append(replace(effect, remaining_rounds=effect.remaining_rounds - 1))
    return remaining


def apply_answer(player: Player, question: Question, is_correct: bool,
                 track_length: float, finished_count: int) -> Player:
    """Apply one answer attempt and return the updated player.

    A frozen player's attempt is consumed without movement or points. Feature
    and trap-effect durations tick down on every attempt, and ``is_frozen``
    is cleared by every attempt whatever effects are still running.
    """
    streak = player.streak + 1 if is_correct else 0
    speed = player.current_speed
    points = 0
    moved = player
    if is_correct and not player.is_frozen:
        speed = min(player.vehicle.max_speed, speed + speed_gain(player, question, streak))
        moved = move_to(player, player.distance + distance_gain(speed, track_length), finished_count)
        points = answer_points(question, streak)

    updated = replace(
        moved,
        streak=streak,
        current_speed=speed,
        correct_answers=player.correct_answers + (1 if is_correct else 0),
        total_answers=player.total_answers + 1,
        total_points=player.total_points + points,
        active_features=tick_features(player.active_features),
        trap_effects=tick_trap_effects(player.trap_effects),
        is_frozen=False,
    )
    return with_derived_flags(updated)


def earns_milestone_reward(player_before: Player, question: Question, is_correct: bool) -> bool:
    return bool(question.is_milestone and is_correct and not player_before.is_frozen)
