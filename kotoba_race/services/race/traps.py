"""Track hazards: spawning, placement, collision and the sinkhole escape."""

import uuid
from dataclasses import replace
from typing import Optional

from . import constants as C
from .models import ActiveTrapEffect, Game, Player, Trap, is_immobilized


def generate_random_trap(rng, min_position: float = C.TRAP_SPAWN_MIN,
                         max_position: float = C.TRAP_SPAWN_MAX) -> Trap:
    position = min_position + rng.random() * (max_position - min_position)
    return Trap(id=uuid.uuid4().hex, type=rng.choice(C.TRAP_TYPES), position=position)


def placement_bounds(distance: float):
    return max(distance + C.TRAP_PLACE_MIN_OFFSET, C.TRAP_PLACE_MIN), C.TRAP_PLACE_MAX


def can_place_at(player: Player, position: float) -> bool:
    low, high = placement_bounds(player.distance)
    return low <= position <= high


def find_collision(game: Game, old_distance: float, new_distance: float) -> Optional[Trap]:
    for trap in game.active_traps:
        if trap.is_active and old_distance < trap.position <= new_distance:
            return trap
    return None


def without_trap(game: Game, trap_id: str) -> Game:
    return replace(game, active_traps=[t for t in game.active_traps if t.id != trap_id])


def trigger_trap(game: Game, player_id: str, trap: Trap, shielded: bool,
                 escape_taps_required: int = C.ESCAPE_TAPS_REQUIRED) -> Game:
    """Spring ``trap`` on a player. A shield only removes the trap."""
    game = without_trap(game, trap.id)
    player = game.players.get(player_id)
    if player is None or shielded:
        return game

    effect_def = C.TRAPS[trap.type]['effect']
    effect = ActiveTrapEffect(
        trap_type=trap.type,
        remaining_rounds=effect_def['duration'],
        escape_required=escape_taps_required if effect_def['escape_required'] else None,
    )
    player = replace(
        player,
        trap_effects=player.trap_effects + [effect],
        is_frozen=player.is_frozen or effect_def['immobilize'],
        traps_hit=player.traps_hit + 1,
    )
    if effect_def['escape_required']:
        player = replace(player, is_escaping=True, escape_progress=0.0)
    return game.with_player(player)


def check_and_trigger(game: Game, player_id: str, old_distance: float, new_distance: float,
                      shielded: bool, escape_taps_required: int = C.ESCAPE_TAPS_REQUIRED) -> Game:
    trap = find_collision(game, old_distance, new_distance)
    if trap is None:
        return game
    return trigger_trap(game, player_id, trap, shielded, escape_taps_required)


def escape_tap(player: Player) -> Player:
    """One tap in the sinkhole mini-game. Returns the player unchanged when
    there is nothing to escape from."""
    sinkhole = next((e for e in player.trap_effects if e.escape_required), None)
    if not player.is_escaping or sinkhole is None:
        return player

    taps = sinkhole.escape_taps + 1
    progress = min(100.0, taps / sinkhole.escape_required * 100)
    if taps < sinkhole.escape_required:
        effects = [replace(e, escape_taps=taps) if e is sinkhole else e for e in player.trap_effects]
        return replace(player, trap_effects=effects, escape_progress=progress)

    effects = [e for e in player.trap_effects if e is not sinkhole]
    escaped = replace(player, trap_effects=effects, escape_progress=progress, is_escaping=False)
    return replace(escaped, is_frozen=is_immobilized(escaped))
