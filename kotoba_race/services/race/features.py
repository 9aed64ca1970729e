"""Inventory and special features (power-ups)."""

import uuid
from dataclasses import replace
from typing import Optional

from . import constants as C
from .models import ActiveFeature, Game, InventoryItem, Player, Trap, with_derived_flags
from .scoring import move_to
from .traps import can_place_at, check_and_trigger


def unused_items(player: Player):
    return [item for item in player.inventory if not item.is_used]


def add_to_inventory(player: Player, item_type: str, category: str) -> Player:
    """Grant an item. Silently ignored once the inventory is full."""
    if len(unused_items(player)) >= C.MAX_INVENTORY:
        return player
    item = InventoryItem(id=uuid.uuid4().hex, type=item_type, category=category)
    return replace(player, inventory=player.inventory + [item])


def random_item(rng, allow_traps: bool):
    pool = [(f, C.POWERUP) for f in C.FEATURE_TYPES]
    if allow_traps:
        pool += [(t, C.TRAP_ITEM) for t in C.TRAP_TYPES]
    return rng.choice(pool)


def _opponents(game: Game, caster_id: str):
    return [p for p in game.active_players() if p.id != caster_id]


def apply_special_feature(game: Game, caster_id: str, feature_type: str, rng,
                          escape_taps_required: int = C.ESCAPE_TAPS_REQUIRED) -> Game:
    caster = game.players.get(caster_id)
    if caster is None or feature_type not in C.SPECIAL_FEATURES:
        return game
    duration = C.SPECIAL_FEATURES[feature_type]['duration']
    caster = replace(caster, features_used=caster.features_used + 1)

    if feature_type == C.TELEPORT:
        old = caster.distance
        moved = move_to(caster, old + C.TELEPORT_DISTANCE, game.finished_count())
        game = game.with_player(moved)
        return check_and_trigger(game, caster_id, old, moved.distance, caster.has_shield, escape_taps_required)

    if feature_type == C.SLOW_OTHERS:
        for opponent in _opponents(game, caster_id):
            if opponent.has_shield:
                continue
            slowed = max(opponent.vehicle.base_speed, opponent.current_speed * C.SLOW_OTHERS_FACTOR)
            game = game.with_player(replace(opponent, current_speed=slowed))
        caster = replace(caster, active_features=caster.active_features + [ActiveFeature(feature_type, duration)])
        return game.with_player(caster)

    if feature_type == C.FREEZE:
        game = game.with_player(caster)
        targets = [p for p in _opponents(game, caster_id) if not p.has_shield and not p.is_finished]
        if not targets:
            return game
        target = rng.choice(targets)
        frozen = replace(
            target,
            is_frozen=True,
            active_features=target.active_features + [ActiveFeature(C.FREEZE, duration)],
        )
        return game.with_player(frozen)

    # shield, speed_boost, double_speed: buffs on the caster
    caster = replace(caster, active_features=caster.active_features + [ActiveFeature(feature_type, duration)])
    return game.with_player(with_derived_flags(caster))


def use_inventory_item(game: Game, player_id: str, item_id: str, rng,
                       escape_taps_required: int = C.ESCAPE_TAPS_REQUIRED) -> Game:
    """Power-ups fire immediately and leave the inventory. Trap items are
    only selected here; ``place_trap`` consumes them."""
    player = game.players.get(player_id)
    if player is None:
        return game
    item = next((i for i in unused_items(player) if i.id == item_id), None)
    if item is None:
        return game

    if item.category == C.TRAP_ITEM:
        return game.with_player(replace(player, pending_trap_item_id=item.id))

    player = replace(player, inventory=[i for i in player.inventory if i.id != item.id])
    game = game.with_player(player)
    return apply_special_feature(game, player_id, item.type, rng, escape_taps_required)


def _trap_item(player: Player, trap_type: str) -> Optional[InventoryItem]:
    candidates = [i for i in unused_items(player) if i.category == C.TRAP_ITEM and i.type == trap_type]
    for item in candidates:
        if item.id == player.pending_trap_item_id:
            return item
    return candidates[0] if candidates else None


def place_trap(game: Game, player_id: str, trap_type: str, position: float) -> Game:
    """Place a trap from inventory ahead of the player. Invalid positions or
    a missing item leave the game untouched."""
    player = game.players.get(player_id)
    if player is None:
        return game
    item = _trap_item(player, trap_type)
    if item is None or not can_place_at(player, position):
        return game

    trap = Trap(id=uuid.uuid4().hex, type=trap_type, position=float(position), placed_by=player_id)
    player = replace(
        player,
        inventory=[i for i in player.inventory if i.id != item.id],
        pending_trap_item_id=None,
        traps_placed=player.traps_placed + 1,
    )
    game = game.with_player(player)
    return replace(game, active_traps=game.active_traps + [trap])
