from typing import Any, Dict, List

from .models import Game, Player


def ranking_key(player: Player):
    # finished first by finish position, then the rest by distance travelled
    if player.is_finished:
        return (0, player.finish_position or 0, 0.0)
    return (1, 0, -player.distance)


def player_result(player: Player, position: int) -> Dict[str, Any]:
    answers = player.total_answers
    return {
        'player_id': player.id,
        'display_name': player.display_name,
        'avatar': player.avatar,
        'is_bot': player.is_bot,
        'vehicle': player.vehicle.to_dict(),
        'team_id': player.team_id,
        'position': position,
        'distance': player.distance,
        'is_finished': player.is_finished,
        'finish_position': player.finish_position,
        'correct_answers': player.correct_answers,
        'total_answers': answers,
        'accuracy': (player.correct_answers / answers) if answers else 0,
        'average_time': (player.total_answer_time / answers) if answers else 0,
        'points': player.total_points,
        'features_used': player.features_used,
        'traps_placed': player.traps_placed,
        'traps_hit': player.traps_hit,
    }


def team_rankings(game: Game) -> List[Dict[str, Any]]:
    rows = []
    for team in (game.teams or {}).values():
        members = [game.players[m] for m in team.members if m in game.players]
        rows.append({
            'team_id': team.id,
            'name': team.name,
            'color_key': team.color_key,
            'emoji': team.emoji,
            'members': list(team.members),
            'total_distance': sum(p.distance for p in members),
            'total_points': sum(p.total_points for p in members),
        })
    rows.sort(key=lambda r: r['total_distance'], reverse=True)
    for position, row in enumerate(rows, start=1):
        row['position'] = position
    return rows


def compute_results(game: Game) -> Dict[str, Any]:
    """Final standings for a finished race."""
    ranked = sorted(game.players.values(), key=ranking_key)
    return {
        'game_id': game.id,
        'rankings': [player_result(p, i) for i, p in enumerate(ranked, start=1)],
        'team_rankings': team_rankings(game) if game.teams else None,
        'total_questions': len(game.questions),
        'race_type': game.settings.race_type,
        'track_length': game.settings.track_length,
    }
