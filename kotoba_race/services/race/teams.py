"""Team mode: creation, greedy balancing and derived team totals."""

from dataclasses import replace
from typing import Dict, Optional

from . import constants as C
from .models import Game, Player, Team


def create_teams(count: int) -> Dict[str, Team]:
    teams = {}
    for color_key in C.TEAM_COLOR_KEYS[:count]:
        color = C.TEAM_COLORS[color_key]
        team_id = f"team-{color_key}"
        teams[team_id] = Team(id=team_id, name=color['name'], color_key=color_key, emoji=color['emoji'])
    return teams


def smallest_team_id(teams: Dict[str, Team]) -> Optional[str]:
    """Team with the fewest members; ties go to the earlier team."""
    best = None
    for team_id, team in teams.items():
        if best is None or len(team.members) < len(teams[best].members):
            best = team_id
    return best


def add_member(teams: Dict[str, Team], team_id: str, player_id: str) -> Dict[str, Team]:
    updated = {}
    for tid, team in teams.items():
        members = [m for m in team.members if m != player_id]
        if tid == team_id:
            members.append(player_id)
        updated[tid] = replace(team, members=members)
    return updated


def remove_member(teams: Optional[Dict[str, Team]], player_id: str) -> Optional[Dict[str, Team]]:
    if not teams:
        return teams
    return {tid: replace(t, members=[m for m in t.members if m != player_id]) for tid, t in teams.items()}


def assign_player_to_team(game: Game, player_id: str, team_id: str) -> Game:
    player: Player = game.players[player_id]
    teams = add_member(game.teams, team_id, player_id)
    return replace(game.with_player(replace(player, team_id=team_id)), teams=teams)


def update_team_scores(game: Game) -> Game:
    """Recompute team totals from member players. Totals are never edited
    anywhere else."""
    if not game.teams:
        return game
    teams = {}
    for tid, team in game.teams.items():
        members = [game.players[m] for m in team.members if m in game.players]
        teams[tid] = replace(
            team,
            total_distance=sum(p.distance for p in members),
            total_points=sum(p.total_points for p in members),
        )
    return replace(game, teams=teams)
