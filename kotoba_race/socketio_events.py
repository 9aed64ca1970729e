from flask_socketio import join_room, leave_room, emit
from flask import current_app
from kotoba_race import socketio
from kotoba_race.services.race import Game, RaceError


def _room(code: str) -> str:
    return f"race:{code}"


def broadcast_race_event(event: str, game: Game) -> None:
    """Engine listener: push the authoritative race state to its room.

    Called from request handlers and from timer callbacks alike, so it uses
    ``socketio.emit`` rather than the request-bound ``emit``.
    """
    if event == 'discarded':
        socketio.emit('race_discarded', {'code': game.code, 'game_id': game.id},
                      to=_room(game.code), namespace='/ws')
        return
    socketio.emit('state_update', {'event': event, 'game': game.to_dict()},
                  to=_room(game.code), namespace='/ws')


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_join_race(data):
    code = str((data or {}).get('code') or '').strip()
    if not code:
        emit('error', {'message': 'code is required'})
        return
    room = _room(code)
    join_room(room)
    emit('joined', {'room': room})
    # late subscribers get the current state straight away
    try:
        game = current_app.extensions['race_engine'].get_game_by_code(code)
    except RaceError:
        return
    emit('state_update', {'event': 'sync', 'game': game.to_dict()})


def handle_leave_race(data):
    code = str((data or {}).get('code') or '').strip()
    if not code:
        emit('error', {'message': 'code is required'})
        return
    room = _room(code)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_race', handle_join_race, namespace=namespace)
        socketio.on_event('leave_race', handle_leave_race, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
