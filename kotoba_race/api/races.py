from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from kotoba_race.models import Vocabulary
from kotoba_race.services.race import RaceError, RaceSettings


races = Blueprint('races', __name__)


def _engine():
    return current_app.extensions['race_engine']


def _me() -> str:
    return str(current_user.id)


def _body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _state(game, status=200):
    return jsonify(game.to_dict()), status


@races.errorhandler(RaceError)
def handle_race_error(exc):
    current_app.logger.info(f"[race-reject] {type(exc).__name__}: {exc.message}")
    return jsonify({'error': exc.message}), exc.status_code


@races.route('', methods=['POST'])
@login_required
def create_race():
    data = _body()
    engine = _engine()
    settings = RaceSettings.from_dict(
        data.get('settings'),
        min_players=engine.min_players,
        max_players=engine.max_players,
    )
    items = [v.to_item() for v in Vocabulary.query.filter_by(jlpt_level=settings.jlpt_level).all()]
    game = engine.create_game(settings, current_user.to_identity(), items, vehicle_id=data.get('vehicle_id'))
    current_app.logger.info(f"[create] game={game.id} code={game.code} questions={len(game.questions)}")
    return _state(game, 201)


@races.route('/rooms', methods=['GET'])
@login_required
def list_rooms():
    return jsonify([
        {
            'id': g.id,
            'code': g.code,
            'title': g.title,
            'host_id': g.host_id,
            'race_type': g.settings.race_type,
            'game_mode': g.settings.game_mode,
            'jlpt_level': g.settings.jlpt_level,
            'player_count': len(g.active_players()),
            'max_players': g.settings.max_players,
        }
        for g in _engine().list_rooms()
    ])


@races.route('/<string:code>/state', methods=['GET'])
@login_required
def get_state(code):
    return _state(_engine().get_game_by_code(code))


@races.route('/<string:code>/join', methods=['POST'])
@login_required
def join_race(code):
    game = _engine().join_game(code, current_user.to_identity(), vehicle_id=_body().get('vehicle_id'))
    return _state(game)


@races.route('/<string:code>/leave', methods=['POST'])
@login_required
def leave_race(code):
    engine = _engine()
    game = engine.leave_game(engine.get_game_by_code(code).id, _me())
    if game is None:
        return jsonify({'discarded': True})
    return _state(game)


@races.route('/<string:code>/kick', methods=['POST'])
@login_required
def kick_player(code):
    target = _body().get('player_id')
    if not target:
        return jsonify({'error': 'player_id is required'}), 400
    engine = _engine()
    game = engine.kick_player(engine.get_game_by_code(code).id, _me(), str(target))
    return _state(game)


@races.route('/<string:code>', methods=['DELETE'])
@login_required
def discard_race(code):
    engine = _engine()
    game = engine.get_game_by_code(code)
    if not game.is_host(_me()):
        return jsonify({'error': 'Only the host may do that'}), 403
    engine.discard_game(game.id)
    return jsonify({'discarded': True})


@races.route('/<string:code>/bots', methods=['POST'])
@login_required
def add_bots(code):
    try:
        count = int(_body().get('count', 1))
    except (TypeError, ValueError):
        return jsonify({'error': 'count must be a number'}), 400
    engine = _engine()
    return _state(engine.add_bots(engine.get_game_by_code(code).id, _me(), count))


@races.route('/<string:code>/vehicle', methods=['POST'])
@login_required
def select_vehicle(code):
    vehicle_id = _body().get('vehicle_id')
    if not vehicle_id:
        return jsonify({'error': 'vehicle_id is required'}), 400
    engine = _engine()
    return _state(engine.select_vehicle(engine.get_game_by_code(code).id, _me(), vehicle_id))


@races.route('/<string:code>/teams', methods=['POST'])
@login_required
def assign_team(code):
    data = _body()
    team_id = data.get('team_id')
    if not team_id:
        return jsonify({'error': 'team_id is required'}), 400
    player_id = str(data.get('player_id') or _me())
    engine = _engine()
    return _state(engine.assign_player_to_team(engine.get_game_by_code(code).id, _me(), player_id, team_id))


@races.route('/<string:code>/start', methods=['POST'])
@login_required
def start_race(code):
    engine = _engine()
    return _state(engine.start_game(engine.get_game_by_code(code).id, _me()))


@races.route('/<string:code>/answer', methods=['POST'])
@login_required
def submit_answer(code):
    try:
        option_index = int(_body()['option_index'])
    except (KeyError, TypeError, ValueError):
        return jsonify({'error': 'option_index is required'}), 400
    engine = _engine()
    return _state(engine.submit_answer(engine.get_game_by_code(code).id, _me(), option_index))


@races.route('/<string:code>/reveal', methods=['POST'])
@login_required
def reveal_answer(code):
    engine = _engine()
    return _state(engine.reveal_answer(engine.get_game_by_code(code).id, _me()))


@races.route('/<string:code>/next', methods=['POST'])
@login_required
def next_question(code):
    engine = _engine()
    return _state(engine.next_question(engine.get_game_by_code(code).id, _me()))


@races.route('/<string:code>/mystery-box', methods=['POST'])
@login_required
def open_mystery_box(code):
    engine = _engine()
    return _state(engine.open_mystery_box(engine.get_game_by_code(code).id, _me()))


@races.route('/<string:code>/inventory/<string:item_id>/use', methods=['POST'])
@login_required
def use_item(code, item_id):
    engine = _engine()
    return _state(engine.use_inventory_item(engine.get_game_by_code(code).id, _me(), item_id))


@races.route('/<string:code>/traps', methods=['POST'])
@login_required
def place_trap(code):
    data = _body()
    trap_type = data.get('trap_type')
    try:
        position = float(data['position'])
    except (KeyError, TypeError, ValueError):
        return jsonify({'error': 'trap_type and position are required'}), 400
    if not trap_type:
        return jsonify({'error': 'trap_type and position are required'}), 400
    engine = _engine()
    return _state(engine.place_trap(engine.get_game_by_code(code).id, _me(), trap_type, position))


@races.route('/<string:code>/traps/spawn', methods=['POST'])
@login_required
def spawn_trap(code):
    engine = _engine()
    return _state(engine.spawn_random_trap(engine.get_game_by_code(code).id, _me()))


@races.route('/<string:code>/escape', methods=['POST'])
@login_required
def escape_tap(code):
    engine = _engine()
    return _state(engine.handle_escape_tap(engine.get_game_by_code(code).id, _me()))


@races.route('/<string:code>/results', methods=['GET'])
@login_required
def get_results(code):
    engine = _engine()
    results = engine.get_results(engine.get_game_by_code(code).id)
    if results is None:
        return jsonify({'error': 'This race has not finished yet'}), 400
    return jsonify(results)
