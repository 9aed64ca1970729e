from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from kotoba_race import db
from kotoba_race.models import Vocabulary, JLPT_LEVELS


vocabulary = Blueprint('vocabulary', __name__)


def _require_teacher():
    if current_user.role != 'teacher':
        return jsonify({'error': 'Only teachers can edit the vocabulary pool'}), 403
    return None


def _level(value):
    level = (value or 'N5').upper()
    return level if level in JLPT_LEVELS else None


@vocabulary.route('', methods=['GET'])
@login_required
def list_vocabulary():
    query = Vocabulary.query
    level = request.args.get('level')
    if level:
        query = query.filter_by(jlpt_level=level.upper())
    return jsonify([v.to_dict() for v in query.order_by(Vocabulary.id).all()])


@vocabulary.route('', methods=['POST'])
@login_required
def create_vocabulary():
    denied = _require_teacher()
    if denied:
        return denied
    data = request.get_json(silent=True) or {}
    entries = data if isinstance(data, list) else [data]

    created = []
    for entry in entries:
        word = (entry.get('word') or '').strip()
        meaning = (entry.get('meaning') or '').strip()
        level = _level(entry.get('jlpt_level'))
        if not word or not meaning:
            return jsonify({'error': 'word and meaning are required'}), 400
        if level is None:
            return jsonify({'error': f"jlpt_level must be one of {', '.join(JLPT_LEVELS)}"}), 400
        item = Vocabulary(
            word=word,
            reading=(entry.get('reading') or '').strip() or None,
            meaning=meaning,
            jlpt_level=level,
            created_by=current_user.id,
        )
        db.session.add(item)
        created.append(item)
    db.session.commit()
    current_app.logger.info(f"[vocab-add] user={current_user.id} count={len(created)}")
    if isinstance(data, list):
        return jsonify([v.to_dict() for v in created]), 201
    return jsonify(created[0].to_dict()), 201


@vocabulary.route('/<int:vocab_id>', methods=['PUT'])
@login_required
def update_vocabulary(vocab_id):
    denied = _require_teacher()
    if denied:
        return denied
    item = db.session.get(Vocabulary, vocab_id)
    if item is None:
        return jsonify({'error': 'Vocabulary entry not found'}), 404
    data = request.get_json(silent=True) or {}
    if 'jlpt_level' in data:
        level = _level(data.get('jlpt_level'))
        if level is None:
            return jsonify({'error': f"jlpt_level must be one of {', '.join(JLPT_LEVELS)}"}), 400
        item.jlpt_level = level
    for field in ('word', 'reading', 'meaning'):
        if field in data:
            setattr(item, field, (data.get(field) or '').strip() or None)
    if not item.word or not item.meaning:
        db.session.rollback()
        return jsonify({'error': 'word and meaning are required'}), 400
    db.session.commit()
    return jsonify(item.to_dict())


@vocabulary.route('/<int:vocab_id>', methods=['DELETE'])
@login_required
def delete_vocabulary(vocab_id):
    denied = _require_teacher()
    if denied:
        return denied
    item = db.session.get(Vocabulary, vocab_id)
    if item is None:
        return jsonify({'error': 'Vocabulary entry not found'}), 404
    db.session.delete(item)
    db.session.commit()
    return jsonify({'success': True})
