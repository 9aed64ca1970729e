"""Turn a vocabulary pool into race questions."""

import uuid
from typing import Dict, List, Sequence

from . import constants as C
from .exceptions import InsufficientQuestionPool
from .models import MysteryBox, Question


def difficulty_for(index: int, count: int) -> str:
    if index < count * C.EASY_SHARE:
        return 'easy'
    if index < count * C.MEDIUM_SHARE:
        return 'medium'
    return 'hard'


def _distractors(item: Dict, pool: Sequence[Dict], rng) -> List[str]:
    seen = {item['meaning']}
    meanings = []
    for other in pool:
        if other['meaning'] not in seen:
            seen.add(other['meaning'])
            meanings.append(other['meaning'])
    return rng.sample(meanings, C.OPTION_COUNT - 1)


def build_questions(items: Sequence[Dict], count: int, time_limit: int,
                    mystery_box_frequency: int, milestone_frequency: int, rng) -> List[Question]:
    """Build ``count`` questions from pool items (``prompt``/``meaning`` dicts).

    Every Nth question (1-based) is a mystery box; every Mth that is not a
    mystery box is a milestone with doubled speed bonus.
    """
    pool = [i for i in items if i.get('prompt') and i.get('meaning')]
    distinct_meanings = {i['meaning'] for i in pool}
    required = max(count, C.OPTION_COUNT)
    if count < 1 or len(pool) < count or len(distinct_meanings) < C.OPTION_COUNT:
        raise InsufficientQuestionPool(required, len(pool))

    chosen = list(pool)
    rng.shuffle(chosen)
    chosen = chosen[:count]

    questions = []
    for index, item in enumerate(chosen):
        number = index + 1
        is_mystery_box = bool(mystery_box_frequency) and number % mystery_box_frequency == 0
        is_milestone = bool(milestone_frequency) and number % milestone_frequency == 0 and not is_mystery_box
        difficulty = difficulty_for(index, count)

        options = [item['meaning']] + _distractors(item, pool, rng)
        rng.shuffle(options)

        speed_bonus = C.SPEED_BONUS_BY_DIFFICULTY[difficulty]
        if is_milestone:
            speed_bonus *= C.MILESTONE_SPEED_MULTIPLIER

        questions.append(Question(
            id=uuid.uuid4().hex,
            text=item['prompt'],
            options=options,
            correct_index=options.index(item['meaning']),
            difficulty=difficulty,
            time_limit=time_limit,
            speed_bonus=speed_bonus,
            is_mystery_box=is_mystery_box,
            is_milestone=is_milestone,
            mystery_box=MysteryBox(difficulty, rng.choice(C.FEATURE_TYPES)) if is_mystery_box else None,
        ))
    return questions
