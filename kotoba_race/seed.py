"""Starter data loaded by ``flask db-reset``."""

SEED_USERS = [
    ('sensei', 'teacher'),
    ('testuser1', 'student'),
    ('testuser2', 'student'),
    ('testuser3', 'student'),
]

# (word, reading, meaning, level)
SEED_VOCABULARY = [
    ('水', 'みず', 'water', 'N5'),
    ('火', 'ひ', 'fire', 'N5'),
    ('山', 'やま', 'mountain', 'N5'),
    ('川', 'かわ', 'river', 'N5'),
    ('犬', 'いぬ', 'dog', 'N5'),
    ('猫', 'ねこ', 'cat', 'N5'),
    ('本', 'ほん', 'book', 'N5'),
    ('車', 'くるま', 'car', 'N5'),
    ('雨', 'あめ', 'rain', 'N5'),
    ('花', 'はな', 'flower', 'N5'),
    ('魚', 'さかな', 'fish', 'N5'),
    ('空', 'そら', 'sky', 'N5'),
    ('学校', 'がっこう', 'school', 'N5'),
    ('先生', 'せんせい', 'teacher', 'N5'),
    ('友達', 'ともだち', 'friend', 'N5'),
    ('電車', 'でんしゃ', 'train', 'N5'),
    ('経験', 'けいけん', 'experience', 'N4'),
    ('準備', 'じゅんび', 'preparation', 'N4'),
    ('季節', 'きせつ', 'season', 'N4'),
    ('約束', 'やくそく', 'promise', 'N4'),
    ('世界', 'せかい', 'world', 'N4'),
    ('意見', 'いけん', 'opinion', 'N4'),
]
