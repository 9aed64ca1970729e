from kotoba_race import db, bcrypt
from flask_login import UserMixin
from kotoba_race.services.race import Identity
from kotoba_race.services.race.constants import JLPT_LEVELS


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    display_name = db.Column(db.String(64), nullable=True)
    avatar = db.Column(db.String(16), nullable=False, default='🙂')
    role = db.Column(db.String(16), nullable=False, default='student')  # student, teacher

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_identity(self) -> Identity:
        """Identity the race engine sees for this account."""
        return Identity(
            id=str(self.id),
            display_name=self.display_name or self.username,
            avatar=self.avatar or '',
            role=self.role,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'display_name': self.display_name or self.username,
            'avatar': self.avatar,
            'role': self.role,
        }


class Vocabulary(db.Model):
    """One entry of the question pool."""
    __tablename__ = 'vocabulary'
    id = db.Column(db.Integer, primary_key=True)
    word = db.Column(db.String(64), nullable=False)
    reading = db.Column(db.String(64), nullable=True)
    meaning = db.Column(db.String(128), nullable=False)
    jlpt_level = db.Column(db.String(2), nullable=False, default='N5', index=True)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    def to_item(self):
        # shape consumed by build_questions
        prompt = f"{self.word}（{self.reading}）" if self.reading and self.reading != self.word else self.word
        return {'prompt': prompt, 'meaning': self.meaning}

    def to_dict(self):
        return {
            'id': self.id,
            'word': self.word,
            'reading': self.reading,
            'meaning': self.meaning,
            'jlpt_level': self.jlpt_level,
        }
