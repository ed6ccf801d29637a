from datetime import datetime, timezone

from cineguess import db


def _utcnow():
    return datetime.now(timezone.utc)


class Movie(db.Model):
    __tablename__ = 'movie'
    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    image_url = db.Column(db.Text, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    genre = db.Column(db.String(64), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'imageUrl': self.image_url,
            'year': self.year,
            'genre': self.genre,
        }


class RoomRecord(db.Model):
    """One row per live room; ``state`` holds the JSON-encoded snapshot."""
    __tablename__ = 'room'
    id = db.Column(db.String(32), primary_key=True)
    state = db.Column(db.Text, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
