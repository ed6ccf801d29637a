from flask import Blueprint, jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from cineguess import db
from cineguess.models import Movie

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the CineGuess game server!'})


@main.route('/api/health')
def health():
    try:
        db.session.execute(text('SELECT 1'))
    except OperationalError as exc:
        db.session.rollback()
        current_app.logger.error(f"[health] database check failed: {exc}")
        return jsonify({'status': 'error', 'database': 'disconnected'}), 503
    return jsonify({'status': 'ok', 'database': 'connected'})


@main.route('/api/movies')
def list_movies():
    movies = Movie.query.order_by(Movie.title).all()
    return jsonify([m.to_dict() for m in movies])
