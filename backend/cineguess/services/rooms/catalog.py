from sqlalchemy import func

from cineguess.exceptions import InsufficientMovies
from cineguess.models import Movie
from cineguess.services.rooms.store import surface_io_errors


class MovieCatalog:
    """Random movie picks for new rooms, read from the ``movie`` table."""

    @surface_io_errors
    def sample(self, n):
        movies = Movie.query.order_by(func.random()).limit(n).all()
        if len(movies) < n:
            raise InsufficientMovies(n, len(movies))
        return [m.to_dict() for m in movies]
