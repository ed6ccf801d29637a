from cineguess import db
from cineguess.models import Movie

_UNSPLASH = 'https://images.unsplash.com/{}?auto=format&fit=crop&q=80&w=1200'

INITIAL_MOVIES = [
    ('1', 'Interstellar', 'photo-1446776811953-b23d57bd21aa', 2014, 'Sci-Fi'),
    ('2', 'The Dark Knight', 'photo-1478720568477-152d9b164e26', 2008, 'Action'),
    ('3', 'Inception', 'photo-1536440136628-849c177e76a1', 2010, 'Sci-Fi'),
    ('4', 'Blade Runner 2049', 'photo-1614728263952-84ea256f9679', 2017, 'Sci-Fi'),
    ('5', 'Dune', 'photo-1506466010722-395aa2bef877', 2021, 'Sci-Fi'),
    ('6', 'Mad Max: Fury Road', 'photo-1533613220915-609f661a6fe1', 2015, 'Action'),
    ('7', 'Arrival', 'photo-1451187580459-43490279c0fa', 2016, 'Sci-Fi'),
    ('8', 'The Matrix', 'photo-1550751827-4bd374c3f58b', 1999, 'Action'),
    ('9', 'Spider-Man: Into the Spider-Verse', 'photo-1635805737707-575885ab0820', 2018, 'Animation'),
    ('10', 'The Grand Budapest Hotel', 'photo-1518709268805-4e9042af9f23', 2014, 'Comedy'),
    ('11', 'Pulp Fiction', 'photo-1594909122845-11baa439b7bf', 1994, 'Crime'),
    ('12', 'The Shawshank Redemption', 'photo-1534447677768-be436bb09401', 1994, 'Drama'),
    ('13', 'Parasite', 'photo-1585951237318-9ea5e175b891', 2019, 'Thriller'),
    ('14', 'Everything Everywhere All at Once', 'photo-1626814026160-2237a95fc5a0', 2022, 'Sci-Fi'),
    ('15', 'The Godfather', 'photo-1536440136628-849c177e76a1', 1972, 'Crime'),
    ('16', 'Spirited Away', 'photo-1528127269322-539801943592', 2001, 'Animation'),
    ('17', 'Gladiator', 'photo-1514539079130-25950c84af65', 2000, 'Action'),
    ('18', 'The Silence of the Lambs', 'photo-1509248961158-e54f6934749c', 1991, 'Thriller'),
    ('19', 'Jurassic Park', 'photo-1568702846914-96b3c5d2aaeb', 1993, 'Adventure'),
    ('20', 'Alien', 'photo-1446776811953-b23d57bd21aa', 1979, 'Horror'),
]


def seed_movies():
    """Insert the built-in catalog when the movie table is empty. Returns rows added."""
    if Movie.query.count():
        return 0
    for movie_id, title, photo, year, genre in INITIAL_MOVIES:
        db.session.add(Movie(
            id=movie_id,
            title=title,
            image_url=_UNSPLASH.format(photo),
            year=year,
            genre=genre,
        ))
    db.session.commit()
    return len(INITIAL_MOVIES)
