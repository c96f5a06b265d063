from loguru import logger
from sqlalchemy import select

from errors import DomainError, ErrorKind
from models import Movie
from store import TransactionalStore

MOVIE_FIELDS = ("title", "genre", "duration", "rating", "release_year")
UPDATABLE_FIELDS = ("genre", "duration", "rating", "release_year")
DUPLICATE_MESSAGE = "A movie with the same title, release year, genre, duration, and rating already exists."


class MovieCatalog:

    def __init__(self, store=None):
        self.store = store or TransactionalStore.from_app()

    def list_all(self):
        return self.store.list_where(Movie, order_by=(Movie.title, Movie.id))

    def get_by_title(self, title) -> Movie:
        movie = self.store.find_by_composite_key(Movie, title=title)
        if movie is None:
            raise DomainError(ErrorKind.NOT_FOUND, f"Movie not found with title: {title}")
        return movie

    def add(self, data) -> Movie:
        if not data.get("title"):
            raise DomainError(ErrorKind.INVALID_DATA, "Movie title is required.")
        missing = [field for field in MOVIE_FIELDS if data.get(field) is None]
        if missing:
            raise DomainError(ErrorKind.INVALID_DATA, f"Missing required fields: {', '.join(missing)}")

        def work(store):
            movie = Movie(**{field: data.get(field) for field in MOVIE_FIELDS})
            duplicate = select(Movie.id).filter_by(**{field: data.get(field) for field in MOVIE_FIELDS})
            if store.insert_if_no_conflict(movie, duplicate) is None:
                raise DomainError(ErrorKind.DUPLICATE, DUPLICATE_MESSAGE)
            return movie

        movie = self.store.atomic(work, ErrorKind.DUPLICATE, DUPLICATE_MESSAGE)
        logger.info(f"Added movie {movie.title!r}")
        return movie

    def update(self, title, patch) -> Movie:
        def work(store):
            movie = self.get_by_title(title)
            for field in UPDATABLE_FIELDS:
                if patch.get(field) is not None:
                    setattr(movie, field, patch[field])
            store.session.flush()
            return movie

        movie = self.store.atomic(
            work,
            None,
            DUPLICATE_MESSAGE,
            on_integrity_error=lambda exc: DomainError(ErrorKind.DUPLICATE, DUPLICATE_MESSAGE),
        )
        logger.info(f"Updated movie {title!r}")
        return movie

    def delete(self, title):
        def work(store):
            store.delete(self.get_by_title(title))

        self.store.atomic(work, None, f"Movie {title!r} could not be deleted")
        logger.info(f"Deleted movie {title!r}")
