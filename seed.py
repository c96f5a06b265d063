from datetime import datetime, timedelta, timezone
from decimal import Decimal

from loguru import logger

from errors import DomainError
from services.movie_catalog import MovieCatalog
from services.schedule_registry import ScheduleRegistry

seed_movies = [
    {"title": "Dune: Part Two", "genre": "Sci-Fi", "duration": 166, "rating": 8.5, "release_year": 2024},
    {"title": "Past Lives", "genre": "Drama", "duration": 105, "rating": 7.8, "release_year": 2023},
    {"title": "Inside Out 2", "genre": "Animation", "duration": 96, "rating": 7.6, "release_year": 2024},
]

seed_theaters = ["Hall 1", "Hall 2"]


def seed_demo_data(day=None):
    """Insert demo movies and back-to-back showtimes. Safe to run twice."""
    if day is None:
        today = datetime.now(timezone.utc).replace(tzinfo=None, hour=0, minute=0, second=0, microsecond=0)
        day = today + timedelta(days=1)
    catalog = MovieCatalog()
    registry = ScheduleRegistry()
    added = {"movies": 0, "showtimes": 0}

    for data in seed_movies:
        try:
            catalog.add(data)
            added["movies"] += 1
        except DomainError as exc:
            logger.info(f"Skipping {data['title']}: {exc.message}")

    for theater in seed_theaters:
        # Each screening starts the moment the previous one ends
        start = day.replace(hour=12)
        for data in seed_movies:
            end = start + timedelta(minutes=data["duration"])
            candidate = {
                "movie_title": data["title"],
                "theater": theater,
                "start_time": start,
                "end_time": end,
                "price": Decimal("12.50"),
            }
            try:
                registry.add(candidate)
                added["showtimes"] += 1
            except DomainError as exc:
                logger.info(f"Skipping {data['title']} in {theater}: {exc.message}")
            start = end

    logger.info(f"Seeding complete: {added}")
    return added


if __name__ == "__main__":
    from app import create_app

    with create_app().app_context():
        seed_demo_data()
