import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from models import db
from services.schedule_registry import ScheduleRegistry


def at(hour, minute=0, day=1):
    return datetime(2025, 3, day, hour, minute)


def showtime_data(start, end, theater="T1", movie_title="Interstellar", price="12.50"):
    return {
        "movie_title": movie_title,
        "theater": theater,
        "start_time": start,
        "end_time": end,
        "price": Decimal(price),
    }


@pytest.fixture()
def app(tmp_path):
    # A file database so worker threads get their own connections
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'unit.db'}",
            "TX_RETRY_BACKOFF": 0,
            "LOG_LEVEL": "WARNING",
        }
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def showtime_a(app):
    # Theater T1, [18:00, 20:30)
    showtime = ScheduleRegistry().add(showtime_data(at(18), at(20, 30)))
    showtime_id = showtime.id
    db.session.close()
    return showtime_id
