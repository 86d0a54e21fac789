from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from tucancha.db.base import Base
from tucancha.db.models import Booking, Court, User, UserRole, Venue
from tucancha.services.booking_service import create_booking


@pytest.mark.concurrent
def test_two_parallel_booking_attempts_only_one_succeeds(tmp_path):
    db_file = tmp_path / "race.db"
    engine = create_engine(
        f"sqlite+pysqlite:///{db_file}",
        connect_args={"check_same_thread": False, "timeout": 15},
    )

    @event.listens_for(engine, "connect")
    def _disable_implicit_begin(dbapi_connection, _):
        dbapi_connection.isolation_level = None

    # Writers queue on the database lock from the first statement of a transaction.
    @event.listens_for(engine, "begin")
    def _begin_immediate(connection):
        connection.exec_driver_sql("BEGIN IMMEDIATE")

    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)

    seed_session = SessionLocal()
    owner = User(email="race-owner@example.com", hashed_password="x", full_name="Race Owner", role=UserRole.OWNER.value)
    player = User(email="race-player@example.com", hashed_password="x", full_name="Race Player", role=UserRole.PLAYER.value)
    seed_session.add_all([owner, player])
    seed_session.flush()
    venue = Venue(owner_id=owner.id, name="Race Venue", address="Race Street 1")
    court = Court(name="Cancha 1", type="Padel", price_per_hour=100000)
    venue.courts.append(court)
    seed_session.add(venue)
    seed_session.commit()
    request = {
        "venue_id": str(venue.id),
        "court_id": str(court.id),
        "player_id": str(player.id),
        "date": "2026-11-02",
        "start_time": "21:00",
        "price": 100000,
    }
    seed_session.close()

    def attempt() -> str:
        session = SessionLocal()
        try:
            result = create_booking(session, request)
            return "created" if result.success else result.error
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(lambda _: attempt(), range(2)))

    assert sorted(results) == ["HORARIO_OCUPADO", "created"]

    check = SessionLocal()
    total_bookings = check.query(Booking).count()
    check.close()
    engine.dispose()

    assert total_bookings == 1
