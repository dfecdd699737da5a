from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from helpdesk.db.base import Base
from helpdesk.models import Counter, Ticket
from helpdesk.models.counter import TICKET_NUMBER_COUNTER
from helpdesk.services.tickets import TicketNumberAllocator


def test_concurrent_allocation_never_repeats_a_number(tmp_path) -> None:  # noqa: ANN001
    engine = create_engine(
        f"sqlite:///{tmp_path / 'numbers.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    allocator = TicketNumberAllocator(sessionmaker(bind=engine))

    with ThreadPoolExecutor(max_workers=8) as pool:
        numbers = list(pool.map(lambda _: allocator.allocate(), range(40)))

    assert len(set(numbers)) == 40
    assert sorted(numbers) == list(range(1, 41))
    engine.dispose()


def test_counter_reconciles_with_existing_tickets(db, session_factory, make_ticket) -> None:  # noqa: ANN001
    make_ticket(ticket_number=100)
    db.add(Counter(name=TICKET_NUMBER_COUNTER, value=3))
    db.commit()

    allocator = TicketNumberAllocator(session_factory)

    assert allocator.allocate() == 101
    assert allocator.allocate() == 102
    db.expire_all()
    assert db.get(Counter, TICKET_NUMBER_COUNTER).value == 102
    assert db.query(Ticket).count() == 1
