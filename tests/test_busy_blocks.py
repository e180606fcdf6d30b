import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import BookingValidationError, NotFoundError, ReadOnlyBlockError
from app.models import BusyBlock
from app.services.availability.intervals import Interval
from app.services.booking.busy_block_service import BusyBlockService

MONDAY_9AM = datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)


@pytest.fixture()
def synced_block(db, business) -> BusyBlock:
    block = BusyBlock(
        business_id=business.id,
        start=MONDAY_9AM,
        end=MONDAY_9AM + timedelta(hours=1),
        source='google',
        external_event_id='evt-1',
    )
    db.add(block)
    db.commit()
    db.refresh(block)
    return block


def test_manual_block_lifecycle(db, business) -> None:
    block = BusyBlockService.create_block(db, business.id, MONDAY_9AM, MONDAY_9AM + timedelta(hours=1), 'Lunch')
    assert block.is_manual

    updated = BusyBlockService.update_block(
        db, business.id, block.id, {'end': MONDAY_9AM + timedelta(hours=2), 'reason': None}
    )
    assert updated.end == MONDAY_9AM + timedelta(hours=2)
    assert updated.reason is None

    BusyBlockService.delete_block(db, business.id, block.id)
    assert BusyBlockService.list_blocks(db, business.id) == []


def test_block_must_end_after_it_starts(db, business) -> None:
    with pytest.raises(BookingValidationError):
        BusyBlockService.create_block(db, business.id, MONDAY_9AM, MONDAY_9AM)


def test_synced_blocks_are_read_only(db, business, synced_block) -> None:
    with pytest.raises(ReadOnlyBlockError):
        BusyBlockService.update_block(db, business.id, synced_block.id, {'reason': 'mine now'})
    with pytest.raises(ReadOnlyBlockError):
        BusyBlockService.delete_block(db, business.id, synced_block.id)


def test_missing_block_is_not_found(db, business, synced_block) -> None:
    with pytest.raises(NotFoundError):
        BusyBlockService.delete_block(db, uuid.uuid4(), synced_block.id)


def test_list_blocks_filters_by_range(db, business, synced_block) -> None:
    BusyBlockService.create_block(db, business.id, MONDAY_9AM + timedelta(days=1),
                                  MONDAY_9AM + timedelta(days=1, hours=1))

    blocks = BusyBlockService.list_blocks(db, business.id, start=MONDAY_9AM, end=MONDAY_9AM + timedelta(hours=12))

    assert [b.id for b in blocks] == [synced_block.id]


def test_sync_replaces_only_its_own_source_in_range(db, business, synced_block) -> None:
    manual = BusyBlockService.create_block(db, business.id, MONDAY_9AM, MONDAY_9AM + timedelta(minutes=30))
    sync_range = Interval(MONDAY_9AM - timedelta(hours=5), MONDAY_9AM + timedelta(hours=19))

    count = BusyBlockService.replace_synced_blocks(
        db,
        business.id,
        'google',
        [{'start': MONDAY_9AM + timedelta(hours=3), 'end': MONDAY_9AM + timedelta(hours=4),
          'external_event_id': 'evt-2'}],
        sync_range,
    )

    blocks = BusyBlockService.list_blocks(db, business.id)
    assert count == 1
    assert {(b.source, b.external_event_id) for b in blocks} == {('manual', None), ('google', 'evt-2')}
    assert manual.id in {b.id for b in blocks}


def test_sync_cannot_target_manual_blocks(db, business) -> None:
    with pytest.raises(BookingValidationError):
        BusyBlockService.replace_synced_blocks(
            db, business.id, 'manual', [], Interval(MONDAY_9AM, MONDAY_9AM + timedelta(hours=1))
        )
