import pytest

from app.core.exceptions import BookingValidationError, LinkNotFoundError
from app.models import Business, PublicLink
from app.services.public_link.public_link_service import (
    BASE62_ALPHABET,
    PublicLinkService,
    generate_base62_code,
    is_valid_slug,
    normalize_slug,
)


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('Main Street Barbers', 'main-street-barbers'),
        ("  Joe's   Café & Co. ", 'joes-caf-co'),
        ('--Already--Hyphenated--', 'already-hyphenated'),
        ('!!!', None),
        ('', None),
        (None, None),
    ],
)
def test_normalize_slug(raw, expected) -> None:
    assert normalize_slug(raw) == expected


def test_slugs_are_capped_and_need_two_characters() -> None:
    assert len(normalize_slug('a' * 80)) == 50
    assert not is_valid_slug('a')
    assert is_valid_slug('ab')


def test_generated_codes_use_base62() -> None:
    code = generate_base62_code(10)

    assert len(code) == 10
    assert set(code) <= set(BASE62_ALPHABET)


def test_ensure_link_issues_once_with_a_slug(db, business) -> None:
    link = PublicLinkService.ensure_link(db, business.id)
    again = PublicLinkService.ensure_link(db, business.id)

    assert again.id == link.id
    assert len(link.code) == 8
    assert link.slug == 'main-street-barbers'
    assert link.path_token == f'main-street-barbers-{link.code}'
    assert PublicLinkService.build_public_url(link).endswith(f'/book/main-street-barbers-{link.code}')


def test_every_token_shape_resolves_to_the_business(db, business, booking_settings) -> None:
    link = PublicLinkService.ensure_link(db, business.id)

    assert PublicLinkService.resolve(db, link.code).source == 'short_code'
    assert PublicLinkService.resolve(db, link.path_token).source == 'slug_code'
    assert PublicLinkService.resolve(db, booking_settings.booking_key).source == 'legacy_key'
    for token in (link.code, link.path_token, booking_settings.booking_key):
        assert PublicLinkService.resolve(db, token).business_id == business.id


def test_slug_is_cosmetic(db, business) -> None:
    link = PublicLinkService.ensure_link(db, business.id)

    assert PublicLinkService.resolve(db, f'anything-at-all-{link.code}').business_id == business.id


def test_changing_the_slug_keeps_the_code(db, business) -> None:
    link = PublicLinkService.ensure_link(db, business.id)
    code = link.code

    updated = PublicLinkService.update_slug(db, business.id, 'New Name!')
    assert updated.code == code
    assert updated.slug == 'new-name'

    cleared = PublicLinkService.update_slug(db, business.id, None)
    assert cleared.slug is None
    assert cleared.path_token == code


def test_invalid_slug_is_rejected(db, business) -> None:
    PublicLinkService.ensure_link(db, business.id)

    with pytest.raises(BookingValidationError):
        PublicLinkService.update_slug(db, business.id, '?!')


@pytest.mark.parametrize(
    'token',
    ['', 'short', 'ZZZZZZZZ', 'some-slug-ZZZZZZZZ', 'f' * 64, 'not a token at all', 'x' * 200],
)
def test_unknown_tokens_fail_the_same_way(db, business, token) -> None:
    PublicLinkService.ensure_link(db, business.id)

    with pytest.raises(LinkNotFoundError) as exc_info:
        PublicLinkService.resolve(db, token)

    assert exc_info.value.message == 'Booking link not found'


def test_generate_unique_code_falls_back_to_a_suffixed_code(db, monkeypatch) -> None:
    monkeypatch.setattr(PublicLinkService, '_code_taken', staticmethod(lambda db, code: True))

    code = PublicLinkService.generate_unique_code(db)

    assert len(code) == 10


def test_codes_are_unique_across_businesses(db, business) -> None:
    other = Business(name='Other Shop')
    db.add(other)
    db.commit()

    first = PublicLinkService.ensure_link(db, business.id)
    second = PublicLinkService.ensure_link(db, other.id)

    assert first.code != second.code
    assert db.query(PublicLink).count() == 2
