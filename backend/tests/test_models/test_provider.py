import pytest
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.models.provider import PaymentStatus, Provider, ProviderStatus
from provider_admin.models.review import Review


@pytest.mark.asyncio
async def test_create_provider_defaults(db_session: AsyncSession):
    """New provider: pending, unverified, unpaid, id generated."""
    provider = Provider(full_name="Thabo Mokoena")
    db_session.add(provider)
    await db_session.commit()

    result = await db_session.execute(select(Provider).where(Provider.id == provider.id))
    fetched = result.scalar_one()

    assert len(fetched.id) == 20
    assert fetched.status == ProviderStatus.pending.value
    assert fetched.verified is False
    assert fetched.payment_status == PaymentStatus.unpaid.value
    assert fetched.created_at is not None
    assert fetched.updated_at is None


@pytest.mark.asyncio
async def test_columns_use_document_field_names(db_session: AsyncSession):
    """Stored column names match the registration documents."""
    db_session.add(Provider(
        id="p1",
        full_name="Thabo",
        phone_number="0821111111",
        payment_status="paid",
        availability_status="full",
        admin_notes="called twice",
    ))
    await db_session.commit()

    row = (await db_session.execute(text(
        'SELECT "fullName", "phoneNumber", "paymentStatus", "availabilityStatus", "adminNotes" '
        "FROM providers WHERE id = 'p1'"
    ))).one()
    assert tuple(row) == ("Thabo", "0821111111", "paid", "full", "called twice")


@pytest.mark.asyncio
async def test_json_fields_round_trip(db_session: AsyncSession):
    """Documents, source and profile keep their nested shape."""
    documents = {"prdp": {"url": "https://cdn.example.com/p.pdf", "expiryDate": "2025-01-01"}}
    provider = Provider(
        id="p2",
        documents=documents,
        registration_source={"type": "Referral", "referredName": "Sipho"},
        profile={"areas": ["Soweto", "Randburg"]},
        service_area=["Midrand"],
    )
    db_session.add(provider)
    await db_session.commit()
    db_session.expunge_all()

    fetched = (await db_session.execute(select(Provider).where(Provider.id == "p2"))).scalar_one()
    assert fetched.documents == documents
    assert fetched.registration_source["referredName"] == "Sipho"
    assert fetched.profile["areas"] == ["Soweto", "Randburg"]
    assert fetched.service_area == ["Midrand"]


@pytest.mark.asyncio
async def test_review_belongs_to_provider(db_session: AsyncSession):
    db_session.add(Provider(id="p3"))
    await db_session.flush()
    review = Review(provider_id="p3", rating=4, comment="On time")
    db_session.add(review)
    await db_session.commit()

    row = (await db_session.execute(text('SELECT "providerId", rating FROM reviews'))).one()
    assert tuple(row) == ("p3", 4)


@pytest.mark.asyncio
async def test_review_requires_existing_provider(db_session: AsyncSession):
    from sqlalchemy.exc import IntegrityError

    db_session.add(Review(provider_id="missing", rating=3))
    with pytest.raises(IntegrityError):
        await db_session.commit()
