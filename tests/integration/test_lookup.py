"""Tests for target and workflow lookup."""

from uuid import uuid4

import pytest

from src.drip.services.lookup import SqlTargetLookup

pytestmark = pytest.mark.integration


@pytest.fixture
def lookup(session_factory) -> SqlTargetLookup:
    return SqlTargetLookup(session_factory)


class TestSqlTargetLookup:
    async def test_get_target_and_workflow(self, lookup, customer, workflow):
        assert (await lookup.get_target(customer.id)).email == customer.email
        assert (await lookup.get_workflow(workflow.id)).name == workflow.name
        assert await lookup.get_target(uuid4()) is None

    async def test_update_only_allowed_fields(self, lookup, customer):
        applied = await lookup.update_target(
            customer.id, {"notes": "VIP", "email": "hijack@example.com"}
        )

        assert applied == {"notes": "VIP"}
        stored = await lookup.get_target(customer.id)
        assert stored.notes == "VIP"
        assert stored.email == customer.email

    async def test_add_tags_skips_existing(self, lookup, customer):
        await lookup.update_target(customer.id, {"add_tags": ["vip"]})
        applied = await lookup.update_target(customer.id, {"add_tags": ["vip", "reviewed"]})

        assert applied == {"add_tags": ["reviewed"]}
        assert (await lookup.get_target(customer.id)).tags == ["vip", "reviewed"]

    async def test_missing_customer(self, lookup):
        with pytest.raises(LookupError):
            await lookup.update_target(uuid4(), {"notes": "x"})
