"""
Tests for user persistence: credentials, lifecycle events and the cascade
anonymization of orders and bills.
"""

import pytest
from bson import ObjectId

from storefront.core.errors import CascadeError, ValidationError
from storefront.core.security import is_password_hash, verify_password
from storefront.events.bus import Events
from storefront.hooks.pipeline import LifecycleHooks
from storefront.services.user_service import (
    BAD_EMAIL_FORMAT,
    EMAIL_ALREADY_EXISTS,
    FORMAT_PASSWORD,
    PASSWORD_REQUIRED,
    document_changes,
    public_user,
)


# =============================================================================
# Credentials
# =============================================================================

class TestUserCredentials:

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, services, saved_user):
        stored = await services.users.get_by_id(saved_user["_id"])

        assert stored["password"] != "SecurePassword123"
        assert is_password_hash(stored["password"])
        assert verify_password("SecurePassword123", stored["password"])

    @pytest.mark.asyncio
    async def test_missing_password_is_generated_and_hashed(self, services):
        result = await services.users.save({"email": "no.password@example.com"})

        assert is_password_hash(result.document["password"])

    @pytest.mark.asyncio
    async def test_weak_password_rejected(self, services, user_data):
        user_data["password"] = "weak"

        with pytest.raises(ValidationError) as exc_info:
            await services.users.save(user_data)

        assert exc_info.value.errors == [FORMAT_PASSWORD]
        assert await services.users.count() == 0

    @pytest.mark.asyncio
    async def test_password_not_hashed_when_another_check_fails(self, services, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "storefront.services.user_service.hash_password",
            lambda plain: calls.append(plain) or "hashed",
        )

        with pytest.raises(ValidationError):
            await services.users.save({"email": "not-an-email", "password": "SecurePassword123"})

        assert calls == []

    @pytest.mark.asyncio
    async def test_password_hashed_exactly_once(self, services, user_data, monkeypatch):
        from storefront.core import security

        calls = []

        def counting_hash(plain):
            calls.append(plain)
            return security.hash_password(plain)

        monkeypatch.setattr("storefront.services.user_service.hash_password", counting_hash)

        await services.users.save(user_data)

        assert calls == ["SecurePassword123"]

    @pytest.mark.asyncio
    async def test_replace_keeps_existing_hash(self, services, saved_user):
        stored = await services.users.get_by_id(saved_user["_id"])

        await services.users.save({**stored, "firstname": "Janet"})

        again = await services.users.get_by_id(saved_user["_id"])
        assert again["password"] == stored["password"]
        assert again["firstname"] == "Janet"

    @pytest.mark.asyncio
    async def test_replace_with_new_password_rehashes(self, services, saved_user):
        stored = await services.users.get_by_id(saved_user["_id"])

        await services.users.save({**stored, "password": "AnotherPass42"})

        again = await services.users.get_by_id(saved_user["_id"])
        assert verify_password("AnotherPass42", again["password"])

    @pytest.mark.asyncio
    async def test_change_password_via_patch(self, services, saved_user):
        result = await services.users.change_password(saved_user["_id"], "BrandNew99")

        assert verify_password("BrandNew99", result.document["password"])
        assert not verify_password("SecurePassword123", result.document["password"])

    @pytest.mark.asyncio
    async def test_patch_with_weak_password_rejected(self, services, saved_user):
        with pytest.raises(ValidationError) as exc_info:
            await services.users.update_one({"email": saved_user["email"]}, {"password": "abc"})

        assert exc_info.value.errors == [FORMAT_PASSWORD]

    @pytest.mark.asyncio
    async def test_unsetting_password_rejected(self, services, saved_user):
        with pytest.raises(ValidationError) as exc_info:
            await services.users.update_by_id(saved_user["_id"], {"$unset": {"password": ""}})

        assert exc_info.value.errors == [PASSWORD_REQUIRED]


# =============================================================================
# Email and profile
# =============================================================================

class TestUserProfile:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email", ["plainaddress", "a@b", "a b@example.com", None])
    async def test_bad_email_rejected(self, services, email):
        with pytest.raises(ValidationError) as exc_info:
            await services.users.save({"email": email, "password": "SecurePassword123"})

        assert BAD_EMAIL_FORMAT in exc_info.value.errors

    @pytest.mark.asyncio
    async def test_duplicate_email_is_case_insensitive(self, services, saved_user):
        with pytest.raises(ValidationError) as exc_info:
            await services.users.save({"email": "JANE.DOE@example.com"})

        assert exc_info.value.errors == [EMAIL_ALREADY_EXISTS]

    @pytest.mark.asyncio
    async def test_patch_to_taken_email_rejected(self, services, saved_user):
        other = (await services.users.save({"email": "other@example.com"})).document

        with pytest.raises(ValidationError):
            await services.users.update_by_id(other["_id"], {"email": "jane.doe@example.com"})

    @pytest.mark.asyncio
    async def test_patch_keeping_own_email_allowed(self, services, saved_user):
        result = await services.users.update_by_id(
            saved_user["_id"], {"email": "Jane.Doe@example.com"}
        )

        assert result.document["email"] == "Jane.Doe@example.com"

    @pytest.mark.asyncio
    async def test_defaults_and_attribute_refs(self, services, saved_attribute):
        result = await services.users.save({
            "email": "with.attrs@example.com",
            "attributes": [{"id": str(saved_attribute["_id"]), "code": "color", "values": "red"}],
        })

        doc = result.document
        assert doc["isAdmin"] is False
        assert doc["delivery_address"] == -1
        assert doc["billing_address"] == -1
        assert doc["attributes"][0]["id"] == saved_attribute["_id"]
        assert doc["attributes"][0]["type"] == "unset"
        assert doc["attributes"][0]["position"] == 1

    @pytest.mark.asyncio
    async def test_get_by_email(self, services, saved_user):
        found = await services.users.get_by_email("Jane.Doe@Example.com")
        assert found["_id"] == saved_user["_id"]


# =============================================================================
# Events
# =============================================================================

class TestUserEvents:

    @pytest.mark.asyncio
    async def test_created_event_without_password(self, services, user_data, recorded_events):
        result = await services.users.save(user_data)
        await services.bus.drain()

        name, (payload,) = recorded_events[-1]
        assert name == Events.USER_CREATED
        assert payload["_id"] == result.document["_id"]
        assert "password" not in payload

    @pytest.mark.asyncio
    async def test_updated_event_carries_diff(self, services, saved_user, recorded_events):
        await services.users.update_by_id(
            saved_user["_id"], {"firstname": "Janet", "password": "NewSecret42"}
        )
        await services.bus.drain()

        name, (query, diff) = recorded_events[-1]
        assert name == Events.USER_UPDATED
        assert query == {"_id": saved_user["_id"]}
        assert diff["$set"]["firstname"] == "Janet"
        assert "password" not in diff["$set"]

    @pytest.mark.asyncio
    async def test_replace_event_carries_only_changes(self, services, saved_user, recorded_events):
        stored = await services.users.get_by_id(saved_user["_id"])

        await services.users.save({**stored, "lastname": "Smith"})
        await services.bus.drain()

        name, (query, diff) = recorded_events[-1]
        assert name == Events.USER_UPDATED
        assert diff["$set"]["lastname"] == "Smith"
        assert "email" not in diff["$set"]

    def test_document_changes(self):
        assert document_changes({"a": 1, "b": 2}, {"a": 1, "c": 3}) == {
            "$set": {"c": 3},
            "$unset": {"b": ""},
        }

    def test_public_user_strips_password(self):
        assert public_user({"email": "x", "password": "h"}) == {"email": "x"}
        assert public_user(None) is None


# =============================================================================
# Cascade anonymization
# =============================================================================

@pytest.fixture
def history(services, saved_user):
    """Orders and bills, some pointing at saved_user."""
    async def _make():
        user_id = saved_user["_id"]
        stranger = ObjectId()
        orders = [
            (await services.orders.save({
                "number": f"O-{i}",
                "customer": {"id": customer, "email": "jane.doe@example.com"},
                "priceTotal": {"ati": 10.0 * i},
            })).document
            for i, customer in enumerate([user_id, user_id, stranger])
        ]
        bills = [
            (await services.bills.save({"order": orders[i]["_id"], "client": customer}))
            .document
            for i, customer in enumerate([user_id, stranger])
        ]
        return user_id, stranger, orders, bills
    return _make


class TestCascadeAnonymizer:

    @pytest.mark.asyncio
    async def test_delete_clears_references_and_keeps_history(self, services, history):
        user_id, stranger, orders, bills = await history()

        result = await services.users.delete_by_id(user_id)

        assert result.matched
        assert result.warnings == []
        assert await services.users.get_by_id(user_id) is None
        assert await services.orders.count() == 3
        assert await services.bills.count() == 2
        assert await services.orders.count({"customer.id": user_id}) == 0
        assert await services.bills.count({"client": user_id}) == 0
        assert await services.orders.count({"customer.id": stranger}) == 1
        assert await services.bills.count({"client": stranger}) == 1

    @pytest.mark.asyncio
    async def test_anonymized_order_keeps_other_fields(self, services, history):
        user_id, _, orders, _ = await history()

        await services.users.delete_by_id(user_id)

        order = await services.orders.get_by_id(orders[1]["_id"])
        assert "id" not in order["customer"]
        assert order["customer"]["email"] == "jane.doe@example.com"
        assert order["number"] == "O-1"
        assert order["priceTotal"] == {"ati": 10.0}

    @pytest.mark.asyncio
    async def test_dependents_updated_through_their_own_hooks(self, services, history):
        user_id, _, orders, bills = await history()
        calls = []

        class Spy(LifecycleHooks):
            async def before_update(self, ctx):
                calls.append((ctx.entity, ctx.filter["_id"]))

        services.orders.hooks.register(Spy())
        services.bills.hooks.register(Spy())

        await services.users.delete_by_id(user_id)

        assert sorted(calls, key=str) == sorted(
            [("bill", bills[0]["_id"]), ("order", orders[0]["_id"]), ("order", orders[1]["_id"])],
            key=str,
        )

    @pytest.mark.asyncio
    async def test_removed_event_has_pre_delete_snapshot(self, services, saved_user, recorded_events):
        await services.users.delete_by_id(saved_user["_id"])
        await services.bus.drain()

        name, (snapshot,) = recorded_events[-1]
        assert name == Events.USER_REMOVED
        assert snapshot["_id"] == saved_user["_id"]
        assert snapshot["email"] == "jane.doe@example.com"
        assert "password" not in snapshot

    @pytest.mark.asyncio
    async def test_one_failing_dependent_does_not_stop_the_rest(
        self, services, history, monkeypatch
    ):
        user_id, _, orders, _ = await history()
        original = services.orders.clear_reference

        async def flaky(document):
            if document["_id"] == orders[0]["_id"]:
                raise RuntimeError("order locked")
            return await original(document)

        monkeypatch.setattr(services.orders, "clear_reference", flaky)

        result = await services.users.delete_by_id(user_id)

        assert result.matched
        assert await services.users.get_by_id(user_id) is None
        assert any("order locked" in w for w in result.warnings)
        assert await services.orders.count({"customer.id": user_id}) == 1
        assert await services.bills.count({"client": user_id}) == 0

    @pytest.mark.asyncio
    async def test_lookup_failure_aborts_delete(self, services, history, monkeypatch):
        user_id, _, _, _ = await history()

        async def broken(target_id):
            raise RuntimeError("bills unreachable")

        monkeypatch.setattr(services.bills, "find_referencing", broken)

        with pytest.raises(CascadeError) as exc_info:
            await services.users.delete_by_id(user_id)

        assert exc_info.value.fatal
        assert await services.users.get_by_id(user_id) is not None
        assert await services.orders.count({"customer.id": user_id}) == 2

    @pytest.mark.asyncio
    async def test_anonymize_is_idempotent(self, services, history):
        user_id, _, _, _ = await history()

        first = await services.anonymizer.anonymize(user_id)
        second = await services.anonymizer.anonymize(user_id)

        assert first.cleared == {"bill": 1, "order": 2}
        assert second.cleared == {"bill": 0, "order": 0}
        assert second.ok

    @pytest.mark.asyncio
    async def test_dependent_deleted_mid_cascade_is_not_recreated(self, services, history):
        user_id, _, orders, _ = await history()
        referencing = await services.orders.find_referencing(user_id)
        await services.orders.delete_by_id(orders[0]["_id"])

        results = [await services.orders.clear_reference(doc) for doc in referencing]

        assert [r.matched for r in results] == [False, True]
        assert await services.orders.get_by_id(orders[0]["_id"]) is None
        assert await services.orders.count() == 2

    @pytest.mark.asyncio
    async def test_dependent_reassigned_mid_cascade_keeps_new_owner(self, services, history):
        user_id, _, orders, _ = await history()
        referencing = await services.orders.find_referencing(user_id)
        new_owner = ObjectId()
        await services.orders.update_by_id(orders[0]["_id"], {"customer.id": new_owner})

        result = await services.orders.clear_reference(referencing[0])

        assert not result.matched
        stored = await services.orders.get_by_id(orders[0]["_id"])
        assert stored["customer"]["id"] == new_owner

    @pytest.mark.asyncio
    async def test_vanished_dependents_not_counted(self, services, history, monkeypatch):
        user_id, _, orders, _ = await history()
        original = services.orders.find_referencing

        async def stale_lookup(target_id):
            docs = await original(target_id)
            await services.orders.collection.delete_one({"_id": orders[1]["_id"]})
            return docs

        monkeypatch.setattr(services.orders, "find_referencing", stale_lookup)

        report = await services.anonymizer.anonymize(user_id)

        assert report.cleared["order"] == 1
        assert report.ok
        assert await services.orders.count() == 2

    @pytest.mark.asyncio
    async def test_rejected_delete_anonymizes_nothing(self, services, history):
        user_id, _, _, _ = await history()

        class Veto(LifecycleHooks):
            async def before_delete(self, ctx):
                return ["user has open disputes"]

        # Registered after the anonymizer on purpose
        services.users.hooks.register(Veto())

        with pytest.raises(ValidationError) as exc_info:
            await services.users.delete_by_id(user_id)

        assert exc_info.value.errors == ["user has open disputes"]
        assert await services.users.get_by_id(user_id) is not None
        assert await services.orders.count({"customer.id": user_id}) == 2
        assert await services.bills.count({"client": user_id}) == 1
