"""Tests for voter identity resolution and the public (anonymous) voting flow."""
import json
import re

import pytest

from gatherpoll.errors import ValidationFailedError
from gatherpoll.services.identity_service import (
    LocalIdentityProvider,
    MemoryIdentityStore,
    NeedsRegistration,
    SessionIdentityProvider,
    VoterIdentity,
    cookie_name,
    resolve_identity,
    storage_key,
)
from tests.conftest import auth, create_test_event, create_test_user


class TestSessionIdentity:

    def test_resolves_signed_in_user(self, organizer):
        identity = resolve_identity(SessionIdentityProvider(organizer), "any-event")
        assert identity == VoterIdentity(
            id=organizer.user_id,
            name="Olive Organizer",
            email="olive@example.com",
        )
        assert identity.anonymous is False


class TestLocalIdentity:

    def test_nothing_stored_needs_registration(self):
        provider = LocalIdentityProvider(MemoryIdentityStore())
        assert resolve_identity(provider, "e1") == NeedsRegistration(event_id="e1")

    def test_register_then_resolve(self):
        store = MemoryIdentityStore()
        provider = LocalIdentityProvider(store)
        registered = provider.register("e1", "  Ann  ", "ann@example.com")

        assert registered.id.startswith("voter_")
        assert registered.name == "Ann"
        assert registered.anonymous is True
        assert provider.resolve("e1") == registered
        assert json.loads(store.get(storage_key("e1"))) == {
            "id": registered.id,
            "name": "Ann",
            "email": "ann@example.com",
        }

    def test_register_twice_keeps_first_identity(self):
        provider = LocalIdentityProvider(MemoryIdentityStore())
        first = provider.register("e1", "Ann", "ann@example.com")
        second = provider.register("e1", "Someone Else", "else@example.com")
        assert second == first

    def test_identity_is_per_event(self):
        provider = LocalIdentityProvider(MemoryIdentityStore())
        provider.register("e1", "Ann", "ann@example.com")
        assert isinstance(provider.resolve("e2"), NeedsRegistration)
        other = provider.register("e2", "Ann", "ann@example.com")
        assert other.id != provider.resolve("e1").id

    @pytest.mark.parametrize("name,email", [("", "ann@example.com"), ("Ann", "   ")])
    def test_register_requires_name_and_email(self, name, email):
        provider = LocalIdentityProvider(MemoryIdentityStore())
        with pytest.raises(ValidationFailedError):
            provider.register("e1", name, email)
        assert isinstance(provider.resolve("e1"), NeedsRegistration)

    def test_malformed_profile_needs_registration(self):
        store = MemoryIdentityStore({storage_key("e1"): "{not json"})
        assert isinstance(LocalIdentityProvider(store).resolve("e1"), NeedsRegistration)

        store = MemoryIdentityStore({storage_key("e1"): json.dumps({"id": "voter_x"})})
        assert isinstance(LocalIdentityProvider(store).resolve("e1"), NeedsRegistration)


class TestPublicVoting:
    """Anonymous voters on the public channel, identified by cookie."""

    def _poll(self, client):
        organizer = create_test_user(client, name="Organizer")
        return organizer, create_test_event(client, organizer)

    def test_public_event_view(self, client):
        _, created = self._poll(client)
        event_id = created["event"]["event_id"]
        resp = client.get(f"/api/public/events/{event_id}")
        assert resp.status_code == 200
        data = resp.json()
        assert data["event"]["title"] == "Game Night"
        assert len(data["slots"]) == 2
        assert data["best_slot_id"] is None

    def test_public_event_not_found(self, client):
        assert client.get("/api/public/events/missing").status_code == 404

    def test_unregistered_voter(self, client):
        _, created = self._poll(client)
        event_id = created["event"]["event_id"]

        resp = client.get(f"/api/public/events/{event_id}/voter")
        assert resp.json() == {"needs_registration": True, "voter": None}

        resp = client.post(f"/api/public/events/{event_id}/votes", json={
            "slot_id": created["slots"][0]["slot_id"], "availability": "yes",
        })
        assert resp.status_code == 401
        assert resp.json()["error"] == "registration_required"

    def test_register_and_vote(self, client):
        organizer, created = self._poll(client)
        event_id = created["event"]["event_id"]
        slot_id = created["slots"][0]["slot_id"]

        resp = client.post(f"/api/public/events/{event_id}/voter", json={
            "name": "Guest", "email": "guest@example.com",
        })
        assert resp.status_code == 200
        voter = resp.json()
        assert voter["anonymous"] is True
        assert storage_key(event_id) in resp.cookies

        resolved = client.get(f"/api/public/events/{event_id}/voter").json()
        assert resolved == {"needs_registration": False, "voter": voter}

        client.post(f"/api/public/events/{event_id}/votes", json={"slot_id": slot_id, "availability": "yes"})
        resp = client.post(f"/api/public/events/{event_id}/votes", json={"slot_id": slot_id, "availability": "maybe"})
        assert resp.status_code == 200
        assert resp.json()["user_id"] == voter["id"]
        assert resp.json()["user_name"] == "Guest"

        aggregate = client.get(f"/api/events/{event_id}", headers=auth(organizer)).json()
        slot = aggregate["slots"][0]
        assert (slot["yes_count"], slot["maybe_count"], slot["total_votes"]) == (0, 1, 1)

    def test_register_for_unknown_event(self, client):
        resp = client.post("/api/public/events/missing/voter", json={"name": "Guest", "email": "g@example.com"})
        assert resp.status_code == 404

    def test_register_blank_name(self, client):
        _, created = self._poll(client)
        resp = client.post(f"/api/public/events/{created['event']['event_id']}/voter", json={
            "name": " ", "email": "g@example.com",
        })
        assert resp.status_code == 422

    def test_registration_does_not_carry_to_other_events(self, client):
        organizer, first = self._poll(client)
        second = create_test_event(client, organizer, title="Second")

        client.post(f"/api/public/events/{first['event']['event_id']}/voter", json={
            "name": "Guest", "email": "guest@example.com",
        })
        resp = client.get(f"/api/public/events/{second['event']['event_id']}/voter")
        assert resp.json()["needs_registration"] is True

    def test_invalid_availability_rejected(self, client):
        _, created = self._poll(client)
        event_id = created["event"]["event_id"]
        client.post(f"/api/public/events/{event_id}/voter", json={"name": "Guest", "email": "g@example.com"})
        resp = client.post(f"/api/public/events/{event_id}/votes", json={
            "slot_id": created["slots"][0]["slot_id"], "availability": "perhaps",
        })
        assert resp.status_code == 422

    @pytest.mark.parametrize("event_id", ["team night", "olive@home", "picnic,(maybe)"])
    def test_event_ids_not_valid_as_cookie_names(self, client, event_id):
        organizer = create_test_user(client, name="Organizer")
        created = create_test_event(client, organizer, id=event_id)
        slot_id = created["slots"][0]["slot_id"]

        resp = client.post(f"/api/public/events/{event_id}/voter", json={"name": "Ann", "email": "a@x.io"})
        assert resp.status_code == 200, resp.text
        voter = resp.json()

        resolved = client.get(f"/api/public/events/{event_id}/voter").json()
        assert resolved == {"needs_registration": False, "voter": voter}

        resp = client.post(f"/api/public/events/{event_id}/votes", json={"slot_id": slot_id, "availability": "yes"})
        assert resp.status_code == 200
        assert resp.json()["user_id"] == voter["id"]


class TestCookieName:

    def test_plain_key_unchanged(self):
        assert cookie_name(storage_key("picnic-2026_a")) == "voter_picnic-2026_a"

    def test_unsafe_key_encoded(self):
        name = cookie_name(storage_key("team night"))
        assert name.startswith("voterk_")
        assert re.fullmatch(r"[A-Za-z0-9_-]+", name)
        assert name != cookie_name(storage_key("team_night"))
