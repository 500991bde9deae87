"""Tests for the IndicatorStore — organization-scoped indicator CRUD."""

import pytest

from huntengine.engine.match_store import MatchStore
from huntengine.exceptions import ConflictError, NotFoundError, ValidationError
from huntengine.intel.indicator_store import IndicatorStore
from huntengine.sources.base import MatchSourceKind, RawHit

ORG = "org-1"
SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


@pytest.fixture
def store(session_factory):
    return IndicatorStore(session_factory)


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_classifies_value(self, store):
        created = await store.create(ORG, f"  {SHA256}  ", severity="critical", tags=["ransomware"])

        assert created["id"] is not None
        assert created["value"] == SHA256
        assert created["kind"] == "file_hash"
        assert created["hash_algorithm"] == "sha256"
        assert created["severity"] == "critical"
        assert created["source"] == "manual"
        assert created["tags"] == ["ransomware"]
        assert created["is_active"] is True
        assert created["created_at"] is not None

    @pytest.mark.asyncio
    async def test_explicit_kind_overrides_classifier(self, store):
        created = await store.create(ORG, "malware", kind="file_name")
        assert created["kind"] == "file_name"
        assert created["hash_algorithm"] is None

    @pytest.mark.asyncio
    async def test_empty_value_rejected(self, store):
        with pytest.raises(ValidationError):
            await store.create(ORG, "   ")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field,value", [
        ("severity", "urgent"),
        ("source", "twitter"),
        ("kind", "ip_address"),
    ])
    async def test_unknown_enum_values_rejected(self, store, field, value):
        with pytest.raises(ValidationError):
            await store.create(ORG, "evil.exe", **{field: value})


class TestBulkCreate:
    @pytest.mark.asyncio
    async def test_bulk_create_classifies_entries_without_kind(self, store):
        created = await store.bulk_create(ORG, [
            {"value": SHA256},
            {"value": "C:\\Temp\\evil.exe", "kind": "auto"},
            {"value": "mimikatz", "kind": "file_name", "severity": "high"},
        ])

        assert [c["kind"] for c in created] == ["file_hash", "file_path", "file_name"]
        assert created[0]["hash_algorithm"] == "sha256"
        assert created[2]["severity"] == "high"
        assert len(await store.list(ORG)) == 3

    @pytest.mark.asyncio
    async def test_bad_entry_rejects_whole_batch(self, store):
        with pytest.raises(ValidationError, match="Entry 1"):
            await store.bulk_create(ORG, [{"value": "evil.exe"}, {"value": ""}])
        assert await store.list(ORG) == []

    @pytest.mark.asyncio
    async def test_empty_batch(self, store):
        assert await store.bulk_create(ORG, []) == []


class TestReadAndScope:
    @pytest.mark.asyncio
    async def test_list_active_only_excludes_inactive(self, store):
        active = await store.create(ORG, "evil.exe")
        await store.create(ORG, "old.exe", is_active=False)

        listed = await store.list(ORG, active_only=True)
        assert [i["id"] for i in listed] == [active["id"]]
        assert len(await store.list(ORG)) == 2

    @pytest.mark.asyncio
    async def test_get_returns_inactive_and_skips_unknown(self, store):
        first = await store.create(ORG, "evil.exe")
        inactive = await store.create(ORG, "old.exe", is_active=False)

        found = await store.get(ORG, [inactive["id"], 9999, first["id"], inactive["id"]])
        assert [i["id"] for i in found] == [inactive["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_other_organization_cannot_see_indicator(self, store):
        created = await store.create(ORG, "evil.exe")

        assert await store.list("org-2") == []
        assert await store.get("org-2", [created["id"]]) == []
        with pytest.raises(NotFoundError):
            await store.get_one("org-2", created["id"])


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_update_value_reclassifies(self, store):
        created = await store.create(ORG, "evil.exe")
        updated = await store.update(ORG, created["id"], value="C:\\Temp\\evil.exe")
        assert updated["kind"] == "file_path"

    @pytest.mark.asyncio
    async def test_update_metadata(self, store):
        created = await store.create(ORG, "evil.exe")
        updated = await store.update(
            ORG, created["id"], severity="high", is_active=False, threat_name="Qakbot"
        )
        assert updated["severity"] == "high"
        assert updated["is_active"] is False
        assert updated["threat_name"] == "Qakbot"
        assert updated["kind"] == "file_name"

    @pytest.mark.asyncio
    async def test_update_unknown_field_rejected(self, store):
        created = await store.create(ORG, "evil.exe")
        with pytest.raises(ValidationError):
            await store.update(ORG, created["id"], created_at="2020-01-01")

    @pytest.mark.asyncio
    async def test_update_and_delete_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            await store.update(ORG, 424242, severity="low")
        with pytest.raises(NotFoundError):
            await store.delete(ORG, 424242)

    @pytest.mark.asyncio
    async def test_matched_indicator_value_is_frozen(self, store, fleet):
        created = await store.create(ORG, "evil.exe")
        await MatchStore(fleet).insert(
            None, created["id"], MatchSourceKind.INVENTORY,
            RawHit(endpoint_id=1, matched_value="evil.exe"),
        )

        with pytest.raises(ConflictError):
            await store.update(ORG, created["id"], value="other.exe")
        updated = await store.update(ORG, created["id"], severity="critical")
        assert updated["severity"] == "critical"

    @pytest.mark.asyncio
    async def test_delete_keeps_historical_matches(self, store, fleet):
        created = await store.create(ORG, "evil.exe")
        matches = MatchStore(fleet)
        match = await matches.insert(
            None, created["id"], MatchSourceKind.INVENTORY,
            RawHit(endpoint_id=1, matched_value="evil.exe"),
        )

        await store.delete(ORG, created["id"])

        kept = await matches.get(match["id"])
        assert kept["indicator_id"] is None
        assert kept["matched_value"] == "evil.exe"
        with pytest.raises(NotFoundError):
            await store.get_one(ORG, created["id"])
