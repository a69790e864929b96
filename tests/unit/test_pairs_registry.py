"""Tests for the supported pairs registry and its JSON file."""

import json
from unittest.mock import patch

import pytest

from convertbot.models import SupportedPair, normalize_asset
from convertbot.services.pairs import PairsFileError, SupportedPairsRegistry, parse_pairs


def test_normalize_is_idempotent():
    for raw in ["eth", " Btc ", "USDT"]:
        assert normalize_asset(normalize_asset(raw)) == normalize_asset(raw)


def test_parse_pairs_skips_malformed_entries():
    assert parse_pairs("ltc:usd, bad, :eth, btc:,ETH:btc") == [("LTC", "USD"), ("ETH", "BTC")]


class TestLoad:
    """Hydration from the pairs file."""

    def test_symbols_are_normalized_on_load(self, registry):
        assert [pair.label() for pair in registry.pairs] == ["ETH ↔️ BTC", "XRP ↔️ USD"]

    def test_supports_is_symmetric(self, registry):
        for a, b in [("ETH", "BTC"), ("xrp", "USD"), ("ETH", "USD")]:
            assert registry.supports(a, b) == registry.supports(b, a)

        assert registry.supports("btc", "eth") is True
        assert registry.supports("ETH", "USD") is False

    def test_missing_file_is_fatal(self, tmp_path):
        registry = SupportedPairsRegistry(tmp_path / "missing.json")

        with pytest.raises(PairsFileError):
            registry.load()

    def test_invalid_json_is_fatal(self, tmp_path):
        path = tmp_path / "pairs.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PairsFileError):
            SupportedPairsRegistry(path).load()

    def test_non_array_is_fatal(self, tmp_path):
        path = tmp_path / "pairs.json"
        path.write_text(json.dumps({"fromAsset": "ETH", "toAsset": "BTC"}), encoding="utf-8")

        with pytest.raises(PairsFileError):
            SupportedPairsRegistry(path).load()


class TestMutation:
    """Admin add/remove with whole-file rewrite."""

    def test_add_skips_existing_in_either_direction(self, registry, pairs_file):
        added, existing = registry.add([("ltc", "usd"), ("btc", "eth")])

        assert [pair.label() for pair in added] == ["LTC ↔️ USD"]
        assert [pair.label() for pair in existing] == ["BTC ↔️ ETH"]
        assert registry.supports("USD", "LTC")

        data = json.loads(pairs_file.read_text(encoding="utf-8"))
        assert data == [
            {"fromAsset": "ETH", "toAsset": "BTC"},
            {"fromAsset": "XRP", "toAsset": "USD"},
            {"fromAsset": "LTC", "toAsset": "USD"},
        ]

    def test_file_is_written_with_indent(self, registry, pairs_file):
        registry.add([("ltc", "usd")])

        assert '\n    {\n        "fromAsset": "ETH"' in pairs_file.read_text(encoding="utf-8")

    def test_duplicates_within_one_request_are_added_once(self, registry):
        added, existing = registry.add([("LTC", "USD"), ("usd", "ltc")])

        assert len(added) == 1
        assert len(existing) == 1

    def test_remove_matches_either_direction(self, registry, pairs_file):
        removed, not_found = registry.remove([("btc", "eth"), ("doge", "usd")])

        assert removed == [SupportedPair(from_asset="ETH", to_asset="BTC")]
        assert [pair.label() for pair in not_found] == ["DOGE ↔️ USD"]
        assert not registry.supports("ETH", "BTC")

        data = json.loads(pairs_file.read_text(encoding="utf-8"))
        assert data == [{"fromAsset": "XRP", "toAsset": "USD"}]

    def test_failed_write_leaves_memory_unchanged(self, registry):
        before = registry.pairs

        with patch.object(registry, "_save", side_effect=PairsFileError("disk full")):
            with pytest.raises(PairsFileError):
                registry.add([("ltc", "usd")])

        assert registry.pairs == before

    def test_pairs_property_returns_copy(self, registry):
        registry.pairs.clear()

        assert len(registry.pairs) == 2
