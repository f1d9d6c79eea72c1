"""Coverage sanity tests - ensures real package code is executed during test runs."""

from __future__ import annotations


class TestShipgateImport:
    """Test that the shipgate package imports and exposes its entry points."""

    def test_shipgate_imports(self):
        import shipgate

        assert hasattr(shipgate, "__version__")
        assert shipgate.__version__ == "0.3.0"

    def test_phase_entry_points_import(self):
        from shipgate.review import run_review
        from shipgate.ship import run_ship
        from shipgate.verify import run_verify

        assert callable(run_verify)
        assert callable(run_review)
        assert callable(run_ship)


class TestSchemas:
    """Bundled schemas load as package data."""

    def test_verify_state_schema_loads(self):
        from shipgate.schemas import load_schema

        schema = load_schema("verify_state")
        assert schema["title"] == "shipgate verification record"
        assert load_schema("verify_state.schema.json") == schema

    def test_schema_name_with_and_without_suffix_share_one_cache_entry(self):
        from shipgate.schemas import _cached_schema, load_schema

        _cached_schema.cache_clear()
        load_schema("verify_state")
        load_schema("verify_state.schema.json")
        assert _cached_schema.cache_info().currsize == 1

    def test_loaded_schema_is_a_private_copy(self):
        from shipgate.schemas import load_schema

        schema = load_schema("verify_state")
        schema["title"] = "changed"
        assert load_schema("verify_state")["title"] == "shipgate verification record"

    def test_validate_reports_missing_fields(self):
        from shipgate.schemas import validate_data

        errors = validate_data({"version": "1.1.0"}, "verify_state")
        assert errors
        assert any("'timestamp' is a required property" in e for e in errors)
