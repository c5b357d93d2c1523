# tests/test_engine.py
"""Tests for the call engine: tagged results, sequencing and journaling."""

import tempfile
from pathlib import Path

import pytest

from trackreg import (
    Call,
    CallResult,
    ErrorCode,
    Journal,
    RegistryConfig,
    RegistryEngine,
    Sequencer,
    StateError,
    TrackRegistry,
    UnknownOperationError,
    verify_entry,
)
from trackreg.journal import generate_keypair


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def engine():
    """In-memory engine with an in-memory journal."""
    return RegistryEngine(
        registry=TrackRegistry(deployer="deployer"),
        journal=Journal(),
    )


def mint(engine, caller="artist", content_ref="ipfs://metadata"):
    return engine.call("mint", caller, content_ref=content_ref, title="Title", description="Desc")


class TestCallResults:
    """Test tagged success/failure results."""

    def test_mint_ok(self, engine):
        result = mint(engine)
        assert result.ok is True
        assert result.value == 1
        assert result.error_code is None

    def test_failure_carries_code(self, engine):
        mint(engine)
        result = engine.call("set-revenue-share", "artist", asset_id=1, participant="u2", percentage=101)

        assert result.ok is False
        assert result.error_code == 107
        assert result.reason == ErrorCode.INVALID_SHARE
        assert result.error

    def test_reads_return_json_records(self, engine):
        mint(engine)
        engine.call("grant-license", "artist", asset_id=1, licensee="u2", duration=100, terms="Commercial")

        result = engine.call("get-license", "anyone", asset_id=1, licensee="u2")
        assert result.ok is True
        assert result.value == {"expiry": 102, "terms": "Commercial", "active": True}

    def test_read_missing_is_not_found(self, engine):
        result = engine.call("get-owner", "anyone", asset_id=1)
        assert result.ok is False
        assert result.error_code == int(ErrorCode.NOT_FOUND)

    def test_unknown_operation(self, engine):
        with pytest.raises(UnknownOperationError):
            engine.call("burn", "artist", asset_id=1)

    def test_bad_arguments_are_invalid_param(self, engine):
        result = engine.call("mint", "artist", content_ref="ipfs://m")
        assert result.ok is False
        assert result.error_code == int(ErrorCode.INVALID_PARAM)

    def test_unexpected_argument_is_invalid_param(self, engine):
        mint(engine)
        result = engine.call("get-owner", "anyone", asset_id=1, extra=True)
        assert result.error_code == int(ErrorCode.INVALID_PARAM)

    def test_result_round_trip(self):
        result = CallResult(ok=False, error_code=103, error="NOT_OWNER", height=4)
        assert CallResult.from_dict(result.to_dict()) == result

    def test_call_from_dict_rejects_non_mapping_args(self):
        with pytest.raises(TypeError):
            Call.from_dict({"operation": "mint", "caller": "a", "args": [1, 2]})

    def test_context_cannot_be_passed_as_argument(self, engine):
        result = engine.call("pause", "deployer", ctx="deployer")
        assert result.error_code == int(ErrorCode.INVALID_PARAM)
        assert engine.registry.is_paused() is False

    def test_string_visibility_is_invalid_param(self, engine):
        mint(engine)
        result = engine.call("update-work-status", "artist", asset_id=1,
                             status="Hidden", visibility="false")
        assert result.error_code == int(ErrorCode.INVALID_PARAM)
        assert engine.sequencer.height == 1


class TestScenarios:
    """End-to-end scenarios through the call interface."""

    def test_license_then_transfer(self, engine):
        assert mint(engine, caller="U1").value == 1
        assert engine.call("grant-license", "U1", asset_id=1, licensee="U2",
                           duration=100, terms="Commercial").ok

        license = engine.call("get-license", "U1", asset_id=1, licensee="U2").value
        assert license["terms"] == "Commercial"
        assert license["active"] is True

        assert engine.call("transfer", "U1", asset_id=1, sender="U1", recipient="U3").ok
        assert engine.call("get-owner", "U1", asset_id=1).value == "U3"

        result = engine.call("grant-license", "U1", asset_id=1, licensee="U2",
                             duration=100, terms="Commercial")
        assert result.error_code == int(ErrorCode.NOT_OWNER)

    def test_pause_gating(self, engine):
        mint(engine)
        assert engine.call("pause", "deployer").ok

        assert mint(engine).error_code == int(ErrorCode.PAUSED)
        assert engine.call("update-work-status", "artist", asset_id=1,
                           status="Published", visibility=True).error_code == int(ErrorCode.PAUSED)
        assert engine.call("get-token-uri", "anyone", asset_id=1).value == "ipfs://metadata"
        assert engine.call("is-paused", "anyone").value is True

        assert engine.call("unpause", "deployer").ok
        assert mint(engine).value == 2

    def test_admin_handoff(self, engine):
        assert engine.call("set-admin", "deployer", new_admin="ops").ok
        assert engine.call("pause", "deployer").error_code == int(ErrorCode.NOT_AUTHORIZED)
        assert engine.call("pause", "ops").ok
        assert engine.call("get-admin", "anyone").value == "ops"

    def test_category_and_shares(self, engine):
        mint(engine)
        assert engine.call("add-work-category", "artist", asset_id=1,
                           category="Electronic", tags=["dance", "upbeat"]).ok
        assert engine.call("get-category", "x", asset_id=1).value == {
            "category": "Electronic", "tags": ["dance", "upbeat"],
        }

        engine.call("set-revenue-share", "artist", asset_id=1, participant="a", percentage=70)
        engine.call("set-revenue-share", "artist", asset_id=1, participant="b", percentage=30)
        assert engine.call("get-share-total", "x", asset_id=1).value == 100


class TestSequencing:
    """Test sequence values handed to calls."""

    def test_mutations_advance_height(self, engine):
        first = mint(engine)
        second = mint(engine)

        assert first.height == 1
        assert second.height == 2
        assert engine.sequencer.height == 2
        assert engine.registry.get_track(2).created_at == 2

    def test_reads_do_not_advance(self, engine):
        mint(engine)
        engine.call("get-owner", "anyone", asset_id=1)
        engine.call("get-last-id", "anyone")
        assert engine.sequencer.height == 1

    def test_failures_do_not_advance(self, engine):
        mint(engine)
        engine.call("pause", "not-admin")
        engine.call("mint", "artist", content_ref="x" * 5000, title="T", description="D")
        assert engine.sequencer.height == 1

    def test_license_expiry_uses_height(self, engine):
        mint(engine)
        mint(engine)
        engine.call("grant-license", "artist", asset_id=1, licensee="u2", duration=10, terms="T")

        assert engine.call("get-license", "x", asset_id=1, licensee="u2").value["expiry"] == 13

    def test_is_license_active_defaults_to_current_height(self, engine):
        mint(engine)
        engine.call("grant-license", "artist", asset_id=1, licensee="u2", duration=1, terms="T")
        assert engine.call("is-license-active", "x", asset_id=1, licensee="u2").value is True

        mint(engine)
        mint(engine)
        assert engine.call("is-license-active", "x", asset_id=1, licensee="u2").value is False
        assert engine.call("is-license-active", "x", asset_id=1, licensee="u2", height=3).value is True

    def test_sequencer_persists(self, temp_dir):
        sequencer = Sequencer(temp_dir)
        sequencer.advance()
        sequencer.advance()

        assert Sequencer(temp_dir).height == 2
        assert Sequencer(temp_dir).peek() == 3


class TestJournaling:
    """Test journal entries written by the engine."""

    def test_successful_mutations_journaled(self, engine):
        mint(engine)
        engine.call("grant-license", "artist", asset_id=1, licensee="u2", duration=5, terms="T")

        entries = engine.journal.list()
        assert [e.operation for e in entries] == ["mint", "grant-license"]
        assert entries[0].asset_id == 1
        assert entries[0].result == 1
        assert entries[1].height == 2
        assert entries[1].args["licensee"] == "u2"

    def test_reads_and_failures_not_journaled(self, engine):
        mint(engine)
        engine.call("get-owner", "x", asset_id=1)
        engine.call("pause", "not-admin")
        assert len(engine.journal) == 1

    def test_entries_signed_with_key(self):
        private_pem, public_pem = generate_keypair()
        engine = RegistryEngine(
            registry=TrackRegistry(),
            journal=Journal(),
            signing_key=private_pem,
        )
        mint(engine)

        entry = engine.journal.list()[0]
        assert entry.signature is not None
        assert verify_entry(entry, public_pem)

    def test_no_journal(self):
        engine = RegistryEngine(registry=TrackRegistry())
        assert mint(engine).ok
        assert engine.journal is None


class TestFromStore:
    """Test opening a persisted engine."""

    def test_reopen_store(self, temp_dir):
        engine = RegistryEngine.from_store(temp_dir, deployer="label")
        mint(engine)
        engine.call("pause", "label")

        reopened = RegistryEngine.from_store(temp_dir)
        assert reopened.state() == {
            "paused": True,
            "admin": "label",
            "last_id": 1,
            "tracks": 1,
            "height": 2,
        }
        assert len(reopened.journal) == 2
        assert (temp_dir / "journal" / "journal.json").exists()

    def test_config_applies(self, temp_dir):
        engine = RegistryEngine.from_store(temp_dir, config=RegistryConfig(max_tags=1))
        mint(engine)
        result = engine.call("add-work-category", "artist", asset_id=1,
                             category="Pop", tags=["a", "b"])
        assert result.error_code == int(ErrorCode.INVALID_PARAM)

    def test_corrupt_sequencer_raises(self, temp_dir):
        (temp_dir / "sequencer.json").write_text('{"height": "many"}')
        with pytest.raises(StateError):
            RegistryEngine.from_store(temp_dir)


class TestFailedCalls:
    """Test that a failed call changes nothing: records, counters or journal."""

    def test_non_string_content_ref(self, temp_dir):
        """Bytes metadata is rejected before anything is written."""
        engine = RegistryEngine.from_store(temp_dir)
        result = engine.call("mint", "artist", content_ref=b"\x00\x01", title="T", description="D")

        assert result.ok is False
        assert result.error_code == int(ErrorCode.INVALID_PARAM)
        assert engine.registry.get_last_id() == 0
        assert engine.sequencer.height == 0
        assert len(engine.journal) == 0

        reopened = RegistryEngine.from_store(temp_dir)
        assert reopened.state()["last_id"] == 0

    def test_save_failure_propagates(self, temp_dir, monkeypatch):
        """A storage error is raised, not reported as a bad argument."""
        engine = RegistryEngine.from_store(temp_dir)

        def failing_save():
            raise OSError("disk full")

        monkeypatch.setattr(engine.registry, "_save", failing_save)
        with pytest.raises(OSError):
            mint(engine)

        assert engine.state() == {
            "paused": False,
            "admin": "deployer",
            "last_id": 0,
            "tracks": 0,
            "height": 0,
        }
        assert len(engine.journal) == 0

    def test_registry_type_error_propagates(self, engine, monkeypatch):
        """Only argument binding is reported as InvalidParam."""
        def broken(ctx, content_ref, title, description):
            raise TypeError("internal bug")

        monkeypatch.setattr(engine.registry, "mint", broken)
        with pytest.raises(TypeError, match="internal bug"):
            mint(engine)
        assert engine.sequencer.height == 0
