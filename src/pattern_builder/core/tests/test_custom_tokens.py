"""Tests for custom token management."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from ..custom_tokens import CustomToken, CustomTokenManager, PatternBuilderSession
from ..models import EngineConfig, TokenType
from ..tokenizer import FilenameTokenizer


def make_token(name: str = "Lane", examples: set[str] | None = None) -> CustomToken:
    """Helper to build a custom token."""
    return CustomToken(
        name=name,
        description="Traffic lane identifier",
        examples=frozenset(examples if examples is not None else {"lane1", "lane2"}),
        mapped_type=TokenType.SUFFIX,
    )


class TestCustomToken:
    """Test cases for CustomToken model."""

    def test_record_round_trip(self) -> None:
        """Test a token survives serialization to a record line."""
        token = make_token()

        record = token.to_record()

        assert record == "Lane|Traffic lane identifier|SUFFIX|lane1,lane2"
        assert CustomToken.from_record(record) == token

    def test_record_without_examples(self) -> None:
        """Test that an empty example field gives no examples."""
        token = CustomToken.from_record("Zone|Area code|PREFIX|")

        assert token.examples == frozenset()
        assert token.mapped_type == TokenType.PREFIX

    def test_malformed_records(self) -> None:
        """Test records with missing fields or unknown types are rejected."""
        with pytest.raises(ValueError):
            CustomToken.from_record("Lane|SUFFIX|lane1")
        with pytest.raises(ValueError):
            CustomToken.from_record("Lane|desc|NOT_A_TYPE|lane1")

    def test_name_validation(self) -> None:
        """Test names are stripped and may not be blank or contain separators."""
        assert make_token(name="  Lane ").name == "Lane"

        with pytest.raises(PydanticValidationError):
            make_token(name="   ")
        with pytest.raises(PydanticValidationError):
            make_token(name="La|ne")

    def test_matches_ignores_case(self) -> None:
        """Test that examples match regardless of case."""
        token = make_token()

        assert token.matches("LANE1")
        assert not token.matches("lane3")


class TestCustomTokenManager:
    """Test cases for CustomTokenManager."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.manager = CustomTokenManager()

    def test_names_are_case_insensitive(self) -> None:
        """Test that adding a token with a differently cased name replaces it."""
        self.manager.add_custom_token(make_token("Lane"))
        self.manager.add_custom_token(make_token("LANE", {"l9"}))

        assert self.manager.count == 1
        assert self.manager.get_custom_token("lane").examples == frozenset({"l9"})

    def test_update_renames(self) -> None:
        """Test updating under a new name removes the old entry."""
        self.manager.add_custom_token(make_token("Lane"))

        self.manager.update_custom_token("Lane", make_token("Track"))

        assert self.manager.get_custom_token("Lane") is None
        assert self.manager.get_custom_token("Track") is not None

    def test_remove(self) -> None:
        """Test removing tokens by name."""
        self.manager.add_custom_token(make_token())

        assert self.manager.remove_custom_token("lane")
        assert not self.manager.remove_custom_token("lane")

    def test_preconfigured_tokens(self) -> None:
        """Test the built-in tokens."""
        self.manager.load_preconfigured_custom_tokens()

        names = {token.name for token in self.manager.get_all_custom_tokens()}
        assert names == {"Lane", "Direction", "Station", "Violation"}
        assert self.manager.find_matching_custom_token("NB").name == "Direction"

    def test_enhance_only_touches_unknown_tokens(self) -> None:
        """Test that classified tokens keep their type."""
        names = ["vehicle_001_lane1_front.jpg", "vehicle_002_lane1_rear.jpg"]
        analysis = FilenameTokenizer().analyze_filenames(names)
        self.manager.add_custom_token(make_token(examples={"lane1", "vehicle"}))

        enhanced = self.manager.enhance_with_custom_tokens(analysis)

        tokens = enhanced.tokens_for(names[0])
        assert tokens[0].suggested_type == TokenType.PREFIX
        assert tokens[2].suggested_type == TokenType.SUFFIX
        assert tokens[2].confidence == 0.9
        assert analysis.tokens_for(names[0])[2].suggested_type == TokenType.UNKNOWN

    def test_enhance_without_tokens_returns_same_analysis(self) -> None:
        """Test that nothing changes without custom tokens."""
        analysis = FilenameTokenizer().analyze_filenames(["a_1.jpg", "b_2.jpg"])

        assert self.manager.enhance_with_custom_tokens(analysis) is analysis

    def test_dialog_offered_once_per_session(self) -> None:
        """Test the custom token dialog flag is tracked per session."""
        analysis = FilenameTokenizer().analyze_filenames(
            ["vehicle_001_lane1_front.jpg", "vehicle_002_lane1_rear.jpg"]
        )
        session = PatternBuilderSession()

        assert self.manager.should_offer_custom_token_dialog(session, analysis)
        self.manager.mark_custom_token_dialog_shown(session)
        assert not self.manager.should_offer_custom_token_dialog(session, analysis)
        assert self.manager.should_offer_custom_token_dialog(PatternBuilderSession(), analysis)


class TestCustomTokenPersistence:
    """Test cases for saving and loading custom tokens."""

    def test_save_and_load(self, tmp_path: Path) -> None:
        """Test tokens written to disk load back unchanged."""
        path = tmp_path / "config" / "custom-tokens.txt"
        manager = CustomTokenManager([make_token(), make_token("Gate", {"g1"})])

        manager.save(path)
        loaded = CustomTokenManager()

        assert loaded.load(path) == 2
        assert loaded.get_custom_token("gate") == make_token("Gate", {"g1"})

    def test_missing_file_loads_preconfigured(self, tmp_path: Path) -> None:
        """Test that a missing file falls back to the built-in tokens."""
        manager = CustomTokenManager(config=EngineConfig(custom_tokens_path=tmp_path / "none.txt"))

        assert manager.load() == 4

    def test_malformed_lines_skipped(self, tmp_path: Path) -> None:
        """Test that bad records are skipped and good ones kept."""
        path = tmp_path / "custom-tokens.txt"
        path.write_text("Lane|desc|SUFFIX|lane1\nbroken line\n\nGate|desc|BOGUS|g1\n")
        manager = CustomTokenManager()

        assert manager.load(path) == 1
        assert manager.get_custom_token("Lane") is not None

    def test_undecodable_file_loads_preconfigured(self, tmp_path: Path) -> None:
        """Test that a file that is not UTF-8 falls back to the built-in tokens."""
        path = tmp_path / "custom-tokens.txt"
        path.write_bytes(b"\xff\xfe bad")
        manager = CustomTokenManager([make_token("Gate", {"g1"})])

        assert manager.load(path) == 4
        assert manager.get_custom_token("Gate") is None
