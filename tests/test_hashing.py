from __future__ import annotations

import os
from pathlib import Path

import pytest

from next_ledger.errors import ResourceError, ValidationError
from next_ledger.services.hashing import content_hash, location_hash, normalize_location


class TestLocationHash:
    def test_known_digest(self) -> None:
        # sha256("abc")
        assert location_hash("abc") == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )

    def test_deterministic_and_fixed_width(self) -> None:
        first = location_hash("/srv/data/a.txt")
        assert first == location_hash("/srv/data/a.txt")
        assert len(first) == 64
        assert first == first.lower()

    def test_distinct_locations(self) -> None:
        assert location_hash("/a") != location_hash("/b")

    def test_undecodable_location(self) -> None:
        with pytest.raises(ResourceError) as exc_info:
            location_hash(os.fsdecode(b"/srv/\xff.txt"))
        assert exc_info.value.details["location"] == "/srv/\\udcff.txt"


class TestContentHash:
    def test_known_digest(self, tmp_path: Path) -> None:
        target = tmp_path / "sample.txt"
        target.write_bytes(b"hello world\n")
        assert content_hash(str(target)) == (
            "a948904f2f0f479b8f8197694b30184b0d2ed1c1cd2a1ec0fb85d299a192a447"
        )

    def test_changes_with_content(self, tmp_path: Path) -> None:
        target = tmp_path / "sample.txt"
        target.write_text("one")
        before = content_hash(str(target))
        target.write_text("two")
        assert content_hash(str(target)) != before

    def test_missing_file(self, tmp_path: Path) -> None:
        missing = str(tmp_path / "missing.txt")
        with pytest.raises(ResourceError) as exc_info:
            content_hash(missing)
        assert exc_info.value.details["location"] == missing
        assert missing in str(exc_info.value)

    def test_directory_is_unreadable(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceError):
            content_hash(str(tmp_path))

    def test_nul_in_location(self) -> None:
        with pytest.raises(ResourceError):
            content_hash("/tmp/bad\x00name")


class TestNormalizeLocation:
    def test_relative_becomes_absolute(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert normalize_location("sub/../a.txt") == os.path.join(os.getcwd(), "a.txt")

    def test_strips_whitespace(self) -> None:
        assert normalize_location("  /x/y.txt \n") == "/x/y.txt"

    def test_blank_rejected(self) -> None:
        with pytest.raises(ValidationError):
            normalize_location("   ")
