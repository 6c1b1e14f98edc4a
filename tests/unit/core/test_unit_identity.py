# tests/unit/core/test_unit_identity.py — v1
"""Tests for core/identity.py — identity keys for merge-back."""

from __future__ import annotations

from treescan.core.identity import KeyRule, composite_key, identity_key
from treescan.core.models import ScanMode
from treescan.core.schema import output_columns


class TestIdentityKey:
    def test_files_composite_without_id(self):
        row = {"Path": "X/a.txt", "File Name": "a.txt", "Extension": "txt"}
        assert identity_key(row, ScanMode.FILES) == "X/a.txt||a.txt||txt"

    def test_files_uses_name_when_no_file_name(self):
        row = {"Path": "X/a.txt", "Name": "a.txt"}
        assert identity_key(row, ScanMode.FILES) == "X/a.txt||a.txt"

    def test_id_alone_when_present(self):
        row = {"Path": "X/a.txt", "File Name": "a.txt", "File ID": "abc"}
        assert identity_key(row, ScanMode.FILES) == "abc"

    def test_blank_id_falls_back_to_composite(self):
        row = {"Path": "X/a.txt", "File Name": "a.txt", "Extension": "txt", "File ID": "  "}
        assert identity_key(row, ScanMode.FILES) == "X/a.txt||a.txt||txt"

    def test_folders_path(self):
        assert identity_key({"Path": "X/Y", "Folder Name": "Y"}, ScanMode.FOLDERS) == "X/Y"

    def test_both_composite(self):
        row = {"Path": "X/a.txt", "Name": "a.txt", "Type": "File", "Extension": "txt"}
        assert identity_key(row, ScanMode.BOTH) == "X/a.txt||a.txt||File||txt"

    def test_values_are_stripped_and_stringified(self):
        assert composite_key([" X ", None, 3]) == "X||||3"


class TestKeyRuleForHeaders:
    def test_id_used_when_both_sides_have_it(self):
        header = output_columns(ScanMode.FILES)
        rule = KeyRule.for_headers(ScanMode.FILES, header, header)
        assert rule.id_column == "File ID"

    def test_id_dropped_when_prior_lacks_it(self):
        prior = ["SlNo", "Path", "File Name", "Notes"]
        rule = KeyRule.for_headers(ScanMode.FILES, prior, output_columns(ScanMode.FILES))
        assert rule.id_column is None
        assert rule.composite_columns == ("Path", "File Name")

    def test_keys_comparable_across_headers(self):
        prior = ["Path", "File Name", "Notes"]
        new = output_columns(ScanMode.FILES)
        rule = KeyRule.for_headers(ScanMode.FILES, prior, new)
        prior_row = {"Path": "X/a.txt", "File Name": "a.txt", "Notes": "n"}
        new_row = {"Path": "X/a.txt", "File Name": "a.txt", "Extension": "txt", "File ID": "id"}
        assert rule.key(prior_row) == rule.key(new_row)

    def test_key_stable_for_same_row(self):
        header = output_columns(ScanMode.BOTH)
        rule = KeyRule.for_header(ScanMode.BOTH, header)
        row = {"ID": "f1", "Path": "X"}
        assert rule.key(row) == rule.key(dict(row))
