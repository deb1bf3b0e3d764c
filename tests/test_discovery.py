"""Tests for input discovery and batch_id inference."""

import os
from pathlib import Path

import pytest

from merge_batches import (
    ROOT_BATCH_ID,
    NoInputFilesError,
    describe_file,
    discover_input_files,
    infer_batch_id,
)


class TestDiscoverInputFiles:
    """Recursive, case-insensitive, deterministic .csv discovery."""

    def test_finds_csv_recursively_in_sorted_order(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "B2" / "merged.csv", "a\n1\n")
        make_csv(root / "B1" / "sub" / "merged.csv", "a\n1\n")
        make_csv(root / "top.csv", "a\n1\n")

        files = discover_input_files(root)

        rel = [f.relative_to(root).as_posix() for f in files]
        assert rel == ["B1/sub/merged.csv", "B2/merged.csv", "top.csv"]

    def test_extension_match_is_case_insensitive(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "B1" / "UPPER.CSV", "a\n1\n")
        make_csv(root / "B1" / "Mixed.Csv", "a\n1\n")
        make_csv(root / "B1" / "notes.txt", "a\n1\n")

        names = sorted(f.name for f in discover_input_files(root))

        assert names == ["Mixed.Csv", "UPPER.CSV"]

    def test_skips_lock_files(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "merged.csv", "a\n1\n")
        make_csv(root / "~$merged.csv", "a\n1\n")
        make_csv(root / ".~lock.merged.csv", "a\n1\n")

        assert [f.name for f in discover_input_files(root)] == ["merged.csv"]

    def test_same_order_on_rerun(self, tmp_path, make_csv):
        root = tmp_path / "input"
        for name in ("c", "a", "b", "a2"):
            make_csv(root / name / "merged.csv", "a\n1\n")

        assert discover_input_files(root) == discover_input_files(root)

    def test_empty_folder_raises(self, tmp_path):
        root = tmp_path / "input"
        root.mkdir()

        with pytest.raises(NoInputFilesError):
            discover_input_files(root)

    def test_missing_folder_raises(self, tmp_path):
        with pytest.raises(NoInputFilesError):
            discover_input_files(tmp_path / "does_not_exist")

    def test_excludes_nested_output_folder(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "B1" / "merged.csv", "a\n1\n")
        make_csv(root / "out" / "merged_raw.csv", "a\n1\n")

        files = discover_input_files(root, exclude=root / "out")

        assert [f.relative_to(root).as_posix() for f in files] == ["B1/merged.csv"]

    def test_output_folder_equal_to_input_keeps_inputs(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "B1" / "merged.csv", "a\n1\n")
        make_csv(root / "merged_raw.csv", "a\n1\n")
        make_csv(root / "plate.csv", "a\n1\n")

        files = discover_input_files(root, exclude=root, output_names=["merged_raw.csv"])

        assert [f.relative_to(root).as_posix() for f in files] == ["B1/merged.csv", "plate.csv"]

    def test_output_folder_above_input_keeps_inputs(self, tmp_path, make_csv):
        data = tmp_path / "data"
        root = data / "batches"
        make_csv(root / "B1" / "merged.csv", "a\n1\n")

        files = discover_input_files(root, exclude=data, output_names=["merged_raw.csv"])

        assert [f.relative_to(root).as_posix() for f in files] == ["B1/merged.csv"]

    def test_output_names_only_skipped_directly_in_output_folder(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "B1" / "merged_raw.csv", "a\n1\n")

        files = discover_input_files(root, exclude=root, output_names=["merged_raw.csv"])

        assert [f.relative_to(root).as_posix() for f in files] == ["B1/merged_raw.csv"]

    def test_skipped_lock_files_are_logged(self, tmp_path, make_csv, logger, caplog):
        root = tmp_path / "input"
        make_csv(root / "merged.csv", "a\n1\n")
        make_csv(root / "~$merged.csv", "a\n1\n")

        with caplog.at_level("DEBUG", logger=logger.name):
            discover_input_files(root, logger=logger)

        assert "Skipping lock file" in caplog.text
        assert "~$merged.csv" in caplog.text


class TestInferBatchId:
    """batch_id is the first subfolder under the input root, else ROOT."""

    def test_first_subfolder_wins(self, tmp_path):
        root = tmp_path / "input"
        assert infer_batch_id(root / "B1" / "sub" / "x.csv", root) == "B1"

    def test_file_directly_in_root(self, tmp_path):
        root = tmp_path / "input"
        assert infer_batch_id(root / "x.csv", root) == ROOT_BATCH_ID

    def test_trailing_separator_on_root(self, tmp_path):
        root = tmp_path / "input"
        f = root / "B7" / "merged.csv"
        assert infer_batch_id(f, str(root) + os.sep) == infer_batch_id(f, root) == "B7"

    def test_unnormalized_root(self, tmp_path):
        root = tmp_path / "input"
        (root / "B1").mkdir(parents=True)
        f = root / "B1" / "merged.csv"

        assert infer_batch_id(f, root / "B1" / "..") == "B1"

    def test_relative_paths(self, tmp_path, monkeypatch):
        (tmp_path / "input" / "B3").mkdir(parents=True)
        monkeypatch.chdir(tmp_path)

        rel = infer_batch_id(Path("input/B3/merged.csv"), Path("input"))
        absolute = infer_batch_id(tmp_path / "input" / "B3" / "merged.csv", tmp_path / "input")

        assert rel == absolute == "B3"

    def test_symlinked_root(self, tmp_path, make_csv):
        root = tmp_path / "input"
        make_csv(root / "B1" / "merged.csv", "a\n1\n")
        link = tmp_path / "link_to_input"
        os.symlink(root, link, target_is_directory=True)

        assert infer_batch_id(link / "B1" / "merged.csv", root) == "B1"
        assert infer_batch_id(root / "B1" / "merged.csv", link) == "B1"

    def test_file_outside_root_falls_back(self, tmp_path):
        assert infer_batch_id(tmp_path / "elsewhere" / "x.csv", tmp_path / "input") == ROOT_BATCH_ID

    def test_describe_file(self, tmp_path, make_csv):
        root = tmp_path / "input"
        f = make_csv(root / "B1" / "merged.csv", "a\n1\n")

        d = describe_file(f, root)

        assert d.source_file == "merged"
        assert d.source_path == str(f.resolve())
        assert d.batch_id == "B1"
