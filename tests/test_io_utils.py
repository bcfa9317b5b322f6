"""
Tests for atomic writes, hashing and the JSONL logger.
"""

import json
import tempfile

import pytest

from vax_leaderboard.hashing import (
    hash_bytes,
    hash_dict,
    hash_file,
    read_metadata_sidecar,
    write_metadata_sidecar,
)
from vax_leaderboard.io_utils import (
    atomic_write,
    atomic_write_bytes,
    atomic_write_group,
    atomic_write_json,
    cleanup_temp_files,
    read_json,
    read_yaml,
)
from vax_leaderboard.logging_utils import JSONLLogger, generate_run_id, get_versions


class TestAtomicWrite:
    """Tests for the atomic write helpers."""

    def test_writes_and_creates_parent(self, tmp_path):
        target = tmp_path / "nested" / "out.txt"
        with atomic_write(target) as f:
            f.write("hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_failure_keeps_previous_content(self, tmp_path):
        target = tmp_path / "out.txt"
        target.write_text("previous", encoding="utf-8")

        with pytest.raises(RuntimeError):
            with atomic_write(target) as f:
                f.write("partial")
                raise RuntimeError("boom")

        assert target.read_text(encoding="utf-8") == "previous"
        assert [p.name for p in tmp_path.iterdir()] == ["out.txt"]

    def test_bytes(self, tmp_path):
        target = tmp_path / "blob.bin"
        atomic_write_bytes(b"\x00\x01", target)
        assert target.read_bytes() == b"\x00\x01"

    def test_json_round_trip(self, tmp_path):
        target = tmp_path / "data.json"
        atomic_write_json({"b": 1, "a": [1, 2]}, target)
        assert read_json(target) == {"b": 1, "a": [1, 2]}

    def test_read_yaml(self, tmp_path):
        path = tmp_path / "p.yml"
        path.write_text("leaderboard:\n  top_n: 3\n", encoding="utf-8")
        assert read_yaml(path) == {"leaderboard": {"top_n": 3}}

    def test_cleanup_temp_files(self, tmp_path):
        (tmp_path / ".leaderboard_abc.csv").write_text("x", encoding="utf-8")
        (tmp_path / "leaderboard.csv").write_text("x", encoding="utf-8")
        assert cleanup_temp_files(tmp_path) == 1
        assert [p.name for p in tmp_path.iterdir()] == ["leaderboard.csv"]


class TestAtomicWriteGroup:
    """Tests for writing several files as one unit."""

    def test_writes_all_targets(self, tmp_path):
        csv = tmp_path / "tables" / "leaderboard.csv"
        png = tmp_path / "figures" / "leaderboard.png"
        atomic_write_group({csv: b"rank\n1\n", png: b"\x89PNG"})
        assert csv.read_bytes() == b"rank\n1\n"
        assert png.read_bytes() == b"\x89PNG"

    def test_staging_failure_keeps_every_target(self, tmp_path, monkeypatch):
        csv = tmp_path / "leaderboard.csv"
        png = tmp_path / "leaderboard.png"
        csv.write_bytes(b"old csv")
        png.write_bytes(b"old png")

        real_mkstemp = tempfile.mkstemp

        def mkstemp_failing_on_png(*args, **kwargs):
            if kwargs.get("suffix") == ".png":
                raise OSError("No space left on device")
            return real_mkstemp(*args, **kwargs)

        monkeypatch.setattr(tempfile, "mkstemp", mkstemp_failing_on_png)
        with pytest.raises(OSError):
            atomic_write_group({csv: b"new csv", png: b"new png"})

        assert csv.read_bytes() == b"old csv"
        assert png.read_bytes() == b"old png"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["leaderboard.csv", "leaderboard.png"]


class TestHashing:
    """Tests for hashing and metadata sidecars."""

    def test_file_and_bytes_agree(self, tmp_path):
        path = tmp_path / "f.bin"
        path.write_bytes(b"county data")
        assert hash_file(path) == hash_bytes(b"county data")

    def test_hash_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            hash_file(tmp_path / "missing")

    def test_dict_key_order_irrelevant(self):
        assert hash_dict({"a": 1, "b": 2}) == hash_dict({"b": 2, "a": 1})
        assert hash_dict({"a": 1}) != hash_dict({"a": 2})

    def test_sidecar_round_trip(self, tmp_path):
        path = write_metadata_sidecar(
            "leaderboard",
            outputs={"csv": "reports/tables/leaderboard.csv"},
            source={"url": "https://example.org"},
            config={"top_n": 10},
            run_id="run-1",
            extra={"rows_ranked": 10},
            metadata_dir=tmp_path,
        )
        assert path.name == "leaderboard_metadata.json"
        metadata = read_metadata_sidecar("leaderboard", metadata_dir=tmp_path)
        assert metadata["run_id"] == "run-1"
        assert metadata["config_digest"] == hash_dict({"top_n": 10})
        assert metadata["extra"] == {"rows_ranked": 10}
        assert "python" in metadata["versions"]

    def test_sidecar_missing(self, tmp_path):
        assert read_metadata_sidecar("nothing", metadata_dir=tmp_path) is None


class TestJSONLLogger:
    """Tests for the structured logger."""

    def read_records(self, logger):
        return [json.loads(line) for line in logger.log_file.read_text(encoding="utf-8").splitlines()]

    def test_records_have_standard_keys(self, tmp_path):
        logger = JSONLLogger("unit", log_dir=tmp_path)
        logger.info("hello", extra={"rows": 3})
        logger.log_metrics({"rows_ranked": 10})
        logger.close()

        records = self.read_records(logger)
        assert records[0]["message"] == "Logger initialized"
        assert all(r["run_id"] == logger.run_id for r in records)
        assert records[1]["extra"] == {"rows": 3}
        assert records[2]["extra"] == {"metrics": {"rows_ranked": 10}}
        assert records[-1]["message"] == "Logger closing"

    def test_context_manager_logs_exception(self, tmp_path):
        with pytest.raises(ValueError):
            with JSONLLogger("unit", log_dir=tmp_path) as logger:
                raise ValueError("bad sheet")

        records = self.read_records(logger)
        errors = [r for r in records if r["level"] == "ERROR"]
        assert "bad sheet" in errors[0]["message"]

    def test_run_id_format(self):
        run_id = generate_run_id()
        assert len(run_id.split("_")) == 3
        assert run_id != generate_run_id()

    def test_versions(self):
        versions = get_versions()
        assert "python" in versions
        assert "pandas" in versions
