"""Tests for the metadata prober."""

import os

import pytest

from stablesnap.capture import MetadataProber
from stablesnap.common.exceptions import AccessError, ErrorCode
from stablesnap.constants import EntryKind


class TestMetadataProber:
    """Test single-entry probing."""

    def test_probe_regular_file(self, make_tree):
        root = make_tree({"a.txt": "0123456789"})
        entry = MetadataProber().probe(root / "a.txt", ("a.txt",))

        st = os.lstat(root / "a.txt")
        assert entry.kind == EntryKind.FILE
        assert entry.size == 10
        assert entry.mtime_ns == st.st_mtime_ns
        assert entry.path == ("a.txt",)
        assert entry.link_target is None

    def test_probe_directory(self, make_tree):
        root = make_tree({"sub": None})
        entry = MetadataProber().probe(root / "sub", ("sub",))
        assert entry.kind == EntryKind.DIRECTORY

    def test_probe_symlink_uses_link_metadata(self, make_tree):
        root = make_tree({"big.bin": b"x" * 4096})
        os.symlink("big.bin", root / "link")

        entry = MetadataProber().probe(root / "link", ("link",))

        assert entry.kind == EntryKind.SYMLINK
        assert entry.link_target == "big.bin"
        assert entry.size == os.lstat(root / "link").st_size
        assert entry.size != 4096

    def test_probe_dangling_symlink(self, make_tree):
        root = make_tree({})
        os.symlink("missing", root / "dangling")
        entry = MetadataProber().probe(root / "dangling", ("dangling",))
        assert entry.kind == EntryKind.SYMLINK

    def test_probe_missing_path_raises_access_error(self, tmp_path):
        with pytest.raises(AccessError) as exc_info:
            MetadataProber().probe(tmp_path / "gone", ("gone",))
        assert exc_info.value.error_code == ErrorCode.ENTRY_VANISHED
        assert exc_info.value.path == str(tmp_path / "gone")

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not supported")
    def test_probe_fifo_returns_none(self, tmp_path):
        os.mkfifo(tmp_path / "pipe")
        assert MetadataProber().probe(tmp_path / "pipe", ("pipe",)) is None
