import tarfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional, Tuple, Union

import pytest
import zstandard

from stablesnap.capture import TreeWalker


ArchiveListing = Dict[str, Tuple[str, Optional[Union[bytes, str]]]]


def read_archive(path: Union[str, Path]) -> ArchiveListing:
    """Decode a tar.zst archive into ``{name: (kind, payload)}``.

    Payload is the file contents for files, the link target for symlinks and
    ``None`` for directories.
    """
    listing: ArchiveListing = {}
    with open(path, "rb") as fh:
        reader = zstandard.ZstdDecompressor().stream_reader(fh)
        with tarfile.open(fileobj=reader, mode="r|") as tar:
            for member in tar:
                name = member.name.rstrip("/")
                if member.isdir():
                    listing[name] = ("directory", None)
                elif member.issym():
                    listing[name] = ("symlink", member.linkname)
                else:
                    listing[name] = ("file", tar.extractfile(member).read())
    return listing


class MutatingWalker(TreeWalker):
    """Walker that runs a callback right before selected walks.

    Walk calls are numbered from 1; in attempt ``n`` the before-walk is call
    ``2n - 1`` and the after-walk is call ``2n``.
    """

    def __init__(self, mutate: Callable[[int], None], on_calls: Iterable[int] = (), every_after_walk: bool = False):
        super().__init__()
        self.mutate = mutate
        self.on_calls = set(on_calls)
        self.every_after_walk = every_after_walk
        self.calls = 0

    def walk(self, root):
        self.calls += 1
        if self.calls in self.on_calls or (self.every_after_walk and self.calls % 2 == 0):
            self.mutate(self.calls)
        return super().walk(root)


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, Optional[Union[str, bytes]]]], Path]:
    """Create a tree under ``tmp_path/root`` from ``{relative: content}``.

    A ``None`` content creates a directory; strings and bytes create files.
    """

    def _make(spec: Dict[str, Optional[Union[str, bytes]]]) -> Path:
        root = tmp_path / "root"
        root.mkdir(exist_ok=True)
        for relative, content in spec.items():
            target = root / relative
            if content is None:
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(content)
        return root

    return _make


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out
