"""Directory tree built from a flat listing.

Only directories are nodes: ``a/b/c.jpg`` contributes ``a`` and ``a/b``;
files directly under the list directory contribute nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Optional

from .classifier import FileRecord
from .config import ImgbedSourceConfig
from .logging_config import get_logger
from .path_utils import split_segments, to_relative
from .utils import collation_key

logger = get_logger(__name__)


@dataclass
class DirectoryNode:
    name: str
    path: str
    children: list["DirectoryNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "children": [child.to_dict() for child in self.children],
        }

    def child(self, name: str) -> Optional["DirectoryNode"]:
        return next((node for node in self.children if node.name == name), None)

    def walk(self) -> Iterator["DirectoryNode"]:
        """Depth-first, root first."""
        yield self
        for node in self.children:
            yield from node.walk()


@dataclass
class DirectoryListing:
    domain: str
    source_list_dir: str
    file_count: int
    directory_count: int
    tree: DirectoryNode
    skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "domain": self.domain,
            "sourceListDir": self.source_list_dir,
            "fileCount": self.file_count,
            "directoryCount": self.directory_count,
            "tree": self.tree.to_dict(),
        }


def extract_directories(records: Iterable[Any], source: ImgbedSourceConfig) -> tuple[set[str], int]:
    """Every ancestor directory of every listed file, relative to the list dir.

    Returns (directory paths, malformed record count).
    """
    directories: set[str] = set()
    skipped = 0

    for item in records:
        try:
            record = FileRecord.from_raw(item)
        except ValueError as exc:
            skipped += 1
            logger.debug(f"Skipping record: {exc}")
            continue

        relative = to_relative(record.path, source.file_route_prefix, source.list_dir)
        parts = split_segments(relative)
        if len(parts) <= 1:
            continue

        for index in range(1, len(parts)):
            directories.add("/".join(parts[:index]))

    return directories, skipped


def _sort_tree(node: DirectoryNode) -> None:
    node.children.sort(key=lambda child: collation_key(child.name))
    for child in node.children:
        _sort_tree(child)


def build_directory_tree(directory_paths: Iterable[str]) -> DirectoryNode:
    """Assemble a tree rooted at the empty path; siblings sorted locale-aware."""
    root = DirectoryNode(name="", path="")
    nodes: dict[str, DirectoryNode] = {"": root}

    for dir_path in directory_paths:
        parent_path = ""
        for part in split_segments(dir_path):
            current_path = f"{parent_path}/{part}" if parent_path else part
            if current_path not in nodes:
                node = DirectoryNode(name=part, path=current_path)
                nodes[parent_path].children.append(node)
                nodes[current_path] = node
            parent_path = current_path

    _sort_tree(root)
    return root


def find_node(tree: DirectoryNode, path: str) -> Optional[DirectoryNode]:
    """Descend segment by segment; None on the first missing segment."""
    node = tree
    for part in split_segments(str(path or "").strip().strip("/")):
        node = node.child(part)
        if node is None:
            return None
    return node


def build_directory_listing(records: list, source: ImgbedSourceConfig) -> DirectoryListing:
    directories, skipped = extract_directories(records, source)
    if skipped:
        logger.info(f"Skipped {skipped} malformed listing records")
    return DirectoryListing(
        domain=source.domain,
        source_list_dir=source.list_dir,
        file_count=len(records),
        directory_count=len(directories),
        tree=build_directory_tree(directories),
        skipped=skipped,
    )
