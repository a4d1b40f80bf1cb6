"""Render bucket listings as a directory tree."""
from typing import Dict, Iterable

from rich.markup import escape
from rich.tree import Tree

from ..core.models import B2File


def build_tree(label: str, files: Iterable[B2File]) -> Tree:
    """
    Build a rich Tree from file names, splitting them on '/'.

    Folders sort before files at every level.
    """
    nested: Dict[str, dict] = {}
    for file in files:
        node = nested
        segments = [s for s in file.file_name.split('/') if s]
        for segment in segments[:-1]:
            node = node.setdefault(segment + '/', {})
        if segments:
            node.setdefault(segments[-1], {})

    root = Tree(f"[bold]{escape(label)}[/bold]")
    _add_children(root, nested)
    return root


def _add_children(tree: Tree, children: Dict[str, dict]) -> None:
    ordered = sorted(children.items(), key=lambda item: (not item[0].endswith('/'), item[0]))
    for name, grandchildren in ordered:
        if name.endswith('/'):
            branch = tree.add(f"[blue]{escape(name)}[/blue]")
            _add_children(branch, grandchildren)
        else:
            tree.add(f"[yellow]{escape(name)}[/yellow]")
