"""Utilities for rendering folders in the CLI."""

from __future__ import annotations

from stash.db.models import FolderTreeNode, Resource, ResourceType

_ICONS = {
    ResourceType.LINK: "🔗",
    ResourceType.GITHUB: "🐙",
    ResourceType.DOCUMENT: "📄",
    ResourceType.IMAGE: "🖼️",
    ResourceType.ARTICLE: "📰",
}


def resource_icon(resource_type: ResourceType) -> str:
    return _ICONS.get(resource_type, "📦")


def resource_line(resource: Resource) -> str:
    return f"{resource_icon(resource.type)} {resource.title}  [{resource.id}]"


def render_tree(roots: list[FolderTreeNode], loose: list[Resource] = ()) -> str:  # type: ignore[assignment]
    """Render folders (with their resources) and root-level resources as an ASCII tree."""
    lines: list[str] = []

    def _render(node: FolderTreeNode, prefix: str, is_last: bool) -> None:
        connector = "└── " if is_last else "├── "
        folder = node.folder
        lines.append(
            f"{prefix}{connector}📁 {folder.name} ({folder.resource_type.label})  [{folder.id}]"
        )
        child_prefix = prefix + ("    " if is_last else "│   ")

        entries: list[FolderTreeNode | Resource] = [*node.children, *node.resources]
        for i, entry in enumerate(entries):
            last = i == len(entries) - 1
            if isinstance(entry, FolderTreeNode):
                _render(entry, child_prefix, last)
            else:
                lines.append(f"{child_prefix}{'└── ' if last else '├── '}{resource_line(entry)}")

    top: list[FolderTreeNode | Resource] = [*roots, *loose]
    for i, entry in enumerate(top):
        last = i == len(top) - 1
        if isinstance(entry, FolderTreeNode):
            _render(entry, "", last)
        else:
            lines.append(f"{'└── ' if last else '├── '}{resource_line(entry)}")

    return "\n".join(lines) if lines else "(empty)"
