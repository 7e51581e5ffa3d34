"""
br_cli/data_models/tree.py

Data models for page structure snapshots.

Contains:
- DomNodeType: DOM node type constants used by the path computation
- DomNode: One node of the flattened DOM tree
- AccessibilityNode: One node of the accessibility tree
- Snapshot: DOM + accessibility state of one tab at one instant
"""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field


class DomNodeType(IntEnum):
    """Subset of DOM Node.nodeType values with special handling in structural paths."""
    ELEMENT = 1
    TEXT = 3
    CDATA_SECTION = 4
    COMMENT = 8
    DOCUMENT = 9
    DOCUMENT_TYPE = 10
    DOCUMENT_FRAGMENT = 11


class DomNode(BaseModel):
    """
    Model for a DOM node as returned by the inspection protocol.
    `children` and `structural_path` are filled in by the snapshot builder.
    """
    node_id: int = Field(
        ...,
        description="Protocol-assigned node id; unique within one snapshot only",
    )
    parent_id: int | None = Field(
        default=None,
        description="node_id of the owning node within the same snapshot (None for the root)",
    )
    backend_id: int = Field(
        ...,
        description="Backend node id, shared with the accessibility tree",
    )
    node_type: int = Field(
        default=DomNodeType.ELEMENT,
        description="DOM nodeType (1 element, 3 text, 9 document, ...)",
    )
    tag_name: str = Field(
        ...,
        description="Lowercase node name (e.g. 'div', '#text', '#document')",
    )
    children: list[int] = Field(
        default_factory=list,
        description="Ordered node ids of the child nodes",
    )
    structural_path: str | None = Field(
        default=None,
        description="XPath-style structural path from the document root to this node",
    )

    @classmethod
    def from_cdp(cls, node: dict[str, Any], parent_id: int | None = None) -> "DomNode":
        """
        Build a DomNode from a CDP DOM.Node dict.
        Args:
            node: The CDP node dict.
            parent_id: Explicit parent id; falls back to the node's own parentId.
        Returns:
            The DomNode (without children/path).
        """
        return cls(
            node_id=node["nodeId"],
            parent_id=parent_id if parent_id is not None else node.get("parentId"),
            backend_id=node["backendNodeId"],
            node_type=node.get("nodeType", DomNodeType.ELEMENT),
            tag_name=(node.get("nodeName") or "").lower(),
        )

    @property
    def path_step(self) -> str:
        """Name used for this node in a structural path step."""
        if self.node_type == DomNodeType.TEXT or self.node_type == DomNodeType.CDATA_SECTION:
            return "text()"
        if self.node_type == DomNodeType.COMMENT:
            return "comment()"
        return self.tag_name

    @property
    def is_transparent(self) -> bool:
        """Documents and fragments add no step of their own to their children's paths."""
        return self.node_type in (DomNodeType.DOCUMENT, DomNodeType.DOCUMENT_FRAGMENT)


class AccessibilityNode(BaseModel):
    """
    Model for an accessibility tree node.
    """
    ax_id: str = Field(
        ...,
        description="Accessibility node id, numbered independently of DOM node ids",
    )
    backend_dom_id: int | None = Field(
        default=None,
        description="Backend id of the DOM node this accessibility node describes",
    )
    role: str | None = Field(
        default=None,
        description="Semantic role (e.g. 'button', 'link', 'RootWebArea')",
    )
    name: str | None = Field(
        default=None,
        description="Accessible name",
    )
    child_ids: list[str] = Field(
        default_factory=list,
        description="Ordered ids of the child accessibility nodes",
    )

    @staticmethod
    def _ax_value(value: Any) -> str | None:
        if isinstance(value, dict):
            value = value.get("value")
        if value is None:
            return None
        return str(value)

    @classmethod
    def from_cdp(cls, node: dict[str, Any]) -> "AccessibilityNode":
        """
        Build an AccessibilityNode from a CDP Accessibility.AXNode dict.
        Args:
            node: The CDP AXNode dict.
        Returns:
            The AccessibilityNode.
        """
        return cls(
            ax_id=str(node["nodeId"]),
            backend_dom_id=node.get("backendDOMNodeId"),
            role=cls._ax_value(node.get("role")),
            name=cls._ax_value(node.get("name")),
            child_ids=[str(child_id) for child_id in node.get("childIds") or []],
        )


class Snapshot(BaseModel):
    """
    DOM + accessibility state of one tab at one instant.
    Replaced wholesale on every rebuild; never merged with a previous snapshot.
    """
    target_id: str | None = Field(
        default=None,
        description="Target id of the tab the snapshot was taken from",
    )
    dom_nodes: dict[int, DomNode] = Field(
        default_factory=dict,
        description="All DOM nodes keyed by node_id, in fetch order",
    )
    ax_nodes: dict[str, AccessibilityNode] = Field(
        default_factory=dict,
        description="All accessibility nodes keyed by ax_id, in fetch order",
    )
    root_ax_id: str | None = Field(
        default=None,
        description="Accessibility node the tree rendering starts from",
    )
    pseudo_root_ids: list[int] = Field(
        default_factory=list,
        description="DOM node ids whose declared parent was missing from the fetched set",
    )
    path_index: dict[str, str] = Field(
        default_factory=dict,
        description="Accessibility node id -> structural path of its cross-referenced DOM node",
    )
    tree: str = Field(
        default="",
        description="Indented line-per-node text rendering of the accessibility tree",
    )

    def path_for(self, ax_id: str) -> str | None:
        """Return the structural path recorded for an accessibility id, if any."""
        return self.path_index.get(ax_id)
