"""
br_cli/tree/snapshot_builder.py

Builds a Snapshot from one tab: fetches the DOM and accessibility node sets,
computes a structural path for every DOM node, joins the two trees through
backend ids, and renders the accessibility tree as indented text.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Protocol

from br_cli.data_models.tree import AccessibilityNode, DomNode, Snapshot
from br_cli.utils.exceptions import InspectionFailureError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


class InspectablePage(Protocol):
    """The two inspection primitives the builder needs from a tab."""

    target_id: str

    async def get_dom_nodes(self) -> list[DomNode]: ...

    async def get_ax_nodes(self) -> list[AccessibilityNode]: ...


class SnapshotBuilder:
    """
    Merges a flat DOM node set and an accessibility node set into one Snapshot.
    The DOM and accessibility tables stay separate; they are joined only through
    a backend id lookup built once per snapshot.
    """

    # Class attributes _____________________________________________________________________________________________________

    INDENT: str = "  "
    PSEUDO_ROOT_PREFIX: str = "//"


    # Private methods ______________________________________________________________________________________________________

    @staticmethod
    def _link_children(dom_nodes: list[DomNode]) -> tuple[dict[int, DomNode], list[int], list[int]]:
        """
        Rebuild parent -> children adjacency from parent ids, keeping fetch (document) order.
        Args:
            dom_nodes: Flat DOM node list in document order.
        Returns:
            (nodes by id, true root ids, pseudo-root ids). Pseudo-roots are nodes whose
            declared parent is absent from the fetched set.
        """
        nodes: dict[int, DomNode] = {}
        for node in dom_nodes:
            if node.node_id in nodes:
                logger.warning("⚠️ Duplicate DOM node id %s in fetched set, keeping the first", node.node_id)
                continue
            nodes[node.node_id] = node.model_copy(update={"children": [], "structural_path": None})

        roots: list[int] = []
        pseudo_roots: list[int] = []
        for node in nodes.values():
            if node.parent_id is None:
                roots.append(node.node_id)
            elif node.parent_id in nodes:
                nodes[node.parent_id].children.append(node.node_id)
            else:
                pseudo_roots.append(node.node_id)

        if pseudo_roots:
            logger.warning(
                "⚠️ %d DOM node(s) reference a parent missing from the snapshot; "
                "their paths are marked as ambiguous ancestry",
                len(pseudo_roots),
            )
        return nodes, roots, pseudo_roots

    @staticmethod
    def _sibling_key(node: DomNode) -> tuple[int, str]:
        return node.node_type, node.path_step

    @classmethod
    def _assign_paths(cls, nodes: dict[int, DomNode], roots: list[int], pseudo_roots: list[int]) -> None:
        """
        Compute structural paths in one top-down pass.
        Each stack entry carries the prefix the node's children extend; a per-parent
        count of (node type, step) decides whether a sibling rank is written.
        """
        # (node id, prefix for the node's children)
        stack: list[tuple[int, str]] = []

        for root_id in reversed(pseudo_roots):
            node = nodes[root_id]
            node.structural_path = cls.PSEUDO_ROOT_PREFIX + node.path_step
            stack.append((root_id, "/" if node.is_transparent else node.structural_path))

        for root_id in reversed(roots):
            node = nodes[root_id]
            if node.is_transparent:
                node.structural_path = "/"
                stack.append((root_id, ""))
            else:
                node.structural_path = "/" + node.path_step
                stack.append((root_id, node.structural_path))

        while stack:
            node_id, prefix = stack.pop()
            parent = nodes[node_id]
            children = [nodes[child_id] for child_id in parent.children]
            totals = Counter(cls._sibling_key(child) for child in children)
            seen: Counter[tuple[int, str]] = Counter()

            pending: list[tuple[int, str]] = []
            for child in children:
                if child.structural_path is not None:
                    # already reached through another branch; never re-path a node
                    continue
                if child.is_transparent:
                    child.structural_path = parent.structural_path
                    pending.append((child.node_id, prefix))
                    continue
                key = cls._sibling_key(child)
                seen[key] += 1
                step = child.path_step
                if totals[key] > 1:
                    step = f"{step}[{seen[key]}]"
                child.structural_path = f"{prefix}/{step}"
                pending.append((child.node_id, child.structural_path))

            # reversed so children are expanded in document order
            stack.extend(reversed(pending))

    @staticmethod
    def _find_ax_root(ax_nodes: dict[str, AccessibilityNode]) -> str | None:
        """
        Heuristic root: the first node (fetch order) that no other node lists as a child.
        Falls back to the first fetched node when every node is someone's child.
        """
        if not ax_nodes:
            return None
        child_ids: set[str] = set()
        for node in ax_nodes.values():
            child_ids.update(node.child_ids)
        for ax_id in ax_nodes:
            if ax_id not in child_ids:
                return ax_id
        first_id = next(iter(ax_nodes))
        logger.warning("⚠️ No accessibility node is parentless; falling back to first fetched node %s", first_id)
        return first_id

    @classmethod
    def _format_line(cls, depth: int, ax_node: AccessibilityNode, dom_node: DomNode | None) -> str:
        line = f"{cls.INDENT * depth}[{ax_node.ax_id}] {ax_node.role or ''}"
        if dom_node is not None:
            line += f" <{dom_node.tag_name}>"
        if ax_node.name:
            line += f": {ax_node.name}"
        return line + "\n"

    @classmethod
    def _render(
        cls,
        ax_nodes: dict[str, AccessibilityNode],
        root_id: str | None,
        dom_by_backend_id: dict[int, DomNode],
    ) -> tuple[str, dict[str, str]]:
        """
        Depth-first pre-order walk from the root, rendering one line per node and
        recording the structural path of every node whose backend id resolves.
        Returns:
            (tree text, path index)
        """
        if root_id is None:
            return "", {}

        lines: list[str] = []
        path_index: dict[str, str] = {}
        visited: set[str] = set()
        stack: list[tuple[str, int]] = [(root_id, 0)]

        while stack:
            ax_id, depth = stack.pop()
            ax_node = ax_nodes.get(ax_id)
            if ax_node is None or ax_id in visited:
                continue
            visited.add(ax_id)

            dom_node = None
            if ax_node.backend_dom_id is not None:
                dom_node = dom_by_backend_id.get(ax_node.backend_dom_id)
            if dom_node is not None and dom_node.structural_path is not None:
                path_index[ax_id] = dom_node.structural_path

            lines.append(cls._format_line(depth, ax_node, dom_node))
            stack.extend((child_id, depth + 1) for child_id in reversed(ax_node.child_ids))

        return "".join(lines), path_index


    # Public methods _______________________________________________________________________________________________________

    @classmethod
    def merge(
        cls,
        dom_nodes: list[DomNode],
        ax_nodes: list[AccessibilityNode],
        target_id: str | None = None,
    ) -> Snapshot:
        """
        Merge already-fetched DOM and accessibility node sets into a Snapshot.
        Args:
            dom_nodes: Flat DOM nodes in document order.
            ax_nodes: Accessibility nodes in fetch order.
            target_id: Target id of the tab the nodes came from.
        Returns:
            The Snapshot with structural paths, path index and tree rendering.
        """
        nodes, roots, pseudo_roots = cls._link_children(dom_nodes)
        cls._assign_paths(nodes, roots, pseudo_roots)

        unreachable = sum(1 for node in nodes.values() if node.structural_path is None)
        if unreachable:
            logger.warning("⚠️ %d DOM node(s) are unreachable from any root (cyclic parent chain)", unreachable)

        dom_by_backend_id: dict[int, DomNode] = {}
        for node in nodes.values():
            dom_by_backend_id.setdefault(node.backend_id, node)

        ax_by_id: dict[str, AccessibilityNode] = {}
        for ax_node in ax_nodes:
            ax_by_id.setdefault(ax_node.ax_id, ax_node)

        root_ax_id = cls._find_ax_root(ax_by_id)
        tree, path_index = cls._render(ax_by_id, root_ax_id, dom_by_backend_id)

        return Snapshot(
            target_id=target_id,
            dom_nodes=nodes,
            ax_nodes=ax_by_id,
            root_ax_id=root_ax_id,
            pseudo_root_ids=pseudo_roots,
            path_index=path_index,
            tree=tree,
        )

    @classmethod
    async def build(cls, page: InspectablePage) -> Snapshot:
        """
        Fetch both node sets from a tab and merge them.
        Both fetches must complete before any merging starts; nothing is retried.
        Args:
            page: The tab to inspect.
        Returns:
            The new Snapshot.
        Raises:
            InspectionFailureError: If either fetch fails.
        """
        logger.info("🔍 Building page structure snapshot for target %s", page.target_id)
        try:
            dom_nodes, ax_nodes = await asyncio.gather(page.get_dom_nodes(), page.get_ax_nodes())
        except InspectionFailureError:
            raise
        except Exception as e:
            logger.error("❌ Failed to fetch page structure: %s", e)
            raise InspectionFailureError(f"Failed to fetch page structure: {e}") from e

        snapshot = cls.merge(dom_nodes=dom_nodes, ax_nodes=ax_nodes, target_id=page.target_id)
        logger.info(
            "✅ Snapshot built: %d DOM nodes, %d accessibility nodes, %d selectable ids",
            len(snapshot.dom_nodes),
            len(snapshot.ax_nodes),
            len(snapshot.path_index),
        )
        return snapshot
