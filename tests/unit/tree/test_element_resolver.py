"""
tests/unit/tree/test_element_resolver.py

Tests for ElementResolver and SnapshotStore.
"""

import pytest

from br_cli.data_models.locator import LocatorKind
from br_cli.data_models.tree import AccessibilityNode, DomNode
from br_cli.tree.element_resolver import ElementResolver
from br_cli.tree.snapshot_builder import SnapshotBuilder
from br_cli.tree.snapshot_store import SnapshotStore
from br_cli.utils.exceptions import ActionFailureError, ElementNotFoundError, UnknownIdError

from conftest import FakePage, make_ax_node, make_dom_node


@pytest.fixture
def store(sample_dom_nodes: list[DomNode], sample_ax_nodes: list[AccessibilityNode]) -> SnapshotStore:
    store = SnapshotStore()
    store.replace(SnapshotBuilder.merge(dom_nodes=sample_dom_nodes, ax_nodes=sample_ax_nodes))
    return store


@pytest.fixture
def resolver(store: SnapshotStore) -> ElementResolver:
    return ElementResolver(snapshot_store=store)


class TestParseElementId:
    """
    Tests for numeric id detection.
    """

    @pytest.mark.parametrize("token,expected", [
        ("60", "60"),
        (" 60 ", "60"),
        ("060", "60"),
        ("60.0", "60"),
        ("+7", "7"),
        ("1e2", "100"),
        ("-1", "-1"),
        ("1.5", "1.5"),
        ("#60", None),
        ("[60]", None),
        ("60px", None),
        ("1.2.3", None),
        ("button.primary", None),
    ])
    def test_parse_element_id(self, token: str, expected: str | None) -> None:
        assert ElementResolver.parse_element_id(token) == expected

    @pytest.mark.parametrize("token", ["#60", "[60]", "[60", " # 60 "])
    def test_decorated_ids_are_recognized(self, token: str) -> None:
        assert ElementResolver.looks_like_decorated_id(token) is True

    def test_plain_css_is_not_decorated(self) -> None:
        assert ElementResolver.looks_like_decorated_id("#login") is False


class TestToLocator:
    """
    Tests for turning tokens into locators without touching the page.
    """

    def test_numeric_id_resolves_to_structural_path(self, resolver: ElementResolver) -> None:
        locator = resolver.to_locator("61")
        assert locator.kind == LocatorKind.XPATH
        assert locator.expression == "/html/body/div/span[2]"

    def test_unknown_numeric_id_raises_with_hint(self, resolver: ElementResolver) -> None:
        with pytest.raises(UnknownIdError) as exc_info:
            resolver.to_locator("12345")
        assert exc_info.value.element_id == "12345"
        assert "bare numeric id" in str(exc_info.value)

    def test_unresolved_accessibility_node_is_unknown(self, resolver: ElementResolver) -> None:
        """Rendered in the tree but without a DOM counterpart, so not selectable."""
        with pytest.raises(UnknownIdError):
            resolver.to_locator("99")

    def test_css_passes_through_verbatim(self, resolver: ElementResolver) -> None:
        locator = resolver.to_locator("form > input[name='q']")
        assert locator.kind == LocatorKind.CSS
        assert locator.expression == "form > input[name='q']"

    def test_xpath_expression_passes_through(self, resolver: ElementResolver) -> None:
        locator = resolver.to_locator("//button[text()='Go']")
        assert locator.kind == LocatorKind.XPATH
        assert locator.expression == "//button[text()='Go']"

    def test_lookup_without_snapshot_is_unknown(self) -> None:
        resolver = ElementResolver(snapshot_store=SnapshotStore())
        with pytest.raises(UnknownIdError):
            resolver.to_locator("60")


class TestSnapshotReplacement:
    """
    Numeric ids are a pure function of the current snapshot.
    """

    def test_same_id_resolves_identically_until_rebuild(self, resolver: ElementResolver) -> None:
        assert resolver.path_for_id("60") == resolver.path_for_id("60")

    def test_rebuild_drops_ids_missing_from_new_snapshot(self, store: SnapshotStore, resolver: ElementResolver) -> None:
        store.replace(SnapshotBuilder.merge(
            dom_nodes=[make_dom_node(1, None, "main")],
            ax_nodes=[make_ax_node("7", 101, "main")],
        ))
        assert resolver.path_for_id("7") == "/main"
        with pytest.raises(UnknownIdError):
            resolver.path_for_id("60")

    def test_replace_returns_previous_snapshot(self, store: SnapshotStore) -> None:
        previous = store.current
        new_snapshot = SnapshotBuilder.merge(dom_nodes=[], ax_nodes=[])
        assert store.replace(new_snapshot) is previous
        assert store.current is new_snapshot

    def test_clear_invalidates_every_id(self, store: SnapshotStore, resolver: ElementResolver) -> None:
        store.clear()
        assert store.current is None
        with pytest.raises(UnknownIdError):
            resolver.path_for_id("60")


class TestResolve:
    """
    Tests for resolving against a live page.
    """

    @pytest.mark.asyncio
    async def test_resolve_checks_live_match(self, resolver: ElementResolver, sample_page: FakePage) -> None:
        locator = await resolver.resolve("60", sample_page)
        assert locator.expression == "/html/body/div/span[1]"
        assert sample_page.calls == [("count_matches", "xpath", "/html/body/div/span[1]")]

    @pytest.mark.asyncio
    async def test_no_live_match_raises_element_not_found(self, resolver: ElementResolver, sample_page: FakePage) -> None:
        sample_page.missing.add("/html/body/div/span[1]")

        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolver.resolve("60", sample_page)
        assert exc_info.value.selector == "60"
        assert exc_info.value.locator == "/html/body/div/span[1]"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["#60", "[60]", "[60", " # 60 "])
    async def test_decorated_id_raises_unknown_id_with_hint(
        self,
        resolver: ElementResolver,
        sample_page: FakePage,
        token: str,
    ) -> None:
        with pytest.raises(UnknownIdError, match="bare numeric id"):
            await resolver.resolve(token, sample_page)
        assert sample_page.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["-5", "60.5", "1e9"])
    async def test_unmapped_number_forms_are_unknown_ids(
        self,
        resolver: ElementResolver,
        sample_page: FakePage,
        token: str,
    ) -> None:
        with pytest.raises(UnknownIdError, match="bare numeric id"):
            await resolver.resolve(token, sample_page)
        assert sample_page.calls == []

    @pytest.mark.asyncio
    async def test_integral_float_resolves_like_bare_id(self, resolver: ElementResolver, sample_page: FakePage) -> None:
        locator = await resolver.resolve("60.0", sample_page)
        assert locator.expression == "/html/body/div/span[1]"

    @pytest.mark.asyncio
    async def test_invalid_css_surfaces_page_error(self, resolver: ElementResolver, sample_page: FakePage) -> None:
        with pytest.raises(ActionFailureError, match="not a valid selector"):
            await resolver.resolve("9lives", sample_page)

    @pytest.mark.asyncio
    async def test_unknown_id_never_touches_page(self, resolver: ElementResolver, sample_page: FakePage) -> None:
        with pytest.raises(UnknownIdError):
            await resolver.resolve("4242", sample_page)
        assert sample_page.calls == []
