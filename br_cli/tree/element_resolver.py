"""
br_cli/tree/element_resolver.py

Converts a caller-supplied selector token (locator expression or numeric
element id) into a concrete Locator.
"""

from __future__ import annotations

import re
from typing import Protocol

from br_cli.data_models.locator import Locator
from br_cli.tree.snapshot_store import SnapshotStore
from br_cli.utils.exceptions import ElementNotFoundError, UnknownIdError
from br_cli.utils.logger import get_logger

logger = get_logger(name=__name__)


class LocatablePage(Protocol):
    async def count_matches(self, locator: Locator) -> int: ...


class ElementResolver:
    """
    Resolves selector tokens against the current snapshot.
    Numeric ids are only an alias for structural paths of the current snapshot;
    anything else is passed through as a locator expression untouched.
    """

    # Class attributes _____________________________________________________________________________________________________

    NUMERIC_ID_PATTERN: re.Pattern[str] = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")
    # forms like "#60", "[60]" or "[60" that callers produce when copying from the tree;
    # none of them is a valid CSS selector
    DECORATED_ID_PATTERN: re.Pattern[str] = re.compile(r"^\s*(?:#\s*\d+|\[\s*\d+\s*\]?)\s*$")


    # Magic methods ________________________________________________________________________________________________________

    def __init__(self, snapshot_store: SnapshotStore) -> None:
        self.snapshot_store = snapshot_store


    # Public methods _______________________________________________________________________________________________________

    @classmethod
    def parse_element_id(cls, token: str) -> str | None:
        """
        Return the normalized element id if `token` parses fully as a number, else None.
        Integral values normalize to their plain form ("060", "60.0" -> "60"); any other
        number is kept verbatim and simply never matches an accessibility id.
        """
        if cls.NUMERIC_ID_PATTERN.match(token) is None:
            return None
        value = float(token)
        if value.is_integer():
            return str(int(value))
        return token.strip()

    @classmethod
    def looks_like_decorated_id(cls, token: str) -> bool:
        return cls.DECORATED_ID_PATTERN.match(token) is not None

    def path_for_id(self, element_id: str) -> str:
        """
        Look up the structural path for an element id in the current snapshot.
        Raises:
            UnknownIdError: If there is no current snapshot or it has no entry for the id.
        """
        path = self.snapshot_store.lookup(element_id)
        if path is None:
            raise UnknownIdError(element_id)
        return path

    def to_locator(self, token: str) -> Locator:
        """
        Turn a selector token into a Locator without touching the page.
        Raises:
            UnknownIdError: If the token is numeric but unknown to the current snapshot,
                or is a decorated id such as "#60" or "[60]".
        """
        if self.looks_like_decorated_id(token):
            raise UnknownIdError(token.strip())
        element_id = self.parse_element_id(token)
        if element_id is None:
            return Locator.from_expression(token)
        path = self.path_for_id(element_id)
        logger.debug("Resolved element id %s to %s", element_id, path)
        return Locator.from_structural_path(path)

    async def resolve(self, token: str, page: LocatablePage) -> Locator:
        """
        Resolve a selector token and verify it matches a live element.
        Args:
            token: Locator expression or bare numeric id.
            page: The tab the locator must match in.
        Returns:
            The Locator.
        Raises:
            UnknownIdError: Numeric id absent from the current snapshot, or a decorated id.
            ElementNotFoundError: The locator matches nothing in the page.
        """
        locator = self.to_locator(token)
        count = await page.count_matches(locator)
        if count == 0:
            raise ElementNotFoundError(selector=token, locator=locator.expression)
        return locator
