"""
br_cli/session/secret_guard.py

Registry of raw secret values that must never be echoed in returned page content.
"""

from br_cli.config import Config


class SecretGuard:
    """
    Union-only set of secret values with substring redaction.
    Redaction marks every occurrence of every secret in the original text first and
    masks each run of overlapping occurrences once, so the result does not depend on
    the order in which overlapping secrets were registered.
    """

    def __init__(self, mask: str | None = None) -> None:
        self.mask = Config.BR_SECRET_MASK if mask is None else mask
        self._secrets: dict[str, None] = {}  # insertion-ordered set

    def __len__(self) -> int:
        return len(self._secrets)

    def __contains__(self, value: object) -> bool:
        return value in self._secrets

    def add(self, secret: str) -> None:
        """Register a secret. Empty values are kept but never used for masking."""
        self._secrets.setdefault(secret, None)

    def _occurrences(self, text: str) -> list[tuple[int, int]]:
        spans: list[tuple[int, int]] = []
        for secret in self._secrets:
            if not secret:
                continue
            start = text.find(secret)
            while start != -1:
                spans.append((start, start + len(secret)))
                start = text.find(secret, start + 1)
        spans.sort()
        return spans

    def redact(self, text: str) -> str:
        """
        Replace every occurrence of every registered secret with the mask.
        Overlapping occurrences collapse into a single mask; adjacent ones are masked separately.
        """
        spans = self._occurrences(text)
        if not spans:
            return text

        pieces: list[str] = []
        cursor = 0
        run_start, run_end = spans[0]
        for start, end in spans[1:]:
            if start < run_end:
                run_end = max(run_end, end)
                continue
            pieces.extend((text[cursor:run_start], self.mask))
            cursor = run_end
            run_start, run_end = start, end
        pieces.extend((text[cursor:run_start], self.mask, text[run_end:]))
        return "".join(pieces)
