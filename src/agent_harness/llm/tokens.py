"""Token counting for prompt-size estimation.

Provides TiktokenCounter (production use) and CharRatioCounter (cheap
fallback for tests and unknown tokenizers).
"""

from __future__ import annotations


class TiktokenCounter:
    """Token counter using tiktoken (OpenAI's tokenizer).

    Lazily imports tiktoken and caches the Encoding instance.
    Falls back to o200k_base encoding if model is unknown. Other providers'
    tokenizers differ, so counts are an estimate outside OpenAI models.
    """

    def __init__(self, model: str = "gpt-4o", encoding_name: str | None = None) -> None:
        import tiktoken

        if encoding_name is not None:
            self._enc = tiktoken.get_encoding(encoding_name)
        else:
            try:
                self._enc = tiktoken.encoding_for_model(model)
            except KeyError:
                self._enc = tiktoken.get_encoding("o200k_base")

        self._encoding_name = self._enc.name

    @property
    def encoding_name(self) -> str:
        """Name of the tiktoken encoding being used."""
        return self._encoding_name

    def count_text(self, text: str) -> int:
        """Count tokens in a plain text string. Returns 0 for empty string."""
        if not text:
            return 0
        return len(self._enc.encode(text, disallowed_special=()))


class CharRatioCounter:
    """Approximate counter: one token per ``chars_per_token`` characters."""

    def __init__(self, chars_per_token: int = 4) -> None:
        self._ratio = chars_per_token

    def count_text(self, text: str) -> int:
        return -(-len(text) // self._ratio)
