from __future__ import annotations


class GameError(Exception):
    """A rejected command; the message is shown to the sender only."""

    def __init__(self, text: str):
        super().__init__(text)
        self.text = text
