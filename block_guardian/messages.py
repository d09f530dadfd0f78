import random

from .config import DEFAULT_BLOCK_MESSAGE
from .models import BlockMessage, MessageTag

_REASON_KEYWORDS = (
    ("focus", MessageTag.FOCUS),
    ("bedtime", MessageTag.BEDTIME),
    ("limit", MessageTag.LIMIT),
)


def category_for_reason(reason: str | None) -> MessageTag:
    text = (reason or "").lower()
    for keyword, tag in _REASON_KEYWORDS:
        if keyword in text:
            return tag
    return MessageTag.ALL


def _as_category(category) -> MessageTag:
    if isinstance(category, MessageTag):
        return category
    try:
        return MessageTag(str(category).upper())
    except ValueError:
        return category_for_reason(str(category))


class MessageSelector:
    def __init__(self, rng: random.Random | None = None):
        self._rng = rng if rng is not None else random.Random()

    def select_message(self, category, pool: list[BlockMessage]) -> str:
        tag = _as_category(category)
        candidates = [m for m in pool if m.matches(tag)]
        if not candidates:
            return DEFAULT_BLOCK_MESSAGE
        return self._rng.choice(candidates).text

    def message_for_reasons(self, reasons: list[str], pool: list[BlockMessage]) -> str:
        reason = reasons[0] if reasons else ""
        return self.select_message(category_for_reason(reason), pool)
