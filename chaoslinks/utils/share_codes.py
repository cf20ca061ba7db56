# chaoslinks/utils/share_codes.py
# Short code generation with rejection sampling

from __future__ import annotations

import secrets
from typing import Callable, Optional

from chaoslinks.constants import SHARE_CODE_CHARSET, SHARE_CODE_LENGTH

# 256 % 62 == 4 * 62 + 8: bytes >= 248 would favour the first 8 symbols
MAX_ACCEPTABLE_BYTE: int = (256 // len(SHARE_CODE_CHARSET)) * len(SHARE_CODE_CHARSET)


def _secure_byte() -> int:
    return secrets.token_bytes(1)[0]


def generate_short_code(random_byte: Optional[Callable[[], int]] = None) -> str:
    """Return an 8-character code drawn uniformly from [A-Za-z0-9].

    Bytes are drawn one at a time and discarded when they fall in the biased
    top range, so every symbol has probability exactly 1/62.
    """
    draw = random_byte or _secure_byte
    charset_length = len(SHARE_CODE_CHARSET)
    chars = []
    for _ in range(SHARE_CODE_LENGTH):
        byte = draw()
        while byte >= MAX_ACCEPTABLE_BYTE:
            byte = draw()
        chars.append(SHARE_CODE_CHARSET[byte % charset_length])
    return "".join(chars)


def is_valid_short_code(code: str) -> bool:
    """Cheap shape check before any store lookup."""
    return len(code) == SHARE_CODE_LENGTH and all(c in SHARE_CODE_CHARSET for c in code)
