"""Token mint validation. Pure, no network access."""

from __future__ import annotations

import re

# Base58 alphabet: digits and letters without 0, O, I, l
BASE58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")

MIN_MINT_LENGTH = 32
MAX_MINT_LENGTH = 44


def is_valid_token_mint(mint: object) -> bool:
    """
    Return True if `mint` looks like a Solana address.

    Surrounding whitespace is ignored; the trimmed value must be 32–44
    Base58 characters.
    """
    if not mint or not isinstance(mint, str):
        return False

    trimmed = mint.strip()
    if not MIN_MINT_LENGTH <= len(trimmed) <= MAX_MINT_LENGTH:
        return False

    return BASE58_RE.fullmatch(trimmed) is not None
