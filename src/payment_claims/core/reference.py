"""
Claim reference generation.

References are random upper-case alphanumeric strings that leave out
characters easily confused when read aloud or handwritten.
"""

import re
import secrets

# No 0/O, 1/I/L.
ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
DEFAULT_LENGTH = 8


def generate_reference(length: int = DEFAULT_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def reference_pattern(length: int = DEFAULT_LENGTH) -> re.Pattern[str]:
    return re.compile(rf"\A[{ALPHABET}]{{{length}}}\Z")
