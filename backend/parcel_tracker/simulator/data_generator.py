"""
Data generation helpers: tracking codes
"""

import random
import re

TRACKING_PREFIX = "CF"
TRACKING_SUFFIX = "BR"
TRACKING_CODE_RE = re.compile(r"^CF\d{9}BR$")


def generate_tracking_code(rng: random.Random | None = None) -> str:
    """Tracking code: CF#########BR"""
    rng = rng or random.Random()
    return f"{TRACKING_PREFIX}{rng.randint(0, 999_999_999):09d}{TRACKING_SUFFIX}"


def normalize_tracking_code(code: str) -> str:
    return code.strip().upper()


def is_tracking_code(code: str) -> bool:
    return bool(TRACKING_CODE_RE.match(normalize_tracking_code(code)))
