"""
Reasoning-block removal.

Some models emit their internal reasoning between configurable tags
(``<think>...</think>`` by default). These helpers drop those spans from
the user-visible response.
"""

import re
from functools import lru_cache
from typing import Pattern

from patternchat.core.domain import DEFAULT_THINK_END_TAG, DEFAULT_THINK_START_TAG


@lru_cache(maxsize=16)
def _think_pattern(start_tag: str, end_tag: str) -> Pattern[str]:
    # Trailing whitespace goes with the block so removed spans leave no gaps.
    return re.compile(re.escape(start_tag) + r".*?" + re.escape(end_tag) + r"\s*", re.DOTALL)


def strip_think_blocks(
    text: str,
    start_tag: str = DEFAULT_THINK_START_TAG,
    end_tag: str = DEFAULT_THINK_END_TAG,
) -> str:
    """
    Remove every complete ``start_tag ... end_tag`` span, non-greedy and
    case-sensitive. An opening tag without a closing tag is left as is.
    """
    if not text:
        return ""
    start_tag = start_tag or DEFAULT_THINK_START_TAG
    end_tag = end_tag or DEFAULT_THINK_END_TAG
    return _think_pattern(start_tag, end_tag).sub("", text).strip()
