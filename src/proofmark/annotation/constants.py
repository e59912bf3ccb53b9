"""
標註系統常數
"""

DEFAULT_CODE_TYPES = frozenset({"code_block"})

ERROR_COLORS = {
    "TYPO": "220, 38, 38",  # Red-600
    "SEMANTIC": "245, 158, 11",  # Amber-500
    "ACCEPTED": "22, 163, 74",  # Green-600
}

HIGHLIGHT_CLASS = "correction-highlight"
ACTIVE_CLASS = "correction-highlight-active"
ACCEPTED_CLASS = "correction-highlight-accepted"

UNDERLINE_WIDTH = "2px"
UNDERLINE_OPACITY = 0.8
