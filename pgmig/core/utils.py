"""Core utility functions for pgmig."""
import math

SIZE_UNITS = ('Bytes', 'KB', 'MB', 'GB', 'TB')

def format_bytes(num_bytes: int) -> str:
    """Format a byte count using base-1024 units.

    Picks the largest unit in which the value is at least 1 and rounds to
    two decimal places, dropping trailing zeros.

    Examples:
        0 -> "0 Bytes", 1024 -> "1 KB", 1536 -> "1.5 KB"
    """
    if not num_bytes or num_bytes < 0:
        return "0 Bytes"

    exponent = min(int(math.log(num_bytes, 1024)), len(SIZE_UNITS) - 1)
    # log() can land just below an exact power of 1024
    if exponent + 1 < len(SIZE_UNITS) and num_bytes >= 1024 ** (exponent + 1):
        exponent += 1
    value = round(num_bytes / 1024 ** exponent, 2)
    text = f"{value:.2f}".rstrip('0').rstrip('.')
    return f"{text} {SIZE_UNITS[exponent]}"
