"""
Module: batch_helpers.py
Description: Utility functions for batch operations.

Splits trigger and event populations into fixed-size chunks so the
scheduler never fans out more than one batch of outbound calls at once.

Dependencies: typing
Author: Trigger Relay Team
"""

from typing import List, TypeVar

T = TypeVar('T')


def chunk_list(items: List[T], chunk_size: int) -> List[List[T]]:
    """
    Split a list into smaller chunks of specified size.

    Args:
        items: List to split into chunks
        chunk_size: Maximum size of each chunk

    Returns:
        List of chunks, where each chunk is a list of items

    Raises:
        ValueError: If chunk_size is not positive

    Example:
        >>> chunk_list([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4], [5]]
    """
    if not isinstance(items, list):
        raise ValueError("items must be a list")
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]
