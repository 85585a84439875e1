# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Utility functions for wire-name case conversions.
"""


def snake_to_camel_case(name: str) -> str:
    """
    Convert a snake_case string to camelCase.

    Args:
        name: The snake_case string to convert

    Returns:
        The string in camelCase
    """
    components = name.split('_')
    return components[0] + ''.join(x.title() for x in components[1:])


def snake_to_kebab_case(name: str) -> str:
    """Convert snake_case to the dashed element names used by XML APIs."""
    return name.replace('_', '-')
