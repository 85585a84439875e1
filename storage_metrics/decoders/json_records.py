# -----------------------------------------------------------------------------
# Copyright (c) 2025 Storage Metrics (scaleoutSean@Github)
# Licensed under the MIT License. See LICENSE in project root for details.
# -----------------------------------------------------------------------------

"""
Record extraction for REST/JSON payloads.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from storage_metrics.errors import DecodeError

LOG = logging.getLogger(__name__)


def extract_records(payload: Union[str, bytes, Dict[str, Any], List[Any]],
                    container: Optional[Union[str, Sequence[str]]] = None) -> List[Dict[str, Any]]:
    """
    Locate the list of records inside a JSON response.

    Handles both a bare list and a dict wrapping the list (e.g. {"data": [...]}),
    the same way sensor responses differ between firmware versions.

    Args:
        payload: Response body or already parsed JSON
        container: Key, or key path, leading to the record list

    Returns:
        List of record dictionaries

    Raises:
        DecodeError: invalid JSON, missing container, or records that are not objects
    """
    if isinstance(payload, (str, bytes)):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Invalid JSON in response: {e}") from e
    else:
        data = payload

    if container:
        path = [container] if isinstance(container, str) else list(container)
        for key in path:
            if not isinstance(data, dict) or key not in data:
                raise DecodeError(f"'{key}' container not found in JSON response")
            data = data[key]

    if isinstance(data, dict):
        LOG.debug("JSON response is a single object, treating it as one record")
        data = [data]
    if not isinstance(data, list):
        raise DecodeError(f"Expected a list of records, got {type(data).__name__}")

    bad = [i for i, item in enumerate(data) if not isinstance(item, dict)]
    if bad:
        raise DecodeError(f"JSON records at positions {bad} are not objects")
    return data
