# common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions.
"""
import re
from typing import Union


def validate_port(port: Union[int, str, None]) -> bool:
    """
    Check that a value is a TCP port number in the range 1..65535.

    Strings must consist of decimal digits only, so values such as "abc",
    "-1" or "90 90" are rejected rather than coerced.

    Args:
        port: The candidate port as an int or a string of digits.

    Returns:
        bool: True if the value is a usable port, False otherwise.
    """
    if isinstance(port, bool) or port is None:
        return False
    if isinstance(port, int):
        value = port
    else:
        text = str(port).strip()
        if not re.fullmatch(r"[0-9]+", text):
            return False
        value = int(text)
    return 1 <= value <= 65535
