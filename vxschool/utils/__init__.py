# -*- coding: utf-8 -*-
"""
Вспомогательные функции.
"""

from vxschool.utils.security import (
    sanitize_input,
    escape_html,
    get_client_ip,
    rate_limit_key,
    mask_sensitive_data,
)

__all__ = [
    "sanitize_input",
    "escape_html",
    "get_client_ip",
    "rate_limit_key",
    "mask_sensitive_data",
]
