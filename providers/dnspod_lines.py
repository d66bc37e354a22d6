"""
providers/dnspod_lines.py

Responsibility: Translates between DNSPod's Chinese line names and the
generic line codes used across vendors.
Does NOT: call the DNSPod API.
"""

from __future__ import annotations

from providers.models import DEFAULT_LINE, DnsLine

# Generic code -> DNSPod line name
_TO_DNSPOD = {
    DEFAULT_LINE: "默认",
    "telecom": "电信",
    "unicom": "联通",
    "mobile": "移动",
    "edu": "教育网",
    "oversea": "境外",
    "search": "搜索引擎",
}

_FROM_DNSPOD = {name: code for code, name in _TO_DNSPOD.items()}


def to_dnspod_line(code: str | None) -> str | None:
    """
    Maps a generic line code to the name DNSPod expects.

    Unknown codes are assumed to already be DNSPod names and pass through.

    Args:
        code: Generic code such as "telecom", or a raw DNSPod line name.

    Returns:
        The DNSPod line name, or None when ``code`` is empty.
    """
    if not code:
        return None
    return _TO_DNSPOD.get(code, code)


def from_dnspod_line(name: str | None) -> str | None:
    """Maps a DNSPod line name to its generic code; unknown names pass through."""
    if not name:
        return None
    return _FROM_DNSPOD.get(name, name)


def default_lines() -> list[DnsLine]:
    return [DnsLine(code, name) for code, name in _TO_DNSPOD.items()]
