"""
providers/naming.py

Responsibility: Converts between the relative host labels vendors store
("www", "@", "RR") and the fully-qualified names exposed by DnsRecord.
Does NOT: validate hostnames or resolve which zone a name belongs to.
"""

from __future__ import annotations

APEX = "@"


def _clean(value: str | None) -> str:
    return (value or "").strip().rstrip(".").lower()


def normalized_fqdn(name: str | None, zone: str) -> str:
    """
    Returns the canonical fully-qualified form of a name inside a zone.

    Accepts relative labels, '@', absolute names and trailing-dot forms.

    Args:
        name: A relative label, '@', or a fully-qualified name.
        zone: The zone apex, e.g. "example.com" (trailing dot allowed).

    Returns:
        The lower-cased FQDN without trailing dot, e.g. "www.example.com".
    """
    apex = _clean(zone)
    n = _clean(name)
    if not n or n == APEX:
        return apex
    if n == apex or n.endswith(f".{apex}"):
        return n
    return f"{n}.{apex}"


def to_rr(name: str | None, zone: str) -> str:
    """
    Converts any accepted name form into the vendor's relative label.

    Args:
        name: A relative label, '@', or a fully-qualified name.
        zone: The zone apex.

    Returns:
        The relative label, or '@' for the apex itself.
    """
    apex = _clean(zone)
    n = _clean(name)
    if not n or n == APEX or n == apex:
        return APEX
    suffix = f".{apex}"
    if n.endswith(suffix):
        return n[: -len(suffix)] or APEX
    return n


def to_fqdn(rr: str | None, zone: str) -> str:
    """
    Converts a vendor relative label back into a fully-qualified name.

    ``rr`` is always treated as relative, so to_fqdn(to_rr(h, z), z) equals
    normalized_fqdn(h, z) for every h, including labels that happen to
    spell the apex ("example.com.example.com").

    Args:
        rr: The vendor's host label ('' and '@' both mean the apex).
        zone: The zone apex.

    Returns:
        The FQDN without trailing dot.
    """
    apex = _clean(zone)
    label = _clean(rr)
    if not label or label == APEX:
        return apex
    return f"{label}.{apex}"


def to_host_label(name: str | None, zone: str) -> str:
    """Like to_rr, but spells the apex as '' for vendors that store it empty."""
    rr = to_rr(name, zone)
    return "" if rr == APEX else rr
