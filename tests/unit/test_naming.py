"""
tests/unit/test_naming.py

Unit tests for providers/naming.py.
"""

from __future__ import annotations

import pytest

from providers.naming import APEX, normalized_fqdn, to_fqdn, to_host_label, to_rr

_ZONE = "example.com"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("www", "www"),
        ("www.example.com", "www"),
        ("WWW.Example.COM.", "www"),
        ("@", APEX),
        ("", APEX),
        ("example.com", APEX),
        ("a.b", "a.b"),
    ],
)
def test_to_rr(name, expected):
    assert to_rr(name, _ZONE) == expected


def test_to_fqdn_treats_label_as_relative():
    assert to_fqdn("www", _ZONE) == "www.example.com"
    assert to_fqdn("@", _ZONE) == "example.com"
    assert to_fqdn("", _ZONE) == "example.com"
    assert to_fqdn("example.com", _ZONE) == "example.com.example.com"


@pytest.mark.parametrize("name", ["www", "@", "www.example.com", "a.b.example.com."])
def test_rr_round_trip_matches_normalized_fqdn(name):
    assert to_fqdn(to_rr(name, _ZONE), _ZONE) == normalized_fqdn(name, _ZONE)


def test_normalized_fqdn_strips_trailing_dot_and_lowercases():
    assert normalized_fqdn("Mail.Example.com.", "example.com.") == "mail.example.com"


def test_to_host_label_spells_apex_empty():
    assert to_host_label("@", _ZONE) == ""
    assert to_host_label("example.com", _ZONE) == ""
    assert to_host_label("api.example.com", _ZONE) == "api"
