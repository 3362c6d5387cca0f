"""Closed vocabularies shared by the rule files, the engines and the reports."""

from __future__ import annotations

from enum import Enum


class TransfersMode(str, Enum):
    """Which stop point pairs transfer generation considers, by contributor."""

    INTRA_CONTRIBUTOR = "intra-contributor"
    INTER_CONTRIBUTOR = "inter-contributor"
    ALL = "all"


class ObjectType(str, Enum):
    """Model tables an object code can be attached to."""

    NETWORK = "network"
    LINE = "line"
    ROUTE = "route"
    TRIP = "trip"
    STOP_AREA = "stop_area"
    STOP_POINT = "stop_point"


class RuleDirection(str, Enum):
    BOTH = "both"
    ONEWAY = "oneway"


class Outcome(str, Enum):
    """Outcome tag of one processed rule."""

    APPLIED = "applied"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    MALFORMED = "malformed"
