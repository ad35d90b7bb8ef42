"""GPS distance and tolerance policy for check-in/check-out."""

from __future__ import annotations

import math

from fieldtask.app.domain.models.check_event import LocationCheck, LocationVerdict
from fieldtask.app.domain.models.geo_location import GeoLocation

EARTH_RADIUS_METERS = 6_371_000.0
DEFAULT_ACCEPT_RADIUS_METERS = 100.0
DEFAULT_WARNING_RADIUS_METERS = 150.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters between two points given in decimal degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    # Float rounding can push ``a`` slightly above 1 near antipodal points.
    a = min(1.0, a)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def distance_message(distance: float) -> str:
    return f"You are {round(distance)}m away from the task location."


def evaluate_location(
    target: GeoLocation | None,
    lat: float,
    lng: float,
    *,
    accept_radius: float = DEFAULT_ACCEPT_RADIUS_METERS,
    warning_radius: float = DEFAULT_WARNING_RADIUS_METERS,
    bypass: bool = False,
) -> LocationCheck:
    """Apply the tolerance policy to a reported position.

    ``distance <= accept_radius`` is accepted, ``distance <= warning_radius`` is
    accepted with a warning and anything further is rejected. ``bypass`` (demo
    accounts) always accepts and reports a distance of 0; the real distance is
    still returned in ``measured_distance_meters`` for the audit trail.
    """
    measured = None if target is None else haversine_distance(target.lat, target.lng, lat, lng)

    if bypass:
        return LocationCheck(
            verdict=LocationVerdict.BYPASSED,
            distance_meters=0.0,
            measured_distance_meters=measured,
        )
    if measured is None:
        return LocationCheck(verdict=LocationVerdict.SKIPPED, distance_meters=0.0)
    if measured <= accept_radius:
        return LocationCheck(
            verdict=LocationVerdict.ACCEPTED,
            distance_meters=measured,
            measured_distance_meters=measured,
        )
    if measured <= warning_radius:
        return LocationCheck(
            verdict=LocationVerdict.ACCEPTED_WITH_WARNING,
            distance_meters=measured,
            measured_distance_meters=measured,
            warning=distance_message(measured),
        )
    return LocationCheck(
        verdict=LocationVerdict.REJECTED,
        distance_meters=measured,
        measured_distance_meters=measured,
        rejection_reason=(
            f"{distance_message(measured)} Move within {round(warning_radius)}m of the site and try again."
        ),
    )
