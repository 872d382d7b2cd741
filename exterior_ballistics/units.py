"""
Unit Conversions
================
Conversions between the SI units used throughout the engine and the
customary units shooters quote (fps, mph, yards, grains, inches).

The drag tables are published in feet per second, so the drag model is the
main internal consumer; everything else only touches these at the edges.
"""

# ── Conversion factors ────────────────────────────────────────────────────
FEET_PER_METER       = 3.28084
METERS_PER_FOOT      = 0.3048
MPS_PER_MPH          = 0.44704
MPH_PER_MPS          = 2.23694
METERS_PER_YARD      = 0.9144
YARDS_PER_METER      = 1.09361
METERS_PER_INCH      = 0.0254
KG_PER_GRAIN         = 0.0000647989
SECONDS_PER_MINUTE   = 60.0


def mps_to_fps(mps: float) -> float:
    return mps * FEET_PER_METER


def fps_to_mps(fps: float) -> float:
    return fps * METERS_PER_FOOT


def mph_to_mps(mph: float) -> float:
    return mph * MPS_PER_MPH


def mps_to_mph(mps: float) -> float:
    return mps * MPH_PER_MPS


def yards_to_meters(yards: float) -> float:
    return yards * METERS_PER_YARD


def meters_to_yards(meters: float) -> float:
    return meters * YARDS_PER_METER


def inches_to_meters(inches: float) -> float:
    return inches * METERS_PER_INCH


def grains_to_kg(grains: float) -> float:
    return grains * KG_PER_GRAIN


def minutes_to_seconds(minutes: float) -> float:
    return minutes * SECONDS_PER_MINUTE
