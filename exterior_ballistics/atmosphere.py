"""
Atmospheric Conditions
======================
Air density and speed of sound for the drag and spin-aerodynamics models.

The standard profile follows the ISA 1976 troposphere / lower stratosphere
layers; a concrete ``Atmosphere`` adds the station temperature, pressure and
relative humidity a shooter actually measures. Humid air is lighter than
dry air at the same pressure, so density carries a vapour-pressure term.

Reference: U.S. Standard Atmosphere, 1976 (NASA-TM-X-74335)
"""

import numpy as np


# ── ISA Constants ──────────────────────────────────────────────────────────
SEA_LEVEL_TEMP       = 288.15      # K  (15 °C)
SEA_LEVEL_PRESSURE   = 101325.0    # Pa
SEA_LEVEL_DENSITY    = 1.225       # kg/m³  (drag-table reference density)
LAPSE_RATE_TROPO     = -0.0065     # K/m  (troposphere)
TROPOPAUSE_ALT       = 11000.0     # m
TROPOPAUSE_TEMP      = 216.65      # K  (-56.5 °C)
GRAVITY              = 9.80665     # m/s²
MOLAR_MASS_AIR       = 0.0289644   # kg/mol
GAS_CONSTANT         = 8.31447     # J/(mol·K)
SPECIFIC_HEAT_RATIO  = 1.4         # γ for dry air
R_SPECIFIC           = 287.058     # J/(kg·K)  specific gas constant for air
VAPOR_DENSITY_FACTOR = 0.378       # (1 - M_water / M_air)
DEFAULT_HUMIDITY     = 0.5


def isa_temperature(altitude: float) -> float:
    """
    Standard temperature (K) at a geometric altitude (m).

    - Troposphere (0–11 km): linear lapse at −6.5 °C/km
    - Stratosphere (11–20 km): isothermal at 216.65 K
    """
    if altitude <= TROPOPAUSE_ALT:
        return SEA_LEVEL_TEMP + LAPSE_RATE_TROPO * altitude
    return TROPOPAUSE_TEMP


def isa_pressure(altitude: float) -> float:
    """Standard pressure (Pa) at a geometric altitude (m)."""
    exponent = GRAVITY * MOLAR_MASS_AIR / (GAS_CONSTANT * abs(LAPSE_RATE_TROPO))

    if altitude <= TROPOPAUSE_ALT:
        T = isa_temperature(altitude)
        return SEA_LEVEL_PRESSURE * (T / SEA_LEVEL_TEMP) ** exponent

    P_tropo = SEA_LEVEL_PRESSURE * (TROPOPAUSE_TEMP / SEA_LEVEL_TEMP) ** exponent
    return P_tropo * np.exp(
        -GRAVITY * MOLAR_MASS_AIR * (altitude - TROPOPAUSE_ALT)
        / (GAS_CONSTANT * TROPOPAUSE_TEMP)
    )


def saturation_vapor_pressure(temperature: float) -> float:
    """Magnus approximation (Pa) for a temperature in K."""
    T_c = temperature - 273.15
    return 611.2 * np.exp(17.67 * T_c / (temperature - 29.65))


class Atmosphere:
    """
    Local atmospheric conditions.

    Parameters
    ----------
    temperature : float
        Air temperature (K)
    altitude : float
        Station altitude (m)
    humidity : float
        Relative humidity, 0.0 – 1.0
    pressure : float
        Station pressure (Pa); 0 or negative selects the standard pressure
        for ``altitude``
    """

    def __init__(self, temperature: float = SEA_LEVEL_TEMP, altitude: float = 0.0,
                 humidity: float = DEFAULT_HUMIDITY, pressure: float = 0.0):
        if humidity < 0.0 or humidity > 1.0:
            raise ValueError(f"Humidity must be between 0.0 and 1.0, got {humidity}")
        self.temperature = temperature
        self.altitude = altitude
        self.humidity = humidity
        self.pressure = pressure if pressure > 0.0 else isa_pressure(altitude)

    @classmethod
    def standard(cls) -> "Atmosphere":
        """Sea-level standard day, 50 % humidity."""
        return cls()

    @classmethod
    def at_altitude(cls, altitude: float) -> "Atmosphere":
        """Standard temperature and pressure at ``altitude``."""
        return cls(isa_temperature(altitude), altitude, DEFAULT_HUMIDITY, 0.0)

    def air_density(self) -> float:
        """ρ = (P − 0.378·e) / (R·T)  (kg/m³)."""
        e = self.humidity * saturation_vapor_pressure(self.temperature)
        return float((self.pressure - VAPOR_DENSITY_FACTOR * e)
                     / (R_SPECIFIC * self.temperature))

    def speed_of_sound(self) -> float:
        """a = sqrt(γ·R·T)  (m/s)."""
        return float(np.sqrt(SPECIFIC_HEAT_RATIO * R_SPECIFIC * self.temperature))

    def density_ratio(self) -> float:
        """Density relative to the drag tables' reference density."""
        return self.air_density() / SEA_LEVEL_DENSITY

    def __repr__(self) -> str:
        return (f"Atmosphere(T={self.temperature:.2f} K, h={self.altitude:.0f} m, "
                f"RH={self.humidity:.2f}, P={self.pressure:.0f} Pa)")


if __name__ == "__main__":
    print("Atmosphere Verification")
    print("=" * 60)
    print(f"{'Alt (m)':>10} {'T (K)':>10} {'P (Pa)':>12} {'ρ (kg/m³)':>12} {'a (m/s)':>10}")
    print("-" * 60)
    for h in [0, 500, 1000, 2000, 3000, 5000]:
        atm = Atmosphere.at_altitude(h)
        print(f"{h:>10.0f} {atm.temperature:>10.2f} {atm.pressure:>12.1f} "
              f"{atm.air_density():>12.5f} {atm.speed_of_sound():>10.2f}")
