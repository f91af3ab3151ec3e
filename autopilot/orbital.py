"""Closed-form orbital mechanics for maneuver planning.

Stateless functions over scalar orbit parameters. The numeric cores are
numba-compiled since the trimming loops call them on every tick.

Key functions:
- vis_viva: Orbital speed at a radius
- circularization_delta_v: Burn that circularizes at an apsis
- hohmann_delta_v: Burn that raises the opposite apsis to a target radius
- time_to_nodes: Universal times of the relative ascending/descending nodes
- burn_duration: Rocket-equation burn time
- relative_inclination: Angle between two orbit planes

All radii are measured from the centre of the reference body, not from
its surface. Inputs must be physically valid (positive radii, masses,
thrust, non-zero semi-major axis); the Python API raises ValueError
otherwise.

Example:
    >>> from autopilot.orbital import vis_viva, burn_duration
    >>>
    >>> v = vis_viva(3.986e14, 6.7e6, 6.7e6)
    >>> print(f"Circular speed: {v:.1f} m/s")
    >>> t = burn_duration(thrust=60e3, isp=320.0, mass=8e3, delta_v=450.0)
"""

from typing import NamedTuple

import numpy as np
from numba import njit

from autopilot.checks import beartype_numeric

# =============================================================================
# Constants
# =============================================================================

G0: float = 9.80665  # Standard gravity [m/s^2]
TWO_PI: float = 2.0 * np.pi


# =============================================================================
# Data Classes
# =============================================================================


class OrbitParameters(NamedTuple):
    """Read-only snapshot of an orbit.

    Attributes:
        apoapsis: Apoapsis radius [m]
        periapsis: Periapsis radius [m]
        inclination: Inclination [rad]
        semi_major_axis: Semi-major axis [m]
        gravitational_parameter: GM of the reference body [m^3/s^2]
        time_to_apoapsis: Time until the next apoapsis passage [s]
        time_to_periapsis: Time until the next periapsis passage [s]
        eccentricity: Orbital eccentricity [-]
        longitude_of_ascending_node: Longitude of the ascending node [rad]
        argument_of_periapsis: Argument of periapsis [rad]
        mean_anomaly_at_epoch: Mean anomaly at ``epoch`` [rad]
        epoch: Universal time at which ``mean_anomaly_at_epoch`` holds [s]
    """
    apoapsis: float
    periapsis: float
    inclination: float
    semi_major_axis: float
    gravitational_parameter: float
    time_to_apoapsis: float = 0.0
    time_to_periapsis: float = 0.0
    eccentricity: float = 0.0
    longitude_of_ascending_node: float = 0.0
    argument_of_periapsis: float = 0.0
    mean_anomaly_at_epoch: float = 0.0
    epoch: float = 0.0

    @property
    def inclination_deg(self) -> float:
        """Inclination in degrees."""
        return float(np.degrees(self.inclination))

    @property
    def period(self) -> float:
        """Orbital period [s]."""
        return orbital_period(self.semi_major_axis, self.gravitational_parameter)


# =============================================================================
# Core Numba Functions
# =============================================================================


@njit(cache=True, fastmath=True)
def _vis_viva(mu: float, radius: float, semi_major_axis: float) -> float:
    """sqrt(mu * (2/r - 1/a)), floored at zero."""
    v2 = mu * (2.0 / radius - 1.0 / semi_major_axis)
    if v2 < 0.0:
        return 0.0
    return np.sqrt(v2)


@njit(cache=True, fastmath=True)
def _burn_duration(thrust: float, isp: float, mass: float, delta_v: float) -> float:
    """Rocket-equation burn time at constant thrust."""
    exhaust_velocity = isp * G0
    dry_mass = mass / np.exp(delta_v / exhaust_velocity)
    flow_rate = thrust / exhaust_velocity
    return (mass - dry_mass) / flow_rate


@njit(cache=True, fastmath=True)
def _orbit_normal(inc: float, lan: float) -> tuple[float, float, float]:
    """Unit angular momentum vector of an orbit plane."""
    return (
        np.sin(inc) * np.sin(lan),
        -np.sin(inc) * np.cos(lan),
        np.cos(inc),
    )


@njit(cache=True, fastmath=True)
def _true_anomaly_of_direction(
    inc: float, lan: float, arg_pe: float,
    dx: float, dy: float, dz: float,
) -> float:
    """True anomaly at which the orbit passes direction d."""
    cos_o, sin_o = np.cos(lan), np.sin(lan)
    cos_w, sin_w = np.cos(arg_pe), np.sin(arg_pe)
    cos_i, sin_i = np.cos(inc), np.sin(inc)

    # Perifocal basis: P toward periapsis, Q 90 degrees ahead in the plane
    px = cos_o * cos_w - sin_o * sin_w * cos_i
    py = sin_o * cos_w + cos_o * sin_w * cos_i
    pz = sin_w * sin_i
    qx = -cos_o * sin_w - sin_o * cos_w * cos_i
    qy = -sin_o * sin_w + cos_o * cos_w * cos_i
    qz = cos_w * sin_i

    nu = np.arctan2(dx * qx + dy * qy + dz * qz, dx * px + dy * py + dz * pz)
    if nu < 0.0:
        nu += TWO_PI
    return nu


@njit(cache=True, fastmath=True)
def _ut_at_true_anomaly(
    true_anomaly: float,
    ecc: float,
    sma: float,
    mu: float,
    mean_anomaly_at_epoch: float,
    epoch: float,
    ut: float,
) -> float:
    """Next universal time at which an elliptic orbit reaches a true anomaly."""
    ecc_anomaly = 2.0 * np.arctan2(
        np.sqrt(1.0 - ecc) * np.sin(true_anomaly / 2.0),
        np.sqrt(1.0 + ecc) * np.cos(true_anomaly / 2.0),
    )
    mean_anomaly = ecc_anomaly - ecc * np.sin(ecc_anomaly)
    mean_motion = np.sqrt(mu / (sma * sma * sma))
    current = mean_anomaly_at_epoch + mean_motion * (ut - epoch)
    delta = (mean_anomaly - current) % TWO_PI
    if delta < 0.0:
        delta += TWO_PI
    return ut + delta / mean_motion


@njit(cache=True, fastmath=True)
def _relative_node_true_anomalies(
    inc: float, lan: float, arg_pe: float,
    target_inc: float, target_lan: float,
) -> tuple[float, float]:
    """(ascending, descending) node true anomalies relative to a target plane.

    Returns (nan, nan) for coplanar orbits.
    """
    hx, hy, hz = _orbit_normal(inc, lan)
    tx, ty, tz = _orbit_normal(target_inc, target_lan)

    # Ascending node lies along h_target x h_vessel
    nx = ty * hz - tz * hy
    ny = tz * hx - tx * hz
    nz = tx * hy - ty * hx
    n = np.sqrt(nx * nx + ny * ny + nz * nz)
    if n < 1e-9:
        return (np.nan, np.nan)

    an = _true_anomaly_of_direction(inc, lan, arg_pe, nx / n, ny / n, nz / n)
    dn = (an + np.pi) % TWO_PI
    return (an, dn)


# =============================================================================
# Python API Functions
# =============================================================================


def _require_positive(**values: float) -> None:
    for name, value in values.items():
        if not value > 0:
            raise ValueError(f"{name} must be positive, got {value}")


@beartype_numeric
def vis_viva(gravitational_parameter: float, radius: float, semi_major_axis: float) -> float:
    """Orbital speed at a radius on an orbit of given semi-major axis.

    Args:
        gravitational_parameter: GM of the reference body [m^3/s^2]
        radius: Distance from the body centre [m]
        semi_major_axis: Semi-major axis [m], negative for hyperbolic orbits

    Returns:
        Speed [m/s]
    """
    _require_positive(radius=radius)
    if semi_major_axis == 0:
        raise ValueError("semi_major_axis must be non-zero")
    return float(_vis_viva(gravitational_parameter, radius, semi_major_axis))


@beartype_numeric
def circularization_delta_v(
    gravitational_parameter: float,
    radius: float,
    semi_major_axis: float,
) -> float:
    """Prograde delta-V that makes the orbit circular at ``radius``.

    Positive at apoapsis of an eccentric orbit, negative at periapsis.

    Args:
        gravitational_parameter: GM of the reference body [m^3/s^2]
        radius: Apsis radius where the burn happens [m]
        semi_major_axis: Current semi-major axis [m]

    Returns:
        Prograde delta-V [m/s]
    """
    target = vis_viva(gravitational_parameter, radius, radius)
    current = vis_viva(gravitational_parameter, radius, semi_major_axis)
    return target - current


@beartype_numeric
def hohmann_delta_v(
    gravitational_parameter: float,
    start_radius: float,
    final_radius: float,
    current_semi_major_axis: float,
) -> float:
    """Prograde delta-V at ``start_radius`` that puts the opposite apsis at ``final_radius``.

    Args:
        gravitational_parameter: GM of the reference body [m^3/s^2]
        start_radius: Radius of the burn point [m]
        final_radius: Radius the transfer orbit must reach [m]
        current_semi_major_axis: Semi-major axis before the burn [m]

    Returns:
        Prograde delta-V [m/s]
    """
    _require_positive(final_radius=final_radius)
    transfer_sma = (start_radius + final_radius) / 2.0
    target = vis_viva(gravitational_parameter, start_radius, transfer_sma)
    current = vis_viva(gravitational_parameter, start_radius, current_semi_major_axis)
    return target - current


@beartype_numeric
def burn_duration(thrust: float, isp: float, mass: float, delta_v: float) -> float:
    """Burn time for a delta-V from the rocket equation.

    dry_mass = mass / exp(dv / (isp * g0))
    duration = (mass - dry_mass) / (thrust / (isp * g0))

    Args:
        thrust: Available thrust [N]
        isp: Specific impulse [s]
        mass: Mass at ignition [kg]
        delta_v: Delta-V magnitude [m/s]

    Returns:
        Burn duration [s]
    """
    _require_positive(thrust=thrust, isp=isp, mass=mass)
    return float(_burn_duration(thrust, isp, mass, abs(delta_v)))


@beartype_numeric
def orbital_period(semi_major_axis: float, gravitational_parameter: float) -> float:
    """Orbital period from semi-major axis. Zero for open orbits."""
    if semi_major_axis <= 0:
        return 0.0
    return float(TWO_PI * np.sqrt(semi_major_axis**3 / gravitational_parameter))


@beartype_numeric
def ut_at_true_anomaly(orbit: OrbitParameters, true_anomaly: float, ut: float) -> float:
    """Next universal time at which ``orbit`` reaches ``true_anomaly``."""
    if not 0.0 <= orbit.eccentricity < 1.0:
        raise ValueError(f"Elliptic orbit required, eccentricity {orbit.eccentricity}")
    return float(_ut_at_true_anomaly(
        true_anomaly,
        orbit.eccentricity,
        orbit.semi_major_axis,
        orbit.gravitational_parameter,
        orbit.mean_anomaly_at_epoch,
        orbit.epoch,
        ut,
    ))


@beartype_numeric
def relative_node_true_anomalies(
    orbit: OrbitParameters,
    target: OrbitParameters,
) -> tuple[float, float]:
    """True anomalies of the ascending and descending nodes relative to ``target``.

    Raises:
        ValueError: If the two orbits are coplanar
    """
    an, dn = _relative_node_true_anomalies(
        orbit.inclination,
        orbit.longitude_of_ascending_node,
        orbit.argument_of_periapsis,
        target.inclination,
        target.longitude_of_ascending_node,
    )
    if np.isnan(an):
        raise ValueError("Orbits are coplanar; relative nodes are undefined")
    return (float(an), float(dn))


@beartype_numeric
def time_to_nodes(
    orbit: OrbitParameters,
    target: OrbitParameters,
    ut: float,
) -> tuple[float, float]:
    """Universal times of the next relative ascending and descending nodes.

    Args:
        orbit: Orbit of the controlled vehicle
        target: Orbit whose plane should be matched
        ut: Current universal time [s]

    Returns:
        (ut_at_ascending_node, ut_at_descending_node)

    Example:
        >>> ut_an, ut_dn = time_to_nodes(vessel_orbit, target_orbit, ut)
        >>> time_to_burn = min(ut_an, ut_dn) - ut
    """
    an, dn = relative_node_true_anomalies(orbit, target)
    return (ut_at_true_anomaly(orbit, an, ut), ut_at_true_anomaly(orbit, dn, ut))


@beartype_numeric
def orbit_normal(orbit: OrbitParameters) -> np.ndarray:
    """Unit angular momentum vector of the orbit plane."""
    return np.array(_orbit_normal(orbit.inclination, orbit.longitude_of_ascending_node))


@beartype_numeric
def ascending_node_direction(orbit: OrbitParameters, target: OrbitParameters) -> np.ndarray:
    """Unit vector toward the ascending node of ``orbit`` relative to ``target``.

    Raises:
        ValueError: If the two orbits are coplanar
    """
    line = np.cross(orbit_normal(target), orbit_normal(orbit))
    norm = np.linalg.norm(line)
    if norm < 1e-9:
        raise ValueError("Orbits are coplanar; relative nodes are undefined")
    return line / norm


@beartype_numeric
def relative_inclination(
    orbit: OrbitParameters,
    target: OrbitParameters,
    reference: np.ndarray | None = None,
) -> float:
    """Angle between two orbit planes [deg].

    Args:
        orbit: Orbit being adjusted
        target: Orbit whose plane should be matched
        reference: Ascending node direction the sign is measured against.
            The result is negative once ``orbit`` has rotated past ``target``
            about this line. Unsigned if None.

    Returns:
        Relative inclination [deg]
    """
    h, h_target = orbit_normal(orbit), orbit_normal(target)
    angle = float(np.degrees(np.arccos(np.clip(np.dot(h, h_target), -1.0, 1.0))))
    if reference is not None and np.dot(np.cross(h_target, h), reference) < 0:
        angle = -angle
    return angle
