"""Runtime type checking for the autopilot's public API.

``float`` annotations also accept ``int`` (the PEP 484 numeric tower),
so ``AscentConfig(target_apoapsis=5000)`` clamps instead of raising and
``PIDController().compute(5, 10)`` returns a number.

Example:
    >>> from autopilot.checks import beartype_numeric
    >>>
    >>> @beartype_numeric
    ... def half(x: float) -> float:
    ...     return x / 2
    >>> half(3)
    1.5
"""

from beartype import BeartypeConf, beartype

beartype_numeric = beartype(conf=BeartypeConf(is_pep484_tower=True))
